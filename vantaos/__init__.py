"""A simulated hobby operating system: disks, FAT32, VFS, keyboard, console, ELF loading, interrupts and a shell runtime."""

__version__ = "0.1.0"