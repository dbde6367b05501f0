# vantaos

`vantaos` models the pieces of a small x86-64 hobby operating system as
ordinary Python objects. Disks, memory and the screen are in-memory data,
so every part can be driven and inspected from Python code or tests.

## What is inside

| Module | Provides |
| --- | --- |
| `vantaos.blockdev` | `BlockDevice`, a disk image addressed in 512-byte sectors, and `AtaController`, which switches between a master and a slave drive |
| `vantaos.vfs` | `VfsNode`, `DirEntry`, `NodeFlags`, `VfsError` and `Vfs`, which resolves slash-separated paths from a root node |
| `vantaos.fat32` | `mount`, `Fat32FileSystem`, `Fat32Node`, `BootSector`, `DirectoryEntry`, `Fat32Error` and the 8.3 name helpers `fat_name_to_string` and `string_to_fat_name` |
| `vantaos.keyboard` | `Keyboard`, which turns PS/2 set-1 scancodes into `KeyEvent`s carrying `Key` codes and `Modifier` flags |
| `vantaos.console` | `VgaConsole`, an 80x25 text screen with a cursor and scrolling, and `format_string`, a `%s`/`%d`/`%%` formatter |
| `vantaos.elf` | `ElfHeader`, `ProgramHeader`, `validate_header`, `ElfError` and `ElfLoader` for static ELF64 executables |
| `vantaos.interrupts` | `InterruptDescriptorTable`, `IdtEntry`, `InterruptController`, `CpuException`, `exception_name` and `format_hex` |
| `vantaos.shell` | `Shell` (working directory, file access, line input, program execution) and `normalize_path` |

Failures are raised as exceptions: `VfsError`, `Fat32Error`, `ElfError`,
`CpuException`, and the built-in `FileNotFoundError`, `NotADirectoryError`
and `IsADirectoryError` from the shell.

## Examples

Formatting and the text console:

```python
from vantaos.console import VgaConsole, format_string

console = VgaConsole()
console.printf("%s has %d files\n", "apps", 3)
console.row_text(0)                # "apps has 3 files"
format_string("100%% %s", "done")  # "100% done"
```

Feeding scancodes to the keyboard:

```python
from vantaos.keyboard import Keyboard

keyboard = Keyboard()
keyboard.handle_scancode(0x23)     # press "h"
event = keyboard.poll_event()      # KeyEvent with key == ord("h"); None when the queue is empty
```

`Keyboard.get_event` and `Keyboard.getchar` wait for an event and raise
`TimeoutError` when their `timeout` runs out; scancodes may be fed from
another thread.

Mounting a FAT32 image held in memory:

```python
from vantaos.blockdev import BlockDevice
from vantaos.fat32 import mount

with open("disk.img", "rb") as image:
    device = BlockDevice(image.read())

vfs = mount(device, 0)
hello = vfs.resolve_path("/apps/hello")    # a Fat32Node, or None
```

Paths in the shell runtime:

```python
from vantaos.shell import Shell, normalize_path

normalize_path("/apps/./tools/../hello")   # "/apps/hello"
normalize_path("/../..")                   # "/"

shell = Shell(vfs)
shell.set_cwd("apps")                      # FileNotFoundError / NotADirectoryError on failure
shell.list_dir("/apps")                    # one name per line
shell.read_file("hello")                   # "" when the file cannot be read
```

Loading an executable. `ElfLoader` copies each `PT_LOAD` segment into the
memory you give it and then calls your `runner` with the entry address and
the argument list `["prog"]`; what the runner returns is the program's
result:

```python
from vantaos.elf import ElfLoader

memory = bytearray(4 * 1024 * 1024)
loader = ElfLoader(memory, runner=lambda entry, argv: 0, console=console)
shell = Shell(vfs, console=console, loader=loader)
shell.exec_path("hello")                   # also tries /apps/hello
```

Interrupt tables and dispatch:

```python
from vantaos.interrupts import InterruptController, InterruptDescriptorTable

idt = InterruptDescriptorTable()
idt.set_gate(33, 0x1000)
len(idt.pack())                            # 4096
idt.pointer(0x5000)                        # 10-byte limit/base operand

controller = InterruptController(keyboard, console)
controller.irq_handler(33, 0x23)           # queues "h", returns [0x20]
controller.irq_handler(40)                 # [0xA0, 0x20]
controller.isr_handler(14)                 # writes "Page Fault" to the screen, raises CpuException
```

## Limits

The keyboard queue holds 63 events, the console is 80 columns by 25 rows,
shell input lines stop at 510 characters, ELF images are limited to
512 KiB, and only little-endian x86-64 `ET_EXEC` binaries are accepted.
FAT32 files are read-only; `Fat32FileSystem.mkdir` creates new directories,
placing the entry in the first cluster of the parent.

## What it does not do

- There is no command to run and no boot sequence: you build the devices,
  filesystem, keyboard, console and shell yourself and connect them.
- `Shell` provides the services a shell uses; it has no command language
  or prompt loop of its own.
- No machine code is executed. Running a loaded program is whatever the
  `runner` you pass to `ElfLoader` does.
- No real hardware is touched: disks are byte images, the screen is a list
  of cells, and the interrupt controller reports the PIC ports it would
  acknowledge instead of writing to them.