[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vantaos"
version = "0.1.0"
description = "A simulated hobby operating system: FAT32, VFS, ATA disks, PS/2 keyboard, VGA text console, ELF64 loading and a shell runtime"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-system",
    "fat32",
    "vfs",
    "elf",
    "vga",
    "keyboard",
    "interrupts",
    "simulation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vantaos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
