"""Loader for static little-endian x86-64 ELF executables into flat memory."""

from __future__ import annotations

import struct
from collections.abc import Callable, MutableSequence, Sequence
from dataclasses import dataclass
from typing import Protocol

from .vfs import VfsError, VfsNode

ELF_MAGIC = b"\x7fELF"
ELFCLASS64 = 2
ELFDATA2LSB = 1
ET_EXEC = 2
EM_X86_64 = 62
PT_LOAD = 1

ELF_MAX_SIZE = 512 * 1024
PROGRAM_NAME = "prog"

ERR_BAD_MAGIC = -1
ERR_NOT_64BIT = -2
ERR_NOT_LSB = -3
ERR_NOT_EXEC = -4
ERR_WRONG_ARCH = -5
ERR_NOT_FILE = -10
ERR_TOO_LARGE = -11
ERR_READ_FAILED = -12

_EHDR = struct.Struct("<16sHHIQQQIHHHHHH")
_PHDR = struct.Struct("<IIQQQQQQ")


class ElfError(Exception):
    """Raised when an executable cannot be loaded; ``code`` is the error number."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class _Console(Protocol):
    def write(self, text: str) -> None: ...

    def print_int(self, n: int) -> None: ...


@dataclass(frozen=True)
class ElfHeader:
    ident: bytes
    type: int
    machine: int
    version: int
    entry: int
    phoff: int
    shoff: int
    flags: int
    ehsize: int
    phentsize: int
    phnum: int
    shentsize: int
    shnum: int
    shstrndx: int

    @classmethod
    def parse(cls, data: bytes) -> ElfHeader:
        if len(data) < _EHDR.size:
            raise ElfError("truncated ELF header", ERR_BAD_MAGIC)
        return cls(*_EHDR.unpack_from(data))


@dataclass(frozen=True)
class ProgramHeader:
    type: int
    flags: int
    offset: int
    vaddr: int
    paddr: int
    filesz: int
    memsz: int
    align: int

    @classmethod
    def parse(cls, data: bytes) -> ProgramHeader:
        if len(data) < _PHDR.size:
            raise ElfError("truncated program header")
        return cls(*_PHDR.unpack_from(data))


def validate_header(header: ElfHeader) -> None:
    """Raise ElfError unless ``header`` describes a 64-bit LSB x86-64 executable."""
    ident = header.ident
    if ident[:4] != ELF_MAGIC:
        raise ElfError("bad ELF magic", ERR_BAD_MAGIC)
    if ident[4] != ELFCLASS64:
        raise ElfError("not a 64-bit ELF", ERR_NOT_64BIT)
    if ident[5] != ELFDATA2LSB:
        raise ElfError("not little-endian", ERR_NOT_LSB)
    if header.type != ET_EXEC:
        raise ElfError("not an executable", ERR_NOT_EXEC)
    if header.machine != EM_X86_64:
        raise ElfError("wrong architecture", ERR_WRONG_ARCH)


Runner = Callable[[int, Sequence[str]], int]


class ElfLoader:
    """Copies PT_LOAD segments to their physical addresses and runs the entry."""

    def __init__(
        self,
        memory: MutableSequence[int],
        runner: Runner,
        console: _Console | None = None,
    ) -> None:
        self.memory = memory
        self.runner = runner
        self.console = console

    def _say(self, text: str) -> None:
        if self.console is not None:
            self.console.write(text)

    def load_segments(self, image: bytes, header: ElfHeader) -> None:
        """Copy each loadable segment into memory and zero its uninitialised tail."""
        for i in range(header.phnum):
            start = header.phoff + i * header.phentsize
            ph = ProgramHeader.parse(image[start:start + _PHDR.size])
            if ph.type != PT_LOAD:
                continue
            dst = ph.paddr
            if dst + max(ph.filesz, ph.memsz) > len(self.memory):
                raise ElfError(f"segment at {dst:#x} lies outside memory")
            src = image[ph.offset:ph.offset + ph.filesz]
            if len(src) < ph.filesz:
                raise ElfError("segment data lies beyond end of file")
            if ph.filesz:
                self.memory[dst:dst + ph.filesz] = src
            if ph.memsz > ph.filesz:
                self.memory[dst + ph.filesz:dst + ph.memsz] = bytes(ph.memsz - ph.filesz)

    def execute(self, node: VfsNode | None, args: Sequence[str] | None = None) -> int:
        """Load the executable in ``node`` and return what its entry point returns."""
        if node is None or not node.is_file:
            raise ElfError("not a file", ERR_NOT_FILE)
        if node.size > ELF_MAX_SIZE:
            self._say("exec: file too large\n")
            raise ElfError("file too large", ERR_TOO_LARGE)
        try:
            image = node.read(0, node.size)
        except VfsError as exc:
            self._say("exec: read failed\n")
            raise ElfError("read failed", ERR_READ_FAILED) from exc
        if len(image) < node.size:
            self._say("exec: read failed\n")
            raise ElfError("read failed", ERR_READ_FAILED)

        try:
            header = ElfHeader.parse(image)
            validate_header(header)
        except ElfError as exc:
            self._say("exec: invalid ELF\n")
            if self.console is not None:
                self.console.print_int(exc.code)
            self._say("\n")
            raise

        self.load_segments(image, header)
        return self.runner(header.entry, [PROGRAM_NAME])