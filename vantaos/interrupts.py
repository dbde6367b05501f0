"""Interrupt descriptor table layout and exception/IRQ dispatch."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Protocol

IDT_ENTRIES = 256
KERNEL_CODE_SELECTOR = 0x08
INTERRUPT_GATE = 0x8E

IRQ_TIMER = 32
IRQ_KEYBOARD = 33
IRQ_SLAVE_BASE = 40

PIC_MASTER_COMMAND = 0x20
PIC_SLAVE_COMMAND = 0xA0
PIC_EOI = 0x20

PIC_INIT_SEQUENCE: tuple[tuple[int, int], ...] = (
    (0x20, 0x11), (0xA0, 0x11),
    (0x21, 0x20), (0xA1, 0x28),
    (0x21, 0x04), (0xA1, 0x02),
    (0x21, 0x01), (0xA1, 0x01),
    (0x21, 0xFD), (0xA1, 0xFF),
)

EXCEPTION_COLOR = 0x0C
HEX_COLOR = 0x0F

_ENTRY = struct.Struct("<HHBBHII")
_POINTER = struct.Struct("<HQ")

_EXCEPTION_NAMES = (
    "Division by Zero",
    "Debug",
    "NMI",
    "Breakpoint",
    "Overflow",
    "Bound Range Exceeded",
    "Invalid Opcode",
    "Device Not Available",
    "Double Fault",
    "Coprocessor Segment Overrun",
    "Invalid TSS",
    "Segment Not Present",
    "Stack Fault",
    "General Protection Fault",
    "Page Fault",
    "Reserved",
    "x87 FPU Error",
    "Alignment Check",
    "Machine Check",
    "SIMD Floating Point",
    "Virtualization",
    "Control Protection",
) + ("Reserved",) * 10


@dataclass(frozen=True)
class IdtEntry:
    """A 16-byte 64-bit interrupt gate descriptor."""

    offset_low: int = 0
    selector: int = 0
    ist: int = 0
    type_attr: int = 0
    offset_mid: int = 0
    offset_high: int = 0
    zero: int = 0

    @classmethod
    def from_handler(cls, handler: int) -> IdtEntry:
        """Build a present ring-0 interrupt gate in the kernel code segment."""
        return cls(
            offset_low=handler & 0xFFFF,
            selector=KERNEL_CODE_SELECTOR,
            ist=0,
            type_attr=INTERRUPT_GATE,
            offset_mid=(handler >> 16) & 0xFFFF,
            offset_high=(handler >> 32) & 0xFFFFFFFF,
            zero=0,
        )

    @property
    def handler(self) -> int:
        return self.offset_low | (self.offset_mid << 16) | (self.offset_high << 32)

    def pack(self) -> bytes:
        return _ENTRY.pack(
            self.offset_low,
            self.selector,
            self.ist,
            self.type_attr,
            self.offset_mid,
            self.offset_high,
            self.zero,
        )


class InterruptDescriptorTable:
    """The 256 gate descriptors, initially all empty."""

    def __init__(self) -> None:
        self.entries = [IdtEntry()] * IDT_ENTRIES

    def set_gate(self, n: int, handler: int) -> None:
        if not 0 <= n < IDT_ENTRIES:
            raise IndexError(f"gate {n} outside 0..{IDT_ENTRIES - 1}")
        self.entries[n] = IdtEntry.from_handler(handler)

    def pack(self) -> bytes:
        return b"".join(entry.pack() for entry in self.entries)

    def pointer(self, base: int) -> bytes:
        """Return the 10-byte limit/base operand for loading the table at ``base``."""
        return _POINTER.pack(IDT_ENTRIES * _ENTRY.size - 1, base)


def exception_name(int_no: int) -> str | None:
    """Return the name of CPU exception ``int_no``, or None above 31."""
    if 0 <= int_no < len(_EXCEPTION_NAMES):
        return _EXCEPTION_NAMES[int_no]
    return None


def format_hex(n: int) -> str:
    """Format ``n`` as ``0x`` and sixteen upper-case hex digits."""
    return f"0x{n & 0xFFFFFFFFFFFFFFFF:016X}"


class CpuException(Exception):
    """Raised by the exception handler where the machine would halt."""

    def __init__(self, int_no: int) -> None:
        self.int_no = int_no
        self.name = exception_name(int_no)
        super().__init__(f"{self.name or 'Unknown'} (INT {int_no})")


class _KeyboardSink(Protocol):
    def handle_scancode(self, scancode: int) -> None: ...


class _Screen(Protocol):
    def print_at(self, text: str, row: int, col: int, color: int) -> None: ...


class InterruptController:
    """Dispatches CPU exceptions to the screen and hardware IRQs to drivers."""

    def __init__(self, keyboard: _KeyboardSink, console: _Screen) -> None:
        self.keyboard = keyboard
        self.console = console

    def isr_handler(self, int_no: int) -> None:
        """Show the exception on rows 10-11 and raise CpuException."""
        self.console.print_at("EXCEPTION: ", 10, 0, EXCEPTION_COLOR)
        name = exception_name(int_no)
        if name is not None:
            self.console.print_at(name, 10, 11, EXCEPTION_COLOR)
        self.console.print_at("INT#: ", 11, 0, EXCEPTION_COLOR)
        self.console.print_at(format_hex(int_no), 11, 6, HEX_COLOR)
        raise CpuException(int_no)

    def irq_handler(self, int_no: int, scancode: int | None = None) -> list[int]:
        """Handle an IRQ; return the PIC command ports that were sent EOI, in order."""
        if int_no == IRQ_KEYBOARD:
            if scancode is None:
                raise ValueError("keyboard interrupt needs a scancode")
            self.keyboard.handle_scancode(scancode)
        ports = []
        if int_no >= IRQ_SLAVE_BASE:
            ports.append(PIC_SLAVE_COMMAND)
        ports.append(PIC_MASTER_COMMAND)
        return ports