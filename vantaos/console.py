"""VGA text-mode console and the shell's minimal string formatting."""

from __future__ import annotations

import re
from collections.abc import Iterator

VGA_WIDTH = 80
VGA_HEIGHT = 25
DEFAULT_COLOR = 0x0F

_FORMAT_PATTERN = re.compile(r"%(.)|%|[^%]+", re.DOTALL)


def _cell(char: str, color: int) -> int:
    return (color << 8) | (ord(char) & 0xFF)


_BLANK = _cell(" ", DEFAULT_COLOR)


def _expand(fmt: str, args: tuple) -> Iterator[tuple[str, int]]:
    """Yield each output piece with the count the printer adds for it."""
    remaining = iter(args)

    def next_arg():
        try:
            return next(remaining)
        except StopIteration:
            raise TypeError("not enough arguments for format string") from None

    for match in _FORMAT_PATTERN.finditer(fmt):
        spec = match.group(1)
        text = match.group(0)
        if spec is None:
            yield text, len(text)
        elif spec == "s":
            value = next_arg()
            out = "" if value is None else str(value)
            yield out, len(out)
        elif spec == "d":
            yield str(int(next_arg())), 10
        elif spec == "%":
            yield "%", 1
        else:
            yield text, 2


def format_string(fmt: str, *args) -> str:
    """Format with ``%s``, ``%d`` and ``%%``; other directives are kept verbatim."""
    return "".join(text for text, _ in _expand(fmt, args))


class VgaConsole:
    """An 80x25 text screen of colour/character cells with a cursor."""

    def __init__(self) -> None:
        self.cells = [_BLANK] * (VGA_WIDTH * VGA_HEIGHT)
        self.row = 0
        self.col = 0

    def print_char(self, c: str | int) -> None:
        """Print one character at the cursor, handling control characters."""
        ch = chr(c) if isinstance(c, int) else c
        if ch == "\n":
            self.col = 0
            self.row += 1
        elif ch == "\r":
            self.col = 0
        elif ch == "\b":
            if self.col > 0:
                self.col -= 1
                self.cells[self.row * VGA_WIDTH + self.col] = _BLANK
        elif ch == "\t":
            self.col = (self.col + 8) & ~7
        else:
            self.cells[self.row * VGA_WIDTH + self.col] = _cell(ch, DEFAULT_COLOR)
            self.col += 1

        if self.col >= VGA_WIDTH:
            self.col = 0
            self.row += 1
        while self.row >= VGA_HEIGHT:
            self.scroll()
            self.row = VGA_HEIGHT - 1

    def write(self, text: str) -> None:
        for ch in text:
            self.print_char(ch)

    def print_int(self, n: int) -> None:
        self.write(str(int(n)))

    def printf(self, fmt: str, *args) -> int:
        """Print formatted text; each ``%d`` counts as 10 in the returned total."""
        total = 0
        for text, weight in _expand(fmt, args):
            self.write(text)
            total += weight
        return total

    def print_at(self, text: str, row: int, col: int, color: int = DEFAULT_COLOR) -> None:
        """Write ``text`` at a fixed position without moving the cursor."""
        self._check_position(row, col)
        start = row * VGA_WIDTH + col
        for offset, ch in enumerate(text[: len(self.cells) - start]):
            self.cells[start + offset] = _cell(ch, color)

    def scroll(self) -> None:
        """Move every row up by one and blank the bottom row."""
        del self.cells[:VGA_WIDTH]
        self.cells.extend([_BLANK] * VGA_WIDTH)

    def clear(self) -> None:
        self.cells = [_BLANK] * (VGA_WIDTH * VGA_HEIGHT)
        self.row = 0
        self.col = 0

    def set_cursor(self, row: int, col: int) -> None:
        self._check_position(row, col)
        self.row = row
        self.col = col

    def row_text(self, row: int) -> str:
        """Return the characters of ``row`` without trailing spaces."""
        self._check_position(row, 0)
        cells = self.cells[row * VGA_WIDTH:(row + 1) * VGA_WIDTH]
        return "".join(chr(cell & 0xFF) for cell in cells).rstrip(" ")

    @staticmethod
    def _check_position(row: int, col: int) -> None:
        if not (0 <= row < VGA_HEIGHT and 0 <= col < VGA_WIDTH):
            raise ValueError(f"position ({row}, {col}) outside the screen")