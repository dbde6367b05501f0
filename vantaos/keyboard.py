"""PS/2 set-1 scancode decoding into a bounded queue of key events."""

from __future__ import annotations

import enum
import threading
import time
from collections import deque
from dataclasses import dataclass

KEY_BUFFER_SIZE = 64

SC_EXTENDED = 0xE0
SC_LSHIFT = 0x2A
SC_RSHIFT = 0x36
SC_LCTRL = 0x1D
SC_LALT = 0x38
SC_EXT_RCTRL = 0x1D
SC_EXT_RALT = 0x38
_RELEASE_BIT = 0x80
_ESCAPE = 27


class Key(enum.IntEnum):
    """Codes for keys with no ASCII value; all lie above 127."""

    UP = 0x80
    DOWN = 0x81
    LEFT = 0x82
    RIGHT = 0x83
    HOME = 0x84
    END = 0x85
    PGUP = 0x86
    PGDN = 0x87
    DELETE = 0x88
    INSERT = 0x89
    F1 = 0x8A
    F2 = 0x8B
    F3 = 0x8C
    F4 = 0x8D
    F5 = 0x8E
    F6 = 0x8F
    F7 = 0x90
    F8 = 0x91
    F9 = 0x92
    F10 = 0x93
    F11 = 0x94
    F12 = 0x95


class Modifier(enum.IntFlag):
    NONE = 0
    SHIFT = 0x01
    CTRL = 0x02
    ALT = 0x04


@dataclass(frozen=True)
class KeyEvent:
    """A decoded key: ASCII code or :class:`Key` value, with modifier state."""

    key: int
    modifiers: Modifier
    pressed: bool
    scancode: int


def _table(main: str) -> tuple[int, ...]:
    codes = [ord(c) for c in main.ljust(128, "\0")]
    codes[0x4A] = ord("-")
    codes[0x4E] = ord("+")
    return tuple(codes)


_LOWER = _table("\0\x1b1234567890-=\b\tqwertyuiop[]\n\0asdfghjkl;'`\0\\zxcvbnm,./\0*\0 ")
_UPPER = _table("\0\x1b!@#$%^&*()_+\b\tQWERTYUIOP{}\n\0ASDFGHJKL:\"~\0|ZXCVBNM<>?\0*\0 ")

_EXTENDED_KEYS = {
    0x48: Key.UP,
    0x50: Key.DOWN,
    0x4B: Key.LEFT,
    0x4D: Key.RIGHT,
    0x47: Key.HOME,
    0x4F: Key.END,
    0x49: Key.PGUP,
    0x51: Key.PGDN,
    0x52: Key.INSERT,
    0x53: Key.DELETE,
}

_CONTROL_CHARS = frozenset({ord("\n"), ord("\b"), ord("\t"), _ESCAPE})


class Keyboard:
    """Turns raw scancodes into key events; safe to feed from another thread."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._queue: deque[KeyEvent] = deque()
        self.modifiers = Modifier.NONE
        self._extended = False

    def reset(self) -> None:
        """Drop queued events and clear modifier and prefix state."""
        with self._cond:
            self._queue.clear()
            self.modifiers = Modifier.NONE
            self._extended = False

    def _toggle(self, flag: Modifier, released: bool) -> None:
        if released:
            self.modifiers &= ~flag
        else:
            self.modifiers |= flag
        self._extended = False

    def handle_scancode(self, scancode: int) -> None:
        """Decode one scancode byte, queueing a key press if it yields one."""
        scancode &= 0xFF
        with self._cond:
            if scancode == SC_EXTENDED:
                self._extended = True
                return

            released = bool(scancode & _RELEASE_BIT)
            code = scancode & 0x7F
            modifiers_at_press = self.modifiers

            if code in (SC_LSHIFT, SC_RSHIFT):
                self._toggle(Modifier.SHIFT, released)
                return
            if code == SC_LCTRL or (self._extended and code == SC_EXT_RCTRL):
                self._toggle(Modifier.CTRL, released)
                return
            if code == SC_LALT or (self._extended and code == SC_EXT_RALT):
                self._toggle(Modifier.ALT, released)
                return

            if released:
                self._extended = False
                return

            if self._extended:
                self._extended = False
                key = _EXTENDED_KEYS.get(code)
                if key is None:
                    return
                key = int(key)
            else:
                table = _UPPER if self.modifiers & Modifier.SHIFT else _LOWER
                key = table[code]
                if key == 0:
                    if 0x3B <= code <= 0x44:
                        key = Key.F1 + (code - 0x3B)
                    elif code == 0x57:
                        key = int(Key.F11)
                    elif code == 0x58:
                        key = int(Key.F12)
                    else:
                        return

            if len(self._queue) < KEY_BUFFER_SIZE - 1:
                self._queue.append(
                    KeyEvent(key=key, modifiers=modifiers_at_press, pressed=True, scancode=scancode)
                )
                self._cond.notify()

    def has_event(self) -> bool:
        with self._cond:
            return bool(self._queue)

    def poll_event(self) -> KeyEvent | None:
        """Return the next event, or None if none is queued."""
        with self._cond:
            return self._queue.popleft() if self._queue else None

    def get_event(self, timeout: float | None = None) -> KeyEvent:
        """Wait for the next event; raise TimeoutError if ``timeout`` expires."""
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._queue), timeout):
                raise TimeoutError("no key event")
            return self._queue.popleft()

    def getchar(self, timeout: float | None = None) -> tuple[str, Modifier]:
        """Wait for a character key.

        Returns the character with its modifiers; special keys give an
        empty string.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
            event = self.get_event(remaining)
            if 0x20 <= event.key < 0x7F or event.key in _CONTROL_CHARS:
                return chr(event.key), event.modifiers
            if event.key >= 0x80:
                return "", event.modifiers