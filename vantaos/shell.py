"""Shell runtime: working directory, file helpers, line input and program launch."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .console import VgaConsole
from .elf import ElfError
from .keyboard import Keyboard, Modifier
from .vfs import MAX_NAME, MAX_PATH, Vfs, VfsError, VfsNode

LINE_MAX = 510
APPS_DIR = "/apps/"
_MAX_COMPONENTS = MAX_PATH // 2


class _Loader(Protocol):
    def execute(self, node: VfsNode, args: Sequence[str] | None = None) -> int: ...


def normalize_path(path: str) -> str:
    """Collapse ``.``, ``..`` and repeated slashes into an absolute path."""
    parts: list[str] = []
    for component in path.split("/"):
        if len(parts) >= _MAX_COMPONENTS:
            break
        if component in ("", "."):
            continue
        if component == "..":
            if parts:
                parts.pop()
            continue
        parts.append(component)
    return "/" + "/".join(parts)


class Shell:
    """State and services the shell relies on, bound to one filesystem."""

    def __init__(
        self,
        vfs: Vfs,
        keyboard: Keyboard | None = None,
        console: VgaConsole | None = None,
        loader: _Loader | None = None,
    ) -> None:
        self.vfs = vfs
        self.keyboard = keyboard if keyboard is not None else Keyboard()
        self.console = console if console is not None else VgaConsole()
        self.loader = loader
        self.cwd = "/"

    def _join(self, path: str) -> str:
        if path.startswith("/"):
            return path[: MAX_PATH - 1]
        base = self.cwd[: MAX_PATH - 1]
        if not base.endswith("/"):
            base += "/"
        remaining = MAX_PATH - len(base) - 1
        return base + path[: max(remaining, 0)]

    def build_full_path(self, path: str) -> str:
        """Return ``path`` made absolute against the working directory and normalised."""
        return normalize_path(self._join(path))

    def set_cwd(self, path: str) -> None:
        """Change directory; raise if the target is missing or not a directory."""
        if path == ".":
            return
        if path == "..":
            if self.cwd == "/":
                return
            full = self.cwd.rpartition("/")[0] or "/"
        else:
            full = self._join(path)
        full = normalize_path(full)

        node = self.vfs.resolve_path(full)
        if node is None:
            raise FileNotFoundError(full)
        if not node.is_directory:
            raise NotADirectoryError(full)
        self.cwd = full[: MAX_PATH - 1]

    def _lookup(self, path: str) -> VfsNode | None:
        return self.vfs.resolve_path(self.build_full_path(path))

    def file_exists(self, path: str) -> bool:
        return self._lookup(path) is not None

    def read_file(self, path: str) -> str:
        """Return the file's contents, or an empty string if it cannot be read."""
        node = self._lookup(path)
        if node is None or not node.is_file:
            return ""
        try:
            data = node.read(0, node.size)
        except VfsError:
            return ""
        return data.decode("latin-1")

    def write_file(self, path: str, content: str) -> int:
        """Write ``content`` at the start of an existing file; return bytes written."""
        full = self.build_full_path(path)
        node = self.vfs.resolve_path(full)
        if node is None:
            raise FileNotFoundError(full)
        return node.write(0, content.encode("latin-1"))

    def _directory(self, path: str) -> VfsNode | None:
        node = self.vfs.resolve_path(path)
        return node if node is not None and node.is_directory else None

    def _names(self, node: VfsNode) -> list[str]:
        names = []
        while (entry := node.readdir(len(names))) is not None:
            names.append(entry.name)
        return names

    def list_dir_count(self, path: str) -> int:
        node = self._directory(path)
        return 0 if node is None else len(self._names(node))

    def list_dir_entry(self, path: str, index: int) -> str:
        node = self._directory(path)
        if node is None:
            return ""
        entry = node.readdir(index)
        return "" if entry is None else entry.name

    def list_dir(self, path: str) -> str:
        """Return each entry name followed by a newline."""
        node = self._directory(path)
        if node is None:
            return ""
        return "".join(f"{name}\n" for name in self._names(node))

    def read_line(self) -> str:
        """Read an echoed line from the keyboard; Ctrl+C yields an empty line."""
        line: list[str] = []
        while True:
            event = self.keyboard.get_event()
            if not event.pressed:
                continue
            key = event.key
            if key == ord("\n"):
                self.console.print_char("\n")
                return "".join(line)
            if key == ord("\b"):
                if line:
                    line.pop()
                    self.console.print_char("\b")
            elif 0x20 <= key < 0x7F and len(line) < LINE_MAX:
                line.append(chr(key))
                self.console.print_char(chr(key))
            if event.modifiers & Modifier.CTRL and key in (ord("c"), ord("C")):
                self.console.write("^C\n")
                return ""

    def _resolve_exec_path(self, path: str) -> tuple[VfsNode | None, str]:
        base = path.rpartition("/")[2][: MAX_NAME - 1]
        full = self.build_full_path(path)
        node = self.vfs.resolve_path(full)
        if node is not None:
            return node, full
        if base:
            remaining = MAX_PATH - len(APPS_DIR) - 1
            alt = normalize_path(APPS_DIR + base[:remaining])
            node = self.vfs.resolve_path(alt)
            if node is not None:
                return node, alt
        return None, full

    def exec_program(self, path: str, args: Sequence[str] | None = None) -> int:
        """Run an executable, also trying ``/apps/<name>``; return its result."""
        node, full = self._resolve_exec_path(path)
        if node is None:
            self.console.write(f"exec: no such file: {full}\n")
            raise FileNotFoundError(full)
        if not node.is_file:
            self.console.write("exec: not a file\n")
            raise IsADirectoryError(full)
        if self.loader is None:
            raise RuntimeError("no program loader configured")
        try:
            rc = self.loader.execute(node, args)
        except ElfError as exc:
            self.console.write(f"exec failed with code {exc.code}\n")
            raise
        if rc < 0:
            self.console.write(f"exec failed with code {rc}\n")
        return rc

    def exec_path(self, path: str) -> int:
        return self.exec_program(path, None)