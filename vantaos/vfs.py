"""Virtual filesystem nodes and path resolution."""

from __future__ import annotations

import enum
from dataclasses import dataclass

MAX_PATH = 256
MAX_NAME = 128


class VfsError(Exception):
    """Raised when a node does not support the requested operation."""


class NodeFlags(enum.IntFlag):
    FILE = 0x01
    DIRECTORY = 0x02


@dataclass(frozen=True)
class DirEntry:
    name: str
    inode: int


@dataclass(eq=False)
class VfsNode:
    """A file or directory; filesystems subclass it and override the operations."""

    name: str
    flags: NodeFlags
    size: int = 0
    inode: int = 0

    @property
    def is_file(self) -> bool:
        return bool(self.flags & NodeFlags.FILE)

    @property
    def is_directory(self) -> bool:
        return bool(self.flags & NodeFlags.DIRECTORY)

    def read(self, offset: int, size: int) -> bytes:
        """Read up to ``size`` bytes at ``offset``."""
        raise VfsError(f"{self.name}: not readable")

    def write(self, offset: int, data: bytes) -> int:
        """Write ``data`` at ``offset`` and return the number of bytes written."""
        raise VfsError(f"{self.name}: not writable")

    def readdir(self, index: int) -> DirEntry | None:
        """Return the entry at ``index``, or None past the end."""
        return None

    def finddir(self, name: str) -> VfsNode | None:
        """Return the child called ``name``, or None."""
        return None


class Vfs:
    """Resolves slash-separated paths from a root node."""

    def __init__(self, root: VfsNode | None = None) -> None:
        self.root = root

    def resolve_path(self, path: str | None) -> VfsNode | None:
        """Return the node at ``path``, or None if any component is missing."""
        if path is None or self.root is None:
            return None
        if path == "/":
            return self.root
        current = self.root
        for part in path.split("/"):
            if not part:
                continue
            component = part[: MAX_NAME - 1]
            current = current.finddir(component) if current.is_directory else None
            if current is None:
                return None
        return current