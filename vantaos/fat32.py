"""FAT32 filesystem driver on top of a sector-addressed device."""

from __future__ import annotations

import itertools
import struct
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Protocol

from .vfs import DirEntry, NodeFlags, Vfs, VfsError, VfsNode

ATTR_READ_ONLY = 0x01
ATTR_HIDDEN = 0x02
ATTR_SYSTEM = 0x04
ATTR_VOLUME_ID = 0x08
ATTR_DIRECTORY = 0x10
ATTR_ARCHIVE = 0x20
ATTR_LFN = 0x0F

CLUSTER_MASK = 0x0FFFFFFF
END_OF_CHAIN = 0x0FFFFFF8
END_OF_CHAIN_MARK = 0x0FFFFFFF
FIRST_DATA_CLUSTER = 2
DELETED_MARK = 0xE5
DIR_ENTRY_SIZE = 32

_BPB = struct.Struct("<3s8sHBHBHHBHHHIIIHHIHH12sBBBI11s8s")
_DIR_ENTRY = struct.Struct("<11sBBBHHHHHHHI")
_FAT_ENTRY = struct.Struct("<I")


class Fat32Error(Exception):
    """Raised when the volume is not FAT32 or an operation cannot complete."""


class SectorDevice(Protocol):
    def read_sectors(self, lba: int, count: int) -> bytes: ...

    def write_sectors(self, lba: int, data: bytes | bytearray) -> None: ...


@dataclass(frozen=True)
class BootSector:
    """The BIOS parameter block at the start of a FAT32 partition."""

    jmp: bytes
    oem: bytes
    bytes_per_sector: int
    sectors_per_cluster: int
    reserved_sectors: int
    num_fats: int
    root_entry_count: int
    total_sectors_16: int
    media_type: int
    fat_size_16: int
    sectors_per_track: int
    num_heads: int
    hidden_sectors: int
    total_sectors_32: int
    fat_size_32: int
    ext_flags: int
    fs_version: int
    root_cluster: int
    fs_info: int
    backup_boot_sector: int
    reserved: bytes
    drive_number: int
    reserved1: int
    boot_signature: int
    volume_id: int
    volume_label: bytes
    fs_type: bytes

    @classmethod
    def parse(cls, data: bytes) -> BootSector:
        if len(data) < _BPB.size:
            raise Fat32Error("boot sector too short")
        return cls(*_BPB.unpack_from(data))


@dataclass(frozen=True)
class DirectoryEntry:
    """A 32-byte short-name directory entry."""

    name: bytes
    attr: int = 0
    nt_reserved: int = 0
    creation_time_tenth: int = 0
    creation_time: int = 0
    creation_date: int = 0
    last_access_date: int = 0
    first_cluster_high: int = 0
    write_time: int = 0
    write_date: int = 0
    first_cluster_low: int = 0
    file_size: int = 0

    @classmethod
    def parse(cls, data: bytes) -> DirectoryEntry:
        if len(data) < _DIR_ENTRY.size:
            raise Fat32Error("directory entry too short")
        return cls(*_DIR_ENTRY.unpack_from(data))

    def pack(self) -> bytes:
        return _DIR_ENTRY.pack(
            self.name,
            self.attr,
            self.nt_reserved,
            self.creation_time_tenth,
            self.creation_time,
            self.creation_date,
            self.last_access_date,
            self.first_cluster_high,
            self.write_time,
            self.write_date,
            self.first_cluster_low,
            self.file_size,
        )

    @property
    def first_cluster(self) -> int:
        return (self.first_cluster_high << 16) | self.first_cluster_low

    @property
    def is_end(self) -> bool:
        return self.name[0] == 0x00

    @property
    def is_listed(self) -> bool:
        """True unless deleted, a long-name fragment or the volume label."""
        return not (
            self.name[0] == DELETED_MARK
            or (self.attr & ATTR_LFN) == ATTR_LFN
            or self.attr & ATTR_VOLUME_ID
        )


def _cluster_fields(cluster: int) -> dict[str, int]:
    return {
        "first_cluster_low": cluster & 0xFFFF,
        "first_cluster_high": (cluster >> 16) & 0xFFFF,
    }


def fat_name_to_string(fat_name: bytes) -> str:
    """Turn an 11-byte 8.3 name into a lower-case ``name.ext`` string."""
    base = fat_name[:8].split(b" ", 1)[0]
    out = base
    if fat_name[8:9] != b" ":
        out += b"." + fat_name[8:11].split(b" ", 1)[0]
    text = out.decode("latin-1")
    return "".join(c.lower() if "A" <= c <= "Z" else c for c in text)


def _upper(text: str) -> str:
    return "".join(c.upper() if "a" <= c <= "z" else c for c in text)


def string_to_fat_name(name: str) -> bytes:
    """Turn ``name.ext`` into an 11-byte, space-padded, upper-case 8.3 name."""
    base, _, ext = name.partition(".")
    packed = _upper(base[:8]).ljust(8) + _upper(ext[:3]).ljust(3)
    return packed.encode("latin-1")


@dataclass(eq=False)
class Fat32Node(VfsNode):
    """A file or directory stored on a FAT32 volume."""

    fs: Fat32FileSystem = field(kw_only=True, repr=False)

    def read(self, offset: int, size: int) -> bytes:
        if not self.is_file:
            raise VfsError(f"{self.name}: not a file")
        return self.fs._read_file(self, offset, size)

    def readdir(self, index: int) -> DirEntry | None:
        if not self.is_directory:
            return None
        listed = (
            e for e in self.fs._entries(self.inode)
            if e.is_listed and e.name[0] != ord(".")
        )
        entry = next(itertools.islice(listed, index, None), None)
        if entry is None:
            return None
        return DirEntry(fat_name_to_string(entry.name), entry.first_cluster)

    def finddir(self, name: str) -> Fat32Node | None:
        if not self.is_directory:
            return None
        wanted = string_to_fat_name(name)
        for entry in self.fs._entries(self.inode):
            if entry.is_listed and entry.name == wanted:
                return self.fs._make_node(entry)
        return None


class Fat32FileSystem:
    """A mounted FAT32 volume."""

    def __init__(self, device: SectorDevice, partition_lba: int = 0) -> None:
        self.device = device
        bpb = BootSector.parse(device.read_sectors(partition_lba, 1))
        if bpb.fat_size_16 != 0 or bpb.fat_size_32 == 0:
            raise Fat32Error("not a FAT32 volume")
        if bpb.bytes_per_sector == 0 or bpb.sectors_per_cluster == 0:
            raise Fat32Error("invalid volume geometry")

        self.bytes_per_sector = bpb.bytes_per_sector
        self.sectors_per_cluster = bpb.sectors_per_cluster
        self.bytes_per_cluster = self.bytes_per_sector * self.sectors_per_cluster
        self.fat_start_lba = partition_lba + bpb.reserved_sectors
        self.cluster_start_lba = self.fat_start_lba + bpb.num_fats * bpb.fat_size_32
        self.root_cluster = bpb.root_cluster
        data_sectors = bpb.total_sectors_32 - (
            bpb.reserved_sectors + bpb.num_fats * bpb.fat_size_32
        )
        self.total_clusters = max(data_sectors, 0) // self.sectors_per_cluster

        self.root = Fat32Node(
            name="/", flags=NodeFlags.DIRECTORY, inode=self.root_cluster, fs=self
        )

    @property
    def entries_per_cluster(self) -> int:
        return self.bytes_per_cluster // DIR_ENTRY_SIZE

    def _cluster_lba(self, cluster: int) -> int:
        return self.cluster_start_lba + (cluster - FIRST_DATA_CLUSTER) * self.sectors_per_cluster

    def read_cluster(self, cluster: int) -> bytes:
        return self.device.read_sectors(self._cluster_lba(cluster), self.sectors_per_cluster)

    def write_cluster(self, cluster: int, data: bytes | bytearray) -> None:
        self.device.write_sectors(self._cluster_lba(cluster), data)

    def _fat_location(self, cluster: int) -> tuple[int, int]:
        fat_offset = cluster * _FAT_ENTRY.size
        sector = self.fat_start_lba + fat_offset // self.bytes_per_sector
        return sector, fat_offset % self.bytes_per_sector

    def next_cluster(self, cluster: int) -> int:
        """Return the FAT entry for ``cluster`` with the top four bits cleared."""
        sector, offset = self._fat_location(cluster)
        (value,) = _FAT_ENTRY.unpack_from(self.device.read_sectors(sector, 1), offset)
        return value & CLUSTER_MASK

    def set_fat_entry(self, cluster: int, value: int) -> None:
        sector, offset = self._fat_location(cluster)
        data = bytearray(self.device.read_sectors(sector, 1))
        _FAT_ENTRY.pack_into(data, offset, value & 0xFFFFFFFF)
        self.device.write_sectors(sector, data)

    def find_free_cluster(self) -> int | None:
        """Return the lowest unallocated cluster, or None if the disk is full."""
        return next(
            (c for c in range(FIRST_DATA_CLUSTER, self.total_clusters) if self.next_cluster(c) == 0),
            None,
        )

    def _chain(self, start: int) -> Iterator[int]:
        cluster = start
        while FIRST_DATA_CLUSTER <= cluster < END_OF_CHAIN:
            yield cluster
            cluster = self.next_cluster(cluster)

    def _entries(self, start: int) -> Iterator[DirectoryEntry]:
        usable = self.entries_per_cluster * DIR_ENTRY_SIZE
        for cluster in self._chain(start):
            data = self.read_cluster(cluster)[:usable]
            for fields in _DIR_ENTRY.iter_unpack(data):
                entry = DirectoryEntry(*fields)
                if entry.is_end:
                    return
                yield entry

    def _make_node(self, entry: DirectoryEntry) -> Fat32Node:
        flags = NodeFlags.DIRECTORY if entry.attr & ATTR_DIRECTORY else NodeFlags.FILE
        return Fat32Node(
            name=fat_name_to_string(entry.name),
            flags=flags,
            size=entry.file_size,
            inode=entry.first_cluster,
            fs=self,
        )

    def _read_file(self, node: Fat32Node, offset: int, size: int) -> bytes:
        if offset < 0 or size < 0:
            raise ValueError("offset and size must not be negative")
        end = min(offset + size, node.size)
        if offset >= end:
            return b""
        bpc = self.bytes_per_cluster
        out = bytearray()
        pos = 0
        for cluster in self._chain(node.inode):
            if pos >= end:
                break
            if pos + bpc > offset:
                data = self.read_cluster(cluster)
                out += data[max(offset - pos, 0):min(end - pos, bpc)]
            pos += bpc
        return bytes(out)

    def mkdir(self, parent: Fat32Node, name: str) -> Fat32Node:
        """Create directory ``name`` in the first cluster of ``parent``."""
        if not parent.is_directory:
            raise Fat32Error(f"{parent.name}: not a directory")
        cluster = self.find_free_cluster()
        if cluster is None:
            raise Fat32Error("disk full")
        self.set_fat_entry(cluster, END_OF_CHAIN_MARK)

        block = bytearray(self.bytes_per_cluster)
        dot = DirectoryEntry(name=b".          ", attr=ATTR_DIRECTORY, **_cluster_fields(cluster))
        dotdot = DirectoryEntry(
            name=b"..         ", attr=ATTR_DIRECTORY, **_cluster_fields(parent.inode)
        )
        block[0:DIR_ENTRY_SIZE] = dot.pack()
        block[DIR_ENTRY_SIZE:2 * DIR_ENTRY_SIZE] = dotdot.pack()
        self.write_cluster(cluster, block)

        data = bytearray(self.read_cluster(parent.inode))
        for offset in range(0, self.entries_per_cluster * DIR_ENTRY_SIZE, DIR_ENTRY_SIZE):
            if data[offset] != 0x00:
                continue
            entry = replace(
                DirectoryEntry.parse(data[offset:offset + DIR_ENTRY_SIZE]),
                name=string_to_fat_name(name),
                attr=ATTR_DIRECTORY,
                file_size=0,
                **_cluster_fields(cluster),
            )
            data[offset:offset + DIR_ENTRY_SIZE] = entry.pack()
            self.write_cluster(parent.inode, data)
            return self._make_node(entry)

        self.set_fat_entry(cluster, 0)
        raise Fat32Error(f"{parent.name}: directory full")


def mount(device: SectorDevice, partition_lba: int = 0) -> Vfs:
    """Mount the FAT32 volume at ``partition_lba`` and return a VFS rooted on it."""
    return Vfs(Fat32FileSystem(device, partition_lba).root)