"""Sector-addressed block devices and a two-drive ATA controller."""

from __future__ import annotations

SECTOR_SIZE = 512
MAX_SECTOR_COUNT = 255
MAX_LBA = (1 << 28) - 1

DRIVE_MASTER = 0
DRIVE_SLAVE = 1


def _check_request(lba: int, count: int) -> None:
    if not 0 <= count <= MAX_SECTOR_COUNT:
        raise ValueError(f"sector count {count} outside 0..{MAX_SECTOR_COUNT}")
    if not 0 <= lba <= MAX_LBA:
        raise ValueError(f"LBA {lba} outside 28-bit range")


class BlockDevice:
    """A disk image held in memory and addressed in 512-byte sectors."""

    def __init__(self, data: bytes | bytearray = b"") -> None:
        if len(data) % SECTOR_SIZE:
            raise ValueError("image size must be a multiple of the sector size")
        self._data = bytearray(data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def _span(self, lba: int, count: int) -> slice:
        _check_request(lba, count)
        start = lba * SECTOR_SIZE
        end = start + count * SECTOR_SIZE
        if end > len(self._data):
            raise IndexError(f"sectors {lba}..{lba + count - 1} beyond end of device")
        return slice(start, end)

    def read_sectors(self, lba: int, count: int) -> bytes:
        """Return ``count`` sectors starting at ``lba``."""
        return bytes(self._data[self._span(lba, count)])

    def write_sectors(self, lba: int, data: bytes | bytearray) -> None:
        """Write whole sectors of ``data`` starting at ``lba``."""
        if len(data) % SECTOR_SIZE:
            raise ValueError("write size must be a multiple of the sector size")
        self._data[self._span(lba, len(data) // SECTOR_SIZE)] = data


class AtaController:
    """Primary ATA bus with a master and a slave drive; master is selected first."""

    def __init__(self, master: BlockDevice | None = None, slave: BlockDevice | None = None) -> None:
        self._drives = (master, slave)
        self.drive = DRIVE_MASTER

    def select_drive(self, drive: int) -> None:
        """Select the slave for any non-zero ``drive``, else the master."""
        self.drive = DRIVE_SLAVE if drive else DRIVE_MASTER

    def _current(self) -> BlockDevice:
        device = self._drives[self.drive]
        if device is None:
            raise OSError(f"no device attached as drive {self.drive}")
        return device

    def read_sectors(self, lba: int, count: int) -> bytes:
        return self._current().read_sectors(lba, count)

    def write_sectors(self, lba: int, data: bytes | bytearray) -> None:
        self._current().write_sectors(lba, data)