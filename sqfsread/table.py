"""Lookup tables stored as a list of metadata block pointers.

The filesystem object passed to :meth:`MetadataTable.get` must provide
``md_cache(position)``, returning the decompressed metadata
:class:`~sqfsread.errors.Block` that starts at ``position``.
"""

from __future__ import annotations

import struct
from typing import Any

from .errors import SquashfsError
from .fileio import pread

METADATA_SIZE = 8192
_POINTER = struct.Struct("<Q")


def _divceil(total: int, size: int) -> int:
    return -(-total // size)


class MetadataTable:
    """Fixed-size records spread over metadata blocks, indexed by number."""

    def __init__(self, fd: int, start: int, each: int, count: int) -> None:
        self.each = each
        self.blocks: list[int] = []
        if count == 0:
            return
        nblocks = _divceil(each * count, METADATA_SIZE)
        length = nblocks * _POINTER.size
        raw = pread(fd, length, start)
        if len(raw) != length:
            raise SquashfsError(
                f"short read of table index at {start}: "
                f"wanted {length} bytes, got {len(raw)}"
            )
        self.blocks = [value for (value,) in _POINTER.iter_unpack(raw)]

    def get(self, fs: Any, index: int) -> bytes:
        """Return the raw bytes of record ``index``."""
        if index < 0:
            raise SquashfsError(f"table index {index} out of range")
        pos = index * self.each
        bnum, off = divmod(pos, METADATA_SIZE)
        if bnum >= len(self.blocks):
            raise SquashfsError(f"table index {index} out of range")
        block = fs.md_cache(self.blocks[bnum])
        try:
            data = bytes(block.data[off:off + self.each])
        finally:
            block.deref()
        if len(data) != self.each:
            raise SquashfsError(f"table record {index} is truncated")
        return data