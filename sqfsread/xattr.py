"""Extended attributes stored in a squashfs image.

The filesystem object must provide:

* ``md_read(cursor, size)``: read ``size`` bytes of metadata starting at the
  :class:`~sqfsread.errors.MdCursor` ``cursor`` and advance the cursor;
* ``fd``, ``offset`` and ``sb.xattr_id_table_start`` for :func:`xattr_init`,
  which then sets ``xattr_info`` and ``xattr_table`` on it.

Inodes must provide ``xattr``, the index into the xattr id table.
"""

from __future__ import annotations

import copy
import os
import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Any, Optional, Union

from .errors import MdCursor, SquashfsError
from .fileio import pread
from .table import MetadataTable

INVALID_BLK = 0xFFFFFFFFFFFFFFFF
INVALID_XATTR = 0xFFFFFFFF
XATTR_PREFIX_MASK = 0xFF
XATTR_VALUE_OOL = 0x100

_ID_TABLE = struct.Struct("<QII")
_XATTR_ID = struct.Struct("<QII")
_ENTRY = struct.Struct("<HH")
_VAL = struct.Struct("<I")
_REF = struct.Struct("<Q")

_PREFIX_TEXT = (b"user.", b"trusted.", b"security.")


class XattrPrefix(IntEnum):
    """Namespace of an extended attribute, as stored on disk."""

    USER = 0
    TRUSTED = 1
    SECURITY = 2

    @property
    def prefix(self) -> bytes:
        return _PREFIX_TEXT[self.value]


class _Cursors(IntFlag):
    VSIZE = 1
    VAL = 2
    NEXT = 4


@dataclass
class _IdTableHeader:
    xattr_table_start: int = 0
    xattr_ids: int = 0


def _as_bytes(name: Union[str, bytes]) -> bytes:
    return os.fsencode(name)


def _cursor_at(ref: int, base: int) -> MdCursor:
    return MdCursor(block=(ref >> 16) + base, offset=ref & 0xFFFF)


def find_prefix(name: Union[str, bytes]) -> Optional[XattrPrefix]:
    """Return the namespace whose prefix starts ``name``, or None."""
    raw = _as_bytes(name)
    for kind in XattrPrefix:
        if raw.startswith(kind.prefix):
            return kind
    return None


def xattr_init(fs: Any) -> None:
    """Load the xattr id table of the image into ``fs``."""
    start = fs.sb.xattr_id_table_start
    if start == INVALID_BLK:
        fs.xattr_info = _IdTableHeader()
        fs.xattr_table = None
        return
    raw = pread(fs.fd, _ID_TABLE.size, start + fs.offset)
    if len(raw) != _ID_TABLE.size:
        raise SquashfsError("short read of xattr id table header")
    table_start, ids, _unused = _ID_TABLE.unpack(raw)
    fs.xattr_info = _IdTableHeader(xattr_table_start=table_start, xattr_ids=ids)
    fs.xattr_table = MetadataTable(
        fs.fd, start + _ID_TABLE.size + fs.offset, _XATTR_ID.size, ids
    )


class XattrIterator:
    """Walks the extended attributes of one inode.

    Call :meth:`read` while ``remain`` is non-zero, then use the accessors
    on the current entry.
    """

    def __init__(self, fs: Any, inode: Any) -> None:
        self._fs = fs
        self.remain = 0
        self.type = XattrPrefix.USER
        self.ool = False
        self._cursors = _Cursors(0)
        self._c_name = MdCursor()
        self._c_vsize = MdCursor()
        self._c_val = MdCursor()
        self._c_next = MdCursor()
        self._entry_size = 0
        self._vsize = 0

        info = getattr(fs, "xattr_info", None)
        if info is None or info.xattr_ids == 0 or inode.xattr == INVALID_XATTR:
            return
        ref, count, _size = _XATTR_ID.unpack(fs.xattr_table.get(fs, inode.xattr))
        self._base = info.xattr_table_start
        self._c_next = _cursor_at(ref, self._base)
        self.remain = count
        self._cursors = _Cursors.NEXT

    def _md_read(self, cursor: MdCursor, size: int) -> bytes:
        data = self._fs.md_read(cursor, size)
        if len(data) != size:
            raise SquashfsError("short read of xattr metadata")
        return data

    def read(self) -> None:
        """Advance to the next attribute."""
        if self.remain == 0:
            raise SquashfsError("no more extended attributes")
        if not self._cursors & _Cursors.NEXT:
            self.ool = False  # the value reference is stored inline
            self.value()

        self._c_name = copy.copy(self._c_next)
        kind, size = _ENTRY.unpack(self._md_read(self._c_name, _ENTRY.size))
        prefix_type = kind & XATTR_PREFIX_MASK
        self.ool = bool(kind & XATTR_VALUE_OOL)
        if prefix_type > XattrPrefix.SECURITY:
            raise SquashfsError(f"unknown xattr prefix type {prefix_type}")
        self.type = XattrPrefix(prefix_type)
        self._entry_size = size
        self.remain -= 1
        self._cursors = _Cursors(0)

    def name_size(self) -> int:
        """Length of the current name including its namespace prefix."""
        return self._entry_size + len(self.type.prefix)

    def name(self, prefix: bool = True) -> bytes:
        """Name of the current attribute, with its namespace prefix if asked."""
        self._c_vsize = copy.copy(self._c_name)
        data = self._md_read(self._c_vsize, self._entry_size)
        self._cursors |= _Cursors.VSIZE
        return self.type.prefix + data if prefix else data

    def value_size(self) -> int:
        """Length of the current attribute's value."""
        if not self._cursors & _Cursors.VSIZE:
            self.name(prefix=False)

        self._c_val = copy.copy(self._c_vsize)
        (vsize,) = _VAL.unpack(self._md_read(self._c_val, _VAL.size))
        if self.ool:
            self._c_next = copy.copy(self._c_val)
            (pos,) = _REF.unpack(self._md_read(self._c_next, _REF.size))
            self._cursors |= _Cursors.NEXT
            self._c_val = _cursor_at(pos, self._base)
            (vsize,) = _VAL.unpack(self._md_read(self._c_val, _VAL.size))

        self._vsize = vsize
        self._cursors |= _Cursors.VAL
        return vsize

    def value(self) -> bytes:
        """Value of the current attribute."""
        if not self._cursors & _Cursors.VAL:
            self.value_size()
        cursor = copy.copy(self._c_val)
        data = self._md_read(cursor, self._vsize)
        if not self.ool:
            self._c_next = cursor
            self._cursors |= _Cursors.NEXT
        return data

    def find(self, name: Union[str, bytes]) -> bool:
        """Advance to the attribute called ``name``; return whether it exists."""
        raw = _as_bytes(name)
        kind = find_prefix(raw)
        if kind is None:
            return False
        wanted = raw[len(kind.prefix):]
        while self.remain:
            self.read()
            if self.type != kind and self._entry_size != len(wanted):
                continue
            if self.name(prefix=False) == wanted:
                return True
        return False


def lookup(fs: Any, inode: Any, name: Union[str, bytes]) -> Optional[bytes]:
    """Return the value of attribute ``name`` on ``inode``, or None if absent."""
    iterator = XattrIterator(fs, inode)
    if not iterator.find(name):
        return None
    return iterator.value()