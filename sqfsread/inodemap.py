"""Mapping between image inode ids and the inode numbers a FUSE host uses.

There are three identifiers for an inode:

* the image inode id: the 48-bit position of the inode data, from which the
  inode can be read directly;
* the inode number: assigned sequentially when the image was built;
* the FUSE inode number: chosen here.  Zero means "no entry" and one is the
  root.

If the FUSE inode number is wide enough, it holds the image inode id
directly (:class:`Ino64Map`).  Otherwise it holds the inode number, and the
inode id is found through the export table (:class:`Ino32ExportMap`) or
through a reference-counted cache of entries seen so far (:class:`Ino32Map`).

The filesystem object must provide:

* ``inode_root()``: the inode id of the root directory;
* ``inode_get(inode_id)``: the inode at ``inode_id``, with ``inode_number``;
* ``export_ok()`` and ``export_inode(number)``: whether an export table
  exists, and the inode id of an inode number through it;
* ``sb.block_size`` and ``id_get(index)`` for :func:`lowlevel_stat`.

Directory entries provide ``inode`` (the inode id) and ``inode_number``.
"""

from __future__ import annotations

import stat as _statmod
import sys
from dataclasses import dataclass
from typing import Any, Optional

from .errors import INODE_ID_BYTES, SquashfsError
from .stat import StatResult, makedev

FUSE_ROOT_ID = 1
FUSE_INODE_NONE = 0
SQFS_INODE_NONE = 1

_BLOCK_UNIT = 512


class InodeMap:
    """Converts between image inode ids and FUSE inode numbers."""

    def __init__(self, fs: Any) -> None:
        self._fs = fs

    def to_fuse(self, inode_id: int) -> int:
        """FUSE inode number for an image inode id."""
        raise NotImplementedError

    def to_sqfs(self, fuse_ino: int) -> int:
        """Image inode id for a FUSE inode number."""
        raise NotImplementedError

    def from_entry(self, entry: Any) -> int:
        """FUSE inode number for a directory entry."""
        raise NotImplementedError

    def register(self, entry: Any) -> int:
        """Note that the host now knows about ``entry``; return its FUSE number."""
        return self.from_entry(entry)

    def forget(self, fuse_ino: int, refs: int) -> None:
        """Drop ``refs`` references the host held to ``fuse_ino``."""


class Ino64Map(InodeMap):
    """FUSE numbers hold the inode id itself, adjusted for reserved values.

    The root maps to 1 and inode id 0 maps to 2; neither 1 nor 2 can be a
    real inode id.
    """

    def to_fuse(self, inode_id: int) -> int:
        if inode_id == self._fs.inode_root():
            return FUSE_ROOT_ID
        if inode_id == 0:
            return 2
        return inode_id

    def to_sqfs(self, fuse_ino: int) -> int:
        if fuse_ino == FUSE_ROOT_ID:
            return self._fs.inode_root()
        if fuse_ino == 2:
            return 0
        return fuse_ino

    def from_entry(self, entry: Any) -> int:
        return self.to_fuse(entry.inode)


class _Ino32Base(InodeMap):
    """FUSE numbers hold the inode number: N maps to N + 1, the root to 1,
    and inode number 0 to the root's number plus one."""

    def __init__(self, fs: Any) -> None:
        super().__init__(fs)
        self.root = fs.inode_get(fs.inode_root()).inode_number

    def _num_to_fuse(self, number: int) -> int:
        if number == self.root:
            return FUSE_ROOT_ID
        if number == 0:
            return self.root + 1
        return number + 1

    def _fuse_to_num(self, fuse_ino: int) -> int:
        if fuse_ino == FUSE_ROOT_ID:
            return self.root
        if fuse_ino == self.root + 1:
            return 0
        return fuse_ino - 1

    def to_fuse(self, inode_id: int) -> int:
        try:
            inode = self._fs.inode_get(inode_id)
        except SquashfsError:
            return FUSE_INODE_NONE
        return self._num_to_fuse(inode.inode_number)

    def from_entry(self, entry: Any) -> int:
        return self._num_to_fuse(entry.inode_number)


@dataclass
class _CacheEntry:
    inode_id: int
    refcount: int = 1


class Ino32Map(_Ino32Base):
    """Keeps its own inode number to inode id cache, counted by references."""

    def __init__(self, fs: Any) -> None:
        super().__init__(fs)
        self._cache: dict[int, _CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def to_sqfs(self, fuse_ino: int) -> int:
        if fuse_ino == FUSE_ROOT_ID:
            return self._fs.inode_root()
        found = self._cache.get(self._fuse_to_num(fuse_ino))
        return found.inode_id if found is not None else SQFS_INODE_NONE

    def register(self, entry: Any) -> int:
        number = entry.inode_number
        found = self._cache.get(number)
        if found is not None:
            found.refcount += 1
        else:
            self._cache[number] = _CacheEntry(inode_id=entry.inode)
        return self.from_entry(entry)

    def forget(self, fuse_ino: int, refs: int) -> None:
        number = self._fuse_to_num(fuse_ino)
        found = self._cache.get(number)
        if found is None:
            return
        if found.refcount > refs:
            found.refcount -= refs
        else:
            del self._cache[number]


class Ino32ExportMap(_Ino32Base):
    """Finds inode ids through the image's export table; keeps no cache."""

    def to_sqfs(self, fuse_ino: int) -> int:
        if fuse_ino == FUSE_ROOT_ID:
            return self._fs.inode_root()
        try:
            return self._fs.export_inode(self._fuse_to_num(fuse_ino))
        except SquashfsError:
            return SQFS_INODE_NONE


def create_inode_map(fs: Any, ino_bits: Optional[int] = None) -> InodeMap:
    """Choose the mapping that suits FUSE inode numbers of ``ino_bits`` bits.

    By default the width of the platform's native integer is assumed.
    """
    if ino_bits is None:
        ino_bits = sys.maxsize.bit_length() + 1
    if ino_bits // 8 >= INODE_ID_BYTES:
        return Ino64Map(fs)
    if fs.export_ok():
        return Ino32ExportMap(fs)
    return Ino32Map(fs)


def lookup_inode(fs: Any, inode_map: InodeMap, fuse_ino: int) -> Any:
    """Read the inode the host knows as ``fuse_ino``."""
    return fs.inode_get(inode_map.to_sqfs(fuse_ino))


def lowlevel_stat(fs: Any, inode: Any) -> StatResult:
    """Stat information for ``inode``, with owners taken from the id table."""
    mode = inode.mode
    result = StatResult(
        st_mode=mode,
        st_nlink=inode.nlink,
        st_atime=inode.mtime,
        st_mtime=inode.mtime,
        st_ctime=inode.mtime,
    )
    if _statmod.S_ISREG(mode):
        result.st_size = inode.file_size
        result.st_blocks = result.st_size // _BLOCK_UNIT
    elif _statmod.S_ISBLK(mode) or _statmod.S_ISCHR(mode):
        result.st_rdev = makedev(inode.dev_major, inode.dev_minor)
    result.st_blksize = fs.sb.block_size
    result.st_uid = fs.id_get(inode.uid)
    result.st_gid = fs.id_get(inode.gid)
    return result