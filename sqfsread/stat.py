"""Building stat information for inodes, plus small platform helpers.

The filesystem object passed to :func:`stat_inode` must provide:

* ``sb.block_size``: the image's block size;
* ``uid`` and ``gid``: owner overrides, used when greater than zero;
* ``id_get(index)``: the numeric id stored at ``index`` in the id table.

Inodes must provide ``mode``, ``nlink``, ``mtime``, ``uid`` and ``gid``
(the latter two are id table indexes).  Regular files also provide
``file_size``, device nodes ``dev_major`` and ``dev_minor``, and symbolic
links ``symlink_size``.
"""

from __future__ import annotations

import errno
import os
import stat as _statmod
from dataclasses import dataclass
from typing import Any

_BLOCK_UNIT = 512


@dataclass
class StatResult:
    """The fields of a stat structure that an image can supply (no inode number)."""

    st_mode: int = 0
    st_nlink: int = 0
    st_uid: int = 0
    st_gid: int = 0
    st_size: int = 0
    st_blocks: int = 0
    st_blksize: int = 0
    st_rdev: int = 0
    st_atime: int = 0
    st_mtime: int = 0
    st_ctime: int = 0


def makedev(major: int, minor: int) -> int:
    """Combine a major and minor device number into a device id."""
    if hasattr(os, "makedev"):
        return os.makedev(major, minor)
    return (
        ((major & 0xFFFFF000) << 32)
        | ((major & 0xFFF) << 8)
        | ((minor & 0xFFFFFF00) << 12)
        | (minor & 0xFF)
    )


def enoattr() -> int:
    """The error number meaning "no such extended attribute"."""
    value = getattr(errno, "ENOATTR", None)
    if value is None:
        value = errno.ENODATA
    return value


def stat_inode(fs: Any, inode: Any) -> StatResult:
    """Fill in stat information for ``inode`` of ``fs``."""
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
    elif _statmod.S_ISLNK(mode):
        result.st_size = inode.symlink_size

    result.st_blksize = fs.sb.block_size

    fs_uid = getattr(fs, "uid", 0) or 0
    fs_gid = getattr(fs, "gid", 0) or 0
    result.st_uid = fs_uid if fs_uid > 0 else fs.id_get(inode.uid)
    result.st_gid = fs_gid if fs_gid > 0 else fs.id_get(inode.gid)
    return result