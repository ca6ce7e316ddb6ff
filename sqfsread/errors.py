"""Error types and small shared structures for reading squashfs images."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

INODE_ID_BYTES = 6


class SquashfsError(Exception):
    """Generic failure while reading a squashfs image."""


class BadFormatError(SquashfsError):
    """The file is not in a supported squashfs format."""


class BadVersionError(SquashfsError):
    """The squashfs version is not supported."""


class BadCompressionError(SquashfsError):
    """The image uses an unsupported compression method."""


class UnsupportedError(SquashfsError):
    """The image uses an unsupported feature."""


@dataclass
class MdCursor:
    """Position inside the metadata area: a block start and an offset in it."""

    block: int = 0
    offset: int = 0


@dataclass
class Block:
    """A decompressed block of data shared between users by reference count."""

    data: bytes = b""
    refcount: int = 1
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    @property
    def size(self) -> int:
        return len(self.data)

    def ref(self) -> None:
        """Take one more reference to the block."""
        with self._lock:
            self.refcount += 1

    def deref(self) -> bool:
        """Drop one reference; return True if it was the last one."""
        with self._lock:
            self.refcount -= 1
            return self.refcount == 0