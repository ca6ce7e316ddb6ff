"""Positional reads from file descriptors."""

from __future__ import annotations

import os
import threading

_fallback_lock = threading.Lock()


def pread(fd: int, count: int, offset: int) -> bytes:
    """Read up to ``count`` bytes at ``offset`` without relying on the file position.

    Like the system call, the result may be shorter than ``count`` at end of file.
    """
    if count < 0 or offset < 0:
        raise ValueError("count and offset must not be negative")
    if hasattr(os, "pread"):
        return os.pread(fd, count, offset)
    with _fallback_lock:
        saved = os.lseek(fd, 0, os.SEEK_CUR)
        try:
            os.lseek(fd, offset, os.SEEK_SET)
            chunks = []
            remaining = count
            while remaining:
                chunk = os.read(fd, remaining)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
            return b"".join(chunks)
        finally:
            os.lseek(fd, saved, os.SEEK_SET)