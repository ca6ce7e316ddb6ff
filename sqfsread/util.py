"""Opening image files and reporting failures to open them.

:func:`open_image` takes an ``init(fd, offset, subdir)`` callable that reads
the image and returns the filesystem object.  For a useful message it may
raise :class:`~sqfsread.errors.BadVersionError` carrying ``version`` (the
found ``(major, minor)``) and ``supported`` (the lowest and highest supported
versions), or :class:`~sqfsread.errors.BadCompressionError` carrying
``compression`` (the name used by the image) and ``supported`` (the names of
the supported methods).
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from typing import Any, Optional, Union

from .errors import (
    BadCompressionError,
    BadFormatError,
    BadVersionError,
    SquashfsError,
)

PathLike = Union[str, bytes, "os.PathLike[str]", "os.PathLike[bytes]"]


def fd_open(path: PathLike, verbose: bool = True) -> int:
    """Open ``path`` read-only and return its descriptor.

    On failure a message goes to standard error if ``verbose`` is set.
    """
    flags = os.O_RDONLY | getattr(os, "O_BINARY", 0)
    try:
        return os.open(path, flags)
    except OSError as exc:
        if verbose:
            print(f"Can't open squashfs image: {exc.strerror}", file=sys.stderr)
        raise SquashfsError(f"cannot open {os.fsdecode(path)!r}") from exc


def fd_close(fd: int) -> None:
    """Close a descriptor returned by :func:`fd_open`."""
    os.close(fd)


def _describe_version(error: BadVersionError) -> str:
    found = getattr(error, "version", None)
    supported = getattr(error, "supported", None)
    if found is None or supported is None:
        return "Unsupported squashfs version."
    major, minor = found
    (mj1, mn1), (mj2, mn2) = supported
    text = f"Squashfs version {major}.{minor} detected, only version"
    if (mj1, mn1) == (mj2, mn2):
        text += f" {mj1}.{mn1}"
    else:
        text += f"s {mj1}.{mn1} to {mj2}.{mn2}"
    return text + " supported."


def _describe_compression(error: BadCompressionError) -> str:
    name = getattr(error, "compression", None) or "unknown"
    supported = [s for s in getattr(error, "supported", ()) if s and s != "unknown"]
    return (
        f"Squashfs image uses {name} compression, this version supports only "
        f"{', '.join(supported)}."
    )


def describe_open_error(error: BaseException) -> str:
    """A message for the user explaining why an image could not be read."""
    if isinstance(error, BadFormatError):
        return "This doesn't look like a squashfs image."
    if isinstance(error, BadVersionError):
        return _describe_version(error)
    if isinstance(error, BadCompressionError):
        return _describe_compression(error)
    return "Something went wrong trying to read the squashfs image."


def open_image(
    path: PathLike,
    offset: int,
    init: Callable[[int, int, Optional[str]], Any],
    subdir: Optional[str] = None,
) -> Any:
    """Open the image at ``path`` and read it with ``init``.

    Failures are described on standard error and re-raised; the descriptor
    is closed if reading fails.
    """
    fd = fd_open(path, verbose=True)
    try:
        return init(fd, offset, subdir)
    except SquashfsError as exc:
        print(describe_open_error(exc), file=sys.stderr)
        fd_close(fd)
        raise
    except BaseException:
        fd_close(fd)
        raise