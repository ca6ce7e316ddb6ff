"""Recursive, in-order traversal of a directory tree in an image.

The filesystem object must provide:

* ``inode_get(inode_id)``: the inode stored at ``inode_id``;
* ``dir_open(inode)``: an iterable of the directory's entries.

Each entry provides ``name`` (str or bytes), ``is_dir`` and ``inode``, the
id of the entry's inode.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from enum import Enum, auto
from typing import Any, Optional

from .errors import SquashfsError
from .stack import Stack

PATH_SEPARATOR = "/"


class _State(Enum):
    DESCEND = auto()
    NAME_REMOVE = auto()
    ERROR = auto()
    FINISHED = auto()
    ASCEND = auto()
    NAME_ADD = auto()
    GET_ENTRY = auto()


class Traversal:
    """Visits every item below a directory inode, but not the inode itself.

    Each step either yields a directory entry (``dir_end`` is False and
    ``entry`` holds it) or marks that a directory is finished (``dir_end``
    is True and ``path`` names that directory).
    """

    def __init__(self, fs: Any, inode: Any) -> None:
        self._fs = fs
        self._levels = Stack()
        self._names: list[str] = []
        self._state = _State.ERROR
        self.dir_end = False
        self.entry: Optional[Any] = None
        self._descend_inode(inode)
        self._state = _State.NAME_REMOVE

    @property
    def path(self) -> str:
        """Path of the current item, relative to the starting directory."""
        return PATH_SEPARATOR.join(self._names)

    def _descend_inode(self, inode: Any) -> None:
        self._levels.push(iter(self._fs.dir_open(inode)))

    def next(self) -> bool:
        """Move to the next item; return False when the traversal is done."""
        try:
            return self._step()
        except BaseException:
            self._state = _State.ERROR
            raise

    def _step(self) -> bool:
        while True:
            state = self._state
            if state is _State.GET_ENTRY:
                entry = next(self._levels.top(), None)
                if entry is None:
                    self._state = _State.ASCEND
                else:
                    self.entry = entry
                    self._state = _State.NAME_ADD
            elif state is _State.NAME_ADD:
                self._names.append(os.fsdecode(self.entry.name))
                self._state = (
                    _State.DESCEND if self.entry.is_dir else _State.NAME_REMOVE
                )
                self.dir_end = False
                return True
            elif state is _State.NAME_REMOVE:
                if self._names and len(self._names) == len(self._levels):
                    self._names.pop()
                self._state = _State.GET_ENTRY
            elif state is _State.DESCEND:
                self._descend_inode(self._fs.inode_get(self.entry.inode))
                self._state = _State.GET_ENTRY
            elif state is _State.ASCEND:
                self._levels.top()
                self._levels.pop()
                if len(self._levels) > 0:
                    self.dir_end = True
                    self._state = _State.NAME_REMOVE
                    return True
                self._state = _State.FINISHED
            elif state is _State.FINISHED:
                return False
            else:
                raise SquashfsError("traversal is closed or has failed")

    def prune(self) -> None:
        """Do not descend into the directory just returned."""
        self._state = _State.NAME_REMOVE

    def close(self) -> None:
        """Release the traversal; further steps raise an error."""
        self._levels.clear()
        self._names.clear()
        self.entry = None
        self.dir_end = False
        self._state = _State.ERROR

    def __iter__(self) -> Iterator["Traversal"]:
        """Yield the traversal itself after every step, so prune() can be used."""
        while self.next():
            yield self

    def __enter__(self) -> "Traversal":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def traverse(fs: Any, inode_id: int) -> Traversal:
    """Start a traversal below the directory stored at ``inode_id``."""
    return Traversal(fs, fs.inode_get(inode_id))