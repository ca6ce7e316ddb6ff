"""A simple stack that can run a clean-up callback on popped items."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

from .errors import SquashfsError


class Stack:
    """LIFO container; ``freer`` is called on each item as it is popped."""

    def __init__(self, freer: Optional[Callable[[Any], None]] = None) -> None:
        self._items: list[Any] = []
        self._freer = freer

    def push(self, item: Any) -> Any:
        """Place an item on top and return it."""
        self._items.append(item)
        return item

    def pop(self) -> bool:
        """Remove the top item; return False if the stack was empty."""
        if not self._items:
            return False
        item = self._items.pop()
        if self._freer is not None:
            self._freer(item)
        return True

    def top(self) -> Any:
        """Return the top item without removing it."""
        if not self._items:
            raise SquashfsError("stack is empty")
        return self._items[-1]

    def at(self, index: int) -> Any:
        """Return the item at ``index``, counted from the bottom."""
        if index < 0 or index >= len(self._items):
            raise SquashfsError(f"stack index {index} out of range")
        return self._items[index]

    def clear(self) -> None:
        """Pop every item, running the clean-up callback on each."""
        while self.pop():
            pass

    def __len__(self) -> int:
        return len(self._items)