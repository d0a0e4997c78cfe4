"""Index-based navigation over a fixed sequence of items."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Generic, TypeVar

T = TypeVar("T")


class Carousel(Generic[T]):
    """State machine ``viewing(index)`` with ``0 <= index < len(items)``.

    ``next`` and ``prev`` are no-ops at the boundaries; ``can_next`` and
    ``can_prev`` tell the view whether the matching control is enabled.
    """

    def __init__(self, items: Sequence[T]) -> None:
        if not items:
            raise ValueError("Carousel requires at least one item")
        self._items: tuple[T, ...] = tuple(items)
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def total(self) -> int:
        return len(self._items)

    @property
    def current(self) -> T:
        return self._items[self._index]

    @property
    def can_prev(self) -> bool:
        return self._index > 0

    @property
    def can_next(self) -> bool:
        return self._index < len(self._items) - 1

    def next(self) -> bool:
        """Advance one item; returns whether the index changed."""
        if not self.can_next:
            return False
        self._index += 1
        return True

    def prev(self) -> bool:
        """Step back one item; returns whether the index changed."""
        if not self.can_prev:
            return False
        self._index -= 1
        return True
