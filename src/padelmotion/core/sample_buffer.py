from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, List, TypeVar

T = TypeVar("T")


class SampleAccumulator(Generic[T]):
    """
    Unbounded append-only buffer for the movement being recorded.

    Starts empty (never "absent"). :meth:`take` hands the collected list to
    the caller and leaves a fresh empty list behind, so ownership moves
    instead of being copied.
    """

    def __init__(self) -> None:
        self._items: List[T] = []

    def append(self, item: T) -> None:
        self._items.append(item)

    def take(self) -> List[T]:
        items, self._items = self._items, []
        return items

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __getitem__(self, index: int) -> T:
        return self._items[index]
