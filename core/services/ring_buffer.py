from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Iterable, List, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Fixed-capacity history, most recent item first.

    Rules:
    - push() prepends; once full, the oldest item is dropped.
    - snapshot() returns a copy, so callers can never mutate the buffer.
    """

    def __init__(self, capacity: int) -> None:
        capacity = int(capacity)
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1 (got {capacity})")
        self._items: Deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def push(self, item: T) -> None:
        self._items.appendleft(item)

    def extend(self, items: Iterable[T]) -> None:
        """
        Push a batch so that it sits at the head in its own order,
        i.e. the first item of the batch becomes the most recent entry.
        """
        for item in reversed(list(items)):
            self._items.appendleft(item)

    def snapshot(self) -> List[T]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
