"""FIFO queue of pending ids with removal by value."""

from typing import Iterator, Optional

from ..errors import DuplicateEntry, NotFound


class WorkQueue:
    """An ordered, duplicate-free sequence of record ids.

    Used for both the task backlog and the review backlog. Ids are claimed
    out of order, so removal scans for the value rather than popping the
    head. The queue only ever holds live pending work, which keeps the scan
    short.
    """

    def __init__(self, name: str, items: Optional[list[int]] = None):
        self.name = name
        self._items: list[int] = []
        for item in items or []:
            self.push(item)

    def push(self, item_id: int) -> None:
        """Append an id at the tail."""
        if item_id in self._items:
            raise DuplicateEntry(f"{item_id} is already in the {self.name} queue")
        self._items.append(item_id)

    def remove(self, item_id: int) -> None:
        """Remove an id wherever it sits in the queue."""
        try:
            self._items.remove(item_id)
        except ValueError:
            raise NotFound(f"{item_id} is not in the {self.name} queue") from None

    def contains(self, item_id: int) -> bool:
        return item_id in self._items

    def peek(self) -> Optional[int]:
        """Return the id at the head of the queue, if any."""
        return self._items[0] if self._items else None

    def snapshot(self) -> list[int]:
        """Return a copy of the queue, front to back."""
        return list(self._items)

    def __contains__(self, item_id: int) -> bool:
        return self.contains(item_id)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"WorkQueue({self.name!r}, {self._items!r})"
