"""Record stores for tasks and reviews keyed by monotonically issued ids."""

from collections.abc import MutableMapping
from typing import Generic, Iterator, Optional, TypeVar

from ..errors import InvalidReviewId, InvalidTaskId, NotFound
from ..models.review import ReviewTask
from ..models.task import Task

T = TypeVar("T")


class RecordStore(Generic[T]):
    """Keyed record storage over a generic mapping.

    The backend is any ``MutableMapping[int, record]``; a plain dict is used
    unless the host supplies its own key-value store. Ids come from an
    internal counter that only moves forward, so an id removed from the
    store is never handed out again.
    """

    not_found_error: type[NotFound] = NotFound

    def __init__(
        self,
        backend: Optional[MutableMapping] = None,
        counter: int = 0,
    ):
        self._records: MutableMapping = backend if backend is not None else {}
        self._counter = max(counter, max(self._records, default=-1) + 1)

    @property
    def counter(self) -> int:
        """The id the next call to :meth:`next_id` will return."""
        return self._counter

    def next_id(self) -> int:
        """Reserve and return the next unused id."""
        record_id = self._counter
        self._counter += 1
        return record_id

    def insert(self, record_id: int, record: T) -> None:
        self._records[record_id] = record

    def get(self, record_id: int) -> Optional[T]:
        return self._records.get(record_id)

    def require(self, record_id: int) -> T:
        """Get a record or raise the store's not-found error."""
        record = self._records.get(record_id)
        if record is None:
            raise self.not_found_error(f"No record with id {record_id}")
        return record

    def update(self, record_id: int, record: T) -> None:
        if record_id not in self._records:
            raise self.not_found_error(f"No record with id {record_id}")
        self._records[record_id] = record

    def remove(self, record_id: int) -> None:
        if record_id not in self._records:
            raise self.not_found_error(f"No record with id {record_id}")
        del self._records[record_id]

    def ids(self) -> list[int]:
        return sorted(self._records)

    def values(self) -> list[T]:
        """All records in id order."""
        return [self._records[record_id] for record_id in self.ids()]

    def __contains__(self, record_id: int) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[int]:
        return iter(self.ids())


class TaskStore(RecordStore[Task]):
    """Owns task records."""

    not_found_error = InvalidTaskId


class ReviewStore(RecordStore[ReviewTask]):
    """Owns review records."""

    not_found_error = InvalidReviewId

    def for_task(self, task_id: int) -> list[ReviewTask]:
        """All reviews raised for a task, oldest first."""
        return [r for r in self.values() if r.task_id == task_id]
