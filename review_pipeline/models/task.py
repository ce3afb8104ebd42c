"""Task model for units of published work."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class TaskStatus(Enum):
    """Task lifecycle status, derived from the record's fields."""

    OPEN = "open"            # Waiting in the task queue
    ASSIGNED = "assigned"    # Claimed by a worker
    SUBMITTED = "submitted"  # Work handed in, review pending or accepted


@dataclass
class Task:
    """A unit of work: an image to be described by a worker."""

    id: int
    image_url: str = ""
    description: str = ""  # Empty until submission

    # Assignment
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None

    # Last review
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    completed: bool = False

    @property
    def status(self) -> TaskStatus:
        """Current lifecycle status."""
        if self.completed:
            return TaskStatus.SUBMITTED
        if self.assigned_to is not None:
            return TaskStatus.ASSIGNED
        return TaskStatus.OPEN

    @property
    def is_claimable(self) -> bool:
        """Check if task can be assigned to a worker."""
        return self.assigned_to is None and not self.completed

    def assign(self, worker: str, at: datetime) -> None:
        """Record the worker holding this task."""
        self.assigned_to = worker
        self.assigned_at = at

    def submit(self, description: str) -> None:
        """Record the worker's result."""
        self.description = description
        self.completed = True

    def mark_reviewed(self, reviewer: str, at: datetime) -> None:
        self.reviewed_by = reviewer
        self.reviewed_at = at

    def reopen(self) -> None:
        """Put the task back into the open state after a rejected review."""
        self.assigned_to = None
        self.assigned_at = None
        self.description = ""
        self.completed = False

    def to_dict(self) -> dict:
        """Serialize task to dictionary."""
        return {
            "id": self.id,
            "image_url": self.image_url,
            "description": self.description,
            "assigned_to": self.assigned_to,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "completed": self.completed,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Deserialize task from dictionary."""
        task = cls(
            id=int(data["id"]),
            image_url=data.get("image_url", ""),
            description=data.get("description", ""),
            assigned_to=data.get("assigned_to"),
            reviewed_by=data.get("reviewed_by"),
            completed=data.get("completed", False),
        )

        for field_name in ["assigned_at", "reviewed_at"]:
            if data.get(field_name):
                setattr(task, field_name, datetime.fromisoformat(data[field_name]))

        return task
