"""Review model: one adjudication cycle for a submitted task."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ReviewStatus(Enum):
    """Status of a review cycle."""

    PENDING = "pending"      # Waiting in the review queue
    ASSIGNED = "assigned"    # Claimed by a reviewer
    ACCEPTED = "accepted"    # Terminal
    REJECTED = "rejected"    # Terminal, task recycled


@dataclass
class ReviewTask:
    """A review of one submission of a task.

    Every submission gets its own review, so a task that is rejected and
    resubmitted ends up with several reviews, each holding the description
    that was under review at the time.
    """

    id: int
    task_id: int
    description: str = ""

    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    status: ReviewStatus = ReviewStatus.PENDING
    adjudicated_at: Optional[datetime] = None

    @property
    def accepted(self) -> bool:
        return self.status == ReviewStatus.ACCEPTED

    @property
    def adjudicated(self) -> bool:
        """Check if a decision has been recorded."""
        return self.status in (ReviewStatus.ACCEPTED, ReviewStatus.REJECTED)

    def assign(self, reviewer: str, at: datetime) -> None:
        """Record the reviewer holding this review."""
        self.reviewed_by = reviewer
        self.reviewed_at = at
        self.status = ReviewStatus.ASSIGNED

    def decide(self, accept: bool, at: datetime) -> None:
        """Record the reviewer's verdict."""
        self.status = ReviewStatus.ACCEPTED if accept else ReviewStatus.REJECTED
        self.adjudicated_at = at

    def to_dict(self) -> dict:
        """Serialize review to dictionary."""
        return {
            "id": self.id,
            "task_id": self.task_id,
            "description": self.description,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "status": self.status.value,
            "accepted": self.accepted,
            "adjudicated_at": self.adjudicated_at.isoformat() if self.adjudicated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReviewTask":
        """Deserialize review from dictionary."""
        review = cls(
            id=int(data["id"]),
            task_id=int(data["task_id"]),
            description=data.get("description", ""),
            reviewed_by=data.get("reviewed_by"),
            status=ReviewStatus(data.get("status", "pending")),
        )

        for field_name in ["reviewed_at", "adjudicated_at"]:
            if data.get(field_name):
                setattr(review, field_name, datetime.fromisoformat(data[field_name]))

        return review
