"""Two-stage task and review pipeline with queued assignment and payouts."""

from .collaborators import StaticIdentity, SystemClock
from .errors import (
    WorkflowError,
    NotQueued,
    AlreadyAssigned,
    NotFound,
    InvalidTaskId,
    InvalidReviewId,
    NotAssignee,
    NotReviewer,
    AlreadyCompleted,
    AlreadyAdjudicated,
    DuplicateEntry,
    ConfigError,
)
from .workflows import WorkflowEngine, RejectionPolicy, PayoutTrigger, LedgerSettlement

__version__ = "0.1.0"

__all__ = [
    "StaticIdentity",
    "SystemClock",
    "WorkflowEngine",
    "RejectionPolicy",
    "PayoutTrigger",
    "LedgerSettlement",
    # Errors
    "WorkflowError",
    "NotQueued",
    "AlreadyAssigned",
    "NotFound",
    "InvalidTaskId",
    "InvalidReviewId",
    "NotAssignee",
    "NotReviewer",
    "AlreadyCompleted",
    "AlreadyAdjudicated",
    "DuplicateEntry",
    "ConfigError",
]
