"""Workflow management for task assignment, review, and payouts."""

from .queue import WorkQueue
from .stores import RecordStore, TaskStore, ReviewStore
from .payout import PayoutTrigger, LedgerSettlement, Settlement
from .engine import WorkflowEngine, RejectionPolicy, join_descriptions

__all__ = [
    "WorkQueue",
    "RecordStore",
    "TaskStore",
    "ReviewStore",
    "PayoutTrigger",
    "LedgerSettlement",
    "Settlement",
    "WorkflowEngine",
    "RejectionPolicy",
    "join_descriptions",
]
