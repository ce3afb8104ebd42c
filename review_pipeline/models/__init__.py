"""Data models for tasks, reviews, and payments."""

from .task import Task, TaskStatus
from .review import ReviewTask, ReviewStatus
from .payment import Payment, PaymentStatus

__all__ = [
    # Tasks
    "Task",
    "TaskStatus",
    # Reviews
    "ReviewTask",
    "ReviewStatus",
    # Payments
    "Payment",
    "PaymentStatus",
]
