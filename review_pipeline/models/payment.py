"""Payment model for settlement requests raised by accepted reviews."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import uuid


class PaymentStatus(Enum):
    """Status of a payment."""

    PENDING = "pending"      # Requested, not yet settled
    COMPLETED = "completed"  # Settled
    FAILED = "failed"        # Settlement failed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Payment:
    """A reward transfer requested from the settlement service."""

    id: str = field(default_factory=lambda: f"PAY-{uuid.uuid4().hex[:8].upper()}")
    account: str = ""
    amount: int = 0  # Smallest currency unit

    # Associated work
    review_id: Optional[int] = None
    task_id: Optional[int] = None

    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None

    created_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    def complete(self, transaction_id: str) -> bool:
        """Mark payment as completed."""
        if self.status != PaymentStatus.PENDING:
            return False

        self.status = PaymentStatus.COMPLETED
        self.transaction_id = transaction_id
        self.completed_at = _utcnow()
        return True

    def fail(self, reason: str) -> bool:
        """Mark payment as failed."""
        if self.status != PaymentStatus.PENDING:
            return False

        self.status = PaymentStatus.FAILED
        self.failure_reason = reason
        return True

    def to_dict(self) -> dict:
        """Serialize payment to dictionary."""
        return {
            "id": self.id,
            "account": self.account,
            # Amounts can exceed 64 bits (yocto units), keep them exact in JSON
            "amount": str(self.amount),
            "review_id": self.review_id,
            "task_id": self.task_id,
            "status": self.status.value,
            "transaction_id": self.transaction_id,
            "failure_reason": self.failure_reason,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Payment":
        """Deserialize payment from dictionary."""
        payment = cls(
            id=data.get("id", f"PAY-{uuid.uuid4().hex[:8].upper()}"),
            account=data.get("account", ""),
            amount=int(data.get("amount", 0)),
            review_id=data.get("review_id"),
            task_id=data.get("task_id"),
            status=PaymentStatus(data.get("status", "pending")),
            transaction_id=data.get("transaction_id"),
            failure_reason=data.get("failure_reason"),
        )

        for field_name in ["created_at", "completed_at"]:
            if data.get(field_name):
                setattr(payment, field_name, datetime.fromisoformat(data[field_name]))

        return payment
