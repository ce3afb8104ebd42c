"""Reward payouts for accepted reviews."""

import json
import logging
import os
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Protocol

from ..models.payment import Payment, PaymentStatus

logger = logging.getLogger(__name__)


class Settlement(Protocol):
    """External service that moves funds."""

    def settle(self, amount: int, account: str, **context) -> Payment:
        ...


class LedgerSettlement:
    """Settlement backend that books each transfer as a Payment record.

    With a ``ledger_file`` the payments are kept in a JSON file, the same way
    the rest of the platform keeps its records on disk. Without one they
    live in memory only.
    """

    def __init__(self, ledger_file: Optional[Path] = None):
        self.ledger_file = Path(ledger_file) if ledger_file else None
        self._lock = threading.Lock()
        self._payments: list[Payment] = []
        if self.ledger_file and self.ledger_file.exists():
            self._payments = self._load_payments()

    def _load_payments(self) -> list[Payment]:
        """Load all payments from storage."""
        with open(self.ledger_file, "r") as f:
            data = json.load(f)
        return [Payment.from_dict(p) for p in data]

    def _save_payments(self) -> None:
        """Save all payments to storage."""
        self.ledger_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.ledger_file.with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump([p.to_dict() for p in self._payments], f, indent=2)
        os.replace(tmp_path, self.ledger_file)

    def settle(self, amount: int, account: str, **context) -> Payment:
        """Book a transfer of ``amount`` to ``account``."""
        if amount <= 0:
            raise ValueError(f"Settlement amount must be positive, got {amount}")
        if not account:
            raise ValueError("Settlement account is required")

        payment = Payment(
            account=account,
            amount=amount,
            review_id=context.get("review_id"),
            task_id=context.get("task_id"),
        )
        payment.complete(f"TX-{uuid.uuid4().hex[:12].upper()}")

        with self._lock:
            self._payments.append(payment)
            if self.ledger_file:
                self._save_payments()

        return payment

    @property
    def payments(self) -> list[Payment]:
        with self._lock:
            return list(self._payments)

    def total_paid(self, account: Optional[str] = None) -> int:
        """Sum of completed payments, optionally for a single account."""
        return sum(
            p.amount
            for p in self.payments
            if p.status == PaymentStatus.COMPLETED
            and (account is None or p.account == account)
        )


class PayoutTrigger:
    """Fires settlement requests without waiting on them.

    The caller gets a future back immediately. A failed settlement is logged
    and stored on the future; it never feeds back into workflow state.
    """

    def __init__(self, settlement: Settlement, max_workers: int = 2):
        self.settlement = settlement
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="payout",
        )

    def trigger(self, amount: int, account: str, **context) -> Future:
        """Request a transfer of ``amount`` to ``account``."""
        logger.info("Requesting payout of %s to %s (%s)", amount, account, context)
        future = self._executor.submit(self.settlement.settle, amount, account, **context)
        future.add_done_callback(
            lambda f: self._log_outcome(f, amount, account, context)
        )
        return future

    @staticmethod
    def _log_outcome(future: Future, amount: int, account: str, context: dict) -> None:
        if future.cancelled():
            logger.warning("Payout of %s to %s was cancelled (%s)", amount, account, context)
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Payout of %s to %s failed (%s): %s",
                amount, account, context, error,
                exc_info=error,
            )
        else:
            logger.info("Payout of %s to %s settled (%s)", amount, account, context)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting payouts, optionally waiting for in-flight ones."""
        self._executor.shutdown(wait=wait)
