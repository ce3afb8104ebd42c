"""Shared fixtures: deterministic collaborators and a ready engine."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from review_pipeline.collaborators import StaticIdentity
from review_pipeline.models.payment import Payment
from review_pipeline.workflows.engine import RejectionPolicy, WorkflowEngine
from review_pipeline.workflows.payout import LedgerSettlement, PayoutTrigger

PAYOUT_ACCOUNT = "treasury.near"
REWARD = 1_000


class FakeClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def now(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FailingSettlement:
    """Settlement backend whose transfers always fail."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def settle(self, amount: int, account: str, **context) -> Payment:
        with self._lock:
            self.calls.append((amount, account, context))
        raise RuntimeError("settlement service unavailable")


@pytest.fixture
def payout_account():
    return PAYOUT_ACCOUNT


@pytest.fixture
def reward():
    return REWARD


@pytest.fixture
def identity():
    return StaticIdentity()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settlement():
    return LedgerSettlement()


@pytest.fixture
def payout(settlement):
    trigger = PayoutTrigger(settlement, max_workers=1)
    yield trigger
    trigger.shutdown(wait=True)


def _make_engine(identity, clock, payout, policy=RejectionPolicy.LENIENT) -> WorkflowEngine:
    return WorkflowEngine(
        identity=identity,
        clock=clock,
        payout=payout,
        payout_account=PAYOUT_ACCOUNT,
        reward_amount=REWARD,
        rejection_policy=policy,
    )


@pytest.fixture
def engine(identity, clock, payout):
    return _make_engine(identity, clock, payout)


@pytest.fixture
def strict_engine(identity, clock, payout):
    return _make_engine(identity, clock, payout, RejectionPolicy.STRICT)


@pytest.fixture
def make_engine():
    """Factory for engines wired to custom collaborators."""
    return _make_engine


@pytest.fixture
def failing_settlement():
    return FailingSettlement()
