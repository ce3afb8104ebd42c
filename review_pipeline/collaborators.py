"""Host-provided capabilities: caller identity and clock.

The engine never reads process-wide state for these. Hosts (CLI, HTTP API,
tests) hand in objects with the methods below.
"""

from datetime import datetime, timezone
from typing import Optional, Protocol


class IdentityProvider(Protocol):
    def current_principal(self) -> Optional[str]:
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class StaticIdentity:
    """Identity provider bound to a single principal.

    The principal can be switched with :meth:`act_as`, which is how the CLI
    and the tests change the caller between operations.
    """

    def __init__(self, principal: Optional[str] = None):
        self.principal = principal

    def act_as(self, principal: Optional[str]) -> None:
        self.principal = principal

    def current_principal(self) -> Optional[str]:
        return self.principal


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
