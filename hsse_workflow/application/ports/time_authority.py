"""Time authority port.

Services that need timestamps inject a TimeAuthorityProtocol instead of
calling datetime.now() directly, so SLA timing and audit timestamps are
deterministic under test.

For production:
    Use SystemTimeAuthority from hsse_workflow.infrastructure.adapters

For testing:
    Use FakeTimeAuthority from tests/helpers/fake_time_authority.py
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Abstract interface for time authority."""

    @abstractmethod
    def now(self) -> datetime:
        """Return current time as a timezone-aware datetime (UTC)."""
        ...

    @abstractmethod
    def utcnow(self) -> datetime:
        """Return current UTC time as a timezone-aware datetime."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Return a monotonic clock value in seconds for measuring durations."""
        ...
