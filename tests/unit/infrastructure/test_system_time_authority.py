"""Unit tests for SystemTimeAuthority."""

from datetime import timezone

from hsse_workflow.infrastructure.adapters.system_time_authority import (
    SystemTimeAuthority,
)


class TestSystemTimeAuthority:
    """Tests for the host clock adapter."""

    def test_now_is_utc(self) -> None:
        now = SystemTimeAuthority().now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timezone.utc.utcoffset(now)

    def test_clock_moves_forward(self) -> None:
        clock = SystemTimeAuthority()

        first, second = clock.monotonic(), clock.monotonic()

        earlier = clock.now()
        later = clock.utcnow()

        assert second >= first
        assert later >= earlier
