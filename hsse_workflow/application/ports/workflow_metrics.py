"""Workflow metrics port.

Lets the SLA sweep, the monitor and the transition pipeline record
operational counters without importing the Prometheus collector.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class WorkflowMetricsProtocol(ABC):
    """Abstract interface for workflow metrics collection."""

    @abstractmethod
    def record_sweep(self) -> None:
        """Record a completed SLA sweep."""
        ...

    @abstractmethod
    def record_skipped_tick(self) -> None:
        """Record a monitor tick skipped because a sweep was in progress."""
        ...

    @abstractmethod
    def record_escalation(self, level: int) -> None:
        """Record an event escalated to ``level``."""
        ...

    @abstractmethod
    def record_skipped_event(self, error_type: str) -> None:
        """Record an event a sweep skipped after a store error or conflict."""
        ...

    @abstractmethod
    def record_dispatch_failure(self, path: str, event_type: str) -> None:
        """Record a notification that failed or timed out.

        Args:
            path: "transition" or "sla".
            event_type: The notification event type.
        """
        ...

    @property
    @abstractmethod
    def skipped_ticks(self) -> int:
        """Skipped monitor ticks so far."""
        ...
