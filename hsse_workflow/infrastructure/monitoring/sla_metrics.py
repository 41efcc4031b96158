"""SLA and notification metrics for Prometheus exposition.

Counters cover the operational signals of the workflow engine that are
otherwise only visible in logs:
- sweep ticks skipped because the previous sweep was still running
- escalations raised by the sweep, per level
- notification dispatch failures, per path (transition or SLA)
- events skipped by a sweep because of a store error or version conflict
"""

from __future__ import annotations

import os

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter
from prometheus_client import generate_latest as _generate_latest

from hsse_workflow.application.ports.workflow_metrics import WorkflowMetricsProtocol

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST

TRANSITION_PATH = "transition"
SLA_PATH = "sla"


class SlaMetricsCollector(WorkflowMetricsProtocol):
    """Collects SLA sweep and notification metrics for Prometheus.

    Each collector owns its registry, so tests pass a fresh
    ``CollectorRegistry`` and read values back without cross-talk.

    Attributes:
        sla_sweeps_total: Counter for completed sweeps.
        sla_sweep_ticks_skipped_total: Counter for ticks skipped because a
            sweep was in progress.
        sla_escalations_total: Counter for escalations, labelled by level.
        sla_events_skipped_total: Counter for events a sweep skipped,
            labelled by error type.
        notification_dispatch_failures_total: Counter for failed or timed
            out notifications, labelled by path and event type.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize the collector.

        Args:
            registry: Optional custom registry for testing isolation.
        """
        self._registry = registry or CollectorRegistry()
        self._environment = os.environ.get("ENVIRONMENT", "development")
        self._service_name = os.environ.get("SERVICE_NAME", "hsse-workflow")

        self.sla_sweeps_total = Counter(
            name="sla_sweeps_total",
            documentation="Total completed SLA sweeps",
            labelnames=["service", "environment"],
            registry=self._registry,
        )

        self.sla_sweep_ticks_skipped_total = Counter(
            name="sla_sweep_ticks_skipped_total",
            documentation="Monitor ticks skipped because a sweep was still running",
            labelnames=["service", "environment"],
            registry=self._registry,
        )

        self.sla_escalations_total = Counter(
            name="sla_escalations_total",
            documentation="Total SLA escalations raised by level",
            labelnames=["level", "service", "environment"],
            registry=self._registry,
        )

        self.sla_events_skipped_total = Counter(
            name="sla_events_skipped_total",
            documentation="Events skipped by a sweep by error type",
            labelnames=["error_type", "service", "environment"],
            registry=self._registry,
        )

        self.notification_dispatch_failures_total = Counter(
            name="notification_dispatch_failures_total",
            documentation="Failed or timed out notification dispatches",
            labelnames=["path", "event_type", "service", "environment"],
            registry=self._registry,
        )

    def _labels(self) -> dict[str, str]:
        return {"service": self._service_name, "environment": self._environment}

    def record_sweep(self) -> None:
        self.sla_sweeps_total.labels(**self._labels()).inc()

    def record_skipped_tick(self) -> None:
        """Record a monitor tick that found the previous sweep still running."""
        self.sla_sweep_ticks_skipped_total.labels(**self._labels()).inc()

    def record_escalation(self, level: int) -> None:
        """Record an event raised to ``level`` (1 is the SLA breach)."""
        self.sla_escalations_total.labels(level=str(level), **self._labels()).inc()

    def record_skipped_event(self, error_type: str) -> None:
        self.sla_events_skipped_total.labels(
            error_type=error_type, **self._labels()
        ).inc()

    def record_dispatch_failure(self, path: str, event_type: str) -> None:
        """Record a notification that failed or timed out.

        Args:
            path: TRANSITION_PATH or SLA_PATH.
            event_type: The notification event type.
        """
        self.notification_dispatch_failures_total.labels(
            path=path, event_type=event_type, **self._labels()
        ).inc()

    def value(self, name: str, **labels: str) -> float:
        """Current value of one sample of this collector, 0 if never recorded.

        Args:
            name: Sample name, e.g. ``sla_escalations_total``.
            **labels: Labels other than service and environment.
        """
        sample = self._registry.get_sample_value(name, {**labels, **self._labels()})
        return sample or 0.0

    @property
    def skipped_ticks(self) -> int:
        """Skipped monitor ticks so far."""
        return int(self.value("sla_sweep_ticks_skipped_total"))

    def get_registry(self) -> CollectorRegistry:
        """Get the Prometheus registry for this collector."""
        return self._registry

    def generate_latest(self) -> bytes:
        """Render every metric in the Prometheus exposition format."""
        return _generate_latest(self._registry)
