"""Prometheus metrics for the HSSE workflow."""

from hsse_workflow.infrastructure.monitoring.sla_metrics import (
    METRICS_CONTENT_TYPE,
    SlaMetricsCollector,
)

__all__: list[str] = [
    "METRICS_CONTENT_TYPE",
    "SlaMetricsCollector",
]
