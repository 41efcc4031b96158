"""Metrics endpoint for Prometheus scraping.

Exposes the SLA sweep and notification counters in Prometheus
exposition format.
"""

from fastapi import APIRouter, Response

from hsse_workflow.api.dependencies import Services
from hsse_workflow.infrastructure.monitoring.sla_metrics import METRICS_CONTENT_TYPE

router = APIRouter(prefix="/v1", tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Returns workflow metrics in Prometheus exposition format for scraping.",
    response_class=Response,
    responses={
        200: {
            "description": "Metrics in Prometheus format",
            "content": {"text/plain": {}},
        }
    },
)
async def get_metrics(services: Services) -> Response:
    """Get workflow metrics in Prometheus format.

    Returns:
        Response with skipped sweep ticks, escalations by level, skipped
        events and notification dispatch failures.
    """
    return Response(
        content=services.metrics.generate_latest(),
        media_type=METRICS_CONTENT_TYPE,
    )
