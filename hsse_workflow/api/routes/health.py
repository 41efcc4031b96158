"""Health check endpoint for the HSSE workflow API."""

from fastapi import APIRouter

from hsse_workflow.api.dependencies import Services
from hsse_workflow.api.models.health import HealthResponse

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(services: Services) -> HealthResponse:
    """Return health status.

    Returns:
        Health status with 200 OK.
    """
    return HealthResponse(status="healthy", sla_monitor_running=services.monitor.running)
