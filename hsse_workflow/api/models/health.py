"""Health check response models."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Health status string (e.g., "healthy").
        sla_monitor_running: Whether the SLA sweep loop is running.
    """

    status: str
    sla_monitor_running: bool = False
