"""API routers."""

from hsse_workflow.api.routes.closure import router as closure_router
from hsse_workflow.api.routes.disputes import router as disputes_router
from hsse_workflow.api.routes.health import router as health_router
from hsse_workflow.api.routes.incidents import router as incidents_router
from hsse_workflow.api.routes.metrics import router as metrics_router
from hsse_workflow.api.routes.sla import router as sla_router
from hsse_workflow.api.routes.violations import router as violations_router

__all__ = [
    "closure_router",
    "disputes_router",
    "health_router",
    "incidents_router",
    "metrics_router",
    "sla_router",
    "violations_router",
]
