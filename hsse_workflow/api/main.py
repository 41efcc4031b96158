"""FastAPI application entry point for the HSSE workflow engine.

Usage:
    uvicorn hsse_workflow.api.main:app

Environment:
    ENVIRONMENT: "production" for JSON logs, anything else for console logs.
    LOG_LEVEL: Log level name (default: INFO).
    HSSE_SLA_MONITOR_ENABLED: Start the SLA sweep loop with the app.
    HSSE_WORKFLOW_* / HSSE_SLA_*: See hsse_workflow.config.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from structlog import get_logger

from hsse_workflow.api.dependencies import set_workflow_services
from hsse_workflow.api.middleware import LoggingMiddleware
from hsse_workflow.api.routes import (
    closure_router,
    disputes_router,
    health_router,
    incidents_router,
    metrics_router,
    sla_router,
    violations_router,
)
from hsse_workflow.bootstrap.logging import configure_structlog
from hsse_workflow.bootstrap.workflow import WorkflowServices, get_workflow_services

ENVIRONMENT_VAR = "ENVIRONMENT"
DEFAULT_ENVIRONMENT = "development"

logger = get_logger()


def create_app(services: WorkflowServices | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        services: Wired workflow services. Defaults to the process-wide
            services configured from the environment.

    Returns:
        The configured application. The SLA monitor runs for the lifetime
        of the app when the SLA config enables it.
    """
    load_dotenv()
    configure_structlog(os.getenv(ENVIRONMENT_VAR, DEFAULT_ENVIRONMENT))

    services = services or get_workflow_services()
    set_workflow_services(services)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        monitor_enabled = services.sla_config.monitor_enabled
        if monitor_enabled:
            await services.monitor.start()
        logger.info("hsse_workflow_started", sla_monitor_enabled=monitor_enabled)
        try:
            yield
        finally:
            if monitor_enabled:
                await services.monitor.stop()
            logger.info("hsse_workflow_stopped")

    app = FastAPI(
        title="HSSE Workflow API",
        description="Incident and contractor violation workflow engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(health_router)
    app.include_router(incidents_router)
    app.include_router(disputes_router)
    app.include_router(violations_router)
    app.include_router(closure_router)
    app.include_router(sla_router)
    app.include_router(metrics_router)
    return app


app = create_app()
