"""Structlog configuration for the HSSE workflow service.

Production renders one JSON object per line for log aggregation;
any other environment renders colored console output.

Log Entry Format (production):
    {
        "timestamp": "2026-01-01T00:00:00.000000Z",
        "level": "info",
        "event": "incident_transition_committed",
        "correlation_id": "uuid",
        "service": "IncidentWorkflowService",
        "component": "workflow",
        ...additional context
    }

The level comes from the LOG_LEVEL environment variable (default INFO).
"""

import logging
import os
from typing import cast

import structlog
from structlog.typing import Processor

from hsse_workflow.infrastructure.observability.correlation import (
    correlation_id_processor,
)

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _get_log_level(override: str | None = None) -> int:
    level_name = (override or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_structlog(
    environment: str = "production", log_level: str | None = None
) -> None:
    """Configure structlog once at process startup.

    Args:
        environment: "production" for JSON output, anything else for console.
        log_level: Level name overriding LOG_LEVEL (e.g., "DEBUG").
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        renderer: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level(log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
