"""Observability for the HSSE workflow: structured logging and correlation IDs.

Usage:
    from hsse_workflow.infrastructure.observability import configure_structlog

    configure_structlog(environment="production")
"""

from hsse_workflow.infrastructure.observability.correlation import (
    correlation_id_processor,
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from hsse_workflow.infrastructure.observability.logging import configure_structlog

__all__: list[str] = [
    "configure_structlog",
    "correlation_id_processor",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
