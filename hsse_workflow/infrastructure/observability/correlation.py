"""Correlation ID propagation for workflow logs.

A correlation ID ties together every log line produced while handling
one request or one SLA sweep tick. It lives in a contextvar so it
survives ``await`` boundaries inside a task.

Usage:
    # HTTP middleware, at request start
    set_correlation_id(request.headers.get("X-Correlation-ID") or generate_correlation_id())

    # Background loops, once per tick
    with correlation_scope() as correlation_id:
        await service.run_sla_sweep()
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

_correlation_id: ContextVar[str] = ContextVar("hsse_correlation_id", default="")


def generate_correlation_id() -> str:
    """Return a fresh correlation ID (UUID4 string)."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Return the current correlation ID, or "" outside any scope."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block.

    Args:
        correlation_id: ID to bind. A new one is generated when omitted.

    Yields:
        The bound correlation ID.
    """
    token = _correlation_id.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding ``correlation_id`` when one is bound."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict
