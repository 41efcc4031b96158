"""Base service logging mixin.

Gives every workflow service the same structured logging shape: a
logger bound to the service class and component, and per-operation
loggers carrying the operation name and the current correlation ID.

Usage:
    from hsse_workflow.application.services.base import LoggingMixin

    class MyService(LoggingMixin):
        def __init__(self, store: IncidentStoreProtocol) -> None:
            self._store = store
            self._init_logger()

        async def do_something(self, incident_id: UUID) -> None:
            log = self._log_operation("do_something", incident_id=str(incident_id))
            log.info("operation_started")
"""

import structlog

from hsse_workflow.infrastructure.observability.correlation import get_correlation_id


class LoggingMixin:
    """Mixin providing structured logging for services.

    Attributes:
        _log: The structlog BoundLogger for this service instance.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "workflow") -> None:
        """Bind the service logger. Call from __init__.

        Args:
            component: Component label for log categorization.
        """
        self._log = structlog.get_logger().bind(
            service=self.__class__.__name__,
            component=component,
        )

    def _log_operation(
        self,
        operation: str,
        **context: object,
    ) -> structlog.BoundLogger:
        """Create an operation-scoped logger with correlation ID.

        Args:
            operation: Name of the operation being performed.
            **context: Additional context to bind.

        Returns:
            BoundLogger with operation and correlation context.
        """
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )
