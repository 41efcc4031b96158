"""SLA tracker port.

Lets the incident state machine start and stop SLA timers (screening,
manager approval, investigation) without
depending on the escalation service directly. Both calls return a
WorkflowResult; a failed result is logged by the caller and never
blocks the transition that triggered it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from hsse_workflow.domain.models.escalatable_event import (
    EscalatableEvent,
    EscalatableEventKind,
)

if TYPE_CHECKING:
    from hsse_workflow.application.dtos.workflow_result import WorkflowResult


class SlaTrackerProtocol(Protocol):
    """Protocol for starting and stopping SLA timers."""

    async def track_event(
        self,
        tenant_id: UUID,
        kind: EscalatableEventKind,
        source_id: UUID,
        category: str,
        priority: str,
    ) -> WorkflowResult[EscalatableEvent]:
        """Start an SLA timer for ``source_id``."""
        ...

    async def resolve_for_source(
        self, source_id: UUID, kind: EscalatableEventKind | None = None
    ) -> WorkflowResult[int]:
        """Resolve the active timers tracking ``source_id``.

        Args:
            source_id: The tracked entity.
            kind: Only resolve timers of this kind. All kinds when None.

        Returns:
            Result carrying the number of timers resolved.
        """
        ...
