"""Escalation store port.

Persistence contract for SLA-timed events and per-tenant SLA thresholds.
Event updates are compare-and-swap on ``version`` so that two sweep
workers never double-escalate the same event.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from hsse_workflow.domain.models.escalatable_event import EscalatableEvent
from hsse_workflow.domain.models.sla_config import SlaConfig


class EscalationStoreProtocol(Protocol):
    """Protocol for escalatable event and SLA config persistence."""

    async def save_event(self, event: EscalatableEvent) -> EscalatableEvent:
        """Insert a new escalatable event.

        Raises:
            StoreError: If the event already exists or I/O fails.
        """
        ...

    async def get_event(self, event_id: UUID) -> EscalatableEvent | None:
        """Retrieve an event by ID."""
        ...

    async def find_active_by_source(self, source_id: UUID) -> list[EscalatableEvent]:
        """List unacknowledged, unresolved events tracking ``source_id``."""
        ...

    async def list_unresolved(self, limit: int) -> list[EscalatableEvent]:
        """List events with no acknowledgment and no resolution.

        Ordered by ``triggered_at`` ascending (oldest first).
        """
        ...

    async def update_event(
        self, event: EscalatableEvent, expected_version: int
    ) -> EscalatableEvent:
        """Replace an event if its stored version equals ``expected_version``.

        Returns:
            The stored event with its new version.

        Raises:
            ConcurrentModificationError: If the version check fails.
            NotFoundError: If the event does not exist.
            StoreError: On I/O failure.
        """
        ...

    async def get_sla_config(
        self, tenant_id: UUID, category: str, priority: str
    ) -> SlaConfig | None:
        """Retrieve the config stored under exactly this key, if any."""
        ...

    async def save_sla_config(self, config: SlaConfig) -> None:
        """Insert or replace an SLA config."""
        ...
