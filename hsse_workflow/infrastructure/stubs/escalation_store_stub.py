"""Escalation store stub for testing.

In-memory implementation of EscalationStoreProtocol. Event updates are
compare-and-swap on the event version, like the real store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from uuid import UUID

from hsse_workflow.application.ports.escalation_store import EscalationStoreProtocol
from hsse_workflow.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
)
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.errors.workflow import NotFoundError
from hsse_workflow.domain.models.escalatable_event import (
    MAX_ESCALATION_LEVEL,
    EscalatableEvent,
    EscalatableEventKind,
)
from hsse_workflow.domain.models.sla_config import SlaConfig


@dataclass
class FailureMode:
    """Configuration for simulating escalation store failures.

    Attributes:
        list_fails: list_unresolved raises StoreError.
        update_fails_for: Event IDs whose updates raise StoreError.
        conflict_once_for: Event IDs whose first update loses a race: another
            writer bumps the stored version first, so the update raises
            ConcurrentModificationError.
        save_fails: save_event raises StoreError.
        list_delay_seconds: Sleep inside list_unresolved (slow sweep).
    """

    list_fails: bool = False
    update_fails_for: frozenset[UUID] = frozenset()
    conflict_once_for: frozenset[UUID] = frozenset()
    save_fails: bool = False
    list_delay_seconds: float = 0.0


class EscalationStoreStub(EscalationStoreProtocol):
    """In-memory escalation store.

    Usage:
        store = EscalationStoreStub()
        await store.save_event(event)

        # Make one event fail during the sweep
        store.set_failure_mode(FailureMode(update_fails_for=frozenset({event.id})))

        store.clear()
    """

    def __init__(self) -> None:
        self._events: dict[UUID, EscalatableEvent] = {}
        self._configs: dict[tuple[UUID, str, str], SlaConfig] = {}
        self._failure_mode = FailureMode()
        self._lock = asyncio.Lock()
        self._list_count = 0
        self._conflicted: set[UUID] = set()

    def set_failure_mode(self, mode: FailureMode) -> None:
        self._failure_mode = mode

    def clear_failure_mode(self) -> None:
        self._failure_mode = FailureMode()

    def clear(self) -> None:
        """Clear all state for test isolation."""
        self._events.clear()
        self._configs.clear()
        self._failure_mode = FailureMode()
        self._list_count = 0
        self._conflicted.clear()

    @property
    def list_count(self) -> int:
        """Get the number of list_unresolved calls (one per sweep)."""
        return self._list_count

    @property
    def events(self) -> list[EscalatableEvent]:
        """All stored events (for test assertions)."""
        return list(self._events.values())

    def events_of_kind(self, kind: EscalatableEventKind) -> list[EscalatableEvent]:
        """Stored events of one kind (for test assertions)."""
        return [e for e in self._events.values() if e.kind == kind]

    def seed_event(self, event: EscalatableEvent) -> None:
        """Store an event as-is."""
        self._events[event.id] = event

    async def save_event(self, event: EscalatableEvent) -> EscalatableEvent:
        if self._failure_mode.save_fails:
            raise StoreError("save_event", "Simulated escalation store write failure")
        async with self._lock:
            if event.id in self._events:
                raise StoreError("save_event", f"Event {event.id} already exists")
            self._events[event.id] = event
            return event

    async def get_event(self, event_id: UUID) -> EscalatableEvent | None:
        return self._events.get(event_id)

    async def find_active_by_source(self, source_id: UUID) -> list[EscalatableEvent]:
        return [
            e for e in self._events.values() if e.source_id == source_id and e.is_active
        ]

    async def list_unresolved(self, limit: int) -> list[EscalatableEvent]:
        self._list_count += 1
        if self._failure_mode.list_delay_seconds:
            await asyncio.sleep(self._failure_mode.list_delay_seconds)
        if self._failure_mode.list_fails:
            raise StoreError("list_unresolved", "Simulated escalation store read failure")
        active = [e for e in self._events.values() if e.is_active]
        return sorted(active, key=lambda e: e.triggered_at)[:limit]

    async def update_event(
        self, event: EscalatableEvent, expected_version: int
    ) -> EscalatableEvent:
        if event.id in self._failure_mode.update_fails_for:
            raise StoreError("update_event", "Simulated escalation store write failure")
        async with self._lock:
            current = self._events.get(event.id)
            if current is None:
                raise NotFoundError("escalatable_event", event.id)
            if (
                event.id in self._failure_mode.conflict_once_for
                and event.id not in self._conflicted
            ):
                self._conflicted.add(event.id)
                current = replace(
                    current.with_escalation_level(
                        min(current.escalation_level + 1, MAX_ESCALATION_LEVEL)
                    ),
                    version=current.version + 1,
                )
                self._events[event.id] = current
            if current.version != expected_version:
                raise ConcurrentModificationError(
                    entity_id=event.id,
                    expected_version=expected_version,
                    actual_version=current.version,
                    operation="update_event",
                )
            stored = replace(event, version=current.version + 1)
            self._events[event.id] = stored
            return stored

    async def get_sla_config(
        self, tenant_id: UUID, category: str, priority: str
    ) -> SlaConfig | None:
        return self._configs.get((tenant_id, category, priority))

    async def save_sla_config(self, config: SlaConfig) -> None:
        self._configs[(config.tenant_id, config.category, config.priority)] = config
