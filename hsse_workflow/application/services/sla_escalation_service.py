"""SLA escalation service.

Tracks time-sensitive events (incidents awaiting screening or approval,
investigations in progress, emergency alerts) and raises their escalation level as SLA thresholds pass.

Sweep algorithm, per unacknowledged and unresolved event, oldest first:

1. elapsed = now - triggered_at
2. config = exact (tenant, category, priority), else (tenant, "*", "*"),
   else the hard-coded default
3. no breach notified yet and elapsed > max_response     -> level 1
4. level 1 and elapsed > escalation_after                 -> level 2
5. level 2 and elapsed > second_escalation                -> level 3 (critical)

At most one step is taken per event per sweep. The level 1 step is
guarded by ``sla_breach_notified_at``; levels 2 and 3 by the stored
level. The new level is written with a compare-and-swap on the event
version before the notification is sent, so a failed dispatch never
causes the same level to be re-emitted, and two concurrent sweepers
cannot both escalate one event.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

import structlog
from uuid6 import uuid7

from hsse_workflow.application.dtos.workflow_result import SweepSummary, WorkflowResult
from hsse_workflow.application.ports.escalation_store import EscalationStoreProtocol
from hsse_workflow.application.ports.notification_dispatcher import (
    NotificationDispatcherProtocol,
)
from hsse_workflow.application.ports.time_authority import TimeAuthorityProtocol
from hsse_workflow.application.ports.workflow_metrics import WorkflowMetricsProtocol
from hsse_workflow.application.services.base import LoggingMixin
from hsse_workflow.application.services.transition_engine import run_workflow_operation
from hsse_workflow.config.workflow_config import (
    DEFAULT_SLA_SWEEP_CONFIG,
    DEFAULT_WORKFLOW_CONFIG,
    SlaSweepConfig,
    WorkflowConfig,
)
from hsse_workflow.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
)
from hsse_workflow.domain.errors.notification import DispatchError
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.errors.workflow import NotFoundError
from hsse_workflow.domain.events.workflow import SlaEscalationEventPayload
from hsse_workflow.domain.models.escalatable_event import (
    MAX_ESCALATION_LEVEL,
    EscalatableEvent,
    EscalatableEventKind,
)
from hsse_workflow.domain.models.sla_config import WILDCARD, SlaConfig

T = TypeVar("T")

RESOLVE_ATTEMPTS = 3
SLA_PATH = "sla"


class SlaEscalationService(LoggingMixin):
    """SLA timers and the escalation sweep.

    Also serves as the SLA tracker used by the incident state machine to
    start and stop its screening, approval and investigation timers.
    """

    def __init__(
        self,
        store: EscalationStoreProtocol,
        dispatcher: NotificationDispatcherProtocol,
        time_authority: TimeAuthorityProtocol,
        config: SlaSweepConfig | None = None,
        workflow_config: WorkflowConfig | None = None,
        metrics: WorkflowMetricsProtocol | None = None,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._time = time_authority
        self._config = config or DEFAULT_SLA_SWEEP_CONFIG
        self._workflow_config = workflow_config or DEFAULT_WORKFLOW_CONFIG
        self._metrics = metrics
        self._init_logger(component="sla")

    @property
    def config(self) -> SlaSweepConfig:
        return self._config

    @property
    def metrics(self) -> WorkflowMetricsProtocol | None:
        return self._metrics

    async def _call_store(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(
                awaitable, timeout=self._workflow_config.store_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise StoreError(operation, timed_out=True) from e

    # =========================================================================
    # Timers
    # =========================================================================

    async def track_event(
        self,
        tenant_id: UUID,
        kind: EscalatableEventKind,
        source_id: UUID,
        category: str,
        priority: str,
        *,
        actor_id: UUID | None = None,
    ) -> WorkflowResult[EscalatableEvent]:
        """Start an SLA timer for ``source_id`` at the current time."""
        log = self._log_operation(
            "track_event",
            source_id=str(source_id),
            kind=kind.value,
            actor_id=_actor(actor_id),
        )

        async def body() -> EscalatableEvent:
            event = EscalatableEvent(
                id=uuid7(),
                tenant_id=tenant_id,
                kind=kind,
                source_id=source_id,
                category=category,
                priority=priority,
                triggered_at=self._time.now(),
            )
            saved = await self._call_store("save_event", self._store.save_event(event))
            log.info("sla_timer_started", event_id=str(saved.id))
            return saved

        return await run_workflow_operation(log, body)

    async def acknowledge_event(
        self, event_id: UUID, *, actor_id: UUID | None = None
    ) -> WorkflowResult[EscalatableEvent]:
        """Acknowledge an event. No further escalation happens afterwards."""
        log = self._log_operation(
            "acknowledge_event", event_id=str(event_id), actor_id=_actor(actor_id)
        )

        async def body() -> EscalatableEvent:
            event = await self._load_event(event_id)
            if event.acknowledged_at is not None:
                return event
            stored = await self._call_store(
                "update_event",
                self._store.update_event(
                    event.acknowledge(self._time.now()), expected_version=event.version
                ),
            )
            log.info("sla_event_acknowledged", escalation_level=stored.escalation_level)
            return stored

        return await run_workflow_operation(log, body)

    async def resolve_event(
        self, event_id: UUID, *, actor_id: UUID | None = None
    ) -> WorkflowResult[EscalatableEvent]:
        """Mark the tracked work as done. No further escalation happens afterwards."""
        log = self._log_operation(
            "resolve_event", event_id=str(event_id), actor_id=_actor(actor_id)
        )

        async def body() -> EscalatableEvent:
            event = await self._load_event(event_id)
            if event.resolved_at is not None:
                return event
            stored = await self._call_store(
                "update_event",
                self._store.update_event(
                    event.resolve(self._time.now()), expected_version=event.version
                ),
            )
            log.info("sla_event_resolved", escalation_level=stored.escalation_level)
            return stored

        return await run_workflow_operation(log, body)

    async def resolve_for_source(
        self, source_id: UUID, kind: EscalatableEventKind | None = None
    ) -> WorkflowResult[int]:
        """Resolve the active timers tracking ``source_id``.

        A timer that a concurrent sweep escalates between the read and the
        write is re-read and resolved again, up to RESOLVE_ATTEMPTS times.

        Args:
            source_id: The tracked entity.
            kind: Only resolve timers of this kind. All kinds when None.
        """
        log = self._log_operation(
            "resolve_for_source",
            source_id=str(source_id),
            kind=kind.value if kind is not None else None,
        )

        async def body() -> int:
            events = await self._call_store(
                "find_active_by_source", self._store.find_active_by_source(source_id)
            )
            if kind is not None:
                events = [e for e in events if e.kind == kind]
            resolved = 0
            for event in events:
                if await self._resolve_with_retry(event, log):
                    resolved += 1
            if resolved:
                log.info("sla_timers_resolved", count=resolved)
            return resolved

        return await run_workflow_operation(log, body)

    async def _resolve_with_retry(
        self, event: EscalatableEvent, log: structlog.BoundLogger
    ) -> bool:
        """Resolve one timer, re-reading it after a version conflict.

        Returns:
            False if the timer was already inactive when re-read.

        Raises:
            ConcurrentModificationError: If every attempt conflicts.
        """
        current: EscalatableEvent | None = event
        for attempt in range(1, RESOLVE_ATTEMPTS + 1):
            if current is None or not current.is_active:
                return False
            try:
                await self._call_store(
                    "update_event",
                    self._store.update_event(
                        current.resolve(self._time.now()),
                        expected_version=current.version,
                    ),
                )
                return True
            except ConcurrentModificationError:
                if attempt == RESOLVE_ATTEMPTS:
                    raise
                log.info(
                    "sla_timer_resolve_conflict",
                    event_id=str(event.id),
                    attempt=attempt,
                )
                current = await self._call_store(
                    "get_event", self._store.get_event(event.id)
                )
        return False

    async def _load_event(self, event_id: UUID) -> EscalatableEvent:
        event = await self._call_store("get_event", self._store.get_event(event_id))
        if event is None:
            raise NotFoundError("escalatable_event", event_id)
        return event

    # =========================================================================
    # Configuration
    # =========================================================================

    async def resolve_sla_config(
        self, tenant_id: UUID, category: str, priority: str
    ) -> SlaConfig:
        """Resolve thresholds: exact match, tenant wildcard, then the default.

        Raises:
            StoreError: If a config lookup fails.
        """
        exact = await self._call_store(
            "get_sla_config", self._store.get_sla_config(tenant_id, category, priority)
        )
        if exact is not None:
            return exact
        tenant_default = await self._call_store(
            "get_sla_config", self._store.get_sla_config(tenant_id, WILDCARD, WILDCARD)
        )
        if tenant_default is not None:
            return tenant_default
        return self._config.default_sla_config(tenant_id)

    async def save_sla_config(
        self, config: SlaConfig, *, actor_id: UUID | None = None
    ) -> WorkflowResult[SlaConfig]:
        """Store thresholds for a (tenant, category, priority) key.

        The saving actor is recorded on the log entry.
        """
        log = self._log_operation(
            "save_sla_config",
            actor_id=_actor(actor_id),
            tenant_id=str(config.tenant_id),
            category=config.category,
            priority=config.priority,
        )

        async def body() -> SlaConfig:
            await self._call_store("save_sla_config", self._store.save_sla_config(config))
            log.info("sla_config_saved")
            return config

        return await run_workflow_operation(log, body)

    # =========================================================================
    # Sweep
    # =========================================================================

    async def run_sla_sweep(self, *, actor_id: UUID | None = None) -> SweepSummary:
        """Examine every active event once and escalate those past a threshold.

        A store error or version conflict on one event skips that event;
        the sweep carries on with the next.

        Raises:
            StoreError: If the unresolved events cannot be listed.
        """
        log = self._log_operation("run_sla_sweep", actor_id=_actor(actor_id))
        events = await self._call_store(
            "list_unresolved", self._store.list_unresolved(self._config.batch_limit)
        )
        now = self._time.now()

        processed = breached = escalated = skipped = 0
        for event in events:
            processed += 1
            try:
                level = await self._sweep_event(event, now, log)
            except (StoreError, ConcurrentModificationError, NotFoundError) as e:
                skipped += 1
                if self._metrics is not None:
                    self._metrics.record_skipped_event(type(e).__name__)
                log.warning(
                    "sla_event_skipped",
                    event_id=str(event.id),
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue
            if level == 1:
                breached += 1
            elif level is not None:
                escalated += 1

        summary = SweepSummary(
            processed=processed, breached=breached, escalated=escalated, skipped=skipped
        )
        log.info("sla_sweep_completed", **summary.to_dict())
        if self._metrics is not None:
            self._metrics.record_sweep()
        return summary

    @staticmethod
    def next_level(
        event: EscalatableEvent, config: SlaConfig, elapsed_seconds: float
    ) -> int | None:
        """Return the level this sweep should raise ``event`` to, if any."""
        if not event.is_active:
            return None
        if event.sla_breach_notified_at is None:
            if elapsed_seconds > config.max_response_seconds:
                return max(1, event.escalation_level)
            return None
        level = event.escalation_level
        if level == 1 and elapsed_seconds > config.escalation_after_seconds:
            return 2
        if level == 2 and elapsed_seconds > config.second_escalation_seconds:
            return MAX_ESCALATION_LEVEL
        return None

    async def _sweep_event(
        self,
        event: EscalatableEvent,
        now: datetime,
        log: structlog.BoundLogger,
    ) -> int | None:
        elapsed = (now - event.triggered_at).total_seconds()
        config = await self.resolve_sla_config(event.tenant_id, event.category, event.priority)
        level = self.next_level(event, config, elapsed)
        if level is None:
            return None

        updated = event.with_escalation_level(
            level, breach_notified_at=now if event.sla_breach_notified_at is None else None
        )
        stored = await self._call_store(
            "update_event", self._store.update_event(updated, expected_version=event.version)
        )
        log.info(
            "sla_event_escalated",
            event_id=str(stored.id),
            source_id=str(stored.source_id),
            level=level,
            elapsed_seconds=round(elapsed, 3),
        )
        if self._metrics is not None:
            self._metrics.record_escalation(level)

        payload = SlaEscalationEventPayload(
            event_id=stored.id,
            tenant_id=stored.tenant_id,
            source_id=stored.source_id,
            level=level,
            elapsed_seconds=elapsed,
            threshold_seconds=config.threshold_for_level(level),
            channels=config.notification_channels,
            recipients=config.escalation_recipients,
            kind=stored.kind.value,
        )
        await self._notify(payload.event_type, stored.id, payload.to_dict(), log)
        return level

    async def _notify(
        self,
        event_type: str,
        entity_id: UUID,
        payload: dict[str, Any],
        log: structlog.BoundLogger,
    ) -> None:
        """Dispatch a notification. Failures are logged at error, never raised."""
        try:
            await asyncio.wait_for(
                self._dispatcher.notify(event_type, entity_id, payload),
                timeout=self._workflow_config.notification_timeout_seconds,
            )
            return
        except DispatchError as e:
            error = str(e)
        except asyncio.TimeoutError:
            error = "timed out"
        log.error(
            "sla_notification_dispatch_failed",
            event_type=event_type,
            event_id=str(entity_id),
            error=error,
        )
        if self._metrics is not None:
            self._metrics.record_dispatch_failure(SLA_PATH, event_type)


def _actor(actor_id: UUID | None) -> str | None:
    return str(actor_id) if actor_id is not None else None
