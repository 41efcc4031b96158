"""Transition engine shared by every workflow service.

Every status change goes through the same sequence:

    load -> resolve actor -> matrix check -> role gate
    -> justification check -> closure gate (CLOSED only)
    -> compare-and-swap commit of incident + audit (+ investigation/dispute)
    -> SLA timer sync -> best-effort notification

Store and dispatcher calls are wrapped in ``asyncio.wait_for``. A store
timeout becomes a retryable StoreError; a dispatcher timeout is logged
like any other dispatch failure. Nothing after the commit can undo it.

Public operations wrap their body in ``run_workflow_operation`` so that
expected rejections come back as a WorkflowResult instead of raising.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

import structlog
from uuid6 import uuid7

from hsse_workflow.application.dtos.workflow_result import WorkflowResult
from hsse_workflow.application.ports.identity_provider import IdentityProviderProtocol
from hsse_workflow.application.ports.incident_store import (
    IncidentStoreProtocol,
    TransitionCommit,
)
from hsse_workflow.application.ports.notification_dispatcher import (
    NotificationDispatcherProtocol,
)
from hsse_workflow.application.ports.sla_tracker import SlaTrackerProtocol
from hsse_workflow.application.ports.time_authority import TimeAuthorityProtocol
from hsse_workflow.application.ports.workflow_metrics import WorkflowMetricsProtocol
from hsse_workflow.application.services.base import LoggingMixin
from hsse_workflow.config.workflow_config import DEFAULT_WORKFLOW_CONFIG, WorkflowConfig
from hsse_workflow.domain.errors.notification import DispatchError
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.errors.workflow import (
    InvalidTransitionError,
    MissingJustificationError,
    NotFoundError,
    PrerequisitesNotMetError,
    WorkflowError,
)
from hsse_workflow.domain.events.workflow import (
    INCIDENT_CLOSED_EVENT_TYPE,
    INCIDENT_TRANSITIONED_EVENT_TYPE,
    TransitionEventPayload,
)
from hsse_workflow.domain.models.actor import Actor
from hsse_workflow.domain.models.audit_entry import AuditEntry
from hsse_workflow.domain.models.closure import ClosureReadiness
from hsse_workflow.domain.models.dispute import Dispute
from hsse_workflow.domain.models.escalatable_event import EscalatableEventKind
from hsse_workflow.domain.models.incident import (
    TERMINAL_STATES,
    Incident,
    IncidentStatus,
    requires_justification,
)
from hsse_workflow.domain.models.investigation import Investigation
from hsse_workflow.domain.services.closure_gate import evaluate_closure
from hsse_workflow.domain.services.role_gate import (
    WorkflowAction,
    action_for,
    check_permission,
)

T = TypeVar("T")

# Entering INVESTIGATION_IN_PROGRESS from these statuses reopens the investigation
REWORK_SOURCE_STATES: frozenset[IncidentStatus] = frozenset(
    {
        IncidentStatus.MANAGER_REJECTED,
        IncidentStatus.DISPUTE_RESOLUTION,
        IncidentStatus.PENDING_CLOSURE,
        IncidentStatus.PENDING_FINAL_CLOSURE,
    }
)

# Closure from these statuses goes through the closure gate
GATED_CLOSURE_SOURCES: frozenset[IncidentStatus] = frozenset(
    {IncidentStatus.PENDING_CLOSURE, IncidentStatus.PENDING_FINAL_CLOSURE}
)

# Statuses during which each SLA timer kind runs
SLA_TIMER_STATES: dict[EscalatableEventKind, frozenset[IncidentStatus]] = {
    EscalatableEventKind.INCIDENT_SCREENING: frozenset(
        {IncidentStatus.SUBMITTED, IncidentStatus.EXPERT_SCREENING}
    ),
    EscalatableEventKind.INCIDENT_APPROVAL: frozenset(
        {IncidentStatus.PENDING_MANAGER_APPROVAL}
    ),
    EscalatableEventKind.INVESTIGATION: frozenset(
        {
            IncidentStatus.INVESTIGATION_IN_PROGRESS,
            IncidentStatus.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL,
            IncidentStatus.PENDING_CONTRACT_CONTROLLER_APPROVAL,
            IncidentStatus.PENDING_CONTRACTOR_SITE_REP_APPROVAL,
            IncidentStatus.PENDING_HSSE_VIOLATION_REVIEW,
        }
    ),
}

# SLA config category per timer kind; approval timers use the incident category
SLA_TIMER_CATEGORIES: dict[EscalatableEventKind, str] = {
    EscalatableEventKind.INCIDENT_SCREENING: "screening",
    EscalatableEventKind.INVESTIGATION: "investigation",
}

TRANSITION_PATH = "transition"


async def run_workflow_operation(
    log: structlog.BoundLogger,
    body: Callable[[], Awaitable[T]],
) -> WorkflowResult[T]:
    """Run an operation body and convert workflow errors into a result.

    Expected rejections are logged at info, store failures at error.
    Anything that is not a WorkflowError propagates unchanged.
    """
    try:
        value = await body()
    except StoreError as e:
        log.error(
            "workflow_store_failed",
            code=e.code.value,
            error=str(e),
            retryable=e.retryable,
            **e.details(),
        )
        return WorkflowResult.failure(e)
    except WorkflowError as e:
        log.info("workflow_operation_rejected", code=e.code.value, reason=str(e))
        return WorkflowResult.failure(e)
    return WorkflowResult.success(value)


class TransitionEngine(LoggingMixin):
    """Validated, atomic incident transitions.

    Attributes:
        store: Incident store port.
        time: Time authority.
        config: Workflow configuration.
    """

    def __init__(
        self,
        store: IncidentStoreProtocol,
        identity_provider: IdentityProviderProtocol,
        dispatcher: NotificationDispatcherProtocol,
        time_authority: TimeAuthorityProtocol,
        config: WorkflowConfig | None = None,
        sla_tracker: SlaTrackerProtocol | None = None,
        metrics: WorkflowMetricsProtocol | None = None,
    ) -> None:
        self._store = store
        self._identity = identity_provider
        self._dispatcher = dispatcher
        self._time = time_authority
        self._config = config or DEFAULT_WORKFLOW_CONFIG
        self._sla_tracker = sla_tracker
        self._metrics = metrics
        self._init_logger()

    @property
    def store(self) -> IncidentStoreProtocol:
        return self._store

    @property
    def identity(self) -> IdentityProviderProtocol:
        return self._identity

    @property
    def time(self) -> TimeAuthorityProtocol:
        return self._time

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    def set_sla_tracker(self, sla_tracker: SlaTrackerProtocol | None) -> None:
        """Attach the SLA tracker (wired after construction by bootstrap)."""
        self._sla_tracker = sla_tracker

    # =========================================================================
    # Guarded I/O
    # =========================================================================

    async def call_store(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await a store call with the configured timeout.

        Raises:
            StoreError: If the call timed out (retryable).
        """
        try:
            return await asyncio.wait_for(
                awaitable, timeout=self._config.store_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise StoreError(operation, timed_out=True) from e

    async def load_incident(self, incident_id: UUID) -> Incident:
        """Load a live incident.

        Raises:
            NotFoundError: If the incident is missing or soft-deleted.
        """
        incident = await self.call_store(
            "get_incident", self._store.get_incident(incident_id)
        )
        if incident is None or incident.is_deleted:
            raise NotFoundError("incident", incident_id)
        return incident

    async def resolve_actor(self, actor_id: UUID) -> Actor:
        """Resolve an actor's current roles and department."""
        roles = await self.call_store("get_roles", self._identity.get_roles(actor_id))
        department_id = await self.call_store(
            "get_department", self._identity.get_department(actor_id)
        )
        display_name = await self.call_store(
            "get_display_name", self._identity.get_display_name(actor_id)
        )
        return Actor(
            actor_id=actor_id,
            roles=frozenset(roles),
            department_id=department_id,
            display_name=display_name,
        )

    async def load_investigation(self, incident_id: UUID) -> Investigation | None:
        return await self.call_store(
            "get_active_investigation",
            self._store.get_active_investigation(incident_id),
        )

    async def commit(self, commit: TransitionCommit) -> Incident:
        return await self.call_store("commit", self._store.commit(commit))

    async def notify(
        self,
        event_type: str,
        entity_id: UUID,
        payload: dict[str, Any],
        log: structlog.BoundLogger,
    ) -> bool:
        """Dispatch a notification. Failures are logged and counted, never raised.

        Returns:
            True if the dispatcher accepted the notification.
        """
        try:
            await asyncio.wait_for(
                self._dispatcher.notify(event_type, entity_id, payload),
                timeout=self._config.notification_timeout_seconds,
            )
            return True
        except DispatchError as e:
            error = str(e)
        except asyncio.TimeoutError:
            error = "timed out"
        log.warning(
            "notification_dispatch_failed",
            event_type=event_type,
            entity_id=str(entity_id),
            error=error,
        )
        if self._metrics is not None:
            self._metrics.record_dispatch_failure(TRANSITION_PATH, event_type)
        return False

    # =========================================================================
    # Validation helpers
    # =========================================================================

    def require_text(self, field: str, value: str | None) -> str:
        """Return stripped text or raise if shorter than the minimum length.

        Raises:
            MissingJustificationError: If the text is missing or too short.
        """
        text = (value or "").strip()
        if len(text) < self._config.min_justification_length:
            raise MissingJustificationError(field, self._config.min_justification_length)
        return text

    @staticmethod
    def require_status(
        incident: Incident,
        expected: Iterable[IncidentStatus],
        target: IncidentStatus | None = None,
    ) -> None:
        """Raise unless the incident is in one of the expected statuses.

        Raises:
            InvalidTransitionError: Listing the statuses reachable now.
        """
        allowed = frozenset(expected)
        if incident.status not in allowed:
            raise InvalidTransitionError(
                from_state=incident.status,
                to_state=target,
                allowed_transitions=sorted(
                    incident.status.valid_transitions(), key=lambda s: s.value
                ),
                message=(
                    f"Incident {incident.id} is {incident.status.value}; "
                    f"expected one of {sorted(s.value for s in allowed)}"
                ),
            )

    def new_audit_entry(
        self,
        incident: Incident,
        actor_id: UUID,
        action: str,
        *,
        from_status: IncidentStatus | None = None,
        to_status: IncidentStatus | None = None,
        details: dict[str, Any] | None = None,
        tags: tuple[str, ...] = (),
    ) -> AuditEntry:
        return AuditEntry(
            id=uuid7(),
            tenant_id=incident.tenant_id,
            incident_id=incident.id,
            actor_id=actor_id,
            action=action,
            created_at=self._time.now(),
            from_status=from_status,
            to_status=to_status,
            details=dict(details or {}),
            tags=tags,
        )

    def new_investigation(self, incident: Incident, investigator_id: UUID) -> Investigation:
        return Investigation(
            id=uuid7(),
            incident_id=incident.id,
            tenant_id=incident.tenant_id,
            investigator_id=investigator_id,
            started_at=self._time.now(),
        )

    async def closure_readiness(
        self,
        incident: Incident,
        actor: Actor | None,
        justification: str | None,
    ) -> ClosureReadiness:
        """Evaluate the closure gate against freshly read records."""
        investigation = await self.load_investigation(incident.id)
        corrective_actions = await self.call_store(
            "list_corrective_actions",
            self._store.list_corrective_actions(incident.id),
        )
        return evaluate_closure(
            incident,
            investigation,
            corrective_actions,
            actor=actor,
            justification=justification,
        )

    # =========================================================================
    # Transition
    # =========================================================================

    async def transition(
        self,
        incident: Incident,
        actor: Actor,
        target: IncidentStatus,
        log: structlog.BoundLogger,
        *,
        action: WorkflowAction | None = None,
        justification: str | None = None,
        justification_field: str = "reason",
        audit_action: str | None = None,
        changes: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
        tags: tuple[str, ...] = (),
        dispute: Dispute | None = None,
        full_rework: bool = False,
    ) -> Incident:
        """Validate and commit one incident transition.

        Args:
            incident: Incident as read at the start of the operation.
            actor: Resolved caller.
            target: Requested status.
            log: Operation logger.
            action: Action to authorize; derived from the edge when omitted.
            justification: Reason, notes or justification text.
            justification_field: Payload field name reported when text is missing.
            audit_action: Audit action name (defaults to the action value).
            changes: Extra incident field updates applied with the status.
            details: Audit entry details.
            tags: Audit entry tags.
            dispute: Dispute record written in the same commit.
            full_rework: Reopen the investigation from scratch instead of
                keeping its findings.

        Returns:
            The committed incident.

        Raises:
            InvalidTransitionError: Edge not in the matrix, or stale version.
            ForbiddenError: Role gate refused the actor.
            MissingJustificationError: Required text missing or too short.
            PrerequisitesNotMetError: Closure gate not satisfied.
            StoreError: Commit failed; nothing was written.
        """
        from_status = incident.status
        if not incident.can_transition_to(target):
            raise InvalidTransitionError(
                from_state=from_status,
                to_state=target,
                allowed_transitions=sorted(
                    from_status.valid_transitions(), key=lambda s: s.value
                ),
            )
        action = action or action_for(from_status, target)
        check_permission(actor, incident, action, target)

        if requires_justification(from_status, target):
            text: str | None = self.require_text(justification_field, justification)
        else:
            text = (justification or "").strip() or None

        if target is IncidentStatus.CLOSED and from_status in GATED_CLOSURE_SOURCES:
            readiness = await self.closure_readiness(incident, actor, text)
            if not readiness.ready:
                raise PrerequisitesNotMetError(readiness.blocking_reasons)

        now = self._time.now()
        updates = dict(changes or {})
        if target in (IncidentStatus.MANAGER_REJECTED, IncidentStatus.EXPERT_REJECTED):
            updates.setdefault("rejection_reason", text)
        elif target is IncidentStatus.ESCALATED_TO_HSSE_MANAGER:
            updates.setdefault("escalation_reason", text)
        elif target is IncidentStatus.RETURNED_TO_REPORTER:
            updates.setdefault("return_reason", text)
        if (
            target is IncidentStatus.INVESTIGATION_IN_PROGRESS
            and from_status in REWORK_SOURCE_STATES
        ):
            updates.setdefault("hsse_validation_accepted", False)

        investigations = await self._investigation_updates(
            incident, from_status, target, full_rework
        )
        updated = incident.with_status(target, now, **updates)

        audit_details = dict(details or {})
        if text is not None:
            audit_details.setdefault(justification_field, text)
        entry = self.new_audit_entry(
            incident,
            actor.actor_id,
            audit_action or action.value,
            from_status=from_status,
            to_status=target,
            details=audit_details,
            tags=tags,
        )
        committed = await self.commit(
            TransitionCommit(
                expected_version=incident.version,
                incident=updated,
                audit_entries=(entry,),
                investigations=investigations,
                dispute=dispute,
            )
        )
        log.info(
            "incident_transition_committed",
            incident_id=str(committed.id),
            action=action.value,
            from_status=from_status.value,
            to_status=target.value,
            version=committed.version,
        )

        await self.sync_sla_timers(committed, from_status, log)
        await self.announce_transition(
            committed,
            actor.actor_id,
            audit_action or action.value,
            from_status,
            log,
            occurred_at=now,
            tags=tags,
        )
        return committed

    async def announce_transition(
        self,
        incident: Incident,
        actor_id: UUID,
        action: str,
        from_status: IncidentStatus,
        log: structlog.BoundLogger,
        *,
        occurred_at: datetime,
        tags: tuple[str, ...] = (),
    ) -> bool:
        """Notify a committed status change. Closures use the closed event type."""
        event_type = (
            INCIDENT_CLOSED_EVENT_TYPE
            if incident.status in TERMINAL_STATES
            else INCIDENT_TRANSITIONED_EVENT_TYPE
        )
        payload = TransitionEventPayload(
            incident_id=incident.id,
            tenant_id=incident.tenant_id,
            action=action,
            actor_id=actor_id,
            from_status=from_status,
            to_status=incident.status,
            occurred_at=occurred_at,
            extra={"tags": list(tags)} if tags else {},
        )
        return await self.notify(event_type, incident.id, payload.to_dict(), log)

    async def update(
        self,
        incident: Incident,
        actor: Actor,
        log: structlog.BoundLogger,
        *,
        action: WorkflowAction,
        changes: dict[str, Any],
        details: dict[str, Any] | None = None,
        investigations: tuple[Investigation, ...] = (),
        audit_action: str | None = None,
    ) -> Incident:
        """Commit field updates that leave the status unchanged.

        The caller is responsible for the permission check. The commit is
        still compare-and-swap on the version read at the start.
        """
        updated = incident.evolve(**changes)
        entry = self.new_audit_entry(
            incident,
            actor.actor_id,
            audit_action or action.value,
            from_status=incident.status,
            to_status=incident.status,
            details=details,
        )
        committed = await self.commit(
            TransitionCommit(
                expected_version=incident.version,
                incident=updated,
                audit_entries=(entry,),
                investigations=investigations,
            )
        )
        log.info(
            "incident_updated",
            incident_id=str(committed.id),
            action=action.value,
            status=committed.status.value,
            version=committed.version,
        )
        return committed

    async def _investigation_updates(
        self,
        incident: Incident,
        from_status: IncidentStatus,
        target: IncidentStatus,
        full_rework: bool,
    ) -> tuple[Investigation, ...]:
        if target is IncidentStatus.INVESTIGATION_IN_PROGRESS:
            active = await self.load_investigation(incident.id)
            if active is None:
                if incident.assigned_investigator_id is None:
                    return ()
                return (self.new_investigation(incident, incident.assigned_investigator_id),)
            if from_status not in REWORK_SOURCE_STATES:
                return ()
            if full_rework:
                investigator_id = incident.assigned_investigator_id or active.investigator_id
                return (
                    active.close(self._time.now()),
                    self.new_investigation(incident, investigator_id),
                )
            return (active.evolve(submitted_at=None),)

        if target in TERMINAL_STATES:
            active = await self.load_investigation(incident.id)
            return (active.close(self._time.now()),) if active is not None else ()
        return ()

    async def sync_sla_timers(
        self,
        incident: Incident,
        from_status: IncidentStatus | None,
        log: structlog.BoundLogger,
    ) -> None:
        """Start or stop SLA timers for the status change. Best effort.

        A timer starts when the incident enters one of the statuses its
        kind covers and stops when it leaves all of them. ``from_status``
        is None for a newly reported incident.
        """
        if self._sla_tracker is None:
            return
        for kind, statuses in SLA_TIMER_STATES.items():
            was_timed = from_status in statuses
            is_timed = incident.status in statuses
            if was_timed and not is_timed:
                result = await self._sla_tracker.resolve_for_source(incident.id, kind)
                if not result.ok:
                    log.warning(
                        "sla_timer_resolve_failed",
                        incident_id=str(incident.id),
                        kind=kind.value,
                        code=result.code.value if result.code else None,
                        error=result.message,
                    )
            elif is_timed and not was_timed:
                tracked = await self._sla_tracker.track_event(
                    tenant_id=incident.tenant_id,
                    kind=kind,
                    source_id=incident.id,
                    category=SLA_TIMER_CATEGORIES.get(kind, incident.category.value),
                    priority=str(int(incident.severity)),
                )
                if not tracked.ok:
                    log.warning(
                        "sla_timer_start_failed",
                        incident_id=str(incident.id),
                        kind=kind.value,
                        code=tracked.code.value if tracked.code else None,
                        error=tracked.message,
                    )
