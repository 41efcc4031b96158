"""Dispute and mediation service.

A dispute is opened against a rejection and resolved by a mediator
(hsse_manager or admin). Two origins are supported:

- manager_rejected: opened by the assigned investigator.
  override -> pending_closure, maintain / partial -> investigation_in_progress
- expert_rejected: opened by the original reporter.
  override -> pending_manager_approval, maintain -> closed_rejected,
  partial -> returned_to_reporter

The dispute record is written in the same commit as the incident status
change, so the store's single-open-dispute rule and the incident version
check are enforced together.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog
from uuid6 import uuid7

from hsse_workflow.application.dtos.workflow_result import WorkflowResult
from hsse_workflow.application.services.base import LoggingMixin
from hsse_workflow.application.services.transition_engine import (
    TransitionEngine,
    run_workflow_operation,
)
from hsse_workflow.domain.errors.workflow import InvalidTransitionError, NotFoundError
from hsse_workflow.domain.events.workflow import (
    DISPUTE_OPENED_EVENT_TYPE,
    DISPUTE_RESOLVED_EVENT_TYPE,
)
from hsse_workflow.domain.models.actor import Actor
from hsse_workflow.domain.models.dispute import Dispute, DisputeCategory, DisputeDecision
from hsse_workflow.domain.models.incident import (
    DISPUTABLE_STATES,
    Incident,
    IncidentStatus,
)
from hsse_workflow.domain.services.role_gate import (
    WorkflowAction,
    action_for,
    check_permission,
)


class DisputeService(LoggingMixin):
    """Opens and resolves disputes against rejections."""

    def __init__(self, engine: TransitionEngine) -> None:
        self._engine = engine
        self._init_logger()

    # =========================================================================
    # Commands
    # =========================================================================

    async def open_dispute(
        self,
        incident_id: UUID,
        actor_id: UUID,
        category: DisputeCategory,
        reason: str | None,
        evidence_refs: Sequence[str] = (),
    ) -> WorkflowResult[Dispute]:
        """Open a dispute against the incident's current rejection.

        Args:
            incident_id: Incident in manager_rejected or expert_rejected.
            actor_id: Assigned investigator (manager rejection) or the
                original reporter (expert rejection).
            category: Dispute category.
            reason: Why the rejection is disputed (minimum length applies).
            evidence_refs: Attachment references, stored verbatim.

        Returns:
            Result carrying the open Dispute.
        """
        log = self._log_operation(
            "open_dispute", incident_id=str(incident_id), actor_id=str(actor_id)
        )

        async def body() -> Dispute:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            _, dispute = await self.open_from_rejection(
                incident, actor, category, reason, evidence_refs, log
            )
            return dispute

        return await run_workflow_operation(log, body)

    async def open_from_rejection(
        self,
        incident: Incident,
        actor: Actor,
        category: DisputeCategory,
        reason: str | None,
        evidence_refs: Sequence[str],
        log: structlog.BoundLogger,
    ) -> tuple[Incident, Dispute]:
        """Open a dispute on an already loaded incident.

        Shared by ``open_dispute`` and the reporter's dispute response.

        Raises:
            InvalidTransitionError: Not in a rejected status, or a dispute
                is already open.
        """
        if incident.status not in DISPUTABLE_STATES:
            raise InvalidTransitionError(
                from_state=incident.status,
                to_state=IncidentStatus.DISPUTE_RESOLUTION,
                allowed_transitions=sorted(
                    incident.status.valid_transitions(), key=lambda s: s.value
                ),
                message=(
                    f"A dispute can only be opened from a rejected status; "
                    f"incident {incident.id} is {incident.status.value}"
                ),
            )

        existing = await self._engine.call_store(
            "get_open_dispute", self._engine.store.get_open_dispute(incident.id)
        )
        if existing is not None:
            raise InvalidTransitionError(
                from_state=incident.status,
                to_state=IncidentStatus.DISPUTE_RESOLUTION,
                message=f"Incident {incident.id} already has an open dispute ({existing.id})",
            )

        now = self._engine.time.now()
        text = (reason or "").strip()
        dispute = Dispute(
            id=uuid7(),
            incident_id=incident.id,
            tenant_id=incident.tenant_id,
            category=category,
            reason=text,
            opened_by=actor.actor_id,
            opened_at=now,
            origin_status=incident.status,
            evidence_refs=tuple(evidence_refs),
        )
        committed = await self._engine.transition(
            incident,
            actor,
            IncidentStatus.DISPUTE_RESOLUTION,
            log,
            action=action_for(incident.status, IncidentStatus.DISPUTE_RESOLUTION),
            justification=reason,
            audit_action=WorkflowAction.OPEN_DISPUTE.value,
            changes={
                "dispute_category": category.value,
                "dispute_notes": text,
                "dispute_opened_by": actor.actor_id,
                "dispute_opened_at": now,
                "rework_required": False,
            },
            details={
                "dispute_id": str(dispute.id),
                "category": category.value,
                "evidence_refs": list(dispute.evidence_refs),
            },
            dispute=dispute,
        )
        log.info(
            "dispute_opened",
            dispute_id=str(dispute.id),
            origin_status=dispute.origin_status.value,
            category=category.value,
        )
        await self._engine.notify(
            DISPUTE_OPENED_EVENT_TYPE,
            incident.id,
            {
                "dispute_id": str(dispute.id),
                "incident_id": str(incident.id),
                "category": category.value,
                "opened_by": str(actor.actor_id),
                "origin_status": dispute.origin_status.value,
            },
            log,
        )
        return committed, dispute

    async def resolve_dispute(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: DisputeDecision,
        notes: str | None,
    ) -> WorkflowResult[Dispute]:
        """Resolve the incident's open dispute.

        Only a mediator may resolve, and notes are required. The incident
        moves to the target for the dispute's origin and the decision.

        Returns:
            Result carrying the resolved Dispute.
        """
        log = self._log_operation(
            "resolve_dispute",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Dispute:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(incident, {IncidentStatus.DISPUTE_RESOLUTION})
            check_permission(actor, incident, WorkflowAction.RESOLVE_DISPUTE)
            text = self._engine.require_text("notes", notes)

            dispute = await self._engine.call_store(
                "get_open_dispute", self._engine.store.get_open_dispute(incident.id)
            )
            if dispute is None:
                raise NotFoundError("dispute", incident.id)

            target = dispute.resolution_target(decision)
            resolved = dispute.resolve(
                actor.actor_id, decision, text, self._engine.time.now()
            )
            full_rework = (
                decision is DisputeDecision.MAINTAIN_REJECTION
                and dispute.origin_status is IncidentStatus.MANAGER_REJECTED
            )
            await self._engine.transition(
                incident,
                actor,
                target,
                log,
                action=WorkflowAction.RESOLVE_DISPUTE,
                justification=text,
                justification_field="notes",
                changes={"rework_required": resolved.rework_required},
                details={"dispute_id": str(dispute.id), "decision": decision.value},
                dispute=resolved,
                full_rework=full_rework,
            )
            log.info(
                "dispute_resolved",
                dispute_id=str(dispute.id),
                target_status=target.value,
                rework_required=resolved.rework_required,
            )
            await self._engine.notify(
                DISPUTE_RESOLVED_EVENT_TYPE,
                incident.id,
                {
                    "dispute_id": str(dispute.id),
                    "incident_id": str(incident.id),
                    "decision": decision.value,
                    "mediator_id": str(actor.actor_id),
                    "to_status": target.value,
                },
                log,
            )
            return resolved

        return await run_workflow_operation(log, body)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_open_dispute(self, incident_id: UUID) -> WorkflowResult[Dispute | None]:
        log = self._log_operation("get_open_dispute", incident_id=str(incident_id))

        async def body() -> Dispute | None:
            await self._engine.load_incident(incident_id)
            return await self._engine.call_store(
                "get_open_dispute", self._engine.store.get_open_dispute(incident_id)
            )

        return await run_workflow_operation(log, body)

    async def list_disputes(self, incident_id: UUID) -> WorkflowResult[list[Dispute]]:
        log = self._log_operation("list_disputes", incident_id=str(incident_id))

        async def body() -> list[Dispute]:
            await self._engine.load_incident(incident_id)
            return await self._engine.call_store(
                "list_disputes", self._engine.store.list_disputes(incident_id)
            )

        return await run_workflow_operation(log, body)
