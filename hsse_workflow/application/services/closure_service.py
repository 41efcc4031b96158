"""Closure service.

Closure request, HSSE validation and final closure of an investigated
incident:

    investigation_in_progress --request_closure--> pending_closure
    pending_closure --validate_investigation(accept)--> pending_final_closure
    pending_closure --validate_investigation(reject)--> investigation_in_progress
    pending_final_closure --reject_closure--> investigation_in_progress
    pending_closure | pending_final_closure --close_incident--> closed

``close_incident`` never trusts an earlier readiness evaluation: it
re-reads the incident, re-evaluates the gate, and commits against the
version it read.
"""

from __future__ import annotations

from uuid import UUID

import structlog

from hsse_workflow.application.dtos.workflow_result import WorkflowResult
from hsse_workflow.application.services.base import LoggingMixin
from hsse_workflow.application.services.transition_engine import (
    TransitionEngine,
    run_workflow_operation,
)
from hsse_workflow.domain.errors.workflow import PrerequisitesNotMetError
from hsse_workflow.domain.models.closure import ClosureReadiness
from hsse_workflow.domain.models.decisions import ValidationDecision
from hsse_workflow.domain.models.incident import ClosureReason, Incident, IncidentStatus
from hsse_workflow.domain.models.violation import ViolationStage
from hsse_workflow.domain.services.role_gate import WorkflowAction, check_permission

_CLOSABLE_STATES = frozenset(
    {IncidentStatus.PENDING_CLOSURE, IncidentStatus.PENDING_FINAL_CLOSURE}
)


class ClosureService(LoggingMixin):
    """Closure gate evaluation and the closure chain."""

    def __init__(self, engine: TransitionEngine) -> None:
        self._engine = engine
        self._init_logger()

    async def evaluate_closure_readiness(
        self,
        incident_id: UUID,
        actor_id: UUID | None = None,
        justification: str | None = None,
    ) -> WorkflowResult[ClosureReadiness]:
        """Evaluate the closure checklist without changing anything.

        Pass the prospective closing actor and justification to include the
        level 5 authority check. Calling this twice with no intervening
        writes returns identical results.
        """
        log = self._log_operation("evaluate_closure_readiness", incident_id=str(incident_id))

        async def body() -> ClosureReadiness:
            incident = await self._engine.load_incident(incident_id)
            actor = (
                await self._engine.resolve_actor(actor_id) if actor_id is not None else None
            )
            readiness = await self._engine.closure_readiness(incident, actor, justification)
            log.info(
                "closure_readiness_evaluated",
                ready=readiness.ready,
                blocking_count=len(readiness.blocking_reasons),
            )
            return readiness

        return await run_workflow_operation(log, body)

    async def close_incident(
        self,
        incident_id: UUID,
        actor_id: UUID,
        justification: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Close an incident from pending_closure or pending_final_closure.

        Level 5 incidents may only be closed by hsse_manager or admin with
        a written justification, however complete the checklist is.
        """
        log = self._log_operation(
            "close_incident", incident_id=str(incident_id), actor_id=str(actor_id)
        )
        return await run_workflow_operation(
            log, lambda: self._close(incident_id, actor_id, justification, _CLOSABLE_STATES, log)
        )

    async def approve_closure(
        self,
        incident_id: UUID,
        actor_id: UUID,
        justification: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Give final approval to a validated investigation and close it."""
        log = self._log_operation(
            "approve_closure", incident_id=str(incident_id), actor_id=str(actor_id)
        )
        return await run_workflow_operation(
            log,
            lambda: self._close(
                incident_id,
                actor_id,
                justification,
                frozenset({IncidentStatus.PENDING_FINAL_CLOSURE}),
                log,
            ),
        )

    async def _close(
        self,
        incident_id: UUID,
        actor_id: UUID,
        justification: str | None,
        allowed: frozenset[IncidentStatus],
        log: structlog.BoundLogger,
    ) -> Incident:
        incident = await self._engine.load_incident(incident_id)
        actor = await self._engine.resolve_actor(actor_id)
        self._engine.require_status(incident, allowed, IncidentStatus.CLOSED)
        text = (justification or "").strip() or None
        committed = await self._engine.transition(
            incident,
            actor,
            IncidentStatus.CLOSED,
            log,
            action=WorkflowAction.CLOSE_INCIDENT,
            justification=text,
            justification_field="justification",
            changes={
                "closure_reason": ClosureReason.STANDARD,
                "closure_justification": text,
            },
            details={"severity": int(incident.severity)},
        )
        log.info("incident_closed", severity=int(incident.severity))
        return committed

    async def request_closure(
        self,
        incident_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Submit a finished investigation for HSSE validation.

        Findings must be submitted, and an identified violation must have
        entered its approval chain.
        """
        log = self._log_operation(
            "request_closure", incident_id=str(incident_id), actor_id=str(actor_id)
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident,
                {IncidentStatus.INVESTIGATION_IN_PROGRESS},
                IncidentStatus.PENDING_CLOSURE,
            )
            check_permission(actor, incident, WorkflowAction.REQUEST_CLOSURE)

            reasons: list[str] = []
            investigation = await self._engine.load_investigation(incident.id)
            if investigation is None or not investigation.is_complete:
                reasons.append("Investigation findings have not been submitted")
            violation = incident.violation
            if violation is not None and violation.stage is ViolationStage.IDENTIFIED:
                reasons.append("Identified violation has not been submitted")
            if reasons:
                raise PrerequisitesNotMetError(reasons)

            return await self._engine.transition(
                incident,
                actor,
                IncidentStatus.PENDING_CLOSURE,
                log,
                action=WorkflowAction.REQUEST_CLOSURE,
                justification=notes,
                justification_field="notes",
                changes={"rework_required": False},
            )

        return await run_workflow_operation(log, body)

    async def validate_investigation(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: ValidationDecision,
        notes: str | None = None,
    ) -> WorkflowResult[Incident]:
        """HSSE validation of an investigation pending closure.

        ``accept`` records the validation and moves to pending_final_closure.
        ``reject`` sends the investigation back for rework and needs notes.
        """
        target = (
            IncidentStatus.PENDING_FINAL_CLOSURE
            if decision is ValidationDecision.ACCEPT
            else IncidentStatus.INVESTIGATION_IN_PROGRESS
        )
        log = self._log_operation(
            "validate_investigation",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(incident, {IncidentStatus.PENDING_CLOSURE}, target)
            check_permission(actor, incident, WorkflowAction.VALIDATE_INVESTIGATION)
            if decision is ValidationDecision.ACCEPT:
                return await self._engine.transition(
                    incident,
                    actor,
                    target,
                    log,
                    action=WorkflowAction.VALIDATE_INVESTIGATION,
                    justification=notes,
                    justification_field="notes",
                    changes={"hsse_validation_accepted": True},
                    details={"decision": decision.value},
                )
            text = self._engine.require_text("notes", notes)
            return await self._engine.transition(
                incident,
                actor,
                target,
                log,
                action=WorkflowAction.VALIDATE_INVESTIGATION,
                justification=text,
                justification_field="notes",
                details={"decision": decision.value},
            )

        return await run_workflow_operation(log, body)

    async def reject_closure(
        self,
        incident_id: UUID,
        actor_id: UUID,
        reason: str | None,
    ) -> WorkflowResult[Incident]:
        """Refuse final closure and send the investigation back for rework."""
        log = self._log_operation(
            "reject_closure", incident_id=str(incident_id), actor_id=str(actor_id)
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident,
                {IncidentStatus.PENDING_FINAL_CLOSURE},
                IncidentStatus.INVESTIGATION_IN_PROGRESS,
            )
            check_permission(actor, incident, WorkflowAction.REJECT_CLOSURE)
            text = self._engine.require_text("reason", reason)
            return await self._engine.transition(
                incident,
                actor,
                IncidentStatus.INVESTIGATION_IN_PROGRESS,
                log,
                action=WorkflowAction.REJECT_CLOSURE,
                justification=text,
            )

        return await run_workflow_operation(log, body)
