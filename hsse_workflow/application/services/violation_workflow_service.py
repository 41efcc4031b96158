"""Contractor violation sub-workflow service.

Drives a violation through its approval chain while moving the parent
incident through the matching statuses:

    violation stage                          incident status
    identified -> pending_dept_mgr_approval  investigation -> pending_dept_mgr_violation_approval
    -> pending_contract_controller (fine)    -> pending_contract_controller_approval
    -> pending_contractor_site_rep (other)   -> pending_contractor_site_rep_approval
    -> contested                             -> pending_hsse_violation_review
    -> finalized | rejected                  -> investigation_in_progress

A rejected violation no longer blocks closure; the incident simply goes
back to investigation and proceeds through the normal chain.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog

from hsse_workflow.application.dtos.workflow_result import WorkflowResult
from hsse_workflow.application.services.base import LoggingMixin
from hsse_workflow.application.services.transition_engine import (
    TransitionEngine,
    run_workflow_operation,
)
from hsse_workflow.domain.errors.workflow import (
    InvalidTransitionError,
    NotFoundError,
    PrerequisitesNotMetError,
)
from hsse_workflow.domain.events.workflow import VIOLATION_STAGE_CHANGED_EVENT_TYPE
from hsse_workflow.domain.models.actor import Actor
from hsse_workflow.domain.models.decisions import (
    AcknowledgmentDecision,
    ViolationDecision,
    ViolationReviewDecision,
)
from hsse_workflow.domain.models.incident import Incident, IncidentStatus
from hsse_workflow.domain.models.violation import (
    PenaltyType,
    Violation,
    ViolationStage,
    default_penalty_severity,
    stage_after_department_approval,
)
from hsse_workflow.domain.services.role_gate import WorkflowAction, check_permission

_INCIDENT_STATUS_FOR_STAGE: dict[ViolationStage, IncidentStatus] = {
    ViolationStage.PENDING_DEPARTMENT_MANAGER_APPROVAL: (
        IncidentStatus.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL
    ),
    ViolationStage.PENDING_CONTRACT_CONTROLLER_CONFIRMATION: (
        IncidentStatus.PENDING_CONTRACT_CONTROLLER_APPROVAL
    ),
    ViolationStage.PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT: (
        IncidentStatus.PENDING_CONTRACTOR_SITE_REP_APPROVAL
    ),
    ViolationStage.CONTESTED: IncidentStatus.PENDING_HSSE_VIOLATION_REVIEW,
    ViolationStage.FINALIZED: IncidentStatus.INVESTIGATION_IN_PROGRESS,
    ViolationStage.REJECTED: IncidentStatus.INVESTIGATION_IN_PROGRESS,
}

_ACTION_FOR_STATUS: dict[IncidentStatus, WorkflowAction] = {
    IncidentStatus.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL: (
        WorkflowAction.DEPARTMENT_MANAGER_DECIDE
    ),
    IncidentStatus.PENDING_CONTRACT_CONTROLLER_APPROVAL: (
        WorkflowAction.CONTRACT_CONTROLLER_DECIDE
    ),
    IncidentStatus.PENDING_CONTRACTOR_SITE_REP_APPROVAL: (
        WorkflowAction.CONTRACTOR_ACKNOWLEDGE
    ),
    IncidentStatus.PENDING_HSSE_VIOLATION_REVIEW: WorkflowAction.HSSE_REVIEW_VIOLATION,
}


class ViolationWorkflowService(LoggingMixin):
    """Violation approval chain operations."""

    def __init__(self, engine: TransitionEngine) -> None:
        self._engine = engine
        self._init_logger()

    async def submit_violation(
        self,
        investigation_id: UUID,
        actor_id: UUID,
        evidence_summary: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Submit an identified violation for department manager approval.

        Only the assigned investigator may submit, only when the
        investigation identified a violation, and only once. The occurrence
        ordinal is fixed here from the contractor's finalized history.
        """
        log = self._log_operation(
            "submit_violation",
            investigation_id=str(investigation_id),
            actor_id=str(actor_id),
        )

        async def body() -> Incident:
            investigation = await self._engine.call_store(
                "get_investigation",
                self._engine.store.get_investigation(investigation_id),
            )
            if investigation is None:
                raise NotFoundError("investigation", investigation_id)
            incident = await self._engine.load_incident(investigation.incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            target = IncidentStatus.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL
            self._engine.require_status(
                incident, {IncidentStatus.INVESTIGATION_IN_PROGRESS}, target
            )
            check_permission(actor, incident, WorkflowAction.SUBMIT_VIOLATION, target)

            violation = incident.violation
            if not investigation.violation_identified or violation is None:
                raise PrerequisitesNotMetError(
                    ["Investigation has not identified a contractor violation"]
                )
            if violation.stage is not ViolationStage.IDENTIFIED:
                raise InvalidTransitionError(
                    from_state=violation.stage,
                    to_state=ViolationStage.SUBMITTED,
                    message=f"Violation {violation.id} has already been submitted",
                )

            prior = await self._engine.call_store(
                "count_finalized_violations",
                self._engine.store.count_finalized_violations(
                    violation.contractor_id, violation.violation_type
                ),
            )
            occurrence = prior + 1
            now = self._engine.time.now()
            submitted = violation.with_stage(
                ViolationStage.SUBMITTED,
                occurrence=occurrence,
                penalty_severity=default_penalty_severity(occurrence),
                evidence_summary=evidence_summary or violation.evidence_summary,
                submitted_by=actor.actor_id,
                submitted_at=now,
            ).with_stage(ViolationStage.PENDING_DEPARTMENT_MANAGER_APPROVAL)

            return await self._advance(
                incident,
                actor,
                submitted,
                WorkflowAction.SUBMIT_VIOLATION,
                log,
                details={
                    "occurrence": occurrence,
                    "occurrence_label": submitted.occurrence_label,
                    "penalty_type": submitted.penalty_type.value,
                },
            )

        return await run_workflow_operation(log, body)

    async def department_manager_decide(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: ViolationDecision,
        notes: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Approve or reject a submitted violation.

        Approved fines route to the contract controller; every other
        penalty routes to the contractor's site representative.
        """
        log = self._log_operation(
            "department_manager_decide",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Incident:
            incident, actor, violation = await self._load(
                incident_id,
                actor_id,
                IncidentStatus.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL,
            )
            if decision is ViolationDecision.APPROVED:
                stage = stage_after_department_approval(violation.penalty_type)
            else:
                stage = ViolationStage.REJECTED
            updated = violation.with_stage(stage, decision_notes=notes)
            return await self._advance(
                incident,
                actor,
                updated,
                WorkflowAction.DEPARTMENT_MANAGER_DECIDE,
                log,
                justification=notes,
                details={"decision": decision.value},
            )

        return await run_workflow_operation(log, body)

    async def contract_controller_decide(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: ViolationDecision,
        notes: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Confirm or reject a fine. Either way the incident returns to investigation."""
        log = self._log_operation(
            "contract_controller_decide",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Incident:
            incident, actor, violation = await self._load(
                incident_id, actor_id, IncidentStatus.PENDING_CONTRACT_CONTROLLER_APPROVAL
            )
            if decision is ViolationDecision.APPROVED:
                updated = violation.with_stage(
                    ViolationStage.FINALIZED,
                    decision_notes=notes,
                    finalized_at=self._engine.time.now(),
                )
            else:
                updated = violation.with_stage(ViolationStage.REJECTED, decision_notes=notes)
            return await self._advance(
                incident,
                actor,
                updated,
                WorkflowAction.CONTRACT_CONTROLLER_DECIDE,
                log,
                justification=notes,
                details={"decision": decision.value},
            )

        return await run_workflow_operation(log, body)

    async def contractor_acknowledge(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: AcknowledgmentDecision,
        notes: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Record the contractor site representative's response.

        ``acknowledged`` finalizes the violation. ``rejected`` contests it:
        the violation goes to HSSE for a final ruling rather than being
        closed, and notes are required.
        """
        log = self._log_operation(
            "contractor_acknowledge",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Incident:
            incident, actor, violation = await self._load(
                incident_id, actor_id, IncidentStatus.PENDING_CONTRACTOR_SITE_REP_APPROVAL
            )
            now = self._engine.time.now()
            if decision is AcknowledgmentDecision.ACKNOWLEDGED:
                updated = violation.with_stage(
                    ViolationStage.FINALIZED, finalized_at=now
                ).with_acknowledgment(actor.actor_id, now)
            else:
                text = self._engine.require_text("notes", notes)
                updated = violation.with_stage(ViolationStage.CONTESTED, contest_notes=text)
            return await self._advance(
                incident,
                actor,
                updated,
                WorkflowAction.CONTRACTOR_ACKNOWLEDGE,
                log,
                justification=notes,
                details={"decision": decision.value},
            )

        return await run_workflow_operation(log, body)

    async def hsse_review_violation(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: ViolationReviewDecision,
        notes: str | None,
        penalty_type: PenaltyType | None = None,
        fine_amount: Decimal | None = None,
    ) -> WorkflowResult[Incident]:
        """Final HSSE ruling on a contested violation.

        - ``enforce``: finalize as submitted
        - ``modify``: finalize with a new penalty (``penalty_type`` required)
        - ``cancel``: reject
        """
        log = self._log_operation(
            "hsse_review_violation",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Incident:
            incident, actor, violation = await self._load(
                incident_id, actor_id, IncidentStatus.PENDING_HSSE_VIOLATION_REVIEW
            )
            text = self._engine.require_text("notes", notes)
            now = self._engine.time.now()
            if decision is ViolationReviewDecision.CANCEL:
                updated = violation.with_stage(ViolationStage.REJECTED, decision_notes=text)
            elif decision is ViolationReviewDecision.MODIFY:
                if penalty_type is None:
                    raise PrerequisitesNotMetError(
                        ["A modified ruling requires a penalty_type"]
                    )
                if penalty_type is PenaltyType.FINE and fine_amount is None:
                    raise PrerequisitesNotMetError(
                        ["A modified fine requires a fine_amount"]
                    )
                updated = violation.with_stage(
                    ViolationStage.FINALIZED,
                    penalty_type=penalty_type,
                    fine_amount=fine_amount if penalty_type is PenaltyType.FINE else None,
                    decision_notes=text,
                    finalized_at=now,
                )
            else:
                updated = violation.with_stage(
                    ViolationStage.FINALIZED, decision_notes=text, finalized_at=now
                )
            return await self._advance(
                incident,
                actor,
                updated,
                WorkflowAction.HSSE_REVIEW_VIOLATION,
                log,
                justification=text,
                details={"decision": decision.value},
            )

        return await run_workflow_operation(log, body)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load(
        self,
        incident_id: UUID,
        actor_id: UUID,
        expected: IncidentStatus,
    ) -> tuple[Incident, Actor, Violation]:
        incident = await self._engine.load_incident(incident_id)
        actor = await self._engine.resolve_actor(actor_id)
        self._engine.require_status(incident, {expected})
        check_permission(actor, incident, _ACTION_FOR_STATUS[expected])
        if incident.violation is None:
            raise NotFoundError("violation", incident.id)
        return incident, actor, incident.violation

    async def _advance(
        self,
        incident: Incident,
        actor: Actor,
        violation: Violation,
        action: WorkflowAction,
        log: structlog.BoundLogger,
        *,
        justification: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> Incident:
        previous_stage = incident.violation.stage if incident.violation else None
        target = _INCIDENT_STATUS_FOR_STAGE[violation.stage]
        audit_details = {
            "violation_id": str(violation.id),
            "violation_stage": violation.stage.value,
            **(details or {}),
        }
        committed = await self._engine.transition(
            incident,
            actor,
            target,
            log,
            action=action,
            justification=justification,
            justification_field="notes",
            changes={"violation": violation},
            details=audit_details,
        )
        log.info(
            "violation_stage_changed",
            violation_id=str(violation.id),
            from_stage=previous_stage.value if previous_stage else None,
            to_stage=violation.stage.value,
        )
        await self._engine.notify(
            VIOLATION_STAGE_CHANGED_EVENT_TYPE,
            incident.id,
            {
                "incident_id": str(incident.id),
                "violation_id": str(violation.id),
                "contractor_id": str(violation.contractor_id),
                "stage": violation.stage.value,
                "penalty_type": violation.penalty_type.value,
                "occurrence_label": violation.occurrence_label,
            },
            log,
        )
        return committed
