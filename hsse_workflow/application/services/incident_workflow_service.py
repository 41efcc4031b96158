"""Incident workflow service.

Public entry points of the incident state machine: reporting, screening,
manager approval, escalation, reporter responses, findings, on-the-spot
closure, severity adjustment and admin override. Dispute, violation and
closure steps live in their own services; all of them share one
TransitionEngine.

Every public method returns a WorkflowResult. Expected rejections
(forbidden, invalid transition, missing justification, prerequisites,
not found) come back as typed failures and nothing is written.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import UUID

import structlog
from uuid6 import uuid7

from hsse_workflow.application.dtos.commands import (
    InvestigationFindings,
    ReportIncidentCommand,
    TransitionPayload,
)
from hsse_workflow.application.dtos.workflow_result import WorkflowResult
from hsse_workflow.application.services.base import LoggingMixin
from hsse_workflow.application.services.dispute_service import DisputeService
from hsse_workflow.application.services.transition_engine import (
    TransitionEngine,
    run_workflow_operation,
)
from hsse_workflow.domain.errors.workflow import (
    InvalidEvidenceError,
    InvalidTransitionError,
    MissingJustificationError,
    NotFoundError,
    PrerequisitesNotMetError,
)
from hsse_workflow.domain.events.workflow import (
    INCIDENT_ASSIGNED_EVENT_TYPE,
    INCIDENT_REPORTED_EVENT_TYPE,
    INVESTIGATION_SUBMITTED_EVENT_TYPE,
    SEVERITY_CHANGE_DECIDED_EVENT_TYPE,
    SEVERITY_CHANGE_PROPOSED_EVENT_TYPE,
)
from hsse_workflow.domain.models.actor import Actor, Role
from hsse_workflow.domain.models.audit_entry import (
    ADMIN_OVERRIDE_TAG,
    CLOSED_ON_SPOT_TAG,
    AuditEntry,
)
from hsse_workflow.domain.models.decisions import (
    HsseManagerDecision,
    ManagerDecision,
    ReporterAction,
    ScreeningRecommendation,
)
from hsse_workflow.domain.models.dispute import DisputeCategory
from hsse_workflow.domain.models.evidence import EvidencePhoto
from hsse_workflow.domain.models.incident import (
    ADMIN_OVERRIDE_NEXT_STATUS,
    TERMINAL_STATES,
    ClosureReason,
    Incident,
    IncidentCategory,
    IncidentStatus,
    Severity,
)
from hsse_workflow.domain.models.investigation import Investigation
from hsse_workflow.domain.models.violation import PenaltyType, Violation, ViolationStage
from hsse_workflow.domain.services.role_gate import (
    WorkflowAction,
    action_for,
    check_permission,
)

# Edges with side records or extra input go through their own operation
DEDICATED_OPERATIONS: dict[WorkflowAction, str] = {
    WorkflowAction.CLOSE_ON_SPOT: "close_on_spot",
    WorkflowAction.OPEN_DISPUTE: "open_dispute",
    WorkflowAction.RESOLVE_DISPUTE: "resolve_dispute",
    WorkflowAction.SUBMIT_VIOLATION: "submit_violation",
    WorkflowAction.DEPARTMENT_MANAGER_DECIDE: "department_manager_decide",
    WorkflowAction.CONTRACT_CONTROLLER_DECIDE: "contract_controller_decide",
    WorkflowAction.CONTRACTOR_ACKNOWLEDGE: "contractor_acknowledge",
    WorkflowAction.HSSE_REVIEW_VIOLATION: "hsse_review_violation",
    WorkflowAction.REQUEST_CLOSURE: "request_closure",
}

_SCREENING_TARGETS: dict[ScreeningRecommendation, IncidentStatus] = {
    ScreeningRecommendation.INVESTIGATE: IncidentStatus.PENDING_MANAGER_APPROVAL,
    ScreeningRecommendation.NO_INVESTIGATION: IncidentStatus.NO_INVESTIGATION_REQUIRED,
    ScreeningRecommendation.RETURN: IncidentStatus.RETURNED_TO_REPORTER,
    ScreeningRecommendation.REJECT: IncidentStatus.EXPERT_REJECTED,
}

UNKNOWN_APPROVER = "Unknown"

_ON_SPOT_CHANGES: dict[str, Any] = {
    "closed_on_spot": True,
    "closure_reason": ClosureReason.CLOSED_ON_SPOT,
}


def _on_spot_details(photos: Sequence[EvidencePhoto]) -> dict[str, Any]:
    return {
        "closure_reason": ClosureReason.CLOSED_ON_SPOT.value,
        "photos": [p.storage_ref or p.file_name for p in photos],
    }


class IncidentWorkflowService(LoggingMixin):
    """Incident lifecycle operations.

    Example:
        >>> result = await service.manager_approve_or_reject(
        ...     incident_id, manager_id, ManagerDecision.REJECTED,
        ...     reason="insufficient evidence, need photos",
        ... )
        >>> result.ok, result.value.status
        (True, <IncidentStatus.MANAGER_REJECTED: 'manager_rejected'>)
    """

    def __init__(self, engine: TransitionEngine, disputes: DisputeService) -> None:
        self._engine = engine
        self._disputes = disputes
        self._init_logger()

    # =========================================================================
    # Reporting
    # =========================================================================

    async def report_incident(
        self, command: ReportIncidentCommand
    ) -> WorkflowResult[Incident]:
        """Create an incident in ``submitted``.

        When ``command.closed_on_spot`` is set, eligibility, evidence and the
        reporter's role are validated first, and the incident is created
        already closed: one insert carries the report and closure audit
        entries, so a failed write leaves nothing behind.
        """
        log = self._log_operation(
            "report_incident",
            tenant_id=str(command.tenant_id),
            reporter_id=str(command.reporter_id),
            category=command.category.value,
            severity=int(command.severity),
        )

        async def body() -> Incident:
            title = command.title.strip()
            if not title:
                raise MissingJustificationError("title", 1)
            if command.closed_on_spot:
                self._check_on_spot_eligibility(
                    command.category, int(command.severity), command.photos
                )

            reporter = await self._engine.resolve_actor(command.reporter_id)
            now = self._engine.time.now()
            incident = Incident(
                id=uuid7(),
                tenant_id=command.tenant_id,
                category=command.category,
                severity=command.severity,
                status=IncidentStatus.SUBMITTED,
                reporter_id=command.reporter_id,
                title=title,
                created_at=now,
                description=command.description,
                occurred_at=command.occurred_at,
                status_changed_at=now,
                potential_severity=command.potential_severity,
                reporter_department_id=reporter.department_id,
            )
            entries = [
                AuditEntry(
                    id=uuid7(),
                    tenant_id=incident.tenant_id,
                    incident_id=incident.id,
                    actor_id=reporter.actor_id,
                    action="report_incident",
                    created_at=now,
                    to_status=IncidentStatus.SUBMITTED,
                )
            ]
            if command.closed_on_spot:
                check_permission(reporter, incident, WorkflowAction.CLOSE_ON_SPOT)
                incident = incident.with_status(
                    IncidentStatus.CLOSED, now, **_ON_SPOT_CHANGES
                )
                entries.append(
                    self._engine.new_audit_entry(
                        incident,
                        reporter.actor_id,
                        WorkflowAction.CLOSE_ON_SPOT.value,
                        from_status=IncidentStatus.SUBMITTED,
                        to_status=IncidentStatus.CLOSED,
                        details=_on_spot_details(command.photos),
                        tags=(CLOSED_ON_SPOT_TAG,),
                    )
                )

            created = await self._engine.call_store(
                "create_incident",
                self._engine.store.create_incident(incident, tuple(entries)),
            )
            log.info(
                "incident_reported",
                incident_id=str(created.id),
                status=created.status.value,
            )
            await self._engine.notify(
                INCIDENT_REPORTED_EVENT_TYPE,
                created.id,
                {
                    "incident_id": str(created.id),
                    "tenant_id": str(created.tenant_id),
                    "category": created.category.value,
                    "severity": int(created.severity),
                    "reporter_id": str(created.reporter_id),
                },
                log,
            )
            if created.status is IncidentStatus.CLOSED:
                await self._engine.announce_transition(
                    created,
                    reporter.actor_id,
                    WorkflowAction.CLOSE_ON_SPOT.value,
                    IncidentStatus.SUBMITTED,
                    log,
                    occurred_at=now,
                    tags=(CLOSED_ON_SPOT_TAG,),
                )
            else:
                await self._engine.sync_sla_timers(created, None, log)
            return created

        return await run_workflow_operation(log, body)

    async def close_on_spot(
        self,
        incident_id: UUID,
        actor_id: UUID,
        photos: Sequence[EvidencePhoto],
    ) -> WorkflowResult[Incident]:
        """Close a minor observation on the spot, bypassing the approval chain."""
        log = self._log_operation(
            "close_on_spot", incident_id=str(incident_id), actor_id=str(actor_id)
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            return await self._close_on_spot(incident, actor, photos, log)

        return await run_workflow_operation(log, body)

    def _check_on_spot_eligibility(
        self,
        category: IncidentCategory,
        severity: int,
        photos: Sequence[EvidencePhoto],
    ) -> None:
        config = self._engine.config
        reasons: list[str] = []
        if category is not IncidentCategory.OBSERVATION:
            reasons.append("On-the-spot closure is only available for observations")
        if severity > config.max_on_spot_severity:
            reasons.append(
                f"On-the-spot closure requires severity <= {config.max_on_spot_severity}"
            )
        if reasons:
            raise PrerequisitesNotMetError(reasons)

        problems: list[str] = []
        if not photos:
            problems.append("At least one evidence photo is required")
        if len(photos) > config.max_on_spot_photos:
            problems.append(f"At most {config.max_on_spot_photos} photos may be attached")
        for photo in photos:
            if not photo.is_image:
                problems.append(f"{photo.file_name}: {photo.mime_type} is not an image")
            if photo.size_bytes > config.max_photo_bytes:
                problems.append(
                    f"{photo.file_name}: exceeds {config.max_photo_bytes} bytes"
                )
        if problems:
            raise InvalidEvidenceError(problems)

    async def _close_on_spot(
        self,
        incident: Incident,
        actor: Actor,
        photos: Sequence[EvidencePhoto],
        log: structlog.BoundLogger,
    ) -> Incident:
        self._engine.require_status(
            incident, {IncidentStatus.SUBMITTED}, IncidentStatus.CLOSED
        )
        check_permission(actor, incident, WorkflowAction.CLOSE_ON_SPOT)
        self._check_on_spot_eligibility(
            incident.category, int(incident.severity), photos
        )
        return await self._engine.transition(
            incident,
            actor,
            IncidentStatus.CLOSED,
            log,
            action=WorkflowAction.CLOSE_ON_SPOT,
            changes=dict(_ON_SPOT_CHANGES),
            details=_on_spot_details(photos),
            tags=(CLOSED_ON_SPOT_TAG,),
        )

    # =========================================================================
    # Generic transition
    # =========================================================================

    async def propose_transition(
        self,
        incident_id: UUID,
        actor_id: UUID,
        target_status: IncidentStatus,
        payload: TransitionPayload | None = None,
    ) -> WorkflowResult[Incident]:
        """Validate and apply a transition to ``target_status``.

        Rejection transitions require ``payload.reason``; closure goes
        through the closure gate. Edges that create or resolve a dispute,
        move a violation, close on the spot or request closure must use
        their dedicated operation and are refused here.
        """
        payload = payload or TransitionPayload()
        log = self._log_operation(
            "propose_transition",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            target_status=target_status.value,
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            action = action_for(incident.status, target_status)
            dedicated = DEDICATED_OPERATIONS.get(action)
            if target_status is IncidentStatus.DISPUTE_RESOLUTION:
                dedicated = dedicated or "reporter_respond_to_rejection"
            if dedicated is not None:
                raise InvalidTransitionError(
                    from_state=incident.status,
                    to_state=target_status,
                    message=(
                        f"{incident.status.value} -> {target_status.value} "
                        f"must be performed with {dedicated}"
                    ),
                )
            text = payload.justification
            return await self._engine.transition(
                incident,
                actor,
                target_status,
                log,
                action=action,
                justification=text,
                changes=self._generic_changes(incident, target_status, text),
            )

        return await run_workflow_operation(log, body)

    @staticmethod
    def _generic_changes(
        incident: Incident, target: IncidentStatus, text: str | None
    ) -> dict[str, Any]:
        if target is IncidentStatus.CLOSED:
            return {
                "closure_reason": ClosureReason.STANDARD,
                "closure_justification": (text or "").strip() or None,
            }
        if target is IncidentStatus.PENDING_FINAL_CLOSURE:
            return {"hsse_validation_accepted": True}
        if (
            incident.status is IncidentStatus.RETURNED_TO_REPORTER
            and target is IncidentStatus.SUBMITTED
        ):
            return {
                "resubmission_count": incident.resubmission_count + 1,
                "return_reason": None,
            }
        return {}

    # =========================================================================
    # Screening and approval
    # =========================================================================

    async def start_screening(
        self, incident_id: UUID, actor_id: UUID
    ) -> WorkflowResult[Incident]:
        """Pick up a submitted report for expert screening."""
        log = self._log_operation(
            "start_screening", incident_id=str(incident_id), actor_id=str(actor_id)
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident, {IncidentStatus.SUBMITTED}, IncidentStatus.EXPERT_SCREENING
            )
            return await self._engine.transition(
                incident, actor, IncidentStatus.EXPERT_SCREENING, log
            )

        return await run_workflow_operation(log, body)

    async def screen_incident(
        self,
        incident_id: UUID,
        actor_id: UUID,
        recommendation: ScreeningRecommendation,
        notes: str | None = None,
        investigator_id: UUID | None = None,
        approver_id: UUID | None = None,
    ) -> WorkflowResult[Incident]:
        """Record the HSSE expert's screening recommendation.

        Args:
            incident_id: Incident in expert_screening.
            actor_id: HSSE expert or HSSE manager.
            recommendation: Screening outcome.
            notes: Required for ``return`` and ``reject``.
            investigator_id: Investigator to assign when investigating.
            approver_id: Approving manager to assign when investigating.
        """
        target = _SCREENING_TARGETS[recommendation]
        log = self._log_operation(
            "screen_incident",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            recommendation=recommendation.value,
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident, {IncidentStatus.EXPERT_SCREENING}, target
            )
            changes: dict[str, Any] = {}
            if recommendation is ScreeningRecommendation.INVESTIGATE:
                if investigator_id is not None:
                    await self._require_assignee_role(
                        investigator_id, frozenset({Role.INVESTIGATOR})
                    )
                    changes["assigned_investigator_id"] = investigator_id
                if approver_id is not None:
                    await self._require_assignee_role(
                        approver_id,
                        frozenset({Role.DEPARTMENT_MANAGER, Role.HSSE_MANAGER}),
                    )
                    changes["assigned_approver_id"] = approver_id
            return await self._engine.transition(
                incident,
                actor,
                target,
                log,
                action=WorkflowAction.SCREEN_INCIDENT,
                justification=notes,
                justification_field="notes",
                changes=changes,
                details={"recommendation": recommendation.value},
            )

        return await run_workflow_operation(log, body)

    async def manager_approve_or_reject(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: ManagerDecision,
        reason: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Approve or reject an incident pending manager approval.

        Only the assigned approving manager may decide. Rejection requires
        a reason and makes the incident eligible for dispute.
        """
        target = (
            IncidentStatus.INVESTIGATION_IN_PROGRESS
            if decision is ManagerDecision.APPROVED
            else IncidentStatus.MANAGER_REJECTED
        )
        log = self._log_operation(
            "manager_approve_or_reject",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident, {IncidentStatus.PENDING_MANAGER_APPROVAL}, target
            )
            return await self._engine.transition(
                incident,
                actor,
                target,
                log,
                action=WorkflowAction.MANAGER_DECIDE,
                justification=reason,
                details={"decision": decision.value},
            )

        return await run_workflow_operation(log, body)

    async def escalate_to_hsse_manager(
        self, incident_id: UUID, actor_id: UUID, reason: str | None
    ) -> WorkflowResult[Incident]:
        """Escalate a pending approval to the HSSE manager.

        Performed by a department representative of the reporter's department.
        """
        log = self._log_operation(
            "escalate_to_hsse_manager",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident,
                {IncidentStatus.PENDING_MANAGER_APPROVAL},
                IncidentStatus.ESCALATED_TO_HSSE_MANAGER,
            )
            return await self._engine.transition(
                incident,
                actor,
                IncidentStatus.ESCALATED_TO_HSSE_MANAGER,
                log,
                justification=reason,
            )

        return await run_workflow_operation(log, body)

    async def hsse_manager_decide(
        self,
        incident_id: UUID,
        actor_id: UUID,
        decision: HsseManagerDecision,
        notes: str | None,
    ) -> WorkflowResult[Incident]:
        """Rule on an escalated incident.

        ``override`` sends it to investigation, ``maintain`` closes it as
        rejected. Notes are required either way.
        """
        target = (
            IncidentStatus.INVESTIGATION_IN_PROGRESS
            if decision is HsseManagerDecision.OVERRIDE
            else IncidentStatus.CLOSED_REJECTED
        )
        log = self._log_operation(
            "hsse_manager_decide",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            decision=decision.value,
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident, {IncidentStatus.ESCALATED_TO_HSSE_MANAGER}, target
            )
            return await self._engine.transition(
                incident,
                actor,
                target,
                log,
                action=WorkflowAction.HSSE_MANAGER_DECIDE,
                justification=notes,
                justification_field="notes",
                details={"decision": decision.value},
            )

        return await run_workflow_operation(log, body)

    # =========================================================================
    # Reporter responses
    # =========================================================================

    async def reporter_respond_to_rejection(
        self,
        incident_id: UUID,
        actor_id: UUID,
        action: ReporterAction,
        notes: str | None = None,
        dispute_category: DisputeCategory = DisputeCategory.OTHER,
        evidence_refs: Sequence[str] = (),
    ) -> WorkflowResult[Incident]:
        """Respond to an expert rejection or a return.

        Only the original reporter may respond.

        - ``confirm`` (expert_rejected): accept, closing as rejected.
          Notes default to the stored rejection reason.
        - ``dispute`` (expert_rejected): open a dispute with ``notes`` as
          the reason; the incident moves to dispute_resolution.
        - ``resubmit`` (returned_to_reporter): send the report back in.
        """
        log = self._log_operation(
            "reporter_respond_to_rejection",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            action=action.value,
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)

            if action is ReporterAction.RESUBMIT:
                self._engine.require_status(
                    incident,
                    {IncidentStatus.RETURNED_TO_REPORTER},
                    IncidentStatus.SUBMITTED,
                )
                return await self._engine.transition(
                    incident,
                    actor,
                    IncidentStatus.SUBMITTED,
                    log,
                    action=WorkflowAction.RESUBMIT,
                    justification=notes,
                    justification_field="notes",
                    changes={
                        "resubmission_count": incident.resubmission_count + 1,
                        "return_reason": None,
                    },
                )

            if action is ReporterAction.DISPUTE:
                self._engine.require_status(
                    incident,
                    {IncidentStatus.EXPERT_REJECTED},
                    IncidentStatus.DISPUTE_RESOLUTION,
                )
                committed, _ = await self._disputes.open_from_rejection(
                    incident, actor, dispute_category, notes, evidence_refs, log
                )
                return committed

            self._engine.require_status(
                incident, {IncidentStatus.EXPERT_REJECTED}, IncidentStatus.CLOSED_REJECTED
            )
            return await self._engine.transition(
                incident,
                actor,
                IncidentStatus.CLOSED_REJECTED,
                log,
                action=WorkflowAction.REPORTER_RESPOND,
                justification=notes or incident.rejection_reason,
                justification_field="notes",
                details={"response": action.value},
            )

        return await run_workflow_operation(log, body)

    # =========================================================================
    # Assignment
    # =========================================================================

    async def assign_investigator(
        self, incident_id: UUID, actor_id: UUID, investigator_id: UUID
    ) -> WorkflowResult[Incident]:
        """Assign (or reassign) the investigator of an open incident."""
        log = self._log_operation(
            "assign_investigator",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            investigator_id=str(investigator_id),
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._require_open(incident)
            check_permission(actor, incident, WorkflowAction.ASSIGN_INVESTIGATOR)
            await self._require_assignee_role(
                investigator_id, frozenset({Role.INVESTIGATOR})
            )

            investigations: tuple[Investigation, ...] = ()
            if incident.status is IncidentStatus.INVESTIGATION_IN_PROGRESS:
                active = await self._engine.load_investigation(incident.id)
                if active is None:
                    investigations = (
                        self._engine.new_investigation(incident, investigator_id),
                    )
                elif active.investigator_id != investigator_id:
                    investigations = (active.evolve(investigator_id=investigator_id),)

            committed = await self._engine.update(
                incident,
                actor,
                log,
                action=WorkflowAction.ASSIGN_INVESTIGATOR,
                changes={"assigned_investigator_id": investigator_id},
                details={
                    "investigator_id": str(investigator_id),
                    "previous_investigator_id": (
                        str(incident.assigned_investigator_id)
                        if incident.assigned_investigator_id
                        else None
                    ),
                },
                investigations=investigations,
            )
            await self._notify_assignment(committed, "investigator", investigator_id, log)
            return committed

        return await run_workflow_operation(log, body)

    async def assign_approver(
        self, incident_id: UUID, actor_id: UUID, approver_id: UUID
    ) -> WorkflowResult[Incident]:
        """Assign (or reassign) the approving manager of an open incident."""
        log = self._log_operation(
            "assign_approver",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            approver_id=str(approver_id),
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._require_open(incident)
            check_permission(actor, incident, WorkflowAction.ASSIGN_APPROVER)
            await self._require_assignee_role(
                approver_id, frozenset({Role.DEPARTMENT_MANAGER, Role.HSSE_MANAGER})
            )
            committed = await self._engine.update(
                incident,
                actor,
                log,
                action=WorkflowAction.ASSIGN_APPROVER,
                changes={"assigned_approver_id": approver_id},
                details={"approver_id": str(approver_id)},
            )
            await self._notify_assignment(committed, "approver", approver_id, log)
            return committed

        return await run_workflow_operation(log, body)

    @staticmethod
    def _require_open(incident: Incident) -> None:
        if incident.status in TERMINAL_STATES:
            raise InvalidTransitionError(
                from_state=incident.status,
                to_state=None,
                message=f"Incident {incident.id} is {incident.status.value} and cannot change",
            )

    async def _require_assignee_role(
        self, assignee_id: UUID, roles: frozenset[Role]
    ) -> None:
        assignee = await self._engine.resolve_actor(assignee_id)
        if not assignee.has_any_role(roles):
            allowed = ", ".join(sorted(r.value for r in roles))
            raise PrerequisitesNotMetError(
                [f"Assignee {assignee_id} must hold one of roles: {allowed}"]
            )

    async def _notify_assignment(
        self,
        incident: Incident,
        role: str,
        assignee_id: UUID,
        log: structlog.BoundLogger,
    ) -> None:
        await self._engine.notify(
            INCIDENT_ASSIGNED_EVENT_TYPE,
            incident.id,
            {
                "incident_id": str(incident.id),
                "tenant_id": str(incident.tenant_id),
                "role": role,
                "assignee_id": str(assignee_id),
            },
            log,
        )

    # =========================================================================
    # Investigation findings
    # =========================================================================

    async def submit_investigation_findings(
        self,
        incident_id: UUID,
        actor_id: UUID,
        findings: InvestigationFindings,
    ) -> WorkflowResult[Investigation]:
        """Record the assigned investigator's findings.

        Marks the investigation complete. When a violation is identified,
        its type, contractor and penalty are required and an unsubmitted
        violation record is created (or refreshed) on the incident.
        """
        log = self._log_operation(
            "submit_investigation_findings",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
        )

        async def body() -> Investigation:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._engine.require_status(
                incident, {IncidentStatus.INVESTIGATION_IN_PROGRESS}
            )
            check_permission(actor, incident, WorkflowAction.SUBMIT_FINDINGS)
            for name in ("root_cause", "immediate_cause"):
                if not (getattr(findings, name) or "").strip():
                    raise MissingJustificationError(name, 1)

            investigation = await self._engine.load_investigation(incident.id)
            if investigation is None:
                raise NotFoundError("investigation", incident.id)

            violation = self._violation_from_findings(incident, investigation, findings)
            updated = investigation.evolve(
                root_cause=findings.root_cause.strip(),
                immediate_cause=findings.immediate_cause.strip(),
                evidence_summary=findings.evidence_summary,
                violation_identified=findings.violation_identified,
                violation_type=findings.violation_type if findings.violation_identified else None,
                contractor_id=findings.contractor_id if findings.violation_identified else None,
                contractor_contribution_pct=(
                    findings.contractor_contribution_pct
                    if findings.violation_identified
                    else None
                ),
                penalty_type=findings.penalty_type if findings.violation_identified else None,
                fine_amount=findings.fine_amount if findings.violation_identified else None,
                submitted_at=self._engine.time.now(),
            )
            await self._engine.update(
                incident,
                actor,
                log,
                action=WorkflowAction.SUBMIT_FINDINGS,
                changes={"violation": violation},
                details={
                    "investigation_id": str(updated.id),
                    "violation_identified": findings.violation_identified,
                },
                investigations=(updated,),
            )
            await self._engine.notify(
                INVESTIGATION_SUBMITTED_EVENT_TYPE,
                incident.id,
                {
                    "incident_id": str(incident.id),
                    "investigation_id": str(updated.id),
                    "violation_identified": findings.violation_identified,
                },
                log,
            )
            return updated

        return await run_workflow_operation(log, body)

    @staticmethod
    def _violation_from_findings(
        incident: Incident,
        investigation: Investigation,
        findings: InvestigationFindings,
    ) -> Violation | None:
        existing = incident.violation
        if existing is not None and existing.stage is not ViolationStage.IDENTIFIED:
            # Already in the approval chain; findings no longer reshape it
            return existing
        if not findings.violation_identified:
            return None

        missing = [
            name
            for name in ("violation_type", "contractor_id", "penalty_type")
            if getattr(findings, name) in (None, "")
        ]
        if findings.penalty_type is PenaltyType.FINE and findings.fine_amount is None:
            missing.append("fine_amount")
        if missing:
            raise PrerequisitesNotMetError(
                [f"Violation field '{name}' is required" for name in missing]
            )
        return Violation(
            id=existing.id if existing is not None else uuid7(),
            investigation_id=investigation.id,
            contractor_id=findings.contractor_id,  # type: ignore[arg-type]
            violation_type=findings.violation_type,  # type: ignore[arg-type]
            penalty_type=findings.penalty_type,  # type: ignore[arg-type]
            fine_amount=findings.fine_amount,
            contractor_contribution_pct=findings.contractor_contribution_pct,
            evidence_summary=findings.evidence_summary,
        )

    # =========================================================================
    # Severity adjustment
    # =========================================================================

    async def propose_severity_change(
        self,
        incident_id: UUID,
        actor_id: UUID,
        severity: Severity,
        justification: str | None,
    ) -> WorkflowResult[Incident]:
        """Propose a new realized severity for HSSE manager approval.

        The incident keeps its current severity, and so its closure
        requirements, until the proposal is approved. Only one proposal may
        be pending at a time, and closed incidents cannot be re-rated.
        """
        log = self._log_operation(
            "propose_severity_change",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
            proposed_severity=int(severity),
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            self._require_open(incident)
            check_permission(actor, incident, WorkflowAction.PROPOSE_SEVERITY_CHANGE)
            if incident.severity_pending_approval:
                raise InvalidTransitionError(
                    from_state=incident.status,
                    to_state=None,
                    allowed_transitions=[],
                    message=(
                        f"Incident {incident.id} already has a severity change "
                        "awaiting approval"
                    ),
                )
            text = self._engine.require_text("justification", justification)
            if severity == incident.severity:
                raise PrerequisitesNotMetError(
                    [f"Incident is already at severity {int(severity)}"]
                )

            committed = await self._engine.update(
                incident,
                actor,
                log,
                action=WorkflowAction.PROPOSE_SEVERITY_CHANGE,
                audit_action="severity_change_proposed",
                changes={
                    "proposed_severity": severity,
                    "severity_change_justification": text,
                    "severity_change_proposed_by": actor.actor_id,
                    "severity_pending_approval": True,
                },
                details={
                    "severity": int(incident.severity),
                    "proposed_severity": int(severity),
                    "justification": text,
                },
            )
            await self._notify_severity(
                SEVERITY_CHANGE_PROPOSED_EVENT_TYPE, committed, actor.actor_id, log
            )
            return committed

        return await run_workflow_operation(log, body)

    async def approve_severity_change(
        self, incident_id: UUID, actor_id: UUID
    ) -> WorkflowResult[Incident]:
        """Apply the pending severity proposal.

        ``original_severity`` keeps the severity from before the first
        approved change. From here on the level 5 lock and the closure gate
        see the approved severity.
        """
        log = self._log_operation(
            "approve_severity_change",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
        )

        async def body() -> Incident:
            incident, actor = await self._load_pending_severity_change(
                incident_id, actor_id
            )
            assert incident.proposed_severity is not None
            committed = await self._engine.update(
                incident,
                actor,
                log,
                action=WorkflowAction.DECIDE_SEVERITY_CHANGE,
                audit_action="severity_change_approved",
                changes={
                    "severity": incident.proposed_severity,
                    "original_severity": incident.original_severity or incident.severity,
                    "proposed_severity": None,
                    "severity_pending_approval": False,
                    "severity_approved_by": actor.actor_id,
                    "severity_approved_at": self._engine.time.now(),
                },
                details={
                    "previous_severity": int(incident.severity),
                    "approved_severity": int(incident.proposed_severity),
                },
            )
            await self._notify_severity(
                SEVERITY_CHANGE_DECIDED_EVENT_TYPE, committed, actor.actor_id, log
            )
            return committed

        return await run_workflow_operation(log, body)

    async def reject_severity_change(
        self, incident_id: UUID, actor_id: UUID, reason: str | None = None
    ) -> WorkflowResult[Incident]:
        """Discard the pending severity proposal. The severity is unchanged."""
        log = self._log_operation(
            "reject_severity_change",
            incident_id=str(incident_id),
            actor_id=str(actor_id),
        )

        async def body() -> Incident:
            incident, actor = await self._load_pending_severity_change(
                incident_id, actor_id
            )
            details: dict[str, Any] = {
                "proposed_severity": int(incident.proposed_severity or incident.severity),
                "severity": int(incident.severity),
            }
            note = (reason or "").strip()
            if note:
                details["reason"] = note
            committed = await self._engine.update(
                incident,
                actor,
                log,
                action=WorkflowAction.DECIDE_SEVERITY_CHANGE,
                audit_action="severity_change_rejected",
                changes={
                    "proposed_severity": None,
                    "severity_change_justification": None,
                    "severity_pending_approval": False,
                },
                details=details,
            )
            await self._notify_severity(
                SEVERITY_CHANGE_DECIDED_EVENT_TYPE, committed, actor.actor_id, log
            )
            return committed

        return await run_workflow_operation(log, body)

    def _require_open(self, incident: Incident) -> None:
        if incident.status in TERMINAL_STATES:
            raise InvalidTransitionError(
                from_state=incident.status,
                to_state=None,
                allowed_transitions=[],
                message=f"Incident {incident.id} is {incident.status.value}",
            )

    async def _load_pending_severity_change(
        self, incident_id: UUID, actor_id: UUID
    ) -> tuple[Incident, Actor]:
        incident = await self._engine.load_incident(incident_id)
        actor = await self._engine.resolve_actor(actor_id)
        self._require_open(incident)
        check_permission(actor, incident, WorkflowAction.DECIDE_SEVERITY_CHANGE)
        if not incident.severity_pending_approval or incident.proposed_severity is None:
            raise InvalidTransitionError(
                from_state=incident.status,
                to_state=None,
                allowed_transitions=[],
                message=f"Incident {incident.id} has no severity change awaiting approval",
            )
        return incident, actor

    async def _notify_severity(
        self,
        event_type: str,
        incident: Incident,
        actor_id: UUID,
        log: structlog.BoundLogger,
    ) -> None:
        await self._engine.notify(
            event_type,
            incident.id,
            {
                "incident_id": str(incident.id),
                "tenant_id": str(incident.tenant_id),
                "actor_id": str(actor_id),
                "severity": int(incident.severity),
                "proposed_severity": (
                    int(incident.proposed_severity)
                    if incident.proposed_severity is not None
                    else None
                ),
                "pending_approval": incident.severity_pending_approval,
            },
            log,
        )

    # =========================================================================
    # Admin override
    # =========================================================================

    async def admin_override(
        self,
        incident_id: UUID,
        actor_id: UUID,
        justification: str | None,
        original_approver_name: str | None = None,
    ) -> WorkflowResult[Incident]:
        """Force an incident one step forward on an admin's authority.

        The target comes from ADMIN_OVERRIDE_NEXT_STATUS. The audit entry is
        tagged ``admin_override`` and records the original approver's name.
        Overrides into ``closed`` still run the closure checklist and the
        level 5 lock.
        """
        log = self._log_operation(
            "admin_override", incident_id=str(incident_id), actor_id=str(actor_id)
        )

        async def body() -> Incident:
            incident = await self._engine.load_incident(incident_id)
            actor = await self._engine.resolve_actor(actor_id)
            target = ADMIN_OVERRIDE_NEXT_STATUS.get(incident.status)
            if target is None:
                raise InvalidTransitionError(
                    from_state=incident.status,
                    to_state=None,
                    allowed_transitions=sorted(
                        ADMIN_OVERRIDE_NEXT_STATUS, key=lambda s: s.value
                    ),
                    message=(
                        f"No admin override is defined from {incident.status.value}"
                    ),
                )
            check_permission(actor, incident, WorkflowAction.ADMIN_OVERRIDE, target)
            text = self._engine.require_text("justification", justification)

            approver_name = original_approver_name or await self._approver_name(incident)
            changes: dict[str, Any] = {}
            if target is IncidentStatus.CLOSED:
                changes = {
                    "closure_reason": ClosureReason.ADMIN_OVERRIDE,
                    "closure_justification": text,
                }
            elif target is IncidentStatus.PENDING_FINAL_CLOSURE:
                changes = {"hsse_validation_accepted": True}

            committed = await self._engine.transition(
                incident,
                actor,
                target,
                log,
                action=WorkflowAction.ADMIN_OVERRIDE,
                justification=text,
                justification_field="justification",
                changes=changes,
                details={"original_approver": approver_name},
                tags=(ADMIN_OVERRIDE_TAG,),
            )
            log.warning(
                "admin_override_applied",
                from_status=incident.status.value,
                to_status=target.value,
                original_approver=approver_name,
            )
            return committed

        return await run_workflow_operation(log, body)

    async def _approver_name(self, incident: Incident) -> str:
        if incident.assigned_approver_id is None:
            return UNKNOWN_APPROVER
        name = await self._engine.call_store(
            "get_display_name",
            self._engine.identity.get_display_name(incident.assigned_approver_id),
        )
        return name or UNKNOWN_APPROVER

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_incident(self, incident_id: UUID) -> WorkflowResult[Incident]:
        log = self._log_operation("get_incident", incident_id=str(incident_id))
        return await run_workflow_operation(
            log, lambda: self._engine.load_incident(incident_id)
        )

    async def list_audit_entries(
        self, incident_id: UUID
    ) -> WorkflowResult[list[AuditEntry]]:
        log = self._log_operation("list_audit_entries", incident_id=str(incident_id))

        async def body() -> list[AuditEntry]:
            await self._engine.load_incident(incident_id)
            return await self._engine.call_store(
                "list_audit_entries", self._engine.store.list_audit_entries(incident_id)
            )

        return await run_workflow_operation(log, body)

    async def get_active_investigation(
        self, incident_id: UUID
    ) -> WorkflowResult[Investigation | None]:
        log = self._log_operation("get_active_investigation", incident_id=str(incident_id))

        async def body() -> Investigation | None:
            await self._engine.load_incident(incident_id)
            return await self._engine.load_investigation(incident_id)

        return await run_workflow_operation(log, body)
