"""Integration tests for end-to-end incident workflows.

Each scenario drives the wired services over the stub stores, the way
the API does, and checks the stored incident, its audit trail and the
notifications that went out.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from hsse_workflow.application.dtos.commands import ReportIncidentCommand
from hsse_workflow.domain.errors.workflow import RejectionCode
from hsse_workflow.domain.events.workflow import (
    INCIDENT_CLOSED_EVENT_TYPE,
    INCIDENT_REPORTED_EVENT_TYPE,
)
from hsse_workflow.domain.models.closure import SEVERITY_AUTHORITY
from hsse_workflow.domain.models.decisions import (
    AcknowledgmentDecision,
    ManagerDecision,
    ValidationDecision,
    ViolationDecision,
)
from hsse_workflow.domain.models.dispute import DisputeCategory, DisputeDecision
from hsse_workflow.domain.models.escalatable_event import EscalatableEventKind
from hsse_workflow.domain.models.incident import (
    ClosureReason,
    IncidentCategory,
    IncidentStatus,
    Severity,
)
from hsse_workflow.domain.models.violation import PenaltyType, ViolationStage
from hsse_workflow.infrastructure.stubs.incident_store_stub import FailureMode
from tests.helpers import WorkflowHarness, ok, photo
from tests.helpers.workflow_harness import MEDIATION_NOTES, VIOLATION_TYPE

pytestmark = pytest.mark.integration

MANAGER_REJECTION = "insufficient evidence, need photos"
DISPUTE_REASON = "Photos were attached to the original report"
CLOSURE_JUSTIFICATION = "Executive review of the fatality investigation completed"


class TestOnTheSpotClosure:
    """A low severity observation closes at report time."""

    @pytest.mark.asyncio
    async def test_level_1_observation_closes_without_approval(
        self, harness: WorkflowHarness
    ) -> None:
        command = ReportIncidentCommand(
            tenant_id=harness.cast.tenant_id,
            reporter_id=harness.cast.reporter,
            category=IncidentCategory.OBSERVATION,
            severity=Severity.LEVEL_1,
            title="Unlabelled solvent container in workshop",
            closed_on_spot=True,
            photos=(photo(),),
        )

        incident = ok(await harness.services.incidents.report_incident(command))

        assert incident.status is IncidentStatus.CLOSED
        assert incident.closure_reason is ClosureReason.CLOSED_ON_SPOT
        assert incident.assigned_approver_id is None
        actions = [e.action for e in await harness.audit(incident.id)]
        assert actions == ["report_incident", "close_on_spot"]
        assert harness.dispatcher.event_types() == [
            INCIDENT_REPORTED_EVENT_TYPE,
            INCIDENT_CLOSED_EVENT_TYPE,
        ]
        assert harness.escalation_store.events == []


class TestManagerRejectionDispute:
    """A rejected approval is disputed and overturned by a mediator."""

    @pytest.mark.asyncio
    async def test_override_moves_to_pending_closure(
        self, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_pending_manager_approval()

        rejected = ok(
            await harness.services.incidents.manager_approve_or_reject(
                incident.id,
                harness.cast.dept_manager,
                ManagerDecision.REJECTED,
                reason=MANAGER_REJECTION,
            )
        )
        dispute = ok(
            await harness.services.disputes.open_dispute(
                incident.id,
                harness.cast.investigator,
                DisputeCategory.FINDINGS_ACCURACY,
                DISPUTE_REASON,
            )
        )
        disputed = await harness.incident(incident.id)
        ok(
            await harness.services.disputes.resolve_dispute(
                incident.id,
                harness.cast.hsse_manager,
                DisputeDecision.OVERRIDE_REJECTION,
                MEDIATION_NOTES,
            )
        )

        assert rejected.status is IncidentStatus.MANAGER_REJECTED
        assert rejected.rejection_reason == MANAGER_REJECTION
        assert disputed.status is IncidentStatus.DISPUTE_RESOLUTION
        assert disputed.dispute_category == "findings_accuracy"
        final = await harness.incident(incident.id)
        assert final.status is IncidentStatus.PENDING_CLOSURE
        assert ok(await harness.services.disputes.get_open_dispute(incident.id)) is None
        history = ok(await harness.services.disputes.list_disputes(incident.id))
        assert [d.id for d in history] == [dispute.id]

    @pytest.mark.asyncio
    async def test_second_open_dispute_refused(self, harness: WorkflowHarness) -> None:
        incident = await harness.to_manager_rejected()
        ok(
            await harness.services.disputes.open_dispute(
                incident.id,
                harness.cast.investigator,
                DisputeCategory.FINDINGS_ACCURACY,
                DISPUTE_REASON,
            )
        )

        second = await harness.services.disputes.open_dispute(
            incident.id,
            harness.cast.investigator,
            DisputeCategory.TIMELINE,
            DISPUTE_REASON,
        )

        assert second.code is RejectionCode.INVALID_TRANSITION
        disputes = ok(await harness.services.disputes.list_disputes(incident.id))
        assert len(disputes) == 1


class TestRepeatedFine:
    """A second fine for the same contractor goes to the contract controller."""

    @pytest.mark.asyncio
    async def test_fine_routes_to_contract_controller(
        self, harness: WorkflowHarness
    ) -> None:
        harness.incident_store.add_finalized_violations(
            harness.cast.contractor_id, VIOLATION_TYPE
        )
        incident = await harness.to_investigation()
        investigation = await harness.submit_findings(
            incident.id,
            violation=True,
            penalty_type=PenaltyType.FINE,
            fine_amount=Decimal("2500.00"),
        )

        submitted = ok(
            await harness.services.violations.submit_violation(
                investigation.id, harness.cast.investigator
            )
        )
        approved = ok(
            await harness.services.violations.department_manager_decide(
                incident.id, harness.cast.dept_manager, ViolationDecision.APPROVED
            )
        )

        assert submitted.violation is not None
        assert submitted.violation.occurrence == 2
        assert submitted.violation.occurrence_label == "2nd"
        assert approved.status is IncidentStatus.PENDING_CONTRACT_CONTROLLER_APPROVAL
        assert approved.status is not IncidentStatus.PENDING_CONTRACTOR_SITE_REP_APPROVAL

        skipped = await harness.services.violations.contractor_acknowledge(
            incident.id, harness.cast.contractor_rep, AcknowledgmentDecision.ACKNOWLEDGED
        )
        assert skipped.code is RejectionCode.INVALID_TRANSITION


class TestConcurrentApproval:
    """Racing manager decisions: exactly one wins."""

    @pytest.mark.asyncio
    async def test_conflicting_decisions(self, harness: WorkflowHarness) -> None:
        incident = await harness.to_pending_manager_approval()
        harness.incident_store.set_failure_mode(FailureMode(read_delay_seconds=0.05))

        approve, reject = await asyncio.gather(
            harness.services.incidents.manager_approve_or_reject(
                incident.id, harness.cast.dept_manager, ManagerDecision.APPROVED
            ),
            harness.services.incidents.manager_approve_or_reject(
                incident.id,
                harness.cast.dept_manager,
                ManagerDecision.REJECTED,
                reason=MANAGER_REJECTION,
            ),
        )
        harness.incident_store.clear_failure_mode()

        assert [approve.ok, reject.ok].count(True) == 1
        loser = reject if approve.ok else approve
        assert loser.code is RejectionCode.INVALID_TRANSITION
        stored = await harness.incident(incident.id)
        winner_status = (
            IncidentStatus.INVESTIGATION_IN_PROGRESS
            if approve.ok
            else IncidentStatus.MANAGER_REJECTED
        )
        assert stored.status is winner_status


class TestFullLifecycle:
    """Report to closed through investigation and a confirmed fine."""

    @pytest.mark.asyncio
    async def test_report_to_closed(self, harness: WorkflowHarness) -> None:
        incident = await harness.to_investigation()
        investigation = await harness.submit_findings(
            incident.id,
            violation=True,
            penalty_type=PenaltyType.FINE,
            fine_amount=Decimal("1000"),
        )
        ok(
            await harness.services.violations.submit_violation(
                investigation.id, harness.cast.investigator
            )
        )
        ok(
            await harness.services.violations.department_manager_decide(
                incident.id, harness.cast.dept_manager, ViolationDecision.APPROVED
            )
        )
        confirmed = ok(
            await harness.services.violations.contract_controller_decide(
                incident.id, harness.cast.contract_controller, ViolationDecision.APPROVED
            )
        )
        ok(
            await harness.services.closure.request_closure(
                incident.id, harness.cast.investigator
            )
        )
        ok(
            await harness.services.closure.validate_investigation(
                incident.id, harness.cast.expert, ValidationDecision.ACCEPT
            )
        )
        readiness = ok(
            await harness.services.closure.evaluate_closure_readiness(incident.id)
        )
        closed = ok(
            await harness.services.closure.approve_closure(
                incident.id, harness.cast.hsse_manager, "All actions verified on site"
            )
        )

        assert confirmed.violation is not None
        assert confirmed.violation.stage is ViolationStage.FINALIZED
        assert readiness.ready
        assert closed.status is IncidentStatus.CLOSED
        assert closed.closure_reason is ClosureReason.STANDARD

        entries = await harness.audit(incident.id)
        assert all(
            e.to_status is None or isinstance(e.to_status, IncidentStatus)
            for e in entries
        )
        assert [e.to_status for e in entries if e.to_status][-1] is IncidentStatus.CLOSED
        (approval_timer,) = harness.escalation_store.events_of_kind(
            EscalatableEventKind.INCIDENT_APPROVAL
        )
        assert approval_timer.source_id == incident.id
        timers = harness.escalation_store.events
        assert {t.kind for t in timers} == {
            EscalatableEventKind.INCIDENT_SCREENING,
            EscalatableEventKind.INCIDENT_APPROVAL,
            EscalatableEventKind.INVESTIGATION,
        }
        assert all(t.resolved_at is not None for t in timers)


class TestCatastrophicClosureLock:
    """Level 5 closure needs a top role and a justification on every path."""

    @pytest.mark.asyncio
    async def test_expert_refused_even_when_checklist_passes(
        self, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_pending_final_closure(severity=Severity.LEVEL_5)
        checklist = ok(
            await harness.services.closure.evaluate_closure_readiness(incident.id)
        )

        result = await harness.services.closure.close_incident(
            incident.id, harness.cast.expert, CLOSURE_JUSTIFICATION
        )

        assert all(v for k, v in checklist.checks.items() if k != SEVERITY_AUTHORITY)
        assert result.code is RejectionCode.FORBIDDEN
        stored = await harness.incident(incident.id)
        assert stored.status is IncidentStatus.PENDING_FINAL_CLOSURE

    @pytest.mark.asyncio
    async def test_admin_override_needs_justification(
        self, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_pending_final_closure(severity=Severity.LEVEL_5)

        blank = await harness.services.incidents.admin_override(
            incident.id, harness.cast.admin, "   "
        )
        justified = await harness.services.incidents.admin_override(
            incident.id, harness.cast.admin, CLOSURE_JUSTIFICATION
        )

        assert blank.code is RejectionCode.MISSING_JUSTIFICATION
        assert ok(justified).status is IncidentStatus.CLOSED

    @pytest.mark.asyncio
    async def test_readiness_is_idempotent(self, harness: WorkflowHarness) -> None:
        incident = await harness.to_pending_final_closure(severity=Severity.LEVEL_5)

        first = ok(
            await harness.services.closure.evaluate_closure_readiness(
                incident.id, harness.cast.hsse_manager, CLOSURE_JUSTIFICATION
            )
        )
        second = ok(
            await harness.services.closure.evaluate_closure_readiness(
                incident.id, harness.cast.hsse_manager, CLOSURE_JUSTIFICATION
            )
        )

        assert first == second
        assert first.ready
