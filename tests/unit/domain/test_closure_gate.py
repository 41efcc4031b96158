"""Unit tests for the closure gate domain service."""

from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from hsse_workflow.domain.models.actor import Actor, Role
from hsse_workflow.domain.models.closure import (
    CHECKLIST_ITEMS,
    CORRECTIVE_ACTIONS_COMPLETED,
    CORRECTIVE_ACTIONS_VERIFIED,
    HSSE_VALIDATION_ACCEPTED,
    INVESTIGATION_COMPLETE,
    ROOT_CAUSE_DOCUMENTED,
    SEVERITY_AUTHORITY,
    SEVERITY_CHANGE_SETTLED,
    VIOLATION_RESOLVED,
)
from hsse_workflow.domain.models.corrective_action import (
    CorrectiveAction,
    CorrectiveActionStatus,
)
from hsse_workflow.domain.models.incident import (
    Incident,
    IncidentCategory,
    IncidentStatus,
    Severity,
)
from hsse_workflow.domain.models.investigation import Investigation
from hsse_workflow.domain.models.violation import (
    PenaltyType,
    Violation,
    ViolationStage,
)
from hsse_workflow.domain.services.closure_gate import evaluate_closure

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def incident() -> Incident:
    return Incident(
        id=uuid4(),
        tenant_id=uuid4(),
        category=IncidentCategory.INCIDENT,
        severity=Severity.LEVEL_3,
        status=IncidentStatus.PENDING_FINAL_CLOSURE,
        reporter_id=uuid4(),
        title="Scaffold collapse",
        created_at=NOW,
        hsse_validation_accepted=True,
    )


@pytest.fixture
def investigation(incident: Incident) -> Investigation:
    return Investigation(
        id=uuid4(),
        incident_id=incident.id,
        tenant_id=incident.tenant_id,
        investigator_id=uuid4(),
        started_at=NOW,
        root_cause="Missing base plates",
        immediate_cause="Overloaded platform",
        submitted_at=NOW,
    )


def action(incident: Incident, status: CorrectiveActionStatus) -> CorrectiveAction:
    return CorrectiveAction(id=uuid4(), incident_id=incident.id, title="Fix", status=status)


def violation(stage: ViolationStage) -> Violation:
    return Violation(
        id=uuid4(),
        investigation_id=uuid4(),
        contractor_id=uuid4(),
        violation_type="ppe",
        penalty_type=PenaltyType.WARNING,
        stage=stage,
    )


class TestChecklist:
    """Tests for the checklist items."""

    def test_all_items_pass(self, incident: Incident, investigation: Investigation) -> None:
        readiness = evaluate_closure(
            incident,
            investigation,
            [action(incident, CorrectiveActionStatus.VERIFIED)],
        )

        assert readiness.ready
        assert readiness.blocking_reasons == ()
        assert set(readiness.checks) == set(CHECKLIST_ITEMS)
        assert all(readiness.checks.values())

    def test_no_corrective_actions_passes(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        readiness = evaluate_closure(incident, investigation, [])

        assert readiness.checks[CORRECTIVE_ACTIONS_COMPLETED]
        assert readiness.checks[CORRECTIVE_ACTIONS_VERIFIED]

    def test_missing_investigation_blocks(self, incident: Incident) -> None:
        readiness = evaluate_closure(incident, None, [])

        assert not readiness.ready
        assert not readiness.checks[INVESTIGATION_COMPLETE]
        assert not readiness.checks[ROOT_CAUSE_DOCUMENTED]
        assert "Investigation findings have not been submitted" in readiness.blocking_reasons

    def test_blank_root_cause_blocks(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        readiness = evaluate_closure(incident, replace(investigation, root_cause="  "), [])

        assert readiness.blocking_reasons == ("Root cause is not documented",)

    def test_completed_but_unverified_action_blocks_verification_only(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        readiness = evaluate_closure(
            incident,
            investigation,
            [
                action(incident, CorrectiveActionStatus.VERIFIED),
                action(incident, CorrectiveActionStatus.COMPLETED),
            ],
        )

        assert readiness.checks[CORRECTIVE_ACTIONS_COMPLETED]
        assert not readiness.checks[CORRECTIVE_ACTIONS_VERIFIED]
        assert readiness.blocking_reasons == ("Not all corrective actions are verified",)

    def test_open_action_blocks_both(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        readiness = evaluate_closure(
            incident, investigation, [action(incident, CorrectiveActionStatus.IN_PROGRESS)]
        )

        assert not readiness.checks[CORRECTIVE_ACTIONS_COMPLETED]
        assert not readiness.checks[CORRECTIVE_ACTIONS_VERIFIED]
        assert len(readiness.blocking_reasons) == 2

    @pytest.mark.parametrize(
        ("stage", "resolved"),
        [
            (ViolationStage.FINALIZED, True),
            (ViolationStage.REJECTED, True),
            (ViolationStage.PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT, False),
            (ViolationStage.CONTESTED, False),
        ],
    )
    def test_violation_must_be_resolved(
        self,
        incident: Incident,
        investigation: Investigation,
        stage: ViolationStage,
        resolved: bool,
    ) -> None:
        readiness = evaluate_closure(
            replace(incident, violation=violation(stage)), investigation, []
        )

        assert readiness.checks[VIOLATION_RESOLVED] is resolved
        assert readiness.ready is resolved

    def test_hsse_validation_required(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        readiness = evaluate_closure(
            replace(incident, hsse_validation_accepted=False), investigation, []
        )

        assert not readiness.checks[HSSE_VALIDATION_ACCEPTED]
        assert readiness.blocking_reasons == ("HSSE validation has not been accepted",)

    def test_pending_severity_change_blocks(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        pending = replace(
            incident,
            proposed_severity=Severity.LEVEL_5,
            severity_pending_approval=True,
        )

        readiness = evaluate_closure(pending, investigation, [])

        assert not readiness.checks[SEVERITY_CHANGE_SETTLED]
        assert SEVERITY_AUTHORITY not in readiness.checks
        assert readiness.blocking_reasons == ("A severity change is awaiting approval",)

    def test_evaluation_is_repeatable(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        actions = [action(incident, CorrectiveActionStatus.OPEN)]

        assert evaluate_closure(incident, investigation, actions) == evaluate_closure(
            incident, investigation, actions
        )


class TestSeverityAuthority:
    """Tests for the level 5 lock inside the gate."""

    @pytest.fixture
    def catastrophic(self, incident: Incident) -> Incident:
        return replace(incident, severity=Severity.LEVEL_5)

    def test_lock_absent_below_level_5(
        self, incident: Incident, investigation: Investigation
    ) -> None:
        readiness = evaluate_closure(incident, investigation, [])

        assert SEVERITY_AUTHORITY not in readiness.checks

    def test_level_5_without_actor_blocks(
        self, catastrophic: Incident, investigation: Investigation
    ) -> None:
        readiness = evaluate_closure(catastrophic, investigation, [])

        assert not readiness.ready
        assert not readiness.checks[SEVERITY_AUTHORITY]

    def test_level_5_non_top_role_blocks(
        self, catastrophic: Incident, investigation: Investigation
    ) -> None:
        expert = Actor(actor_id=uuid4(), roles=frozenset({Role.HSSE_EXPERT}))

        readiness = evaluate_closure(
            catastrophic, investigation, [], actor=expert, justification="Fully reviewed"
        )

        assert readiness.blocking_reasons == (
            "Level 5 closure is restricted to hsse_manager or admin",
        )

    def test_level_5_requires_justification(
        self, catastrophic: Incident, investigation: Investigation
    ) -> None:
        manager = Actor(actor_id=uuid4(), roles=frozenset({Role.HSSE_MANAGER}))

        readiness = evaluate_closure(
            catastrophic, investigation, [], actor=manager, justification="   "
        )

        assert readiness.blocking_reasons == (
            "Level 5 closure requires a written justification",
        )

    def test_level_5_top_role_with_justification_passes(
        self, catastrophic: Incident, investigation: Investigation
    ) -> None:
        admin = Actor(actor_id=uuid4(), roles=frozenset({Role.ADMIN}))

        readiness = evaluate_closure(
            catastrophic,
            investigation,
            [],
            actor=admin,
            justification="Board reviewed the full investigation",
        )

        assert readiness.ready
        assert readiness.checks[SEVERITY_AUTHORITY]

    def test_lock_reported_alongside_checklist_failures(
        self, catastrophic: Incident
    ) -> None:
        readiness = evaluate_closure(catastrophic, None, [])

        assert len(readiness.blocking_reasons) == 4
        assert readiness.blocking_reasons[-1].startswith("Level 5 closure")
