"""Unit tests for the incident lifecycle state machine.

Tests the transition matrix, terminal statuses, justification rules and
the immutable update helpers of Incident.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from hsse_workflow.domain.errors.workflow import InvalidTransitionError
from hsse_workflow.domain.models.incident import (
    ADMIN_OVERRIDE_NEXT_STATUS,
    STATE_TRANSITION_MATRIX,
    TERMINAL_STATES,
    Incident,
    IncidentCategory,
    IncidentStatus,
    Severity,
    requires_justification,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_incident(
    status: IncidentStatus = IncidentStatus.SUBMITTED,
    severity: Severity = Severity.LEVEL_3,
) -> Incident:
    return Incident(
        id=uuid4(),
        tenant_id=uuid4(),
        category=IncidentCategory.INCIDENT,
        severity=severity,
        status=status,
        reporter_id=uuid4(),
        title="Forklift near miss",
        created_at=NOW,
    )


class TestTransitionMatrix:
    """Tests for STATE_TRANSITION_MATRIX."""

    def test_every_status_has_an_entry(self) -> None:
        """Adding a status without a matrix entry fails here."""
        assert set(STATE_TRANSITION_MATRIX) == set(IncidentStatus)

    def test_terminal_statuses_have_no_outgoing_edges(self) -> None:
        for status in TERMINAL_STATES:
            assert STATE_TRANSITION_MATRIX[status] == frozenset()
            assert status.is_terminal()

    def test_non_terminal_statuses_have_outgoing_edges(self) -> None:
        for status in set(IncidentStatus) - TERMINAL_STATES:
            assert STATE_TRANSITION_MATRIX[status], status

    def test_terminal_set(self) -> None:
        assert TERMINAL_STATES == {
            IncidentStatus.CLOSED,
            IncidentStatus.CLOSED_REJECTED,
            IncidentStatus.NO_INVESTIGATION_REQUIRED,
        }

    def test_every_target_is_a_known_status(self) -> None:
        for targets in STATE_TRANSITION_MATRIX.values():
            assert targets <= set(IncidentStatus)

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (IncidentStatus.SUBMITTED, IncidentStatus.EXPERT_SCREENING),
            (IncidentStatus.SUBMITTED, IncidentStatus.CLOSED),
            (IncidentStatus.EXPERT_SCREENING, IncidentStatus.PENDING_MANAGER_APPROVAL),
            (IncidentStatus.RETURNED_TO_REPORTER, IncidentStatus.SUBMITTED),
            (IncidentStatus.MANAGER_REJECTED, IncidentStatus.DISPUTE_RESOLUTION),
            (IncidentStatus.DISPUTE_RESOLUTION, IncidentStatus.RETURNED_TO_REPORTER),
            (IncidentStatus.PENDING_CLOSURE, IncidentStatus.CLOSED),
            (IncidentStatus.PENDING_FINAL_CLOSURE, IncidentStatus.CLOSED),
        ],
    )
    def test_expected_edges_present(
        self, source: IncidentStatus, target: IncidentStatus
    ) -> None:
        assert target in source.valid_transitions()

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (IncidentStatus.SUBMITTED, IncidentStatus.INVESTIGATION_IN_PROGRESS),
            (IncidentStatus.INVESTIGATION_IN_PROGRESS, IncidentStatus.CLOSED),
            (IncidentStatus.PENDING_MANAGER_APPROVAL, IncidentStatus.CLOSED),
            (IncidentStatus.CLOSED, IncidentStatus.SUBMITTED),
            (IncidentStatus.PENDING_CONTRACT_CONTROLLER_APPROVAL, IncidentStatus.CLOSED),
        ],
    )
    def test_shortcuts_are_absent(
        self, source: IncidentStatus, target: IncidentStatus
    ) -> None:
        assert target not in source.valid_transitions()

    def test_admin_override_targets_are_matrix_edges(self) -> None:
        for source, target in ADMIN_OVERRIDE_NEXT_STATUS.items():
            assert target in source.valid_transitions()


class TestRequiresJustification:
    """Tests for requires_justification()."""

    @pytest.mark.parametrize(
        "target",
        [
            IncidentStatus.MANAGER_REJECTED,
            IncidentStatus.EXPERT_REJECTED,
            IncidentStatus.RETURNED_TO_REPORTER,
            IncidentStatus.ESCALATED_TO_HSSE_MANAGER,
        ],
    )
    def test_entering_rejection_requires_reason(self, target: IncidentStatus) -> None:
        sources = [s for s, targets in STATE_TRANSITION_MATRIX.items() if target in targets]
        assert sources
        for source in sources:
            assert requires_justification(source, target)

    @pytest.mark.parametrize(
        "source",
        [
            IncidentStatus.MANAGER_REJECTED,
            IncidentStatus.EXPERT_REJECTED,
            IncidentStatus.DISPUTE_RESOLUTION,
            IncidentStatus.ESCALATED_TO_HSSE_MANAGER,
        ],
    )
    def test_leaving_rejection_requires_reason(self, source: IncidentStatus) -> None:
        for target in STATE_TRANSITION_MATRIX[source]:
            assert requires_justification(source, target)

    def test_happy_path_needs_no_reason(self) -> None:
        assert not requires_justification(
            IncidentStatus.SUBMITTED, IncidentStatus.EXPERT_SCREENING
        )
        assert not requires_justification(
            IncidentStatus.PENDING_MANAGER_APPROVAL,
            IncidentStatus.INVESTIGATION_IN_PROGRESS,
        )
        assert not requires_justification(
            IncidentStatus.PENDING_FINAL_CLOSURE, IncidentStatus.CLOSED
        )


class TestIncidentWithStatus:
    """Tests for Incident.with_status() and evolve()."""

    def test_with_status_returns_new_instance(self) -> None:
        incident = make_incident()
        later = datetime(2026, 1, 2, tzinfo=timezone.utc)

        updated = incident.with_status(IncidentStatus.EXPERT_SCREENING, later)

        assert updated is not incident
        assert incident.status is IncidentStatus.SUBMITTED
        assert updated.status is IncidentStatus.EXPERT_SCREENING
        assert updated.status_changed_at == later
        assert updated.version == incident.version

    def test_with_status_rejects_unreachable_target(self) -> None:
        incident = make_incident()

        with pytest.raises(InvalidTransitionError) as exc_info:
            incident.with_status(IncidentStatus.PENDING_CLOSURE, NOW)

        assert exc_info.value.from_state is IncidentStatus.SUBMITTED
        assert exc_info.value.to_state is IncidentStatus.PENDING_CLOSURE
        assert set(exc_info.value.allowed_transitions) == {
            IncidentStatus.EXPERT_SCREENING,
            IncidentStatus.CLOSED,
        }

    def test_terminal_status_stamps_closed_at(self) -> None:
        incident = make_incident()

        closed = incident.with_status(IncidentStatus.CLOSED, NOW)

        assert closed.closed_at == NOW

    def test_with_status_applies_extra_changes(self) -> None:
        incident = make_incident(IncidentStatus.PENDING_MANAGER_APPROVAL)

        rejected = incident.with_status(
            IncidentStatus.MANAGER_REJECTED, NOW, rejection_reason="not enough evidence"
        )

        assert rejected.rejection_reason == "not enough evidence"

    def test_evolve_refuses_status_changes(self) -> None:
        with pytest.raises(ValueError, match="with_status"):
            make_incident().evolve(status=IncidentStatus.CLOSED)

    def test_negative_version_rejected(self) -> None:
        incident = make_incident()
        with pytest.raises(ValueError):
            incident.evolve(version=-1)

    def test_only_level_5_is_catastrophic(self) -> None:
        assert Severity.LEVEL_5.is_catastrophic
        assert not any(s.is_catastrophic for s in Severity if s is not Severity.LEVEL_5)
