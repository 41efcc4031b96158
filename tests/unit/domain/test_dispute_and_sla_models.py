"""Unit tests for the dispute, escalatable event and SLA config models."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from hsse_workflow.domain.errors.workflow import InvalidTransitionError
from hsse_workflow.domain.models.dispute import (
    DISPUTE_RESOLUTION_TARGETS,
    Dispute,
    DisputeCategory,
    DisputeDecision,
    DisputeStatus,
)
from hsse_workflow.domain.models.escalatable_event import (
    EscalatableEvent,
    EscalatableEventKind,
)
from hsse_workflow.domain.models.incident import DISPUTABLE_STATES, IncidentStatus
from hsse_workflow.domain.models.sla_config import SlaConfig

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_dispute(origin: IncidentStatus) -> Dispute:
    return Dispute(
        id=uuid4(),
        incident_id=uuid4(),
        tenant_id=uuid4(),
        category=DisputeCategory.FINDINGS_ACCURACY,
        reason="The rejection ignored the witness statements",
        opened_by=uuid4(),
        opened_at=NOW,
        origin_status=origin,
        evidence_refs=("doc-1", "photo-7"),
    )


class TestDisputeResolutionTargets:
    def test_every_origin_and_decision_has_a_target(self) -> None:
        assert set(DISPUTE_RESOLUTION_TARGETS) == {
            (origin, decision)
            for origin in DISPUTABLE_STATES
            for decision in DisputeDecision
        }

    def test_targets_are_matrix_edges_from_dispute_resolution(self) -> None:
        for target in DISPUTE_RESOLUTION_TARGETS.values():
            assert target in IncidentStatus.DISPUTE_RESOLUTION.valid_transitions()

    @pytest.mark.parametrize(
        ("origin", "decision", "target"),
        [
            (
                IncidentStatus.MANAGER_REJECTED,
                DisputeDecision.OVERRIDE_REJECTION,
                IncidentStatus.PENDING_CLOSURE,
            ),
            (
                IncidentStatus.MANAGER_REJECTED,
                DisputeDecision.MAINTAIN_REJECTION,
                IncidentStatus.INVESTIGATION_IN_PROGRESS,
            ),
            (
                IncidentStatus.MANAGER_REJECTED,
                DisputeDecision.PARTIAL_REWORK,
                IncidentStatus.INVESTIGATION_IN_PROGRESS,
            ),
            (
                IncidentStatus.EXPERT_REJECTED,
                DisputeDecision.OVERRIDE_REJECTION,
                IncidentStatus.PENDING_MANAGER_APPROVAL,
            ),
            (
                IncidentStatus.EXPERT_REJECTED,
                DisputeDecision.MAINTAIN_REJECTION,
                IncidentStatus.CLOSED_REJECTED,
            ),
            (
                IncidentStatus.EXPERT_REJECTED,
                DisputeDecision.PARTIAL_REWORK,
                IncidentStatus.RETURNED_TO_REPORTER,
            ),
        ],
    )
    def test_resolution_target(
        self, origin: IncidentStatus, decision: DisputeDecision, target: IncidentStatus
    ) -> None:
        assert make_dispute(origin).resolution_target(decision) is target


class TestDisputeResolve:
    def test_resolve_records_mediator(self) -> None:
        dispute = make_dispute(IncidentStatus.MANAGER_REJECTED)
        mediator = uuid4()

        resolved = dispute.resolve(
            mediator, DisputeDecision.PARTIAL_REWORK, "Redo the witness interviews", NOW
        )

        assert resolved.status is DisputeStatus.RESOLVED
        assert resolved.mediator_id == mediator
        assert resolved.rework_required
        assert resolved.evidence_refs == ("doc-1", "photo-7")
        assert dispute.is_open

    def test_resolving_twice_raises(self) -> None:
        resolved = make_dispute(IncidentStatus.EXPERT_REJECTED).resolve(
            uuid4(), DisputeDecision.MAINTAIN_REJECTION, "Rejection stands", NOW
        )

        with pytest.raises(InvalidTransitionError):
            resolved.resolve(uuid4(), DisputeDecision.OVERRIDE_REJECTION, "Changed", NOW)


class TestEscalatableEvent:
    @pytest.fixture
    def event(self) -> EscalatableEvent:
        return EscalatableEvent(
            id=uuid4(),
            tenant_id=uuid4(),
            kind=EscalatableEventKind.EMERGENCY_ALERT,
            source_id=uuid4(),
            category="fire",
            priority="high",
            triggered_at=NOW,
        )

    def test_level_never_decreases(self, event: EscalatableEvent) -> None:
        raised = event.with_escalation_level(2)

        with pytest.raises(ValueError):
            raised.with_escalation_level(1)

    def test_breach_timestamp_kept_once_set(self, event: EscalatableEvent) -> None:
        breached = event.with_escalation_level(1, breach_notified_at=NOW)

        escalated = breached.with_escalation_level(2)

        assert escalated.sla_breach_notified_at == NOW

    def test_acknowledge_and_resolve_deactivate(self, event: EscalatableEvent) -> None:
        later = NOW + timedelta(minutes=1)

        assert event.is_active
        assert not event.acknowledge(later).is_active
        assert not event.resolve(later).is_active
        assert event.acknowledge(later).acknowledge(later + timedelta(1)).acknowledged_at == later

    def test_level_bounds(self, event: EscalatableEvent) -> None:
        with pytest.raises(ValueError):
            event.with_escalation_level(4)


class TestSlaConfig:
    def test_defaults(self) -> None:
        config = SlaConfig(tenant_id=uuid4())

        assert config.is_tenant_default
        assert (
            config.max_response_seconds,
            config.escalation_after_seconds,
            config.second_escalation_seconds,
        ) == (120, 300, 600)
        assert config.threshold_for_level(3) == 600

    def test_thresholds_must_be_ordered(self) -> None:
        with pytest.raises(ValueError, match="ordered"):
            SlaConfig(
                tenant_id=uuid4(),
                max_response_seconds=300,
                escalation_after_seconds=120,
                second_escalation_seconds=600,
            )

    def test_max_response_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            SlaConfig(tenant_id=uuid4(), max_response_seconds=0)
