"""Unit tests for DisputeService.

Covers opening disputes from both rejected statuses and every mediator
decision for each origin.
"""

from __future__ import annotations

import pytest

from hsse_workflow.domain.errors.workflow import RejectionCode
from hsse_workflow.domain.events.workflow import (
    DISPUTE_OPENED_EVENT_TYPE,
    DISPUTE_RESOLVED_EVENT_TYPE,
)
from hsse_workflow.domain.models.dispute import (
    Dispute,
    DisputeCategory,
    DisputeDecision,
    DisputeStatus,
)
from hsse_workflow.domain.models.escalatable_event import EscalatableEventKind
from hsse_workflow.domain.models.incident import IncidentStatus
from tests.helpers import WorkflowHarness
from tests.helpers.workflow_harness import MEDIATION_NOTES, ok

DISPUTE_REASON = "The rejection ignored the second witness statement"


async def manager_dispute(harness: WorkflowHarness) -> Dispute:
    incident = await harness.to_manager_rejected()
    return ok(
        await harness.services.disputes.open_dispute(
            incident.id,
            harness.cast.investigator,
            DisputeCategory.INVESTIGATION_SCOPE,
            DISPUTE_REASON,
        )
    )


async def expert_dispute(harness: WorkflowHarness) -> Dispute:
    incident = await harness.to_expert_rejected()
    return ok(
        await harness.services.disputes.open_dispute(
            incident.id,
            harness.cast.reporter,
            DisputeCategory.FINDINGS_ACCURACY,
            DISPUTE_REASON,
            evidence_refs=("evidence/witness-2.pdf",),
        )
    )


class TestOpenDispute:
    """Tests for opening a dispute."""

    @pytest.mark.asyncio
    async def test_investigator_disputes_manager_rejection(
        self, harness: WorkflowHarness
    ) -> None:
        dispute = await manager_dispute(harness)

        assert dispute.status is DisputeStatus.OPEN
        assert dispute.origin_status is IncidentStatus.MANAGER_REJECTED
        assert dispute.opened_by == harness.cast.investigator

        incident = await harness.incident(dispute.incident_id)
        assert incident.status is IncidentStatus.DISPUTE_RESOLUTION
        assert incident.dispute_category == "investigation_scope"
        assert incident.dispute_notes == DISPUTE_REASON
        assert incident.dispute_opened_by == harness.cast.investigator
        assert incident.dispute_opened_at == harness.time.now()

        (event,) = harness.dispatcher.sent_of_type(DISPUTE_OPENED_EVENT_TYPE)
        assert event.payload["dispute_id"] == str(dispute.id)
        assert event.payload["origin_status"] == "manager_rejected"

    @pytest.mark.asyncio
    async def test_reporter_disputes_expert_rejection(
        self, harness: WorkflowHarness
    ) -> None:
        dispute = await expert_dispute(harness)

        assert dispute.origin_status is IncidentStatus.EXPERT_REJECTED
        assert dispute.evidence_refs == ("evidence/witness-2.pdf",)
        entry = (await harness.audit(dispute.incident_id))[-1]
        assert entry.action == "open_dispute"
        assert entry.details["evidence_refs"] == ["evidence/witness-2.pdf"]

    @pytest.mark.asyncio
    async def test_reason_required(self, harness: WorkflowHarness) -> None:
        incident = await harness.to_manager_rejected()

        result = await harness.services.disputes.open_dispute(
            incident.id, harness.cast.investigator, DisputeCategory.OTHER, "unfair"
        )

        assert result.code is RejectionCode.MISSING_JUSTIFICATION
        assert (await harness.incident(incident.id)).status is IncidentStatus.MANAGER_REJECTED

    @pytest.mark.asyncio
    async def test_reporter_cannot_dispute_manager_rejection(
        self, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_manager_rejected()

        result = await harness.services.disputes.open_dispute(
            incident.id, harness.cast.reporter, DisputeCategory.OTHER, DISPUTE_REASON
        )

        assert result.code is RejectionCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_not_from_pending_approval(self, harness: WorkflowHarness) -> None:
        incident = await harness.to_pending_manager_approval()

        result = await harness.services.disputes.open_dispute(
            incident.id, harness.cast.investigator, DisputeCategory.OTHER, DISPUTE_REASON
        )

        assert result.code is RejectionCode.INVALID_TRANSITION
        assert "rejected status" in (result.message or "")


class TestResolveManagerOrigin:
    """Resolution of disputes against a department manager rejection."""

    @pytest.mark.asyncio
    async def test_override_moves_to_pending_closure(
        self, harness: WorkflowHarness
    ) -> None:
        dispute = await manager_dispute(harness)

        result = await harness.services.disputes.resolve_dispute(
            dispute.incident_id,
            harness.cast.hsse_manager,
            DisputeDecision.OVERRIDE_REJECTION,
            MEDIATION_NOTES,
        )

        resolved = ok(result)
        assert resolved.status is DisputeStatus.RESOLVED
        assert resolved.mediator_id == harness.cast.hsse_manager
        assert resolved.decision_notes == MEDIATION_NOTES
        incident = await harness.incident(dispute.incident_id)
        assert incident.status is IncidentStatus.PENDING_CLOSURE

        (event,) = harness.dispatcher.sent_of_type(DISPUTE_RESOLVED_EVENT_TYPE)
        assert event.payload["to_status"] == "pending_closure"
        assert event.payload["decision"] == "override_rejection"

    @pytest.mark.asyncio
    async def test_maintain_starts_investigation(self, harness: WorkflowHarness) -> None:
        dispute = await manager_dispute(harness)

        result = await harness.services.disputes.resolve_dispute(
            dispute.incident_id,
            harness.cast.admin,
            DisputeDecision.MAINTAIN_REJECTION,
            MEDIATION_NOTES,
        )

        assert not ok(result).rework_required
        incident = await harness.incident(dispute.incident_id)
        assert incident.status is IncidentStatus.INVESTIGATION_IN_PROGRESS
        assert not incident.rework_required
        investigation = await harness.investigation(incident.id)
        assert investigation is not None
        assert investigation.investigator_id == harness.cast.investigator

    @pytest.mark.asyncio
    async def test_partial_rework_flags_incident(self, harness: WorkflowHarness) -> None:
        dispute = await manager_dispute(harness)

        result = await harness.services.disputes.resolve_dispute(
            dispute.incident_id,
            harness.cast.hsse_manager,
            DisputeDecision.PARTIAL_REWORK,
            MEDIATION_NOTES,
        )

        assert ok(result).rework_required
        incident = await harness.incident(dispute.incident_id)
        assert incident.status is IncidentStatus.INVESTIGATION_IN_PROGRESS
        assert incident.rework_required


class TestResolveExpertOrigin:
    """Resolution of disputes against an expert rejection."""

    @pytest.mark.asyncio
    async def test_override_moves_to_manager_approval(
        self, harness: WorkflowHarness
    ) -> None:
        """The pending-approval SLA timer starts on entry."""
        dispute = await expert_dispute(harness)

        ok(
            await harness.services.disputes.resolve_dispute(
                dispute.incident_id,
                harness.cast.hsse_manager,
                DisputeDecision.OVERRIDE_REJECTION,
                MEDIATION_NOTES,
            )
        )

        incident = await harness.incident(dispute.incident_id)
        assert incident.status is IncidentStatus.PENDING_MANAGER_APPROVAL
        (tracked,) = await harness.escalation_store.find_active_by_source(incident.id)
        assert tracked.kind is EscalatableEventKind.INCIDENT_APPROVAL

    @pytest.mark.asyncio
    async def test_maintain_closes_rejected(self, harness: WorkflowHarness) -> None:
        dispute = await expert_dispute(harness)

        ok(
            await harness.services.disputes.resolve_dispute(
                dispute.incident_id,
                harness.cast.hsse_manager,
                DisputeDecision.MAINTAIN_REJECTION,
                MEDIATION_NOTES,
            )
        )

        incident = await harness.incident(dispute.incident_id)
        assert incident.status is IncidentStatus.CLOSED_REJECTED

    @pytest.mark.asyncio
    async def test_partial_returns_to_reporter(self, harness: WorkflowHarness) -> None:
        dispute = await expert_dispute(harness)

        ok(
            await harness.services.disputes.resolve_dispute(
                dispute.incident_id,
                harness.cast.hsse_manager,
                DisputeDecision.PARTIAL_REWORK,
                MEDIATION_NOTES,
            )
        )

        incident = await harness.incident(dispute.incident_id)
        assert incident.status is IncidentStatus.RETURNED_TO_REPORTER


class TestResolveRules:
    """Who may resolve, and with what."""

    @pytest.mark.asyncio
    async def test_expert_cannot_mediate(self, harness: WorkflowHarness) -> None:
        dispute = await manager_dispute(harness)

        result = await harness.services.disputes.resolve_dispute(
            dispute.incident_id,
            harness.cast.expert,
            DisputeDecision.OVERRIDE_REJECTION,
            MEDIATION_NOTES,
        )

        assert result.code is RejectionCode.FORBIDDEN
        stored = await harness.incident(dispute.incident_id)
        assert stored.status is IncidentStatus.DISPUTE_RESOLUTION

    @pytest.mark.asyncio
    async def test_notes_required(self, harness: WorkflowHarness) -> None:
        dispute = await manager_dispute(harness)

        result = await harness.services.disputes.resolve_dispute(
            dispute.incident_id,
            harness.cast.hsse_manager,
            DisputeDecision.OVERRIDE_REJECTION,
            "fine",
        )

        assert result.code is RejectionCode.MISSING_JUSTIFICATION

    @pytest.mark.asyncio
    async def test_resolve_outside_dispute_resolution(
        self, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_manager_rejected()

        result = await harness.services.disputes.resolve_dispute(
            incident.id,
            harness.cast.hsse_manager,
            DisputeDecision.OVERRIDE_REJECTION,
            MEDIATION_NOTES,
        )

        assert result.code is RejectionCode.INVALID_TRANSITION


class TestDisputeQueries:
    """Tests for dispute lookups."""

    @pytest.mark.asyncio
    async def test_open_dispute_lookup(self, harness: WorkflowHarness) -> None:
        dispute = await manager_dispute(harness)

        found = ok(await harness.services.disputes.get_open_dispute(dispute.incident_id))

        assert found == dispute

    @pytest.mark.asyncio
    async def test_history_after_resolution(self, harness: WorkflowHarness) -> None:
        dispute = await manager_dispute(harness)
        ok(
            await harness.services.disputes.resolve_dispute(
                dispute.incident_id,
                harness.cast.hsse_manager,
                DisputeDecision.OVERRIDE_REJECTION,
                MEDIATION_NOTES,
            )
        )

        open_now = ok(await harness.services.disputes.get_open_dispute(dispute.incident_id))
        history = ok(await harness.services.disputes.list_disputes(dispute.incident_id))

        assert open_now is None
        assert [d.id for d in history] == [dispute.id]
        assert history[0].status is DisputeStatus.RESOLVED
