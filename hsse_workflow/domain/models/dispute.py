"""Dispute domain model.

A dispute records a disagreement with a rejection and its mediated
outcome. Exactly one open dispute may exist per incident.

State Machine:
    OPEN -> RESOLVED
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

from hsse_workflow.domain.errors.workflow import InvalidTransitionError
from hsse_workflow.domain.models.incident import IncidentStatus


class DisputeCategory(str, Enum):
    INVESTIGATION_SCOPE = "investigation_scope"
    FINDINGS_ACCURACY = "findings_accuracy"
    TIMELINE = "timeline"
    OTHER = "other"


class DisputeStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class DisputeDecision(str, Enum):
    """Mediator decisions.

    Decisions:
        OVERRIDE_REJECTION: The rejection is overturned.
        MAINTAIN_REJECTION: The rejection stands.
        PARTIAL_REWORK: The rejection stands for some items only; the
            incident is flagged ``rework_required``.
    """

    OVERRIDE_REJECTION = "override_rejection"
    MAINTAIN_REJECTION = "maintain_rejection"
    PARTIAL_REWORK = "partial_rework"


# Resolution target by (status the dispute was opened from, decision)
DISPUTE_RESOLUTION_TARGETS: dict[
    tuple[IncidentStatus, DisputeDecision], IncidentStatus
] = {
    (
        IncidentStatus.MANAGER_REJECTED,
        DisputeDecision.OVERRIDE_REJECTION,
    ): IncidentStatus.PENDING_CLOSURE,
    (
        IncidentStatus.MANAGER_REJECTED,
        DisputeDecision.MAINTAIN_REJECTION,
    ): IncidentStatus.INVESTIGATION_IN_PROGRESS,
    (
        IncidentStatus.MANAGER_REJECTED,
        DisputeDecision.PARTIAL_REWORK,
    ): IncidentStatus.INVESTIGATION_IN_PROGRESS,
    (
        IncidentStatus.EXPERT_REJECTED,
        DisputeDecision.OVERRIDE_REJECTION,
    ): IncidentStatus.PENDING_MANAGER_APPROVAL,
    (
        IncidentStatus.EXPERT_REJECTED,
        DisputeDecision.MAINTAIN_REJECTION,
    ): IncidentStatus.CLOSED_REJECTED,
    (
        IncidentStatus.EXPERT_REJECTED,
        DisputeDecision.PARTIAL_REWORK,
    ): IncidentStatus.RETURNED_TO_REPORTER,
}


@dataclass(frozen=True, eq=True)
class Dispute:
    """Disagreement record opened against a rejection.

    Attributes:
        id: Unique identifier.
        incident_id: Disputed incident.
        tenant_id: Owning tenant.
        category: Dispute category.
        reason: Why the rejection is disputed.
        opened_by: Actor that opened the dispute.
        opened_at: When it was opened.
        origin_status: Rejected status the dispute was opened from.
        evidence_refs: Attachment references, preserved verbatim.
        status: OPEN or RESOLVED.
        mediator_id: Mediator that resolved it.
        decision: Mediator decision.
        decision_notes: Mediator notes.
        resolved_at: When it was resolved.
        rework_required: Set for PARTIAL_REWORK decisions.
    """

    id: UUID
    incident_id: UUID
    tenant_id: UUID
    category: DisputeCategory
    reason: str
    opened_by: UUID
    opened_at: datetime
    origin_status: IncidentStatus
    evidence_refs: tuple[str, ...] = field(default=())
    status: DisputeStatus = field(default=DisputeStatus.OPEN)
    mediator_id: UUID | None = field(default=None)
    decision: DisputeDecision | None = field(default=None)
    decision_notes: str | None = field(default=None)
    resolved_at: datetime | None = field(default=None)
    rework_required: bool = field(default=False)

    @property
    def is_open(self) -> bool:
        return self.status is DisputeStatus.OPEN

    def resolution_target(self, decision: DisputeDecision) -> IncidentStatus:
        return DISPUTE_RESOLUTION_TARGETS[(self.origin_status, decision)]

    def resolve(
        self,
        mediator_id: UUID,
        decision: DisputeDecision,
        notes: str,
        resolved_at: datetime,
    ) -> Dispute:
        """Create the resolved dispute.

        Raises:
            InvalidTransitionError: If the dispute is already resolved.
        """
        if not self.is_open:
            raise InvalidTransitionError(
                from_state=self.status,
                to_state=DisputeStatus.RESOLVED,
                message=f"Dispute {self.id} is already resolved",
            )
        return replace(
            self,
            status=DisputeStatus.RESOLVED,
            mediator_id=mediator_id,
            decision=decision,
            decision_notes=notes,
            resolved_at=resolved_at,
            rework_required=decision is DisputeDecision.PARTIAL_REWORK,
        )
