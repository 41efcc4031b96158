"""API models for dispute endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hsse_workflow.domain.models.dispute import (
    Dispute,
    DisputeCategory,
    DisputeDecision,
    DisputeStatus,
)
from hsse_workflow.domain.models.incident import IncidentStatus


class OpenDisputeRequest(BaseModel):
    """Request body for opening a dispute on an incident."""

    category: DisputeCategory
    reason: str = Field(..., description="Why the reporter disputes the outcome")
    evidence_refs: list[str] = Field(default_factory=list)


class ResolveDisputeRequest(BaseModel):
    """Mediator decision on the open dispute."""

    decision: DisputeDecision
    notes: str = Field(..., description="Mediation notes, minimum length enforced")


class DisputeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    incident_id: UUID
    category: DisputeCategory
    reason: str
    opened_by: UUID
    opened_at: datetime
    origin_status: IncidentStatus
    evidence_refs: list[str] = Field(default_factory=list)
    status: DisputeStatus
    mediator_id: UUID | None = None
    decision: DisputeDecision | None = None
    decision_notes: str | None = None
    resolved_at: datetime | None = None
    rework_required: bool = False


class DisputeListResponse(BaseModel):
    incident_id: UUID
    disputes: list[DisputeResponse]
    total: int


def dispute_to_response(dispute: Dispute) -> DisputeResponse:
    return DisputeResponse(
        id=dispute.id,
        incident_id=dispute.incident_id,
        category=dispute.category,
        reason=dispute.reason,
        opened_by=dispute.opened_by,
        opened_at=dispute.opened_at,
        origin_status=dispute.origin_status,
        evidence_refs=list(dispute.evidence_refs),
        status=dispute.status,
        mediator_id=dispute.mediator_id,
        decision=dispute.decision,
        decision_notes=dispute.decision_notes,
        resolved_at=dispute.resolved_at,
        rework_required=dispute.rework_required,
    )
