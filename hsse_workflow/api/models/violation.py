"""API models for the contractor violation chain."""

from decimal import Decimal

from pydantic import BaseModel, Field

from hsse_workflow.domain.models.decisions import (
    AcknowledgmentDecision,
    ViolationDecision,
    ViolationReviewDecision,
)
from hsse_workflow.domain.models.violation import PenaltyType


class SubmitViolationRequest(BaseModel):
    evidence_summary: str | None = None


class ViolationDecisionRequest(BaseModel):
    """Department manager or contract controller decision."""

    decision: ViolationDecision
    notes: str | None = None


class ContractorAcknowledgmentRequest(BaseModel):
    decision: AcknowledgmentDecision
    notes: str | None = Field(
        default=None, description="Required when contesting the violation"
    )


class ViolationReviewRequest(BaseModel):
    """HSSE review of a contested violation."""

    decision: ViolationReviewDecision
    notes: str
    penalty_type: PenaltyType | None = None
    fine_amount: Decimal | None = Field(default=None, ge=0)
