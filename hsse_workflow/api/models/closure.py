"""API models for closure endpoints."""

from pydantic import BaseModel, Field

from hsse_workflow.domain.models.closure import ClosureReadiness
from hsse_workflow.domain.models.decisions import ValidationDecision


class ClosureReadinessResponse(BaseModel):
    """Closure checklist evaluation.

    Attributes:
        checks: Checklist item name to pass/fail.
        blocking_reasons: One reason per failed item.
        ready: True only when every check passes.
    """

    checks: dict[str, bool]
    blocking_reasons: list[str] = Field(default_factory=list)
    ready: bool

    @classmethod
    def from_domain(cls, readiness: ClosureReadiness) -> "ClosureReadinessResponse":
        return cls(
            checks=dict(readiness.checks),
            blocking_reasons=list(readiness.blocking_reasons),
            ready=readiness.ready,
        )


class CloseIncidentRequest(BaseModel):
    justification: str | None = Field(
        default=None, description="Required for severity 5 incidents"
    )


class RequestClosureRequest(BaseModel):
    notes: str | None = None


class ValidateInvestigationRequest(BaseModel):
    decision: ValidationDecision
    notes: str | None = None


class RejectClosureRequest(BaseModel):
    reason: str
