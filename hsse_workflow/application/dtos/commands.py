"""Command DTOs carrying workflow operation input."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from hsse_workflow.domain.models.evidence import EvidencePhoto
from hsse_workflow.domain.models.incident import IncidentCategory, Severity
from hsse_workflow.domain.models.violation import PenaltyType


@dataclass(frozen=True)
class ReportIncidentCommand:
    """A new incident or observation report.

    Attributes:
        tenant_id: Owning tenant.
        reporter_id: Reporting actor.
        category: Kind of event.
        severity: Realized severity.
        title: Short summary.
        description: Free text.
        occurred_at: When the event happened.
        potential_severity: Worst credible outcome.
        closed_on_spot: Request on-the-spot closure in the same call.
        photos: Evidence photos for on-the-spot closure.
    """

    tenant_id: UUID
    reporter_id: UUID
    category: IncidentCategory
    severity: Severity
    title: str
    description: str = ""
    occurred_at: datetime | None = None
    potential_severity: Severity | None = None
    closed_on_spot: bool = False
    photos: tuple[EvidencePhoto, ...] = field(default=())


@dataclass(frozen=True)
class TransitionPayload:
    """Free-form payload of a generic transition proposal.

    Attributes:
        reason: Rejection reason or justification text.
        notes: Additional notes.
    """

    reason: str | None = None
    notes: str | None = None

    @property
    def justification(self) -> str | None:
        return self.reason if self.reason and self.reason.strip() else self.notes


@dataclass(frozen=True)
class InvestigationFindings:
    """Findings submitted by the assigned investigator.

    Violation fields are ignored unless ``violation_identified`` is True.
    """

    root_cause: str
    immediate_cause: str
    evidence_summary: str | None = None
    violation_identified: bool = False
    violation_type: str | None = None
    contractor_id: UUID | None = None
    contractor_contribution_pct: int | None = None
    penalty_type: PenaltyType | None = None
    fine_amount: Decimal | None = None
