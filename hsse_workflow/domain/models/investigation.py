"""Investigation work record.

At most one active investigation exists per incident. It is opened when
the incident enters investigation and closed (never deleted) when the
incident reaches a terminal status.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from hsse_workflow.domain.models.violation import PenaltyType


@dataclass(frozen=True, eq=True)
class Investigation:
    """Work record attached to an incident under investigation.

    Violation fields are only meaningful when ``violation_identified``
    is True.

    Attributes:
        id: Unique identifier.
        incident_id: Incident under investigation.
        tenant_id: Owning tenant.
        investigator_id: Assigned investigator.
        started_at: When the investigation was opened.
        root_cause: Documented root cause.
        immediate_cause: Documented immediate cause.
        evidence_summary: Summary of collected evidence.
        violation_identified: Investigation found a contractor violation.
        violation_type: Violation type code.
        contractor_id: Contractor responsible.
        contractor_contribution_pct: Contractor share of responsibility.
        penalty_type: Proposed penalty.
        fine_amount: Proposed fine (FINE only).
        submitted_at: When findings were submitted. Set means complete.
        closed_at: When the record was closed.
    """

    id: UUID
    incident_id: UUID
    tenant_id: UUID
    investigator_id: UUID
    started_at: datetime
    root_cause: str | None = field(default=None)
    immediate_cause: str | None = field(default=None)
    evidence_summary: str | None = field(default=None)
    violation_identified: bool = field(default=False)
    violation_type: str | None = field(default=None)
    contractor_id: UUID | None = field(default=None)
    contractor_contribution_pct: int | None = field(default=None)
    penalty_type: PenaltyType | None = field(default=None)
    fine_amount: Decimal | None = field(default=None)
    submitted_at: datetime | None = field(default=None)
    closed_at: datetime | None = field(default=None)

    @property
    def is_active(self) -> bool:
        return self.closed_at is None

    @property
    def is_complete(self) -> bool:
        return self.submitted_at is not None

    def evolve(self, **changes: Any) -> Investigation:
        return replace(self, **changes)

    def close(self, closed_at: datetime) -> Investigation:
        return replace(self, closed_at=closed_at)
