"""API models for incident endpoints.

Request bodies for reporting, screening, approval, escalation, reporter
responses, assignment, findings, on-the-spot closure, admin override and
severity adjustment,
plus the incident, investigation and audit responses.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hsse_workflow.domain.models.audit_entry import AuditEntry
from hsse_workflow.domain.models.decisions import (
    HsseManagerDecision,
    ManagerDecision,
    ReporterAction,
    ScreeningRecommendation,
)
from hsse_workflow.domain.models.dispute import DisputeCategory
from hsse_workflow.domain.models.evidence import EvidencePhoto
from hsse_workflow.domain.models.incident import (
    Incident,
    IncidentCategory,
    IncidentStatus,
    Severity,
)
from hsse_workflow.domain.models.investigation import Investigation
from hsse_workflow.domain.models.violation import PenaltyType, Violation

# =============================================================================
# Requests
# =============================================================================


class EvidencePhotoModel(BaseModel):
    """Evidence photo metadata."""

    file_name: str = Field(..., min_length=1)
    mime_type: str = Field(..., description="MIME type, must be image/*")
    size_bytes: int = Field(..., ge=0)
    storage_ref: str | None = None

    def to_domain(self) -> EvidencePhoto:
        return EvidencePhoto(
            file_name=self.file_name,
            mime_type=self.mime_type,
            size_bytes=self.size_bytes,
            storage_ref=self.storage_ref,
        )


class ReportIncidentRequest(BaseModel):
    """Request body for reporting an incident or observation."""

    tenant_id: UUID
    category: IncidentCategory
    severity: Severity = Field(..., description="Realized severity, 1 to 5")
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    occurred_at: datetime | None = None
    potential_severity: Severity | None = None
    closed_on_spot: bool = False
    photos: list[EvidencePhotoModel] = Field(default_factory=list)


class TransitionRequest(BaseModel):
    """Request body for a generic status transition."""

    target_status: IncidentStatus
    reason: str | None = None
    notes: str | None = None


class ScreenIncidentRequest(BaseModel):
    recommendation: ScreeningRecommendation
    notes: str | None = None
    investigator_id: UUID | None = None
    approver_id: UUID | None = None


class ManagerDecisionRequest(BaseModel):
    decision: ManagerDecision
    reason: str | None = None


class EscalateRequest(BaseModel):
    reason: str


class HsseManagerDecisionRequest(BaseModel):
    decision: HsseManagerDecision
    notes: str


class ReporterResponseRequest(BaseModel):
    """Reporter response to an expert rejection or a return."""

    action: ReporterAction
    notes: str | None = None
    dispute_category: DisputeCategory = DisputeCategory.OTHER
    evidence_refs: list[str] = Field(default_factory=list)


class AssignInvestigatorRequest(BaseModel):
    investigator_id: UUID


class AssignApproverRequest(BaseModel):
    approver_id: UUID


class InvestigationFindingsRequest(BaseModel):
    """Findings submitted by the assigned investigator."""

    root_cause: str
    immediate_cause: str
    evidence_summary: str | None = None
    violation_identified: bool = False
    violation_type: str | None = None
    contractor_id: UUID | None = None
    contractor_contribution_pct: int | None = Field(default=None, ge=0, le=100)
    penalty_type: PenaltyType | None = None
    fine_amount: Decimal | None = Field(default=None, ge=0)


class CloseOnSpotRequest(BaseModel):
    photos: list[EvidencePhotoModel] = Field(default_factory=list)


class AdminOverrideRequest(BaseModel):
    justification: str
    original_approver_name: str | None = None


class ProposeSeverityChangeRequest(BaseModel):
    """Investigator proposal to change the realized severity."""

    severity: Severity = Field(..., description="Proposed realized severity, 1 to 5")
    justification: str


class SeverityDecisionRequest(BaseModel):
    approved: bool
    notes: str | None = None


# =============================================================================
# Responses
# =============================================================================


class ViolationResponse(BaseModel):
    """Contractor violation embedded in an incident."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    investigation_id: UUID
    contractor_id: UUID
    violation_type: str
    penalty_type: PenaltyType
    stage: str
    fine_amount: Decimal | None = None
    occurrence: int | None = None
    occurrence_label: str | None = None
    penalty_severity: str | None = None
    submitted_at: datetime | None = None
    acknowledged_at: datetime | None = None
    finalized_at: datetime | None = None


class IncidentResponse(BaseModel):
    """Incident as returned by every incident endpoint."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    tenant_id: UUID
    category: IncidentCategory
    severity: int
    potential_severity: int | None = None
    status: IncidentStatus
    reporter_id: UUID
    title: str
    description: str
    created_at: datetime
    status_changed_at: datetime | None = None
    version: int
    assigned_investigator_id: UUID | None = None
    assigned_approver_id: UUID | None = None
    rejection_reason: str | None = None
    escalation_reason: str | None = None
    return_reason: str | None = None
    resubmission_count: int = 0
    rework_required: bool = False
    hsse_validation_accepted: bool = False
    original_severity: int | None = None
    proposed_severity: int | None = None
    severity_change_justification: str | None = None
    severity_pending_approval: bool = False
    severity_approved_by: UUID | None = None
    severity_approved_at: datetime | None = None
    closed_on_spot: bool = False
    closure_reason: str | None = None
    closed_at: datetime | None = None
    violation: ViolationResponse | None = None


class InvestigationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    incident_id: UUID
    investigator_id: UUID
    started_at: datetime
    root_cause: str | None = None
    immediate_cause: str | None = None
    evidence_summary: str | None = None
    violation_identified: bool = False
    submitted_at: datetime | None = None
    closed_at: datetime | None = None


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    actor_id: UUID
    action: str
    from_status: IncidentStatus | None = None
    to_status: IncidentStatus | None = None
    created_at: datetime
    details: dict[str, object] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


class AuditTrailResponse(BaseModel):
    incident_id: UUID
    entries: list[AuditEntryResponse]
    total: int


# =============================================================================
# Converters
# =============================================================================


def violation_to_response(violation: Violation) -> ViolationResponse:
    return ViolationResponse(
        id=violation.id,
        investigation_id=violation.investigation_id,
        contractor_id=violation.contractor_id,
        violation_type=violation.violation_type,
        penalty_type=violation.penalty_type,
        stage=violation.stage.value,
        fine_amount=violation.fine_amount,
        occurrence=violation.occurrence,
        occurrence_label=violation.occurrence_label,
        penalty_severity=(
            violation.penalty_severity.value if violation.penalty_severity else None
        ),
        submitted_at=violation.submitted_at,
        acknowledged_at=violation.acknowledged_at,
        finalized_at=violation.finalized_at,
    )


def incident_to_response(incident: Incident) -> IncidentResponse:
    """Convert a domain Incident to IncidentResponse."""
    return IncidentResponse(
        id=incident.id,
        tenant_id=incident.tenant_id,
        category=incident.category,
        severity=int(incident.severity),
        potential_severity=(
            int(incident.potential_severity) if incident.potential_severity else None
        ),
        status=incident.status,
        reporter_id=incident.reporter_id,
        title=incident.title,
        description=incident.description,
        created_at=incident.created_at,
        status_changed_at=incident.status_changed_at,
        version=incident.version,
        assigned_investigator_id=incident.assigned_investigator_id,
        assigned_approver_id=incident.assigned_approver_id,
        rejection_reason=incident.rejection_reason,
        escalation_reason=incident.escalation_reason,
        return_reason=incident.return_reason,
        resubmission_count=incident.resubmission_count,
        rework_required=incident.rework_required,
        hsse_validation_accepted=incident.hsse_validation_accepted,
        original_severity=(
            int(incident.original_severity) if incident.original_severity else None
        ),
        proposed_severity=(
            int(incident.proposed_severity) if incident.proposed_severity else None
        ),
        severity_change_justification=incident.severity_change_justification,
        severity_pending_approval=incident.severity_pending_approval,
        severity_approved_by=incident.severity_approved_by,
        severity_approved_at=incident.severity_approved_at,
        closed_on_spot=incident.closed_on_spot,
        closure_reason=incident.closure_reason.value if incident.closure_reason else None,
        closed_at=incident.closed_at,
        violation=(
            violation_to_response(incident.violation) if incident.violation else None
        ),
    )


def investigation_to_response(investigation: Investigation) -> InvestigationResponse:
    return InvestigationResponse(
        id=investigation.id,
        incident_id=investigation.incident_id,
        investigator_id=investigation.investigator_id,
        started_at=investigation.started_at,
        root_cause=investigation.root_cause,
        immediate_cause=investigation.immediate_cause,
        evidence_summary=investigation.evidence_summary,
        violation_identified=investigation.violation_identified,
        submitted_at=investigation.submitted_at,
        closed_at=investigation.closed_at,
    )


def audit_entry_to_response(entry: AuditEntry) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=entry.id,
        actor_id=entry.actor_id,
        action=entry.action,
        from_status=entry.from_status,
        to_status=entry.to_status,
        created_at=entry.created_at,
        details=dict(entry.details),
        tags=list(entry.tags),
    )
