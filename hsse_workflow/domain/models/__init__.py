"""Domain models for the HSSE workflow."""

from hsse_workflow.domain.models.actor import (
    ALL_ROLES,
    MEDIATOR_ROLES,
    TOP_ROLES,
    Actor,
    Role,
)
from hsse_workflow.domain.models.audit_entry import (
    ADMIN_OVERRIDE_TAG,
    CLOSED_ON_SPOT_TAG,
    AuditEntry,
)
from hsse_workflow.domain.models.closure import CHECKLIST_ITEMS, ClosureReadiness
from hsse_workflow.domain.models.corrective_action import (
    CorrectiveAction,
    CorrectiveActionStatus,
)
from hsse_workflow.domain.models.decisions import (
    AcknowledgmentDecision,
    HsseManagerDecision,
    ManagerDecision,
    ReporterAction,
    ScreeningRecommendation,
    ValidationDecision,
    ViolationDecision,
    ViolationReviewDecision,
)
from hsse_workflow.domain.models.dispute import (
    DISPUTE_RESOLUTION_TARGETS,
    Dispute,
    DisputeCategory,
    DisputeDecision,
    DisputeStatus,
)
from hsse_workflow.domain.models.escalatable_event import (
    MAX_ESCALATION_LEVEL,
    EscalatableEvent,
    EscalatableEventKind,
)
from hsse_workflow.domain.models.evidence import EvidencePhoto
from hsse_workflow.domain.models.incident import (
    ADMIN_OVERRIDE_NEXT_STATUS,
    DISPUTABLE_STATES,
    STATE_TRANSITION_MATRIX,
    TERMINAL_STATES,
    VIOLATION_STATES,
    ClosureReason,
    Incident,
    IncidentCategory,
    IncidentStatus,
    Severity,
    requires_justification,
)
from hsse_workflow.domain.models.investigation import Investigation
from hsse_workflow.domain.models.sla_config import WILDCARD, SlaConfig
from hsse_workflow.domain.models.violation import (
    PenaltySeverity,
    PenaltyType,
    Violation,
    ViolationStage,
    default_penalty_severity,
    occurrence_label,
    stage_after_department_approval,
)

__all__: list[str] = [
    "ADMIN_OVERRIDE_NEXT_STATUS",
    "ADMIN_OVERRIDE_TAG",
    "ALL_ROLES",
    "CHECKLIST_ITEMS",
    "CLOSED_ON_SPOT_TAG",
    "DISPUTABLE_STATES",
    "DISPUTE_RESOLUTION_TARGETS",
    "MAX_ESCALATION_LEVEL",
    "MEDIATOR_ROLES",
    "STATE_TRANSITION_MATRIX",
    "TERMINAL_STATES",
    "TOP_ROLES",
    "VIOLATION_STATES",
    "WILDCARD",
    "AcknowledgmentDecision",
    "Actor",
    "AuditEntry",
    "ClosureReadiness",
    "ClosureReason",
    "CorrectiveAction",
    "CorrectiveActionStatus",
    "Dispute",
    "DisputeCategory",
    "DisputeDecision",
    "DisputeStatus",
    "EscalatableEvent",
    "EscalatableEventKind",
    "EvidencePhoto",
    "HsseManagerDecision",
    "Incident",
    "IncidentCategory",
    "IncidentStatus",
    "Investigation",
    "ManagerDecision",
    "PenaltySeverity",
    "PenaltyType",
    "ReporterAction",
    "Role",
    "ScreeningRecommendation",
    "Severity",
    "SlaConfig",
    "ValidationDecision",
    "Violation",
    "ViolationDecision",
    "ViolationReviewDecision",
    "ViolationStage",
    "default_penalty_severity",
    "occurrence_label",
    "requires_justification",
    "stage_after_department_approval",
]
