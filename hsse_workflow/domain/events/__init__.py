"""Domain events for the HSSE workflow."""

from hsse_workflow.domain.events.workflow import (
    DISPUTE_OPENED_EVENT_TYPE,
    DISPUTE_RESOLVED_EVENT_TYPE,
    INCIDENT_ASSIGNED_EVENT_TYPE,
    INCIDENT_CLOSED_EVENT_TYPE,
    INCIDENT_REPORTED_EVENT_TYPE,
    INCIDENT_TRANSITIONED_EVENT_TYPE,
    INVESTIGATION_SUBMITTED_EVENT_TYPE,
    SEVERITY_CHANGE_DECIDED_EVENT_TYPE,
    SEVERITY_CHANGE_PROPOSED_EVENT_TYPE,
    SLA_BREACHED_EVENT_TYPE,
    SLA_ESCALATED_EVENT_TYPE,
    VIOLATION_STAGE_CHANGED_EVENT_TYPE,
    SlaEscalationEventPayload,
    TransitionEventPayload,
)

__all__ = [
    "DISPUTE_OPENED_EVENT_TYPE",
    "DISPUTE_RESOLVED_EVENT_TYPE",
    "INCIDENT_ASSIGNED_EVENT_TYPE",
    "INCIDENT_CLOSED_EVENT_TYPE",
    "INCIDENT_REPORTED_EVENT_TYPE",
    "INCIDENT_TRANSITIONED_EVENT_TYPE",
    "INVESTIGATION_SUBMITTED_EVENT_TYPE",
    "SEVERITY_CHANGE_DECIDED_EVENT_TYPE",
    "SEVERITY_CHANGE_PROPOSED_EVENT_TYPE",
    "SLA_BREACHED_EVENT_TYPE",
    "SLA_ESCALATED_EVENT_TYPE",
    "VIOLATION_STAGE_CHANGED_EVENT_TYPE",
    "SlaEscalationEventPayload",
    "TransitionEventPayload",
]
