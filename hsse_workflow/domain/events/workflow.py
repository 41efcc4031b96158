"""Workflow notification event payloads.

This module defines the payloads handed to the notification dispatcher:
- TransitionEventPayload: an incident moved between statuses
- SlaEscalationEventPayload: an escalatable event crossed an SLA threshold

Notification is best-effort. A payload is only built after the state
change it describes has been committed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from hsse_workflow.domain.models.incident import IncidentStatus

# Event type constants
INCIDENT_TRANSITIONED_EVENT_TYPE: str = "incident.transitioned"
INCIDENT_CLOSED_EVENT_TYPE: str = "incident.closed"
DISPUTE_OPENED_EVENT_TYPE: str = "dispute.opened"
DISPUTE_RESOLVED_EVENT_TYPE: str = "dispute.resolved"
VIOLATION_STAGE_CHANGED_EVENT_TYPE: str = "violation.stage_changed"
SLA_BREACHED_EVENT_TYPE: str = "sla.breached"
SLA_ESCALATED_EVENT_TYPE: str = "sla.escalated"
INCIDENT_REPORTED_EVENT_TYPE: str = "incident.reported"
INCIDENT_ASSIGNED_EVENT_TYPE: str = "incident.assigned"
INVESTIGATION_SUBMITTED_EVENT_TYPE: str = "investigation.submitted"
SEVERITY_CHANGE_PROPOSED_EVENT_TYPE: str = "incident.severity_change_proposed"
SEVERITY_CHANGE_DECIDED_EVENT_TYPE: str = "incident.severity_change_decided"


@dataclass(frozen=True, eq=True)
class TransitionEventPayload:
    """Payload describing a committed incident transition.

    Attributes:
        incident_id: Incident that changed.
        tenant_id: Owning tenant.
        action: Workflow action that caused the change.
        actor_id: Actor that performed it.
        from_status: Status before the change.
        to_status: Status after the change.
        occurred_at: Commit timestamp.
        extra: Action specific fields (reasons, decisions).
    """

    incident_id: UUID
    tenant_id: UUID
    action: str
    actor_id: UUID
    from_status: IncidentStatus
    to_status: IncidentStatus
    occurred_at: datetime
    extra: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "incident_id": str(self.incident_id),
            "tenant_id": str(self.tenant_id),
            "action": self.action,
            "actor_id": str(self.actor_id),
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "occurred_at": self.occurred_at.isoformat(),
            **self.extra,
        }


@dataclass(frozen=True, eq=True)
class SlaEscalationEventPayload:
    """Payload for an SLA level change.

    Attributes:
        event_id: Escalatable event that crossed a threshold.
        tenant_id: Owning tenant.
        source_id: Incident or alert the event tracks.
        level: New escalation level (1-3).
        elapsed_seconds: Time since the event was triggered.
        threshold_seconds: Threshold that was exceeded.
        channels: Notification channels from the SLA config.
        recipients: Escalation recipients from the SLA config.
        kind: Timer kind (screening, approval, investigation, alert).
    """

    event_id: UUID
    tenant_id: UUID
    source_id: UUID
    level: int
    elapsed_seconds: float
    threshold_seconds: int
    channels: tuple[str, ...] = ()
    recipients: tuple[str, ...] = ()
    kind: str | None = None

    @property
    def event_type(self) -> str:
        return SLA_BREACHED_EVENT_TYPE if self.level == 1 else SLA_ESCALATED_EVENT_TYPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "tenant_id": str(self.tenant_id),
            "source_id": str(self.source_id),
            "kind": self.kind,
            "level": self.level,
            "critical": self.level >= 3,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "threshold_seconds": self.threshold_seconds,
            "channels": list(self.channels),
            "recipients": list(self.recipients),
        }
