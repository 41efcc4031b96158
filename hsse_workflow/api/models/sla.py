"""API models for SLA configuration and sweep endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hsse_workflow.application.dtos.workflow_result import SweepSummary
from hsse_workflow.domain.models.escalatable_event import (
    EscalatableEvent,
    EscalatableEventKind,
)
from hsse_workflow.domain.models.sla_config import (
    DEFAULT_ESCALATION_AFTER_SECONDS,
    DEFAULT_MAX_RESPONSE_SECONDS,
    DEFAULT_SECOND_ESCALATION_SECONDS,
    WILDCARD,
    SlaConfig,
)


class SlaConfigModel(BaseModel):
    """Escalation thresholds for one tenant, category and priority."""

    tenant_id: UUID
    category: str = WILDCARD
    priority: str = WILDCARD
    max_response_seconds: int = Field(default=DEFAULT_MAX_RESPONSE_SECONDS, gt=0)
    escalation_after_seconds: int = Field(default=DEFAULT_ESCALATION_AFTER_SECONDS, gt=0)
    second_escalation_seconds: int = Field(
        default=DEFAULT_SECOND_ESCALATION_SECONDS, gt=0
    )
    notification_channels: list[str] = Field(default_factory=lambda: ["push"])
    escalation_recipients: list[str] = Field(default_factory=list)

    def to_domain(self) -> SlaConfig:
        """Build the domain config.

        Raises:
            ValueError: If the thresholds are not ordered.
        """
        return SlaConfig(
            tenant_id=self.tenant_id,
            category=self.category,
            priority=self.priority,
            max_response_seconds=self.max_response_seconds,
            escalation_after_seconds=self.escalation_after_seconds,
            second_escalation_seconds=self.second_escalation_seconds,
            notification_channels=tuple(self.notification_channels),
            escalation_recipients=tuple(self.escalation_recipients),
        )

    @classmethod
    def from_domain(cls, config: SlaConfig) -> SlaConfigModel:
        return cls(
            tenant_id=config.tenant_id,
            category=config.category,
            priority=config.priority,
            max_response_seconds=config.max_response_seconds,
            escalation_after_seconds=config.escalation_after_seconds,
            second_escalation_seconds=config.second_escalation_seconds,
            notification_channels=list(config.notification_channels),
            escalation_recipients=list(config.escalation_recipients),
        )


class EscalatableEventResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    tenant_id: UUID
    kind: EscalatableEventKind
    source_id: UUID
    category: str
    priority: str
    triggered_at: datetime
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None
    escalation_level: int
    sla_breach_notified_at: datetime | None = None

    @classmethod
    def from_domain(cls, event: EscalatableEvent) -> EscalatableEventResponse:
        return cls(
            id=event.id,
            tenant_id=event.tenant_id,
            kind=event.kind,
            source_id=event.source_id,
            category=event.category,
            priority=event.priority,
            triggered_at=event.triggered_at,
            acknowledged_at=event.acknowledged_at,
            resolved_at=event.resolved_at,
            escalation_level=event.escalation_level,
            sla_breach_notified_at=event.sla_breach_notified_at,
        )


class SweepSummaryResponse(BaseModel):
    """Counts from one SLA sweep."""

    processed: int
    breached: int
    escalated: int
    skipped: int

    @classmethod
    def from_domain(cls, summary: SweepSummary) -> SweepSummaryResponse:
        return cls(**summary.to_dict())


class MonitorStatusResponse(BaseModel):
    running: bool
    interval_seconds: float
    sweep_in_progress: bool
    skipped_ticks: int
    last_summary: SweepSummaryResponse | None = None


class TrackEventRequest(BaseModel):
    """Start an SLA timer for an external source (e.g. an emergency alert)."""

    tenant_id: UUID
    kind: EscalatableEventKind = EscalatableEventKind.EMERGENCY_ALERT
    source_id: UUID
    category: str = WILDCARD
    priority: str = WILDCARD
