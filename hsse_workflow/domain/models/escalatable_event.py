"""Escalatable event model for SLA timing.

Any entity subject to SLA timing (incidents waiting for screening or
manager approval, investigations in progress, emergency alerts) is
tracked as an EscalatableEvent. The escalation level only
moves upward while the event is unacknowledged and unresolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

MAX_ESCALATION_LEVEL = 3


class EscalatableEventKind(str, Enum):
    INCIDENT_SCREENING = "incident_screening"
    INCIDENT_APPROVAL = "incident_approval"
    INVESTIGATION = "investigation"
    EMERGENCY_ALERT = "emergency_alert"


@dataclass(frozen=True, eq=True)
class EscalatableEvent:
    """An entity under SLA timing.

    Attributes:
        id: Unique identifier.
        tenant_id: Owning tenant.
        kind: What is being timed.
        source_id: Incident or alert the event tracks.
        category: SLA category (e.g., incident category or alert type).
        priority: SLA priority (e.g., severity or alert priority).
        triggered_at: Start of the SLA clock.
        acknowledged_at: When someone acknowledged the event.
        resolved_at: When the tracked work finished.
        escalation_level: 0 (none) to 3 (critical).
        sla_breach_notified_at: When the level 1 breach was notified.
        version: Optimistic concurrency counter.
    """

    id: UUID
    tenant_id: UUID
    kind: EscalatableEventKind
    source_id: UUID
    category: str
    priority: str
    triggered_at: datetime
    acknowledged_at: datetime | None = field(default=None)
    resolved_at: datetime | None = field(default=None)
    escalation_level: int = field(default=0)
    sla_breach_notified_at: datetime | None = field(default=None)
    version: int = field(default=0)

    def __post_init__(self) -> None:
        if not 0 <= self.escalation_level <= MAX_ESCALATION_LEVEL:
            raise ValueError(
                f"escalation_level must be between 0 and {MAX_ESCALATION_LEVEL}"
            )

    @property
    def is_active(self) -> bool:
        """True while the event is neither acknowledged nor resolved."""
        return self.acknowledged_at is None and self.resolved_at is None

    def with_escalation_level(
        self, level: int, breach_notified_at: datetime | None = None
    ) -> EscalatableEvent:
        """Raise the escalation level. Levels never decrease."""
        if level < self.escalation_level:
            raise ValueError(
                f"Escalation level cannot decrease ({self.escalation_level} -> {level})"
            )
        return replace(
            self,
            escalation_level=level,
            sla_breach_notified_at=breach_notified_at or self.sla_breach_notified_at,
        )

    def acknowledge(self, at: datetime) -> EscalatableEvent:
        return replace(self, acknowledged_at=self.acknowledged_at or at)

    def resolve(self, at: datetime) -> EscalatableEvent:
        return replace(self, resolved_at=self.resolved_at or at)
