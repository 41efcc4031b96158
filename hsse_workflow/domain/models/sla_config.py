"""SLA threshold configuration.

Thresholds are stored per (tenant, category, priority). A wildcard
config (category and priority "*") is the tenant-level default; with no
tenant config at all, the hard-coded default (2 / 5 / 10 minutes) applies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

WILDCARD = "*"

DEFAULT_MAX_RESPONSE_SECONDS = 120
DEFAULT_ESCALATION_AFTER_SECONDS = 300
DEFAULT_SECOND_ESCALATION_SECONDS = 600


@dataclass(frozen=True, eq=True)
class SlaConfig:
    """Escalation thresholds for one tenant/category/priority.

    Attributes:
        tenant_id: Owning tenant.
        category: Event category or WILDCARD.
        priority: Event priority or WILDCARD.
        max_response_seconds: Elapsed time before the level 1 breach.
        escalation_after_seconds: Elapsed time before level 2.
        second_escalation_seconds: Elapsed time before level 3 (critical).
        notification_channels: Channels used for escalation notices.
        escalation_recipients: Recipients of escalation notices.
    """

    tenant_id: UUID
    category: str = WILDCARD
    priority: str = WILDCARD
    max_response_seconds: int = DEFAULT_MAX_RESPONSE_SECONDS
    escalation_after_seconds: int = DEFAULT_ESCALATION_AFTER_SECONDS
    second_escalation_seconds: int = DEFAULT_SECOND_ESCALATION_SECONDS
    notification_channels: tuple[str, ...] = field(default=("push",))
    escalation_recipients: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.max_response_seconds <= 0:
            raise ValueError("max_response_seconds must be positive")
        if not (
            self.max_response_seconds
            <= self.escalation_after_seconds
            <= self.second_escalation_seconds
        ):
            raise ValueError(
                "SLA thresholds must be ordered: "
                "max_response <= escalation_after <= second_escalation"
            )

    @property
    def is_tenant_default(self) -> bool:
        return self.category == WILDCARD and self.priority == WILDCARD

    def threshold_for_level(self, level: int) -> int:
        """Elapsed seconds that must be exceeded to reach ``level``."""
        thresholds = {
            1: self.max_response_seconds,
            2: self.escalation_after_seconds,
            3: self.second_escalation_seconds,
        }
        return thresholds[level]
