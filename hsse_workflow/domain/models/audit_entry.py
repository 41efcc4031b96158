"""Append-only audit entry written in the same commit as a transition."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from hsse_workflow.domain.models.incident import IncidentStatus

ADMIN_OVERRIDE_TAG = "admin_override"
CLOSED_ON_SPOT_TAG = "closed_on_spot"


@dataclass(frozen=True, eq=True)
class AuditEntry:
    """Record of one workflow action.

    Attributes:
        id: Unique identifier.
        tenant_id: Owning tenant.
        incident_id: Incident acted upon.
        actor_id: Actor that performed the action.
        action: Action name (e.g., "manager_rejected").
        created_at: When the action was committed.
        from_status: Status before the action.
        to_status: Status after the action.
        details: Action specific payload.
        tags: Classification tags (e.g., "admin_override").
    """

    id: UUID
    tenant_id: UUID
    incident_id: UUID
    actor_id: UUID
    action: str
    created_at: datetime
    from_status: IncidentStatus | None = None
    to_status: IncidentStatus | None = None
    details: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    tags: tuple[str, ...] = ()
