"""Corrective action model (read-only input to the closure gate)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class CorrectiveActionStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    VERIFIED = "verified"


@dataclass(frozen=True, eq=True)
class CorrectiveAction:
    """An action assigned to prevent recurrence.

    Attributes:
        id: Unique identifier.
        incident_id: Incident the action belongs to.
        title: Short description.
        status: Progress of the action.
    """

    id: UUID
    incident_id: UUID
    title: str
    status: CorrectiveActionStatus = CorrectiveActionStatus.OPEN

    @property
    def is_completed(self) -> bool:
        return self.status in (
            CorrectiveActionStatus.COMPLETED,
            CorrectiveActionStatus.VERIFIED,
        )

    @property
    def is_verified(self) -> bool:
        return self.status is CorrectiveActionStatus.VERIFIED
