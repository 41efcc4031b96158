"""Notification dispatch errors.

DispatchError is raised by notification dispatcher implementations. The
workflow engine logs and swallows it at the point of notification; it
never rolls back a committed transition.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from hsse_workflow.domain.errors.workflow import RejectionCode, WorkflowError


class DispatchError(WorkflowError):
    """Raised when an outbound notification could not be delivered.

    Attributes:
        event_type: Notification event type that failed.
        entity_id: Incident or alert the notification was about.
    """

    code = RejectionCode.DISPATCH_ERROR

    def __init__(
        self,
        event_type: str,
        entity_id: UUID,
        message: str | None = None,
    ) -> None:
        self.event_type = event_type
        self.entity_id = entity_id
        super().__init__(message or f"Failed to dispatch {event_type} for {entity_id}")

    def details(self) -> dict[str, Any]:
        return {"event_type": self.event_type, "entity_id": str(self.entity_id)}
