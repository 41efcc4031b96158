"""Notification dispatcher port.

Outbound delivery (push, email, SMS) is external. From the workflow's
point of view dispatch is fire-and-forget: failures are logged and never
retried or rolled back by the engine.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID


class NotificationDispatcherProtocol(Protocol):
    """Protocol for outbound workflow notifications."""

    async def notify(
        self,
        event_type: str,
        entity_id: UUID,
        payload: dict[str, Any],
    ) -> None:
        """Dispatch a notification about an incident or alert.

        Args:
            event_type: Notification event type (e.g., "incident.transitioned").
            entity_id: Incident or alert the notification is about.
            payload: JSON-serializable notification body.

        Raises:
            DispatchError: If delivery failed.
        """
        ...
