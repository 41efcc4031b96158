"""Notification dispatcher stub for testing.

Records every notification instead of delivering it. Can be switched to
fail or hang so tests can check that dispatch failures never undo a
committed transition.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from hsse_workflow.application.ports.notification_dispatcher import (
    NotificationDispatcherProtocol,
)
from hsse_workflow.domain.errors.notification import DispatchError


@dataclass(frozen=True)
class DispatchedNotification:
    """A notification captured by the stub."""

    event_type: str
    entity_id: UUID
    payload: dict[str, Any]


@dataclass
class FailureMode:
    """Configuration for simulating dispatch failures.

    Attributes:
        fails: Every notify raises DispatchError.
        delay_seconds: Sleep before recording (dispatch timeout tests).
    """

    fails: bool = False
    delay_seconds: float = 0.0


class NotificationDispatcherStub(NotificationDispatcherProtocol):
    """Recording notification dispatcher.

    Usage:
        dispatcher = NotificationDispatcherStub()
        ...
        assert dispatcher.event_types() == ["incident.reported"]

        dispatcher.set_failure_mode(FailureMode(fails=True))
    """

    def __init__(self) -> None:
        self._sent: list[DispatchedNotification] = []
        self._failure_mode = FailureMode()
        self._failure_count = 0

    def set_failure_mode(self, mode: FailureMode) -> None:
        self._failure_mode = mode

    def clear_failure_mode(self) -> None:
        self._failure_mode = FailureMode()

    def clear(self) -> None:
        self._sent.clear()
        self._failure_mode = FailureMode()
        self._failure_count = 0

    @property
    def sent(self) -> list[DispatchedNotification]:
        return list(self._sent)

    @property
    def failure_count(self) -> int:
        """Get the number of notify calls that failed."""
        return self._failure_count

    def event_types(self) -> list[str]:
        return [n.event_type for n in self._sent]

    def sent_of_type(self, event_type: str) -> list[DispatchedNotification]:
        return [n for n in self._sent if n.event_type == event_type]

    async def notify(
        self,
        event_type: str,
        entity_id: UUID,
        payload: dict[str, Any],
    ) -> None:
        if self._failure_mode.delay_seconds:
            await asyncio.sleep(self._failure_mode.delay_seconds)
        if self._failure_mode.fails:
            self._failure_count += 1
            raise DispatchError(event_type, entity_id, "Simulated dispatch failure")
        self._sent.append(
            DispatchedNotification(
                event_type=event_type, entity_id=entity_id, payload=dict(payload)
            )
        )
