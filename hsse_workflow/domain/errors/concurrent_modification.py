"""Concurrent modification error for compare-and-swap commits.

Raised by a store when the version an operation read no longer matches
the stored version. Two actors racing on the same incident resolve
deterministically: the first commit wins, the other receives this error,
which is an InvalidTransitionError so callers see a stale transition
rather than a silent overwrite.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID

from hsse_workflow.domain.errors.workflow import InvalidTransitionError


class ConcurrentModificationError(InvalidTransitionError):
    """Raised when a CAS commit fails because the record changed underneath.

    This is a recoverable error - the caller should re-read the entity
    and decide whether the operation still applies.

    Attributes:
        entity_id: ID of the record being modified.
        expected_version: Version the caller read.
        actual_version: Version found at commit time (None if unknown).
        operation: Description of the operation that failed.
    """

    def __init__(
        self,
        entity_id: UUID,
        expected_version: int,
        actual_version: int | None = None,
        operation: str = "transition",
        current_state: Enum | None = None,
    ) -> None:
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        self.operation = operation
        message = (
            f"Concurrent modification of {entity_id} during {operation}: "
            f"expected version {expected_version}, found {actual_version}"
        )
        super().__init__(
            from_state=current_state or _UnknownState.UNKNOWN,
            to_state=None,
            message=message,
        )

    def details(self) -> dict[str, Any]:
        return {
            "entity_id": str(self.entity_id),
            "expected_version": self.expected_version,
            "actual_version": self.actual_version,
            "operation": self.operation,
            "stale": True,
        }


class _UnknownState(Enum):
    UNKNOWN = "unknown"
