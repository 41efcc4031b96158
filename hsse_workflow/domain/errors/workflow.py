"""Workflow rejection errors.

This module defines the typed outcomes a workflow operation can be
rejected with. Each error carries a stable reason code so callers can
branch on the code and show the message.

Rejection codes:
- forbidden: role or assignment check failed
- invalid_transition: target unreachable from the current status, or stale
- missing_justification: required text below the minimum length
- prerequisites_not_met: closure checklist or fast-path conditions failed
- not_found: entity missing
- store_error: persistence I/O failed (retryable)
- dispatch_error: notification delivery failed (never surfaced to callers)
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from hsse_workflow.domain.exceptions import HsseWorkflowError

if TYPE_CHECKING:
    from hsse_workflow.domain.models.incident import IncidentStatus


class RejectionCode(str, Enum):
    """Stable reason code attached to every workflow error."""

    FORBIDDEN = "forbidden"
    INVALID_TRANSITION = "invalid_transition"
    MISSING_JUSTIFICATION = "missing_justification"
    PREREQUISITES_NOT_MET = "prerequisites_not_met"
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"
    DISPATCH_ERROR = "dispatch_error"


class WorkflowError(HsseWorkflowError):
    """Base error for every rejected workflow operation.

    Attributes:
        code: Stable reason code.
        retryable: True when the caller may retry the same request unchanged.
    """

    code: RejectionCode = RejectionCode.INVALID_TRANSITION
    retryable: bool = False

    def details(self) -> dict[str, Any]:
        """Structured context for logs and API responses."""
        return {}


class ForbiddenError(WorkflowError):
    """Raised when the actor's roles or assignment do not allow the action.

    Attributes:
        actor_id: The actor that was refused.
        action: Name of the refused workflow action.
        reason: Which check failed.
    """

    code = RejectionCode.FORBIDDEN

    def __init__(self, actor_id: UUID, action: str, reason: str) -> None:
        self.actor_id = actor_id
        self.action = action
        self.reason = reason
        super().__init__(f"Actor {actor_id} may not perform {action}: {reason}")

    def details(self) -> dict[str, Any]:
        return {"actor_id": str(self.actor_id), "action": self.action, "reason": self.reason}


class InvalidTransitionError(WorkflowError):
    """Raised when the target status is unreachable from the current status.

    Attributes:
        from_state: Current status of the entity.
        to_state: Attempted target status.
        allowed_transitions: Valid targets from the current status.
    """

    code = RejectionCode.INVALID_TRANSITION

    def __init__(
        self,
        from_state: IncidentStatus | Enum,
        to_state: IncidentStatus | Enum | None,
        allowed_transitions: Sequence[Enum] | None = None,
        message: str | None = None,
    ) -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.allowed_transitions = list(allowed_transitions or [])

        if message is None:
            target = to_state.value if to_state is not None else "?"
            allowed_str = (
                f" Valid transitions: {sorted(s.value for s in self.allowed_transitions)}"
                if self.allowed_transitions
                else ""
            )
            message = f"Invalid transition: {from_state.value} -> {target}.{allowed_str}"
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value if self.to_state is not None else None,
            "allowed_transitions": sorted(s.value for s in self.allowed_transitions),
        }


class MissingJustificationError(WorkflowError):
    """Raised when a required text field is empty or too short.

    Attributes:
        field: Name of the payload field that failed.
        min_length: Required minimum length after stripping whitespace.
    """

    code = RejectionCode.MISSING_JUSTIFICATION

    def __init__(self, field: str, min_length: int) -> None:
        self.field = field
        self.min_length = min_length
        super().__init__(
            f"'{field}' is required and must be at least {min_length} characters"
        )

    def details(self) -> dict[str, Any]:
        return {"field": self.field, "min_length": self.min_length}


class PrerequisitesNotMetError(WorkflowError):
    """Raised when a gated transition's preconditions do not hold.

    Attributes:
        blocking_reasons: Human-readable reasons, one per failed condition.
    """

    code = RejectionCode.PREREQUISITES_NOT_MET

    def __init__(self, blocking_reasons: Sequence[str], message: str | None = None) -> None:
        self.blocking_reasons = tuple(blocking_reasons)
        super().__init__(
            message or "Prerequisites not met: " + "; ".join(self.blocking_reasons)
        )

    def details(self) -> dict[str, Any]:
        return {"blocking_reasons": list(self.blocking_reasons)}


class InvalidEvidenceError(PrerequisitesNotMetError):
    """Raised when on-the-spot closure evidence photos are unacceptable."""


class NotFoundError(WorkflowError):
    """Raised when a referenced entity does not exist.

    Attributes:
        entity: Entity kind (incident, investigation, dispute, event).
        entity_id: The missing identifier.
    """

    code = RejectionCode.NOT_FOUND

    def __init__(self, entity: str, entity_id: UUID) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "entity_id": str(self.entity_id)}
