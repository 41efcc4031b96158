"""Workflow result DTOs.

Public workflow operations never raise for expected rejections. They
return a WorkflowResult: either a success carrying the committed value,
or a typed failure carrying the rejection code, a human readable
message, and whether the caller may retry unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from hsse_workflow.domain.errors.workflow import RejectionCode, WorkflowError

T = TypeVar("T")


@dataclass(frozen=True)
class WorkflowResult(Generic[T]):
    """Discriminated success/failure of a workflow operation.

    Attributes:
        ok: True on success.
        value: Committed value (usually the updated Incident) on success.
        code: Rejection code on failure.
        message: Human readable failure message.
        retryable: True when the same request may be retried unchanged.
        details: Structured failure context.
    """

    ok: bool
    value: T | None = None
    code: RejectionCode | None = None
    message: str = ""
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, value: T) -> WorkflowResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: WorkflowError) -> WorkflowResult[T]:
        return cls(
            ok=False,
            code=error.code,
            message=str(error),
            retryable=error.retryable,
            details=error.details(),
        )

    def unwrap(self) -> T:
        """Return the value of a successful result.

        Raises:
            ValueError: If the result is a failure.
        """
        if not self.ok:
            raise ValueError(f"Cannot unwrap failed result ({self.code}): {self.message}")
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class SweepSummary:
    """Counts from one SLA sweep.

    Attributes:
        processed: Events examined.
        breached: Events moved from level 0 to level 1.
        escalated: Events moved to level 2 or 3.
        skipped: Events skipped after a store error or version conflict.
    """

    processed: int = 0
    breached: int = 0
    escalated: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "breached": self.breached,
            "escalated": self.escalated,
            "skipped": self.skipped,
        }
