"""Persistence failure errors.

A StoreError means the persistent store could not complete a read or a
commit (I/O failure or timeout). A transition whose commit raises it is
aborted entirely and reported as retryable; the SLA sweep skips the
affected event and moves on.
"""

from __future__ import annotations

from typing import Any

from hsse_workflow.domain.errors.workflow import RejectionCode, WorkflowError


class StoreError(WorkflowError):
    """Raised when persistent store I/O fails.

    Attributes:
        operation: Store operation that failed (e.g., "commit", "get_incident").
        timed_out: True when the failure was a timeout.
    """

    code = RejectionCode.STORE_ERROR
    retryable = True

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        timed_out: bool = False,
    ) -> None:
        self.operation = operation
        self.timed_out = timed_out
        suffix = " (timed out)" if timed_out else ""
        super().__init__(message or f"Store operation '{operation}' failed{suffix}")

    def details(self) -> dict[str, Any]:
        return {"operation": self.operation, "timed_out": self.timed_out}
