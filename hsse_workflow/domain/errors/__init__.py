"""Domain errors for the HSSE workflow.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from HsseWorkflowError.
"""

from hsse_workflow.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
)
from hsse_workflow.domain.errors.notification import DispatchError
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.errors.workflow import (
    ForbiddenError,
    InvalidEvidenceError,
    InvalidTransitionError,
    MissingJustificationError,
    NotFoundError,
    PrerequisitesNotMetError,
    RejectionCode,
    WorkflowError,
)

__all__: list[str] = [
    "ConcurrentModificationError",
    "DispatchError",
    "ForbiddenError",
    "InvalidEvidenceError",
    "InvalidTransitionError",
    "MissingJustificationError",
    "NotFoundError",
    "PrerequisitesNotMetError",
    "RejectionCode",
    "StoreError",
    "WorkflowError",
]
