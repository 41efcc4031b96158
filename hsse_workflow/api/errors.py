"""Mapping of workflow rejections to RFC 7807 HTTP errors."""

from __future__ import annotations

from typing import Any, TypeVar

from fastapi import HTTPException, Request

from hsse_workflow.api.models.errors import ProblemDetail
from hsse_workflow.application.dtos.workflow_result import WorkflowResult
from hsse_workflow.bootstrap.workflow import WorkflowServices
from hsse_workflow.domain.errors.workflow import RejectionCode

T = TypeVar("T")

ERROR_TYPE_BASE = "https://hsse-workflow.dev/errors"

_STATUS_FOR_CODE: dict[RejectionCode, int] = {
    RejectionCode.FORBIDDEN: 403,
    RejectionCode.NOT_FOUND: 404,
    RejectionCode.INVALID_TRANSITION: 409,
    RejectionCode.MISSING_JUSTIFICATION: 422,
    RejectionCode.PREREQUISITES_NOT_MET: 422,
    RejectionCode.STORE_ERROR: 503,
    RejectionCode.DISPATCH_ERROR: 503,
}

_TITLE_FOR_CODE: dict[RejectionCode, str] = {
    RejectionCode.FORBIDDEN: "Forbidden",
    RejectionCode.NOT_FOUND: "Not Found",
    RejectionCode.INVALID_TRANSITION: "Invalid Transition",
    RejectionCode.MISSING_JUSTIFICATION: "Missing Justification",
    RejectionCode.PREREQUISITES_NOT_MET: "Prerequisites Not Met",
    RejectionCode.STORE_ERROR: "Service Unavailable",
    RejectionCode.DISPATCH_ERROR: "Service Unavailable",
}

# Documented on every mutating route
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    403: {"model": ProblemDetail, "description": "Actor may not perform the action"},
    404: {"model": ProblemDetail, "description": "Incident not found"},
    409: {"model": ProblemDetail, "description": "Transition not allowed or stale"},
    422: {"model": ProblemDetail, "description": "Justification or prerequisites missing"},
    503: {"model": ProblemDetail, "description": "Store unavailable, retry later"},
}


def problem_exception(
    result: WorkflowResult[Any],
    request: Request,
    retry_after_seconds: int,
) -> HTTPException:
    """Build the HTTPException for a failed workflow result.

    Store failures are the only retryable rejection and carry a
    Retry-After header.
    """
    code = result.code or RejectionCode.INVALID_TRANSITION
    status_code = _STATUS_FOR_CODE[code]
    headers = {"Retry-After": str(retry_after_seconds)} if result.retryable else None
    return HTTPException(
        status_code=status_code,
        detail={
            "type": f"{ERROR_TYPE_BASE}/{code.value.replace('_', '-')}",
            "title": _TITLE_FOR_CODE[code],
            "status": status_code,
            "detail": result.message,
            "instance": str(request.url),
            "code": code.value,
            "retryable": result.retryable,
            "context": result.details,
        },
        headers=headers,
    )


def unwrap_or_raise(
    result: WorkflowResult[T],
    request: Request,
    services: WorkflowServices,
) -> T:
    """Return the value of a successful result or raise its HTTP error."""
    if not result.ok:
        raise problem_exception(
            result, request, services.workflow_config.store_retry_after_seconds
        )
    return result.unwrap()
