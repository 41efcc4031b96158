"""RFC 7807 problem detail model shared by every route."""

from typing import Any

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """Error body returned for rejected workflow operations.

    Attributes:
        type: URI identifying the rejection code.
        title: Short human readable summary.
        status: HTTP status code.
        detail: Human readable explanation.
        instance: Request URL.
        code: Workflow rejection code.
        retryable: Whether the same request may be retried unchanged.
        context: Structured rejection details.
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str
    code: str
    retryable: bool = False
    context: dict[str, Any] = Field(default_factory=dict)
