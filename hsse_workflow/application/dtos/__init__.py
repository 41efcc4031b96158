"""Application-layer DTOs for the HSSE workflow.

DTOs keep the application layer independent of the API layer; routes
convert them to Pydantic models.
"""

from hsse_workflow.application.dtos.commands import (
    InvestigationFindings,
    ReportIncidentCommand,
    TransitionPayload,
)
from hsse_workflow.application.dtos.workflow_result import SweepSummary, WorkflowResult

__all__ = [
    "InvestigationFindings",
    "ReportIncidentCommand",
    "SweepSummary",
    "TransitionPayload",
    "WorkflowResult",
]
