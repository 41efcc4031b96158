"""Application services for the HSSE workflow."""

from hsse_workflow.application.services.closure_service import ClosureService
from hsse_workflow.application.services.dispute_service import DisputeService
from hsse_workflow.application.services.incident_workflow_service import (
    IncidentWorkflowService,
)
from hsse_workflow.application.services.sla_escalation_monitor import (
    SlaEscalationMonitor,
)
from hsse_workflow.application.services.sla_escalation_service import (
    SlaEscalationService,
)
from hsse_workflow.application.services.transition_engine import (
    TransitionEngine,
    run_workflow_operation,
)
from hsse_workflow.application.services.violation_workflow_service import (
    ViolationWorkflowService,
)

__all__ = [
    "ClosureService",
    "DisputeService",
    "IncidentWorkflowService",
    "SlaEscalationMonitor",
    "SlaEscalationService",
    "TransitionEngine",
    "ViolationWorkflowService",
    "run_workflow_operation",
]
