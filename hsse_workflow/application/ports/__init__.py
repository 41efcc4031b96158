"""Application ports (interfaces) for the HSSE workflow.

Ports define the contracts the workflow needs from external
collaborators. Infrastructure adapters and stubs implement them.
"""

from hsse_workflow.application.ports.escalation_store import (
    EscalationStoreProtocol,
)
from hsse_workflow.application.ports.identity_provider import (
    IdentityProviderProtocol,
)
from hsse_workflow.application.ports.incident_store import (
    IncidentStoreProtocol,
    TransitionCommit,
)
from hsse_workflow.application.ports.notification_dispatcher import (
    NotificationDispatcherProtocol,
)
from hsse_workflow.application.ports.sla_tracker import SlaTrackerProtocol
from hsse_workflow.application.ports.time_authority import TimeAuthorityProtocol
from hsse_workflow.application.ports.workflow_metrics import WorkflowMetricsProtocol

__all__: list[str] = [
    "EscalationStoreProtocol",
    "IdentityProviderProtocol",
    "IncidentStoreProtocol",
    "NotificationDispatcherProtocol",
    "SlaTrackerProtocol",
    "TimeAuthorityProtocol",
    "TransitionCommit",
    "WorkflowMetricsProtocol",
]
