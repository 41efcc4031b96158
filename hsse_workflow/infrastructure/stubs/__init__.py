"""Infrastructure stubs for development and testing.

This module provides in-memory implementations of the workflow ports
for use in development and testing environments.

Available stubs:
- IncidentStoreStub: Compare-and-swap incident store with failure injection
- EscalationStoreStub: SLA event and config store with failure injection
- IdentityProviderStub: Fixed actor directory
- NotificationDispatcherStub: Records notifications, can fail or hang

WARNING: These stubs are NOT for production use.
"""

from hsse_workflow.infrastructure.stubs.escalation_store_stub import (
    EscalationStoreStub,
)
from hsse_workflow.infrastructure.stubs.escalation_store_stub import (
    FailureMode as EscalationStoreFailureMode,
)
from hsse_workflow.infrastructure.stubs.identity_provider_stub import (
    IdentityProviderStub,
)
from hsse_workflow.infrastructure.stubs.incident_store_stub import (
    FailureMode as IncidentStoreFailureMode,
)
from hsse_workflow.infrastructure.stubs.incident_store_stub import IncidentStoreStub
from hsse_workflow.infrastructure.stubs.notification_dispatcher_stub import (
    DispatchedNotification,
    NotificationDispatcherStub,
)
from hsse_workflow.infrastructure.stubs.notification_dispatcher_stub import (
    FailureMode as DispatcherFailureMode,
)

__all__: list[str] = [
    "DispatchedNotification",
    "DispatcherFailureMode",
    "EscalationStoreFailureMode",
    "EscalationStoreStub",
    "IdentityProviderStub",
    "IncidentStoreFailureMode",
    "IncidentStoreStub",
    "NotificationDispatcherStub",
]
