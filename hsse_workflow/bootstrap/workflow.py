"""Bootstrap wiring for the HSSE workflow services.

Builds the transition engine and every service on top of it from a set
of ports. Without explicit ports the in-memory stubs are used, which is
what development and tests run against.
"""

from __future__ import annotations

from dataclasses import dataclass

from hsse_workflow.application.ports.escalation_store import EscalationStoreProtocol
from hsse_workflow.application.ports.identity_provider import IdentityProviderProtocol
from hsse_workflow.application.ports.incident_store import IncidentStoreProtocol
from hsse_workflow.application.ports.notification_dispatcher import (
    NotificationDispatcherProtocol,
)
from hsse_workflow.application.ports.time_authority import TimeAuthorityProtocol
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
from hsse_workflow.application.services.transition_engine import TransitionEngine
from hsse_workflow.application.services.violation_workflow_service import (
    ViolationWorkflowService,
)
from hsse_workflow.config.workflow_config import (
    DEFAULT_SLA_SWEEP_CONFIG,
    DEFAULT_WORKFLOW_CONFIG,
    SlaSweepConfig,
    WorkflowConfig,
)
from hsse_workflow.infrastructure.adapters.system_time_authority import (
    SystemTimeAuthority,
)
from hsse_workflow.infrastructure.monitoring.sla_metrics import SlaMetricsCollector
from hsse_workflow.infrastructure.stubs.escalation_store_stub import (
    EscalationStoreStub,
)
from hsse_workflow.infrastructure.stubs.identity_provider_stub import (
    IdentityProviderStub,
)
from hsse_workflow.infrastructure.stubs.incident_store_stub import IncidentStoreStub
from hsse_workflow.infrastructure.stubs.notification_dispatcher_stub import (
    NotificationDispatcherStub,
)


@dataclass(frozen=True)
class WorkflowServices:
    """Every wired workflow service plus the ports they share."""

    engine: TransitionEngine
    incidents: IncidentWorkflowService
    disputes: DisputeService
    violations: ViolationWorkflowService
    closure: ClosureService
    sla: SlaEscalationService
    monitor: SlaEscalationMonitor
    incident_store: IncidentStoreProtocol
    escalation_store: EscalationStoreProtocol
    identity_provider: IdentityProviderProtocol
    dispatcher: NotificationDispatcherProtocol
    time_authority: TimeAuthorityProtocol
    workflow_config: WorkflowConfig
    sla_config: SlaSweepConfig
    metrics: SlaMetricsCollector


def create_workflow_services(
    *,
    incident_store: IncidentStoreProtocol | None = None,
    escalation_store: EscalationStoreProtocol | None = None,
    identity_provider: IdentityProviderProtocol | None = None,
    dispatcher: NotificationDispatcherProtocol | None = None,
    time_authority: TimeAuthorityProtocol | None = None,
    workflow_config: WorkflowConfig | None = None,
    sla_config: SlaSweepConfig | None = None,
    metrics: SlaMetricsCollector | None = None,
) -> WorkflowServices:
    """Wire the workflow services.

    The SLA escalation service doubles as the engine's SLA tracker, so
    status changes start and stop the screening, approval and investigation
    timers. One metrics collector is shared by the engine, the SLA service
    and the monitor; tests pass one built on their own CollectorRegistry.
    """
    incident_store = incident_store or IncidentStoreStub()
    escalation_store = escalation_store or EscalationStoreStub()
    identity_provider = identity_provider or IdentityProviderStub()
    dispatcher = dispatcher or NotificationDispatcherStub()
    time_authority = time_authority or SystemTimeAuthority()
    workflow_config = workflow_config or DEFAULT_WORKFLOW_CONFIG
    sla_config = sla_config or DEFAULT_SLA_SWEEP_CONFIG
    metrics = metrics or SlaMetricsCollector()

    engine = TransitionEngine(
        store=incident_store,
        identity_provider=identity_provider,
        dispatcher=dispatcher,
        time_authority=time_authority,
        config=workflow_config,
        metrics=metrics,
    )
    sla = SlaEscalationService(
        store=escalation_store,
        dispatcher=dispatcher,
        time_authority=time_authority,
        config=sla_config,
        workflow_config=workflow_config,
        metrics=metrics,
    )
    engine.set_sla_tracker(sla)

    disputes = DisputeService(engine)
    return WorkflowServices(
        engine=engine,
        incidents=IncidentWorkflowService(engine, disputes),
        disputes=disputes,
        violations=ViolationWorkflowService(engine),
        closure=ClosureService(engine),
        sla=sla,
        monitor=SlaEscalationMonitor(
            sla, interval_seconds=sla_config.interval_seconds, metrics=metrics
        ),
        incident_store=incident_store,
        escalation_store=escalation_store,
        identity_provider=identity_provider,
        dispatcher=dispatcher,
        time_authority=time_authority,
        workflow_config=workflow_config,
        sla_config=sla_config,
        metrics=metrics,
    )


_services: WorkflowServices | None = None


def get_workflow_services() -> WorkflowServices:
    """Get the process-wide workflow services, configured from the environment."""
    global _services
    if _services is None:
        _services = create_workflow_services(
            workflow_config=WorkflowConfig.from_environment(),
            sla_config=SlaSweepConfig.from_environment(),
        )
    return _services


def set_workflow_services(services: WorkflowServices) -> None:
    """Set custom workflow services for testing."""
    global _services
    _services = services


def reset_workflow_services() -> None:
    """Reset the singleton for testing."""
    global _services
    _services = None
