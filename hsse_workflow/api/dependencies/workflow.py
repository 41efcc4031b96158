"""Workflow service dependencies.

FastAPI dependency injection for the wired workflow services. The
application factory sets the instance at startup; tests inject one built
over stubs and a fake clock.
"""

from hsse_workflow.bootstrap.workflow import WorkflowServices

# Singleton instance (initialized at startup)
_workflow_services: WorkflowServices | None = None


def get_workflow_services() -> WorkflowServices:
    """Get the workflow services singleton.

    Returns:
        WorkflowServices instance.

    Raises:
        RuntimeError: If services not initialized (startup error).
    """
    if _workflow_services is None:
        raise RuntimeError(
            "WorkflowServices not initialized. "
            "Call set_workflow_services() during startup."
        )
    return _workflow_services


def set_workflow_services(services: WorkflowServices) -> None:
    """Set the workflow services singleton.

    Args:
        services: The wired workflow services to serve requests with.
    """
    global _workflow_services
    _workflow_services = services


def reset_workflow_services() -> None:
    global _workflow_services
    _workflow_services = None


__all__ = [
    "get_workflow_services",
    "reset_workflow_services",
    "set_workflow_services",
]
