"""Pure domain services for the HSSE workflow."""

from hsse_workflow.domain.services.closure_gate import (
    evaluate_closure,
    severity_lock_denial,
)
from hsse_workflow.domain.services.role_gate import (
    ACTION_RULES,
    TRANSITION_ACTIONS,
    Assignment,
    TransitionRule,
    WorkflowAction,
    action_for,
    can_perform,
    check_permission,
    permission_denial,
)

__all__ = [
    "ACTION_RULES",
    "TRANSITION_ACTIONS",
    "Assignment",
    "TransitionRule",
    "WorkflowAction",
    "action_for",
    "can_perform",
    "check_permission",
    "evaluate_closure",
    "permission_denial",
    "severity_lock_denial",
]
