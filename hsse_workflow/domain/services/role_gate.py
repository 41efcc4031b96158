"""Role gate domain service.

Answers "may this actor perform this action on this incident" by
combining three checks:

1. Static role table: the actor must hold one of the action's roles.
2. Dynamic assignment: some actions additionally require the actor to
   be the reporter, the assigned investigator, the assigned approver, or
   a member of the reporter's department.
3. Severity lock: only a top role may close a catastrophic incident.
   Admin override never bypasses this lock.

Every edge of the incident transition matrix maps to exactly one
WorkflowAction, and every WorkflowAction has exactly one TransitionRule.
Adding a status without extending both tables fails the completeness
tests.

All functions here are pure. They never read or write state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from hsse_workflow.domain.errors.workflow import (
    ForbiddenError,
    InvalidTransitionError,
)
from hsse_workflow.domain.models.actor import (
    ALL_ROLES,
    MEDIATOR_ROLES,
    TOP_ROLES,
    Actor,
    Role,
)
from hsse_workflow.domain.models.incident import Incident, IncidentStatus


class WorkflowAction(str, Enum):
    """Every action the workflow can perform on an incident."""

    START_SCREENING = "start_screening"
    CLOSE_ON_SPOT = "close_on_spot"
    SCREEN_INCIDENT = "screen_incident"
    RESUBMIT = "resubmit"
    REPORTER_RESPOND = "reporter_respond"
    MANAGER_DECIDE = "manager_decide"
    ESCALATE_TO_HSSE_MANAGER = "escalate_to_hsse_manager"
    OPEN_DISPUTE = "open_dispute"
    ACCEPT_REJECTION = "accept_rejection"
    RESOLVE_DISPUTE = "resolve_dispute"
    HSSE_MANAGER_DECIDE = "hsse_manager_decide"
    SUBMIT_VIOLATION = "submit_violation"
    REQUEST_CLOSURE = "request_closure"
    DEPARTMENT_MANAGER_DECIDE = "department_manager_decide"
    CONTRACT_CONTROLLER_DECIDE = "contract_controller_decide"
    CONTRACTOR_ACKNOWLEDGE = "contractor_acknowledge"
    HSSE_REVIEW_VIOLATION = "hsse_review_violation"
    VALIDATE_INVESTIGATION = "validate_investigation"
    REJECT_CLOSURE = "reject_closure"
    CLOSE_INCIDENT = "close_incident"
    # Actions that do not change status
    ASSIGN_INVESTIGATOR = "assign_investigator"
    ASSIGN_APPROVER = "assign_approver"
    SUBMIT_FINDINGS = "submit_findings"
    PROPOSE_SEVERITY_CHANGE = "propose_severity_change"
    DECIDE_SEVERITY_CHANGE = "decide_severity_change"
    ADMIN_OVERRIDE = "admin_override"


class Assignment(str, Enum):
    """Dynamic assignment requirement of a rule."""

    NONE = "none"
    REPORTER = "reporter"
    ASSIGNED_INVESTIGATOR = "assigned_investigator"
    ASSIGNED_APPROVER = "assigned_approver"
    REPORTER_DEPARTMENT = "reporter_department"


@dataclass(frozen=True)
class TransitionRule:
    """Permission rule for one action.

    Attributes:
        roles: The actor must hold at least one of these roles.
        assignment: Additional assignment the actor must satisfy.
    """

    roles: frozenset[Role]
    assignment: Assignment = Assignment.NONE


_A = WorkflowAction
_S = IncidentStatus

TRANSITION_ACTIONS: dict[tuple[IncidentStatus, IncidentStatus], WorkflowAction] = {
    (_S.SUBMITTED, _S.EXPERT_SCREENING): _A.START_SCREENING,
    (_S.SUBMITTED, _S.CLOSED): _A.CLOSE_ON_SPOT,
    (_S.EXPERT_SCREENING, _S.PENDING_MANAGER_APPROVAL): _A.SCREEN_INCIDENT,
    (_S.EXPERT_SCREENING, _S.NO_INVESTIGATION_REQUIRED): _A.SCREEN_INCIDENT,
    (_S.EXPERT_SCREENING, _S.RETURNED_TO_REPORTER): _A.SCREEN_INCIDENT,
    (_S.EXPERT_SCREENING, _S.EXPERT_REJECTED): _A.SCREEN_INCIDENT,
    (_S.RETURNED_TO_REPORTER, _S.SUBMITTED): _A.RESUBMIT,
    (_S.EXPERT_REJECTED, _S.CLOSED_REJECTED): _A.REPORTER_RESPOND,
    (_S.EXPERT_REJECTED, _S.DISPUTE_RESOLUTION): _A.REPORTER_RESPOND,
    (_S.PENDING_MANAGER_APPROVAL, _S.INVESTIGATION_IN_PROGRESS): _A.MANAGER_DECIDE,
    (_S.PENDING_MANAGER_APPROVAL, _S.MANAGER_REJECTED): _A.MANAGER_DECIDE,
    (
        _S.PENDING_MANAGER_APPROVAL,
        _S.ESCALATED_TO_HSSE_MANAGER,
    ): _A.ESCALATE_TO_HSSE_MANAGER,
    (_S.MANAGER_REJECTED, _S.DISPUTE_RESOLUTION): _A.OPEN_DISPUTE,
    (_S.MANAGER_REJECTED, _S.INVESTIGATION_IN_PROGRESS): _A.ACCEPT_REJECTION,
    (_S.DISPUTE_RESOLUTION, _S.PENDING_CLOSURE): _A.RESOLVE_DISPUTE,
    (_S.DISPUTE_RESOLUTION, _S.INVESTIGATION_IN_PROGRESS): _A.RESOLVE_DISPUTE,
    (_S.DISPUTE_RESOLUTION, _S.PENDING_MANAGER_APPROVAL): _A.RESOLVE_DISPUTE,
    (_S.DISPUTE_RESOLUTION, _S.CLOSED_REJECTED): _A.RESOLVE_DISPUTE,
    (_S.DISPUTE_RESOLUTION, _S.RETURNED_TO_REPORTER): _A.RESOLVE_DISPUTE,
    (
        _S.ESCALATED_TO_HSSE_MANAGER,
        _S.INVESTIGATION_IN_PROGRESS,
    ): _A.HSSE_MANAGER_DECIDE,
    (_S.ESCALATED_TO_HSSE_MANAGER, _S.CLOSED_REJECTED): _A.HSSE_MANAGER_DECIDE,
    (
        _S.INVESTIGATION_IN_PROGRESS,
        _S.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL,
    ): _A.SUBMIT_VIOLATION,
    (_S.INVESTIGATION_IN_PROGRESS, _S.PENDING_CLOSURE): _A.REQUEST_CLOSURE,
    (
        _S.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL,
        _S.PENDING_CONTRACT_CONTROLLER_APPROVAL,
    ): _A.DEPARTMENT_MANAGER_DECIDE,
    (
        _S.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL,
        _S.PENDING_CONTRACTOR_SITE_REP_APPROVAL,
    ): _A.DEPARTMENT_MANAGER_DECIDE,
    (
        _S.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL,
        _S.INVESTIGATION_IN_PROGRESS,
    ): _A.DEPARTMENT_MANAGER_DECIDE,
    (
        _S.PENDING_CONTRACT_CONTROLLER_APPROVAL,
        _S.INVESTIGATION_IN_PROGRESS,
    ): _A.CONTRACT_CONTROLLER_DECIDE,
    (
        _S.PENDING_CONTRACTOR_SITE_REP_APPROVAL,
        _S.INVESTIGATION_IN_PROGRESS,
    ): _A.CONTRACTOR_ACKNOWLEDGE,
    (
        _S.PENDING_CONTRACTOR_SITE_REP_APPROVAL,
        _S.PENDING_HSSE_VIOLATION_REVIEW,
    ): _A.CONTRACTOR_ACKNOWLEDGE,
    (
        _S.PENDING_HSSE_VIOLATION_REVIEW,
        _S.INVESTIGATION_IN_PROGRESS,
    ): _A.HSSE_REVIEW_VIOLATION,
    (_S.PENDING_CLOSURE, _S.PENDING_FINAL_CLOSURE): _A.VALIDATE_INVESTIGATION,
    (_S.PENDING_CLOSURE, _S.INVESTIGATION_IN_PROGRESS): _A.VALIDATE_INVESTIGATION,
    (_S.PENDING_CLOSURE, _S.CLOSED): _A.CLOSE_INCIDENT,
    (_S.PENDING_FINAL_CLOSURE, _S.CLOSED): _A.CLOSE_INCIDENT,
    (_S.PENDING_FINAL_CLOSURE, _S.INVESTIGATION_IN_PROGRESS): _A.REJECT_CLOSURE,
}

_HSSE_SCREENERS = frozenset({Role.HSSE_EXPERT, Role.HSSE_MANAGER})

ACTION_RULES: dict[WorkflowAction, TransitionRule] = {
    _A.START_SCREENING: TransitionRule(_HSSE_SCREENERS),
    _A.CLOSE_ON_SPOT: TransitionRule(ALL_ROLES, Assignment.REPORTER),
    _A.SCREEN_INCIDENT: TransitionRule(_HSSE_SCREENERS),
    _A.RESUBMIT: TransitionRule(ALL_ROLES, Assignment.REPORTER),
    _A.REPORTER_RESPOND: TransitionRule(ALL_ROLES, Assignment.REPORTER),
    _A.MANAGER_DECIDE: TransitionRule(
        frozenset({Role.DEPARTMENT_MANAGER, Role.HSSE_MANAGER}),
        Assignment.ASSIGNED_APPROVER,
    ),
    _A.ESCALATE_TO_HSSE_MANAGER: TransitionRule(
        frozenset({Role.DEPARTMENT_REPRESENTATIVE}),
        Assignment.REPORTER_DEPARTMENT,
    ),
    _A.OPEN_DISPUTE: TransitionRule(
        frozenset({Role.INVESTIGATOR}), Assignment.ASSIGNED_INVESTIGATOR
    ),
    _A.ACCEPT_REJECTION: TransitionRule(
        frozenset({Role.INVESTIGATOR}), Assignment.ASSIGNED_INVESTIGATOR
    ),
    _A.RESOLVE_DISPUTE: TransitionRule(MEDIATOR_ROLES),
    _A.HSSE_MANAGER_DECIDE: TransitionRule(frozenset({Role.HSSE_MANAGER})),
    _A.SUBMIT_VIOLATION: TransitionRule(
        frozenset({Role.INVESTIGATOR}), Assignment.ASSIGNED_INVESTIGATOR
    ),
    _A.REQUEST_CLOSURE: TransitionRule(
        frozenset({Role.INVESTIGATOR}), Assignment.ASSIGNED_INVESTIGATOR
    ),
    _A.DEPARTMENT_MANAGER_DECIDE: TransitionRule(
        frozenset({Role.DEPARTMENT_MANAGER}), Assignment.ASSIGNED_APPROVER
    ),
    _A.CONTRACT_CONTROLLER_DECIDE: TransitionRule(
        frozenset({Role.CONTRACT_CONTROLLER})
    ),
    _A.CONTRACTOR_ACKNOWLEDGE: TransitionRule(
        frozenset({Role.CONTRACTOR_SITE_REPRESENTATIVE})
    ),
    _A.HSSE_REVIEW_VIOLATION: TransitionRule(_HSSE_SCREENERS),
    _A.VALIDATE_INVESTIGATION: TransitionRule(
        frozenset({Role.HSSE_EXPERT, Role.HSSE_OFFICER, Role.HSSE_MANAGER})
    ),
    _A.REJECT_CLOSURE: TransitionRule(frozenset({Role.HSSE_MANAGER})),
    _A.CLOSE_INCIDENT: TransitionRule(
        frozenset(
            {
                Role.HSSE_MANAGER,
                Role.ADMIN,
                Role.HSSE_EXPERT,
                Role.DEPARTMENT_MANAGER,
            }
        )
    ),
    _A.ASSIGN_INVESTIGATOR: TransitionRule(_HSSE_SCREENERS),
    _A.ASSIGN_APPROVER: TransitionRule(_HSSE_SCREENERS),
    _A.SUBMIT_FINDINGS: TransitionRule(
        frozenset({Role.INVESTIGATOR}), Assignment.ASSIGNED_INVESTIGATOR
    ),
    _A.PROPOSE_SEVERITY_CHANGE: TransitionRule(
        frozenset({Role.INVESTIGATOR}), Assignment.ASSIGNED_INVESTIGATOR
    ),
    _A.DECIDE_SEVERITY_CHANGE: TransitionRule(frozenset({Role.HSSE_MANAGER})),
    _A.ADMIN_OVERRIDE: TransitionRule(frozenset({Role.ADMIN})),
}

# Actions that put an incident into CLOSED through the standard chain
CLOSING_ACTIONS: frozenset[WorkflowAction] = frozenset(
    {_A.CLOSE_INCIDENT, _A.ADMIN_OVERRIDE}
)

del _A, _S


def action_for(
    from_status: IncidentStatus, to_status: IncidentStatus
) -> WorkflowAction:
    """Map a transition matrix edge to its workflow action.

    Raises:
        InvalidTransitionError: If the edge is not in the matrix.
    """
    action = TRANSITION_ACTIONS.get((from_status, to_status))
    if action is None:
        raise InvalidTransitionError(
            from_state=from_status,
            to_state=to_status,
            allowed_transitions=sorted(
                from_status.valid_transitions(), key=lambda s: s.value
            ),
        )
    return action


def _assignment_denial(
    actor: Actor, incident: Incident, assignment: Assignment
) -> str | None:
    if assignment is Assignment.NONE:
        return None
    if assignment is Assignment.REPORTER:
        if actor.actor_id != incident.reporter_id:
            return "only the original reporter may perform this action"
    elif assignment is Assignment.ASSIGNED_INVESTIGATOR:
        if actor.actor_id != incident.assigned_investigator_id:
            return "actor is not the assigned investigator"
    elif assignment is Assignment.ASSIGNED_APPROVER:
        if actor.actor_id != incident.assigned_approver_id:
            return "actor is not the assigned approving manager"
    elif assignment is Assignment.REPORTER_DEPARTMENT:
        if (
            actor.department_id is None
            or actor.department_id != incident.reporter_department_id
        ):
            return "actor is not in the reporter's department"
    return None


def permission_denial(
    actor: Actor,
    incident: Incident,
    action: WorkflowAction,
    target_status: IncidentStatus | None = None,
) -> str | None:
    """Return why ``actor`` may not perform ``action``, or None if allowed.

    Args:
        actor: Resolved caller.
        incident: Incident in its current state.
        action: Action being attempted.
        target_status: Status the action would move to, when known. Used
            to apply the severity lock to admin overrides into CLOSED.
    """
    rule = ACTION_RULES[action]
    if not actor.has_any_role(rule.roles):
        allowed = ", ".join(sorted(r.value for r in rule.roles))
        return f"requires one of roles: {allowed}"

    denial = _assignment_denial(actor, incident, rule.assignment)
    if denial is not None:
        return denial

    closing = action is WorkflowAction.CLOSE_INCIDENT or (
        action in CLOSING_ACTIONS and target_status is IncidentStatus.CLOSED
    )
    if closing and incident.severity.is_catastrophic:
        if not actor.has_any_role(TOP_ROLES):
            return "only hsse_manager or admin may close a level 5 incident"
    return None


def can_perform(
    actor: Actor,
    incident: Incident,
    action: WorkflowAction,
    target_status: IncidentStatus | None = None,
) -> bool:
    """Check whether ``actor`` may perform ``action`` on ``incident``."""
    return permission_denial(actor, incident, action, target_status) is None


def check_permission(
    actor: Actor,
    incident: Incident,
    action: WorkflowAction,
    target_status: IncidentStatus | None = None,
) -> None:
    """Raise if ``actor`` may not perform ``action`` on ``incident``.

    Raises:
        ForbiddenError: With the failing check as the reason.
    """
    denial = permission_denial(actor, incident, action, target_status)
    if denial is not None:
        raise ForbiddenError(actor.actor_id, action.value, denial)
