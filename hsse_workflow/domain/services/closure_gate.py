"""Closure gate domain service.

Evaluates the closure checklist for an incident. Every item must pass
before the incident may enter CLOSED:

- investigation complete
- root cause documented
- immediate cause documented
- all corrective actions completed
- all corrective actions verified
- violation finalized, rejected, or absent
- HSSE validation accepted
- no severity change awaiting approval

Catastrophic (level 5) incidents carry a hard lock on top of the
checklist: the closing actor must hold a top role and supply a written
justification. No other role may close them, whatever the checklist
says. Only the approved realized severity is considered: a proposed
change counts once approved, and potential severity never gates closure.

Evaluation is pure and read-only.
"""

from __future__ import annotations

from collections.abc import Sequence

from hsse_workflow.domain.models.actor import TOP_ROLES, Actor
from hsse_workflow.domain.models.closure import (
    CORRECTIVE_ACTIONS_COMPLETED,
    CORRECTIVE_ACTIONS_VERIFIED,
    HSSE_VALIDATION_ACCEPTED,
    IMMEDIATE_CAUSE_DOCUMENTED,
    INVESTIGATION_COMPLETE,
    ROOT_CAUSE_DOCUMENTED,
    SEVERITY_AUTHORITY,
    SEVERITY_CHANGE_SETTLED,
    VIOLATION_RESOLVED,
    ClosureReadiness,
)
from hsse_workflow.domain.models.corrective_action import CorrectiveAction
from hsse_workflow.domain.models.incident import Incident
from hsse_workflow.domain.models.investigation import Investigation

_BLOCKING_REASONS: dict[str, str] = {
    INVESTIGATION_COMPLETE: "Investigation findings have not been submitted",
    ROOT_CAUSE_DOCUMENTED: "Root cause is not documented",
    IMMEDIATE_CAUSE_DOCUMENTED: "Immediate cause is not documented",
    CORRECTIVE_ACTIONS_COMPLETED: "Not all corrective actions are completed",
    CORRECTIVE_ACTIONS_VERIFIED: "Not all corrective actions are verified",
    VIOLATION_RESOLVED: "Contractor violation is still pending approval",
    HSSE_VALIDATION_ACCEPTED: "HSSE validation has not been accepted",
    SEVERITY_CHANGE_SETTLED: "A severity change is awaiting approval",
}


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def severity_lock_denial(
    incident: Incident,
    actor: Actor | None,
    justification: str | None,
) -> str | None:
    """Return why the level 5 lock blocks closure, or None if it does not.

    The lock applies only to catastrophic incidents.
    """
    if not incident.severity.is_catastrophic:
        return None
    if actor is None:
        return "Level 5 closure requires a closing actor holding hsse_manager or admin"
    if not actor.has_any_role(TOP_ROLES):
        return "Level 5 closure is restricted to hsse_manager or admin"
    if not _has_text(justification):
        return "Level 5 closure requires a written justification"
    return None


def evaluate_closure(
    incident: Incident,
    investigation: Investigation | None,
    corrective_actions: Sequence[CorrectiveAction],
    actor: Actor | None = None,
    justification: str | None = None,
) -> ClosureReadiness:
    """Evaluate the closure checklist.

    Args:
        incident: Incident as currently stored.
        investigation: Its investigation record, if any.
        corrective_actions: Its corrective actions (empty passes both checks).
        actor: Prospective closing actor, needed for level 5 incidents.
        justification: Written justification, needed for level 5 incidents.

    Returns:
        ClosureReadiness with every check, the failing reasons, and the verdict.
    """
    violation = incident.violation
    checks: dict[str, bool] = {
        INVESTIGATION_COMPLETE: investigation is not None and investigation.is_complete,
        ROOT_CAUSE_DOCUMENTED: investigation is not None
        and _has_text(investigation.root_cause),
        IMMEDIATE_CAUSE_DOCUMENTED: investigation is not None
        and _has_text(investigation.immediate_cause),
        CORRECTIVE_ACTIONS_COMPLETED: all(a.is_completed for a in corrective_actions),
        CORRECTIVE_ACTIONS_VERIFIED: all(a.is_verified for a in corrective_actions),
        VIOLATION_RESOLVED: violation is None or violation.is_resolved,
        HSSE_VALIDATION_ACCEPTED: incident.hsse_validation_accepted,
        SEVERITY_CHANGE_SETTLED: not incident.severity_pending_approval,
    }
    blocking = [_BLOCKING_REASONS[name] for name, passed in checks.items() if not passed]

    if incident.severity.is_catastrophic:
        lock = severity_lock_denial(incident, actor, justification)
        checks[SEVERITY_AUTHORITY] = lock is None
        if lock is not None:
            blocking.append(lock)

    return ClosureReadiness(
        checks=checks,
        blocking_reasons=tuple(blocking),
        ready=not blocking,
    )
