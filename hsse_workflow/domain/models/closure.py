"""Closure readiness result."""

from __future__ import annotations

from dataclasses import dataclass, field

INVESTIGATION_COMPLETE = "investigation_complete"
ROOT_CAUSE_DOCUMENTED = "root_cause_documented"
IMMEDIATE_CAUSE_DOCUMENTED = "immediate_cause_documented"
CORRECTIVE_ACTIONS_COMPLETED = "corrective_actions_completed"
CORRECTIVE_ACTIONS_VERIFIED = "corrective_actions_verified"
VIOLATION_RESOLVED = "violation_resolved"
HSSE_VALIDATION_ACCEPTED = "hsse_validation_accepted"
SEVERITY_CHANGE_SETTLED = "severity_change_settled"
SEVERITY_AUTHORITY = "severity_authority"

CHECKLIST_ITEMS: tuple[str, ...] = (
    INVESTIGATION_COMPLETE,
    ROOT_CAUSE_DOCUMENTED,
    IMMEDIATE_CAUSE_DOCUMENTED,
    CORRECTIVE_ACTIONS_COMPLETED,
    CORRECTIVE_ACTIONS_VERIFIED,
    VIOLATION_RESOLVED,
    HSSE_VALIDATION_ACCEPTED,
    SEVERITY_CHANGE_SETTLED,
)


@dataclass(frozen=True, eq=True)
class ClosureReadiness:
    """Outcome of a closure readiness evaluation.

    Attributes:
        checks: Checklist item name to pass/fail.
        blocking_reasons: One reason per failed item, in checklist order.
        ready: True only when every check passes.
    """

    checks: dict[str, bool] = field(hash=False)
    blocking_reasons: tuple[str, ...]
    ready: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "checks": dict(self.checks),
            "blocking_reasons": list(self.blocking_reasons),
            "ready": self.ready,
        }
