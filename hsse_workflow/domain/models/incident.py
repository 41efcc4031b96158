"""Incident domain model and lifecycle state machine.

This module defines the canonical lifecycle of a reported incident or
observation: submission, expert screening, manager approval,
investigation and closure, with the rejection, dispute and violation
branches hanging off it.

State Machine (happy path):
    SUBMITTED -> EXPERT_SCREENING -> PENDING_MANAGER_APPROVAL
    -> INVESTIGATION_IN_PROGRESS -> PENDING_CLOSURE
    -> PENDING_FINAL_CLOSURE -> CLOSED

Branches:
    SUBMITTED -> CLOSED (on-the-spot closure of minor observations)
    EXPERT_SCREENING -> RETURNED_TO_REPORTER | EXPERT_REJECTED
                        | NO_INVESTIGATION_REQUIRED
    EXPERT_REJECTED -> CLOSED_REJECTED (reporter confirms)
                       | DISPUTE_RESOLUTION (reporter disputes)
    PENDING_MANAGER_APPROVAL -> MANAGER_REJECTED | ESCALATED_TO_HSSE_MANAGER
    MANAGER_REJECTED -> DISPUTE_RESOLUTION | INVESTIGATION_IN_PROGRESS
    INVESTIGATION_IN_PROGRESS -> violation approval chain -> back again

Terminal States:
    CLOSED, CLOSED_REJECTED, NO_INVESTIGATION_REQUIRED
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any
from uuid import UUID

from hsse_workflow.domain.errors.workflow import InvalidTransitionError
from hsse_workflow.domain.models.violation import Violation


class IncidentCategory(str, Enum):
    """Kind of reported event."""

    INCIDENT = "incident"
    OBSERVATION = "observation"
    SECURITY = "security"
    NEAR_MISS = "near_miss"
    ENVIRONMENTAL = "environmental"


class Severity(IntEnum):
    """Ordinal severity scale. LEVEL_5 is catastrophic."""

    LEVEL_1 = 1
    LEVEL_2 = 2
    LEVEL_3 = 3
    LEVEL_4 = 4
    LEVEL_5 = 5

    @property
    def is_catastrophic(self) -> bool:
        return self is Severity.LEVEL_5


class ClosureReason(str, Enum):
    """How an incident reached CLOSED, recorded for audit."""

    STANDARD = "standard"
    CLOSED_ON_SPOT = "closed_on_spot"
    ADMIN_OVERRIDE = "admin_override"


class IncidentStatus(str, Enum):
    """Status of an incident in its lifecycle."""

    SUBMITTED = "submitted"
    EXPERT_SCREENING = "expert_screening"
    RETURNED_TO_REPORTER = "returned_to_reporter"
    EXPERT_REJECTED = "expert_rejected"
    NO_INVESTIGATION_REQUIRED = "no_investigation_required"
    PENDING_MANAGER_APPROVAL = "pending_manager_approval"
    MANAGER_REJECTED = "manager_rejected"
    DISPUTE_RESOLUTION = "dispute_resolution"
    ESCALATED_TO_HSSE_MANAGER = "escalated_to_hsse_manager"
    INVESTIGATION_IN_PROGRESS = "investigation_in_progress"
    PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL = (
        "pending_department_manager_violation_approval"
    )
    PENDING_CONTRACT_CONTROLLER_APPROVAL = "pending_contract_controller_approval"
    PENDING_CONTRACTOR_SITE_REP_APPROVAL = "pending_contractor_site_rep_approval"
    PENDING_HSSE_VIOLATION_REVIEW = "pending_hsse_violation_review"
    PENDING_CLOSURE = "pending_closure"
    PENDING_FINAL_CLOSURE = "pending_final_closure"
    CLOSED = "closed"
    CLOSED_REJECTED = "closed_rejected"

    def is_terminal(self) -> bool:
        """Check if no further transitions are permitted from this status."""
        return self in TERMINAL_STATES

    def valid_transitions(self) -> frozenset[IncidentStatus]:
        """Get valid target statuses from this status.

        Returns:
            Frozenset of reachable statuses. Empty for terminal statuses.
        """
        return STATE_TRANSITION_MATRIX[self]


TERMINAL_STATES: frozenset[IncidentStatus] = frozenset(
    {
        IncidentStatus.CLOSED,
        IncidentStatus.CLOSED_REJECTED,
        IncidentStatus.NO_INVESTIGATION_REQUIRED,
    }
)

# Statuses a dispute may be opened from
DISPUTABLE_STATES: frozenset[IncidentStatus] = frozenset(
    {IncidentStatus.MANAGER_REJECTED, IncidentStatus.EXPERT_REJECTED}
)

# Leaving any of these requires a written justification
JUSTIFIED_SOURCE_STATES: frozenset[IncidentStatus] = frozenset(
    {
        IncidentStatus.MANAGER_REJECTED,
        IncidentStatus.EXPERT_REJECTED,
        IncidentStatus.DISPUTE_RESOLUTION,
        IncidentStatus.ESCALATED_TO_HSSE_MANAGER,
    }
)

# Entering any of these is a rejection and requires a reason
JUSTIFIED_TARGET_STATES: frozenset[IncidentStatus] = frozenset(
    {
        IncidentStatus.MANAGER_REJECTED,
        IncidentStatus.EXPERT_REJECTED,
        IncidentStatus.RETURNED_TO_REPORTER,
        IncidentStatus.ESCALATED_TO_HSSE_MANAGER,
    }
)

# Violation approval chain statuses
VIOLATION_STATES: frozenset[IncidentStatus] = frozenset(
    {
        IncidentStatus.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL,
        IncidentStatus.PENDING_CONTRACT_CONTROLLER_APPROVAL,
        IncidentStatus.PENDING_CONTRACTOR_SITE_REP_APPROVAL,
        IncidentStatus.PENDING_HSSE_VIOLATION_REVIEW,
    }
)

_S = IncidentStatus

# Every status has an entry, terminal statuses map to an empty set
STATE_TRANSITION_MATRIX: dict[IncidentStatus, frozenset[IncidentStatus]] = {
    _S.SUBMITTED: frozenset({_S.EXPERT_SCREENING, _S.CLOSED}),
    _S.EXPERT_SCREENING: frozenset(
        {
            _S.PENDING_MANAGER_APPROVAL,
            _S.NO_INVESTIGATION_REQUIRED,
            _S.RETURNED_TO_REPORTER,
            _S.EXPERT_REJECTED,
        }
    ),
    _S.RETURNED_TO_REPORTER: frozenset({_S.SUBMITTED}),
    _S.EXPERT_REJECTED: frozenset({_S.CLOSED_REJECTED, _S.DISPUTE_RESOLUTION}),
    _S.PENDING_MANAGER_APPROVAL: frozenset(
        {
            _S.INVESTIGATION_IN_PROGRESS,
            _S.MANAGER_REJECTED,
            _S.ESCALATED_TO_HSSE_MANAGER,
        }
    ),
    _S.MANAGER_REJECTED: frozenset(
        {_S.DISPUTE_RESOLUTION, _S.INVESTIGATION_IN_PROGRESS}
    ),
    _S.DISPUTE_RESOLUTION: frozenset(
        {
            _S.PENDING_CLOSURE,
            _S.INVESTIGATION_IN_PROGRESS,
            _S.PENDING_MANAGER_APPROVAL,
            _S.CLOSED_REJECTED,
            _S.RETURNED_TO_REPORTER,
        }
    ),
    _S.ESCALATED_TO_HSSE_MANAGER: frozenset(
        {_S.INVESTIGATION_IN_PROGRESS, _S.CLOSED_REJECTED}
    ),
    _S.INVESTIGATION_IN_PROGRESS: frozenset(
        {_S.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL, _S.PENDING_CLOSURE}
    ),
    _S.PENDING_DEPARTMENT_MANAGER_VIOLATION_APPROVAL: frozenset(
        {
            _S.PENDING_CONTRACT_CONTROLLER_APPROVAL,
            _S.PENDING_CONTRACTOR_SITE_REP_APPROVAL,
            _S.INVESTIGATION_IN_PROGRESS,
        }
    ),
    _S.PENDING_CONTRACT_CONTROLLER_APPROVAL: frozenset(
        {_S.INVESTIGATION_IN_PROGRESS}
    ),
    _S.PENDING_CONTRACTOR_SITE_REP_APPROVAL: frozenset(
        {_S.INVESTIGATION_IN_PROGRESS, _S.PENDING_HSSE_VIOLATION_REVIEW}
    ),
    _S.PENDING_HSSE_VIOLATION_REVIEW: frozenset({_S.INVESTIGATION_IN_PROGRESS}),
    _S.PENDING_CLOSURE: frozenset(
        {_S.PENDING_FINAL_CLOSURE, _S.CLOSED, _S.INVESTIGATION_IN_PROGRESS}
    ),
    _S.PENDING_FINAL_CLOSURE: frozenset({_S.CLOSED, _S.INVESTIGATION_IN_PROGRESS}),
    _S.CLOSED: frozenset(),
    _S.CLOSED_REJECTED: frozenset(),
    _S.NO_INVESTIGATION_REQUIRED: frozenset(),
}

# Statuses an admin may force forward, and where each one lands
ADMIN_OVERRIDE_NEXT_STATUS: dict[IncidentStatus, IncidentStatus] = {
    _S.PENDING_MANAGER_APPROVAL: _S.INVESTIGATION_IN_PROGRESS,
    _S.ESCALATED_TO_HSSE_MANAGER: _S.INVESTIGATION_IN_PROGRESS,
    _S.PENDING_CLOSURE: _S.PENDING_FINAL_CLOSURE,
    _S.PENDING_FINAL_CLOSURE: _S.CLOSED,
}

del _S


def requires_justification(
    from_status: IncidentStatus, to_status: IncidentStatus
) -> bool:
    """Check whether a transition needs a written justification.

    Leaving a rejected or disputed status, and entering a rejection
    status, both require one.
    """
    return (
        from_status in JUSTIFIED_SOURCE_STATES or to_status in JUSTIFIED_TARGET_STATES
    )


@dataclass(frozen=True, eq=True)
class Incident:
    """A reported safety event or observation.

    Incidents are mutated exclusively through validated transitions.
    Every mutation returns a new instance; the store bumps ``version``
    when a commit succeeds.

    Attributes:
        id: Unique identifier.
        tenant_id: Owning tenant.
        category: Kind of event.
        severity: Approved realized severity. The only severity that gates closure.
        status: Current lifecycle status.
        reporter_id: Actor who reported the event.
        title: Short summary.
        description: Free-text description.
        created_at: Report timestamp (UTC).
        occurred_at: When the event happened (UTC).
        status_changed_at: When the status last changed (UTC).
        potential_severity: What could have happened. Never gates closure.
        reporter_department_id: Reporter's department at report time.
        assigned_investigator_id: Investigator assigned by HSSE.
        assigned_approver_id: Approving department manager.
        version: Optimistic concurrency counter.
        rejection_reason: Reason given by the last rejecting actor.
        escalation_reason: Reason given when escalated to the HSSE manager.
        return_reason: Instructions given when returned to the reporter.
        resubmission_count: How many times the reporter resubmitted.
        dispute_category: Category of the current or last dispute.
        dispute_notes: Reason given when the dispute was opened.
        dispute_opened_by: Actor that opened the dispute.
        dispute_opened_at: When the dispute was opened.
        rework_required: Set by a partial-rework dispute resolution.
        hsse_validation_accepted: HSSE accepted the investigation.
        original_severity: Severity at report time, set by the first approved
            severity change.
        proposed_severity: Severity proposed by the investigator, awaiting
            approval. Has no effect on closure until approved.
        severity_change_justification: Reason given for the proposal.
        severity_change_proposed_by: Investigator that proposed the change.
        severity_pending_approval: A severity change awaits an HSSE manager.
        severity_approved_by: HSSE manager that approved the last change.
        severity_approved_at: When the last change was approved.
        closed_on_spot: Closed through the on-the-spot fast path.
        closure_reason: How the incident was closed.
        closure_justification: Written justification supplied at closure.
        closed_at: When the incident reached a terminal status.
        violation: Contractor violation raised by the investigation.
        deleted_at: Soft delete marker. Incidents are never hard deleted.
    """

    id: UUID
    tenant_id: UUID
    category: IncidentCategory
    severity: Severity
    status: IncidentStatus
    reporter_id: UUID
    title: str
    created_at: datetime
    description: str = field(default="")
    occurred_at: datetime | None = field(default=None)
    status_changed_at: datetime | None = field(default=None)
    potential_severity: Severity | None = field(default=None)
    reporter_department_id: UUID | None = field(default=None)
    assigned_investigator_id: UUID | None = field(default=None)
    assigned_approver_id: UUID | None = field(default=None)
    version: int = field(default=0)
    rejection_reason: str | None = field(default=None)
    escalation_reason: str | None = field(default=None)
    return_reason: str | None = field(default=None)
    resubmission_count: int = field(default=0)
    dispute_category: str | None = field(default=None)
    dispute_notes: str | None = field(default=None)
    dispute_opened_by: UUID | None = field(default=None)
    dispute_opened_at: datetime | None = field(default=None)
    rework_required: bool = field(default=False)
    hsse_validation_accepted: bool = field(default=False)
    original_severity: Severity | None = field(default=None)
    proposed_severity: Severity | None = field(default=None)
    severity_change_justification: str | None = field(default=None)
    severity_change_proposed_by: UUID | None = field(default=None)
    severity_pending_approval: bool = field(default=False)
    severity_approved_by: UUID | None = field(default=None)
    severity_approved_at: datetime | None = field(default=None)
    closed_on_spot: bool = field(default=False)
    closure_reason: ClosureReason | None = field(default=None)
    closure_justification: str | None = field(default=None)
    closed_at: datetime | None = field(default=None)
    violation: Violation | None = field(default=None)
    deleted_at: datetime | None = field(default=None)

    def __post_init__(self) -> None:
        if not isinstance(self.status, IncidentStatus):
            raise ValueError(f"Unknown incident status: {self.status!r}")
        if self.version < 0:
            raise ValueError("version must be non-negative")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def can_transition_to(self, target: IncidentStatus) -> bool:
        return target in self.status.valid_transitions()

    def with_status(
        self,
        new_status: IncidentStatus,
        changed_at: datetime,
        **changes: Any,
    ) -> Incident:
        """Create a new incident with an updated status.

        Enforces the transition matrix. Since Incident is frozen, returns
        a new instance; any extra keyword arguments are applied as field
        updates in the same step.

        Args:
            new_status: The status to transition to.
            changed_at: Timestamp recorded as ``status_changed_at``.
            **changes: Additional field updates.

        Returns:
            New Incident with the updated status.

        Raises:
            InvalidTransitionError: If new_status is unreachable.
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                from_state=self.status,
                to_state=new_status,
                allowed_transitions=sorted(
                    self.status.valid_transitions(), key=lambda s: s.value
                ),
            )
        if new_status in TERMINAL_STATES and "closed_at" not in changes:
            changes["closed_at"] = changed_at
        return replace(
            self,
            status=new_status,
            status_changed_at=changed_at,
            **changes,
        )

    def evolve(self, **changes: Any) -> Incident:
        """Create a new incident with field updates and the same status."""
        if "status" in changes:
            raise ValueError("Use with_status() to change incident status")
        return replace(self, **changes)
