"""Contractor violation sub-workflow model.

A violation is raised by an investigation and carries its own approval
chain before it feeds back into the parent incident.

State Machine:
    IDENTIFIED -> SUBMITTED -> PENDING_DEPARTMENT_MANAGER_APPROVAL
    PENDING_DEPARTMENT_MANAGER_APPROVAL -> PENDING_CONTRACT_CONTROLLER_CONFIRMATION
        (penalty type is a fine)
    PENDING_DEPARTMENT_MANAGER_APPROVAL -> PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT
        (any other penalty type)
    PENDING_DEPARTMENT_MANAGER_APPROVAL -> REJECTED
    PENDING_CONTRACT_CONTROLLER_CONFIRMATION -> FINALIZED | REJECTED
    PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT -> FINALIZED | CONTESTED
    CONTESTED -> FINALIZED | REJECTED (HSSE final ruling)

Terminal States:
    FINALIZED, REJECTED
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from hsse_workflow.domain.errors.workflow import InvalidTransitionError


class ViolationStage(str, Enum):
    """Approval stage of a contractor violation."""

    IDENTIFIED = "identified"
    SUBMITTED = "submitted"
    PENDING_DEPARTMENT_MANAGER_APPROVAL = "pending_department_manager_approval"
    PENDING_CONTRACT_CONTROLLER_CONFIRMATION = (
        "pending_contract_controller_confirmation"
    )
    PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT = (
        "pending_contractor_site_rep_acknowledgment"
    )
    CONTESTED = "contested"
    FINALIZED = "finalized"
    REJECTED = "rejected"

    def is_terminal(self) -> bool:
        return self in VIOLATION_TERMINAL_STAGES


class PenaltyType(str, Enum):
    """Penalty imposed on the contractor. Only FINE routes via the controller."""

    FINE = "fine"
    WARNING = "warning"
    SUSPENSION = "suspension"
    TRAINING = "training"


class PenaltySeverity(str, Enum):
    """Default penalty severity derived from the occurrence ordinal."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


VIOLATION_TERMINAL_STAGES: frozenset[ViolationStage] = frozenset(
    {ViolationStage.FINALIZED, ViolationStage.REJECTED}
)

VIOLATION_TRANSITION_MATRIX: dict[ViolationStage, frozenset[ViolationStage]] = {
    ViolationStage.IDENTIFIED: frozenset({ViolationStage.SUBMITTED}),
    ViolationStage.SUBMITTED: frozenset(
        {ViolationStage.PENDING_DEPARTMENT_MANAGER_APPROVAL}
    ),
    ViolationStage.PENDING_DEPARTMENT_MANAGER_APPROVAL: frozenset(
        {
            ViolationStage.PENDING_CONTRACT_CONTROLLER_CONFIRMATION,
            ViolationStage.PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT,
            ViolationStage.REJECTED,
        }
    ),
    ViolationStage.PENDING_CONTRACT_CONTROLLER_CONFIRMATION: frozenset(
        {ViolationStage.FINALIZED, ViolationStage.REJECTED}
    ),
    ViolationStage.PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT: frozenset(
        {ViolationStage.FINALIZED, ViolationStage.CONTESTED}
    ),
    ViolationStage.CONTESTED: frozenset(
        {ViolationStage.FINALIZED, ViolationStage.REJECTED}
    ),
    ViolationStage.FINALIZED: frozenset(),
    ViolationStage.REJECTED: frozenset(),
}


def occurrence_label(ordinal: int) -> str:
    """Display label for an occurrence ordinal.

    Args:
        ordinal: 1-based occurrence ordinal.

    Returns:
        "1st", "2nd", or "3rd/Repeated" for anything from 3 upward.
    """
    if ordinal < 1:
        raise ValueError(f"Occurrence ordinal must be >= 1, got {ordinal}")
    if ordinal == 1:
        return "1st"
    if ordinal == 2:
        return "2nd"
    return "3rd/Repeated"


def default_penalty_severity(ordinal: int) -> PenaltySeverity:
    """Default penalty severity for an occurrence ordinal (not the raw count)."""
    if ordinal < 1:
        raise ValueError(f"Occurrence ordinal must be >= 1, got {ordinal}")
    if ordinal == 1:
        return PenaltySeverity.LOW
    if ordinal == 2:
        return PenaltySeverity.MEDIUM
    return PenaltySeverity.HIGH


def stage_after_department_approval(penalty_type: PenaltyType) -> ViolationStage:
    """Route an approved violation: fines go to the contract controller."""
    if penalty_type is PenaltyType.FINE:
        return ViolationStage.PENDING_CONTRACT_CONTROLLER_CONFIRMATION
    return ViolationStage.PENDING_CONTRACTOR_SITE_REP_ACKNOWLEDGMENT


@dataclass(frozen=True, eq=True)
class Violation:
    """A contractor violation flagged during investigation.

    Once finalized, the violation is immutable except for acknowledgment
    metadata (see ``with_acknowledgment``).

    Attributes:
        id: Unique identifier.
        investigation_id: Investigation that identified the violation.
        contractor_id: Contractor the violation is charged to.
        violation_type: Type code used for occurrence counting.
        penalty_type: Penalty imposed.
        stage: Current approval stage.
        fine_amount: Fine amount (only meaningful for FINE).
        occurrence: 1-based occurrence ordinal captured at submission.
        penalty_severity: Default severity derived from ``occurrence``.
        contractor_contribution_pct: Contractor share of responsibility.
        evidence_summary: Investigator's evidence summary.
        submitted_by: Investigator that submitted the violation.
        submitted_at: Submission timestamp.
        decision_notes: Notes from the most recent approval decision.
        contest_notes: Contractor notes when contested.
        acknowledged_by: Contractor representative that acknowledged.
        acknowledged_at: Acknowledgment timestamp.
        finalized_at: Finalization timestamp.
    """

    id: UUID
    investigation_id: UUID
    contractor_id: UUID
    violation_type: str
    penalty_type: PenaltyType
    stage: ViolationStage = field(default=ViolationStage.IDENTIFIED)
    fine_amount: Decimal | None = field(default=None)
    occurrence: int | None = field(default=None)
    penalty_severity: PenaltySeverity | None = field(default=None)
    contractor_contribution_pct: int | None = field(default=None)
    evidence_summary: str | None = field(default=None)
    submitted_by: UUID | None = field(default=None)
    submitted_at: datetime | None = field(default=None)
    decision_notes: str | None = field(default=None)
    contest_notes: str | None = field(default=None)
    acknowledged_by: UUID | None = field(default=None)
    acknowledged_at: datetime | None = field(default=None)
    finalized_at: datetime | None = field(default=None)

    def __post_init__(self) -> None:
        if self.occurrence is not None and self.occurrence < 1:
            raise ValueError("occurrence must be >= 1")
        if self.contractor_contribution_pct is not None and not (
            0 <= self.contractor_contribution_pct <= 100
        ):
            raise ValueError("contractor_contribution_pct must be between 0 and 100")

    @property
    def is_finalized(self) -> bool:
        return self.stage is ViolationStage.FINALIZED

    @property
    def is_resolved(self) -> bool:
        """True once the violation no longer blocks incident closure."""
        return self.stage in VIOLATION_TERMINAL_STAGES

    @property
    def occurrence_label(self) -> str | None:
        return occurrence_label(self.occurrence) if self.occurrence else None

    def with_stage(self, new_stage: ViolationStage, **changes: object) -> Violation:
        """Create a new violation at ``new_stage``.

        Raises:
            InvalidTransitionError: If the stage change is not allowed,
                including any change to a finalized violation.
        """
        if new_stage not in VIOLATION_TRANSITION_MATRIX[self.stage]:
            raise InvalidTransitionError(
                from_state=self.stage,
                to_state=new_stage,
                allowed_transitions=sorted(
                    VIOLATION_TRANSITION_MATRIX[self.stage], key=lambda s: s.value
                ),
            )
        return replace(self, stage=new_stage, **changes)  # type: ignore[arg-type]

    def with_acknowledgment(
        self, acknowledged_by: UUID, acknowledged_at: datetime
    ) -> Violation:
        """Record acknowledgment metadata; allowed on a finalized violation."""
        return replace(
            self, acknowledged_by=acknowledged_by, acknowledged_at=acknowledged_at
        )
