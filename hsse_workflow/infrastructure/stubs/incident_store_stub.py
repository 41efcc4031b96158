"""Incident store stub for testing.

This module provides an in-memory implementation of IncidentStoreProtocol
for unit and integration testing.

The stub simulates a transactional store with:
1. Compare-and-swap commits on the incident version
2. All-or-nothing writes of incident, audit entries, investigations and disputes
3. Configurable failure modes and delays (for timeout tests)
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, replace
from uuid import UUID

from hsse_workflow.application.ports.incident_store import (
    IncidentStoreProtocol,
    TransitionCommit,
)
from hsse_workflow.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
)
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.errors.workflow import InvalidTransitionError, NotFoundError
from hsse_workflow.domain.models.audit_entry import AuditEntry
from hsse_workflow.domain.models.corrective_action import CorrectiveAction
from hsse_workflow.domain.models.dispute import Dispute
from hsse_workflow.domain.models.incident import Incident
from hsse_workflow.domain.models.investigation import Investigation
from hsse_workflow.domain.models.violation import ViolationStage


@dataclass
class FailureMode:
    """Configuration for simulating store failures.

    Attributes:
        commit_fails: Every commit raises StoreError.
        create_fails: Every create_incident raises StoreError.
        read_fails: Every read raises StoreError.
        commit_delay_seconds: Sleep before a commit is applied.
        read_delay_seconds: Sleep after get_incident takes its snapshot,
            so concurrent callers read the same version.
    """

    commit_fails: bool = False
    create_fails: bool = False
    read_fails: bool = False
    commit_delay_seconds: float = 0.0
    read_delay_seconds: float = 0.0


class IncidentStoreStub(IncidentStoreProtocol):
    """In-memory implementation of IncidentStoreProtocol for testing.

    Usage:
        store = IncidentStoreStub()

        # Seed records the workflow does not create itself
        store.add_corrective_action(action)
        store.add_finalized_violations(contractor_id, "ppe", count=2)

        # Test failure modes
        store.set_failure_mode(FailureMode(commit_fails=True))

        # Reset for next test
        store.clear()
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._incidents: dict[UUID, Incident] = {}
        self._audit: dict[UUID, list[AuditEntry]] = {}
        self._investigations: dict[UUID, Investigation] = {}
        self._disputes: dict[UUID, Dispute] = {}
        self._corrective_actions: dict[UUID, list[CorrectiveAction]] = {}
        self._violation_history: dict[tuple[UUID, str], int] = {}
        self._failure_mode = FailureMode()
        self._lock = asyncio.Lock()
        self._commit_count = 0
        self._conflict_count = 0

    def set_failure_mode(self, mode: FailureMode) -> None:
        """Configure failure simulation for testing.

        Args:
            mode: FailureMode configuration.
        """
        self._failure_mode = mode

    def clear_failure_mode(self) -> None:
        """Clear failure mode (store works normally)."""
        self._failure_mode = FailureMode()

    def clear(self) -> None:
        """Clear all state for test isolation."""
        self._incidents.clear()
        self._audit.clear()
        self._investigations.clear()
        self._disputes.clear()
        self._corrective_actions.clear()
        self._violation_history.clear()
        self._failure_mode = FailureMode()
        self._commit_count = 0
        self._conflict_count = 0

    @property
    def commit_count(self) -> int:
        """Get the number of successful commits."""
        return self._commit_count

    @property
    def conflict_count(self) -> int:
        """Get the number of commits refused by the version check."""
        return self._conflict_count

    @property
    def incident_count(self) -> int:
        return len(self._incidents)

    # ========================================
    # Test helper methods
    # ========================================

    def seed_incident(self, incident: Incident) -> None:
        """Store an incident as-is, bypassing the workflow."""
        self._incidents[incident.id] = incident
        self._audit.setdefault(incident.id, [])

    def add_corrective_action(self, action: CorrectiveAction) -> None:
        """Attach a corrective action to its incident."""
        self._corrective_actions.setdefault(action.incident_id, []).append(action)

    def replace_corrective_action(self, action: CorrectiveAction) -> None:
        """Replace a corrective action (e.g., mark it verified)."""
        actions = self._corrective_actions.get(action.incident_id, [])
        self._corrective_actions[action.incident_id] = [
            action if a.id == action.id else a for a in actions
        ]

    def add_finalized_violations(
        self, contractor_id: UUID, violation_type: str, count: int = 1
    ) -> None:
        """Record finalized violations from outside this store's incidents."""
        key = (contractor_id, violation_type)
        self._violation_history[key] = self._violation_history.get(key, 0) + count

    # ========================================
    # Protocol implementation
    # ========================================

    def _check_read(self, operation: str) -> None:
        if self._failure_mode.read_fails:
            raise StoreError(operation, "Simulated store read failure")

    async def create_incident(
        self, incident: Incident, audit_entries: Sequence[AuditEntry]
    ) -> Incident:
        if self._failure_mode.create_fails:
            raise StoreError("create_incident", "Simulated store write failure")
        async with self._lock:
            if incident.id in self._incidents:
                raise StoreError("create_incident", f"Incident {incident.id} already exists")
            self._incidents[incident.id] = incident
            self._audit[incident.id] = list(audit_entries)
            return incident

    async def get_incident(self, incident_id: UUID) -> Incident | None:
        self._check_read("get_incident")
        snapshot = self._incidents.get(incident_id)
        if self._failure_mode.read_delay_seconds:
            await asyncio.sleep(self._failure_mode.read_delay_seconds)
        return snapshot

    async def commit(self, commit: TransitionCommit) -> Incident:
        """Apply a workflow step atomically.

        Every check runs before any write, so a refused commit leaves
        the store untouched.
        """
        if self._failure_mode.commit_delay_seconds:
            await asyncio.sleep(self._failure_mode.commit_delay_seconds)
        if self._failure_mode.commit_fails:
            raise StoreError("commit", "Simulated store commit failure")

        async with self._lock:
            incident_id = commit.incident.id
            current = self._incidents.get(incident_id)
            if current is None:
                raise NotFoundError("incident", incident_id)
            if current.version != commit.expected_version:
                self._conflict_count += 1
                raise ConcurrentModificationError(
                    entity_id=incident_id,
                    expected_version=commit.expected_version,
                    actual_version=current.version,
                    operation="commit",
                    current_state=current.status,
                )

            if commit.dispute is not None and commit.dispute.is_open:
                other = self._open_dispute(incident_id)
                if other is not None and other.id != commit.dispute.id:
                    raise InvalidTransitionError(
                        from_state=current.status,
                        to_state=commit.incident.status,
                        message=f"Incident {incident_id} already has an open dispute",
                    )

            staged = dict(self._investigations)
            for investigation in commit.investigations:
                staged[investigation.id] = investigation
            active = [
                i for i in staged.values() if i.incident_id == incident_id and i.is_active
            ]
            if len(active) > 1:
                raise InvalidTransitionError(
                    from_state=current.status,
                    to_state=commit.incident.status,
                    message=f"Incident {incident_id} would have two active investigations",
                )

            stored = replace(commit.incident, version=current.version + 1)
            self._incidents[incident_id] = stored
            self._investigations = staged
            self._audit.setdefault(incident_id, []).extend(commit.audit_entries)
            if commit.dispute is not None:
                self._disputes[commit.dispute.id] = commit.dispute
            self._commit_count += 1
            return stored

    async def get_investigation(self, investigation_id: UUID) -> Investigation | None:
        self._check_read("get_investigation")
        return self._investigations.get(investigation_id)

    async def get_active_investigation(self, incident_id: UUID) -> Investigation | None:
        self._check_read("get_active_investigation")
        for investigation in self._investigations.values():
            if investigation.incident_id == incident_id and investigation.is_active:
                return investigation
        return None

    def _open_dispute(self, incident_id: UUID) -> Dispute | None:
        for dispute in self._disputes.values():
            if dispute.incident_id == incident_id and dispute.is_open:
                return dispute
        return None

    async def get_open_dispute(self, incident_id: UUID) -> Dispute | None:
        self._check_read("get_open_dispute")
        return self._open_dispute(incident_id)

    async def list_disputes(self, incident_id: UUID) -> list[Dispute]:
        self._check_read("list_disputes")
        disputes = [d for d in self._disputes.values() if d.incident_id == incident_id]
        return sorted(disputes, key=lambda d: d.opened_at)

    async def count_finalized_violations(
        self, contractor_id: UUID, violation_type: str
    ) -> int:
        self._check_read("count_finalized_violations")
        count = self._violation_history.get((contractor_id, violation_type), 0)
        for incident in self._incidents.values():
            violation = incident.violation
            if (
                violation is not None
                and violation.stage is ViolationStage.FINALIZED
                and violation.contractor_id == contractor_id
                and violation.violation_type == violation_type
            ):
                count += 1
        return count

    async def list_corrective_actions(
        self, incident_id: UUID
    ) -> Sequence[CorrectiveAction]:
        self._check_read("list_corrective_actions")
        return list(self._corrective_actions.get(incident_id, []))

    async def list_audit_entries(self, incident_id: UUID) -> list[AuditEntry]:
        self._check_read("list_audit_entries")
        return list(self._audit.get(incident_id, []))
