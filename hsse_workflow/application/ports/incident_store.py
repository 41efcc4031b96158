"""Incident store port.

Defines the persistence contract for incidents and the records that
hang off them (investigations, disputes, audit entries, corrective
actions).

Every status change is written through ``commit``, which is a single
atomic compare-and-swap: the incident's stored version must equal
``expected_version``, and the incident, its audit entries and any
investigation or dispute upserts are written together or not at all.

Implementations raise:
- ConcurrentModificationError when the version check fails
- InvalidTransitionError when a commit would leave two open disputes or
  two active investigations on one incident
- NotFoundError when the incident does not exist
- StoreError on I/O failure
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from hsse_workflow.domain.models.audit_entry import AuditEntry
from hsse_workflow.domain.models.corrective_action import CorrectiveAction
from hsse_workflow.domain.models.dispute import Dispute
from hsse_workflow.domain.models.incident import Incident
from hsse_workflow.domain.models.investigation import Investigation


@dataclass(frozen=True)
class TransitionCommit:
    """Everything written by one workflow step.

    Attributes:
        expected_version: Incident version the step was evaluated against.
        incident: Updated incident (its version is assigned by the store).
        audit_entries: Audit entries appended in the same commit.
        investigations: Investigation records to insert or replace.
        dispute: Dispute record to insert or replace.
    """

    expected_version: int
    incident: Incident
    audit_entries: tuple[AuditEntry, ...] = field(default=())
    investigations: tuple[Investigation, ...] = field(default=())
    dispute: Dispute | None = field(default=None)


class IncidentStoreProtocol(Protocol):
    """Protocol for incident persistence."""

    async def create_incident(
        self, incident: Incident, audit_entries: Sequence[AuditEntry]
    ) -> Incident:
        """Insert a newly reported incident with its audit entries.

        An incident closed on the spot is created already closed, with the
        report and closure entries written together.

        Returns:
            The stored incident.

        Raises:
            StoreError: If the incident already exists or I/O fails.
        """
        ...

    async def get_incident(self, incident_id: UUID) -> Incident | None:
        """Retrieve an incident by ID.

        Returns:
            The incident if found (soft-deleted ones included), None otherwise.
        """
        ...

    async def commit(self, commit: TransitionCommit) -> Incident:
        """Atomically write a workflow step (compare-and-swap on version).

        Returns:
            The stored incident with its new version.
        """
        ...

    async def get_investigation(self, investigation_id: UUID) -> Investigation | None:
        """Retrieve an investigation by ID."""
        ...

    async def get_active_investigation(self, incident_id: UUID) -> Investigation | None:
        """Retrieve the incident's active (not closed) investigation."""
        ...

    async def get_open_dispute(self, incident_id: UUID) -> Dispute | None:
        """Retrieve the incident's open dispute, if any."""
        ...

    async def list_disputes(self, incident_id: UUID) -> list[Dispute]:
        """List every dispute of an incident, oldest first."""
        ...

    async def count_finalized_violations(
        self, contractor_id: UUID, violation_type: str
    ) -> int:
        """Count finalized violations of a type charged to a contractor."""
        ...

    async def list_corrective_actions(
        self, incident_id: UUID
    ) -> Sequence[CorrectiveAction]:
        """List the incident's corrective actions."""
        ...

    async def list_audit_entries(self, incident_id: UUID) -> list[AuditEntry]:
        """List the incident's audit entries in commit order."""
        ...
