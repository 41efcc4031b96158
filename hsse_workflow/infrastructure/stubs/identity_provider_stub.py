"""Identity provider stub for testing.

Holds a fixed directory of actors. Unknown actors resolve to no roles and
no department, which the role gate then refuses.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from hsse_workflow.application.ports.identity_provider import IdentityProviderProtocol
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.models.actor import Role


@dataclass(frozen=True)
class _DirectoryEntry:
    roles: frozenset[Role]
    department_id: UUID | None
    display_name: str | None


class IdentityProviderStub(IdentityProviderProtocol):
    """In-memory identity directory.

    Usage:
        identity = IdentityProviderStub()
        identity.register(actor_id, {Role.HSSE_EXPERT}, department_id=dept)

        # Simulate the directory being unreachable
        identity.set_available(False)
    """

    def __init__(self) -> None:
        self._entries: dict[UUID, _DirectoryEntry] = {}
        self._available = True
        self._lookup_count = 0

    def register(
        self,
        actor_id: UUID,
        roles: Iterable[Role],
        department_id: UUID | None = None,
        display_name: str | None = None,
    ) -> None:
        """Add or replace an actor in the directory."""
        self._entries[actor_id] = _DirectoryEntry(
            roles=frozenset(roles),
            department_id=department_id,
            display_name=display_name,
        )

    def set_roles(self, actor_id: UUID, roles: Iterable[Role]) -> None:
        """Change an actor's roles (revocation between calls)."""
        entry = self._entries.get(actor_id)
        self.register(
            actor_id,
            roles,
            department_id=entry.department_id if entry else None,
            display_name=entry.display_name if entry else None,
        )

    def set_available(self, available: bool) -> None:
        self._available = available

    def clear(self) -> None:
        self._entries.clear()
        self._available = True
        self._lookup_count = 0

    @property
    def lookup_count(self) -> int:
        """Get the number of role lookups."""
        return self._lookup_count

    def _entry(self, actor_id: UUID, operation: str) -> _DirectoryEntry | None:
        if not self._available:
            raise StoreError(operation, "Simulated identity provider outage")
        return self._entries.get(actor_id)

    async def get_roles(self, actor_id: UUID) -> set[Role]:
        self._lookup_count += 1
        entry = self._entry(actor_id, "get_roles")
        return set(entry.roles) if entry else set()

    async def get_department(self, actor_id: UUID) -> UUID | None:
        entry = self._entry(actor_id, "get_department")
        return entry.department_id if entry else None

    async def get_display_name(self, actor_id: UUID) -> str | None:
        entry = self._entry(actor_id, "get_display_name")
        return entry.display_name if entry else None
