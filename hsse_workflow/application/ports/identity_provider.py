"""Identity provider port.

The workflow never authenticates anyone. It asks this port what roles
and department the calling actor currently holds.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from hsse_workflow.domain.models.actor import Role


class IdentityProviderProtocol(Protocol):
    """Protocol for resolving actor roles and departments."""

    async def get_roles(self, actor_id: UUID) -> set[Role]:
        """Return the actor's roles. Unknown actors have no roles."""
        ...

    async def get_department(self, actor_id: UUID) -> UUID | None:
        """Return the actor's department, or None if unassigned."""
        ...

    async def get_display_name(self, actor_id: UUID) -> str | None:
        """Return the actor's display name for audit details."""
        ...
