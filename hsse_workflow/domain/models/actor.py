"""Actor and role domain model.

An Actor is the resolved identity behind a workflow call: the roles the
identity provider reports plus the department used for reporter-department
review checks. Actors are resolved per call and never cached by the engine.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Roles recognised by the workflow.

    Roles:
        EMPLOYEE: Any staff member; may report incidents.
        HSSE_EXPERT: Screens reports and validates investigations.
        HSSE_OFFICER: Field officer; may validate investigations.
        HSSE_MANAGER: Mediator and top closure authority.
        DEPARTMENT_MANAGER: Approving manager for investigations and violations.
        DEPARTMENT_REPRESENTATIVE: Reviews observations from their department.
        INVESTIGATOR: Runs investigations and submits violations.
        CONTRACT_CONTROLLER: Confirms contractor fines.
        CONTRACTOR_SITE_REPRESENTATIVE: Acknowledges or contests violations.
        ADMIN: Tenant administrator; may force approvals with justification.
    """

    EMPLOYEE = "employee"
    HSSE_EXPERT = "hsse_expert"
    HSSE_OFFICER = "hsse_officer"
    HSSE_MANAGER = "hsse_manager"
    DEPARTMENT_MANAGER = "department_manager"
    DEPARTMENT_REPRESENTATIVE = "department_representative"
    INVESTIGATOR = "investigator"
    CONTRACT_CONTROLLER = "contract_controller"
    CONTRACTOR_SITE_REPRESENTATIVE = "contractor_site_representative"
    ADMIN = "admin"


# Roles allowed to mediate disputes
MEDIATOR_ROLES: frozenset[Role] = frozenset({Role.HSSE_MANAGER, Role.ADMIN})

# Roles allowed to close catastrophic (level 5) incidents
TOP_ROLES: frozenset[Role] = frozenset({Role.HSSE_MANAGER, Role.ADMIN})

ALL_ROLES: frozenset[Role] = frozenset(Role)


@dataclass(frozen=True, eq=True)
class Actor:
    """A resolved caller of a workflow operation.

    Attributes:
        actor_id: Identity of the caller.
        roles: Roles held at resolution time.
        department_id: Department the caller belongs to (None if unassigned).
        display_name: Human readable name, used in audit details.
    """

    actor_id: UUID
    roles: frozenset[Role] = field(default_factory=frozenset)
    department_id: UUID | None = field(default=None)
    display_name: str | None = field(default=None)

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def has_any_role(self, roles: Iterable[Role]) -> bool:
        return not self.roles.isdisjoint(roles)
