"""FastAPI dependencies for the HSSE workflow API."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends

from hsse_workflow.api.dependencies.actor import get_actor_id, get_optional_actor_id
from hsse_workflow.api.dependencies.workflow import (
    get_workflow_services,
    reset_workflow_services,
    set_workflow_services,
)
from hsse_workflow.bootstrap.workflow import WorkflowServices

# Shorthands for route signatures
ActorId = Annotated[UUID, Depends(get_actor_id)]
OptionalActorId = Annotated[UUID | None, Depends(get_optional_actor_id)]
Services = Annotated[WorkflowServices, Depends(get_workflow_services)]

__all__ = [
    "ActorId",
    "OptionalActorId",
    "Services",
    "get_actor_id",
    "get_optional_actor_id",
    "get_workflow_services",
    "reset_workflow_services",
    "set_workflow_services",
]
