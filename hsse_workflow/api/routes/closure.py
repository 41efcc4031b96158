"""Closure API routes."""

from uuid import UUID

from fastapi import APIRouter, Request

from hsse_workflow.api.dependencies import ActorId, OptionalActorId, Services
from hsse_workflow.api.errors import ERROR_RESPONSES, unwrap_or_raise
from hsse_workflow.api.models.closure import (
    CloseIncidentRequest,
    ClosureReadinessResponse,
    RejectClosureRequest,
    RequestClosureRequest,
    ValidateInvestigationRequest,
)
from hsse_workflow.api.models.incident import IncidentResponse, incident_to_response

router = APIRouter(prefix="/v1/incidents/{incident_id}/closure", tags=["closure"])


@router.get(
    "/readiness",
    response_model=ClosureReadinessResponse,
    responses={404: ERROR_RESPONSES[404], 503: ERROR_RESPONSES[503]},
    summary="Evaluate the closure checklist",
    description=(
        "Read-only. With X-Actor-ID and a justification the severity "
        "authority check is included as well."
    ),
)
async def evaluate_closure_readiness(
    incident_id: UUID,
    request: Request,
    services: Services,
    actor_id: OptionalActorId,
    justification: str | None = None,
) -> ClosureReadinessResponse:
    result = await services.closure.evaluate_closure_readiness(
        incident_id, actor_id=actor_id, justification=justification
    )
    return ClosureReadinessResponse.from_domain(
        unwrap_or_raise(result, request, services)
    )


@router.post(
    "/close",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Close the incident",
)
async def close_incident(
    incident_id: UUID,
    body: CloseIncidentRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.closure.close_incident(
        incident_id, actor_id, justification=body.justification
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/approve",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Approve a pending final closure",
)
async def approve_closure(
    incident_id: UUID,
    body: CloseIncidentRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.closure.approve_closure(
        incident_id, actor_id, justification=body.justification
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/request",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Request closure after corrective actions",
)
async def request_closure(
    incident_id: UUID,
    body: RequestClosureRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.closure.request_closure(
        incident_id, actor_id, notes=body.notes
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/validation",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Accept or reject the investigation as HSSE",
)
async def validate_investigation(
    incident_id: UUID,
    body: ValidateInvestigationRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.closure.validate_investigation(
        incident_id, actor_id, body.decision, notes=body.notes
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/reject",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Send a closure request back to corrective actions",
)
async def reject_closure(
    incident_id: UUID,
    body: RejectClosureRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.closure.reject_closure(incident_id, actor_id, body.reason)
    return incident_to_response(unwrap_or_raise(result, request, services))
