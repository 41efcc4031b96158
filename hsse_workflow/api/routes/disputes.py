"""Dispute API routes.

Reporters open disputes against a rejection or a completed investigation;
mediators (HSSE manager or admin) resolve them.
"""

from uuid import UUID

from fastapi import APIRouter, Request, status

from hsse_workflow.api.dependencies import ActorId, Services
from hsse_workflow.api.errors import ERROR_RESPONSES, unwrap_or_raise
from hsse_workflow.api.models.dispute import (
    DisputeListResponse,
    DisputeResponse,
    OpenDisputeRequest,
    ResolveDisputeRequest,
    dispute_to_response,
)

router = APIRouter(prefix="/v1/incidents/{incident_id}/disputes", tags=["disputes"])


@router.post(
    "",
    response_model=DisputeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Open a dispute",
)
async def open_dispute(
    incident_id: UUID,
    body: OpenDisputeRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> DisputeResponse:
    result = await services.disputes.open_dispute(
        incident_id,
        actor_id,
        body.category,
        body.reason,
        evidence_refs=tuple(body.evidence_refs),
    )
    return dispute_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/resolve",
    response_model=DisputeResponse,
    responses=ERROR_RESPONSES,
    summary="Resolve the open dispute",
    description=(
        "Against a manager rejection: override_rejection moves the incident "
        "to pending_closure, maintain_rejection and partial_rework send it "
        "back to investigation. Against an expert rejection: "
        "override_rejection moves it to pending_manager_approval, "
        "maintain_rejection closes it as rejected, and partial_rework "
        "returns it to the reporter."
    ),
)
async def resolve_dispute(
    incident_id: UUID,
    body: ResolveDisputeRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> DisputeResponse:
    result = await services.disputes.resolve_dispute(
        incident_id, actor_id, body.decision, body.notes
    )
    return dispute_to_response(unwrap_or_raise(result, request, services))


@router.get(
    "",
    response_model=DisputeListResponse,
    responses={503: ERROR_RESPONSES[503]},
    summary="List disputes of an incident",
)
async def list_disputes(
    incident_id: UUID,
    request: Request,
    services: Services,
) -> DisputeListResponse:
    result = await services.disputes.list_disputes(incident_id)
    disputes = unwrap_or_raise(result, request, services)
    return DisputeListResponse(
        incident_id=incident_id,
        disputes=[dispute_to_response(d) for d in disputes],
        total=len(disputes),
    )


@router.get(
    "/open",
    response_model=DisputeResponse | None,
    responses={503: ERROR_RESPONSES[503]},
    summary="Get the open dispute, if any",
)
async def get_open_dispute(
    incident_id: UUID,
    request: Request,
    services: Services,
) -> DisputeResponse | None:
    result = await services.disputes.get_open_dispute(incident_id)
    dispute = unwrap_or_raise(result, request, services)
    return dispute_to_response(dispute) if dispute else None
