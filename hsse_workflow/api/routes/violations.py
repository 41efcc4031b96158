"""Contractor violation API routes.

Drives a violation raised by an investigation through department manager
approval, contract controller confirmation, contractor acknowledgment
and, when contested, HSSE review.
"""

from uuid import UUID

from fastapi import APIRouter, Request

from hsse_workflow.api.dependencies import ActorId, Services
from hsse_workflow.api.errors import ERROR_RESPONSES, unwrap_or_raise
from hsse_workflow.api.models.incident import IncidentResponse, incident_to_response
from hsse_workflow.api.models.violation import (
    ContractorAcknowledgmentRequest,
    SubmitViolationRequest,
    ViolationDecisionRequest,
    ViolationReviewRequest,
)

router = APIRouter(prefix="/v1", tags=["violations"])


@router.post(
    "/investigations/{investigation_id}/violation",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Submit the violation identified by an investigation",
)
async def submit_violation(
    investigation_id: UUID,
    body: SubmitViolationRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.violations.submit_violation(
        investigation_id, actor_id, evidence_summary=body.evidence_summary
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/incidents/{incident_id}/violation/department-decision",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Department manager decision on a submitted violation",
)
async def department_manager_decide(
    incident_id: UUID,
    body: ViolationDecisionRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.violations.department_manager_decide(
        incident_id, actor_id, body.decision, notes=body.notes
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/incidents/{incident_id}/violation/controller-decision",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Contract controller confirmation of a fine",
)
async def contract_controller_decide(
    incident_id: UUID,
    body: ViolationDecisionRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.violations.contract_controller_decide(
        incident_id, actor_id, body.decision, notes=body.notes
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/incidents/{incident_id}/violation/acknowledgment",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Contractor site representative acknowledges or contests",
)
async def contractor_acknowledge(
    incident_id: UUID,
    body: ContractorAcknowledgmentRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.violations.contractor_acknowledge(
        incident_id, actor_id, body.decision, notes=body.notes
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/incidents/{incident_id}/violation/review",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="HSSE review of a contested violation",
)
async def hsse_review_violation(
    incident_id: UUID,
    body: ViolationReviewRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.violations.hsse_review_violation(
        incident_id,
        actor_id,
        body.decision,
        body.notes,
        penalty_type=body.penalty_type,
        fine_amount=body.fine_amount,
    )
    return incident_to_response(unwrap_or_raise(result, request, services))
