"""Incident workflow API routes.

FastAPI router for reporting incidents and driving them through
screening, approval, escalation, investigation, severity adjustment and
admin override.
Every mutating route takes the acting user from the X-Actor-ID header;
rejections are returned as RFC 7807 problem details.
"""

from uuid import UUID

from fastapi import APIRouter, Request, status

from hsse_workflow.api.dependencies import ActorId, Services
from hsse_workflow.api.errors import ERROR_RESPONSES, unwrap_or_raise
from hsse_workflow.api.models.incident import (
    AdminOverrideRequest,
    AssignApproverRequest,
    AssignInvestigatorRequest,
    AuditTrailResponse,
    CloseOnSpotRequest,
    EscalateRequest,
    HsseManagerDecisionRequest,
    IncidentResponse,
    InvestigationFindingsRequest,
    InvestigationResponse,
    ManagerDecisionRequest,
    ProposeSeverityChangeRequest,
    ReportIncidentRequest,
    ReporterResponseRequest,
    ScreenIncidentRequest,
    SeverityDecisionRequest,
    TransitionRequest,
    audit_entry_to_response,
    incident_to_response,
    investigation_to_response,
)
from hsse_workflow.application.dtos.commands import (
    InvestigationFindings,
    ReportIncidentCommand,
    TransitionPayload,
)

router = APIRouter(prefix="/v1/incidents", tags=["incidents"])


@router.post(
    "",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Report an incident",
    description=(
        "Report an incident or observation. With closed_on_spot set, an "
        "eligible low severity observation is closed in the same call."
    ),
)
async def report_incident(
    body: ReportIncidentRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    command = ReportIncidentCommand(
        tenant_id=body.tenant_id,
        reporter_id=actor_id,
        category=body.category,
        severity=body.severity,
        title=body.title,
        description=body.description,
        occurred_at=body.occurred_at,
        potential_severity=body.potential_severity,
        closed_on_spot=body.closed_on_spot,
        photos=tuple(photo.to_domain() for photo in body.photos),
    )
    result = await services.incidents.report_incident(command)
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.get(
    "/{incident_id}",
    response_model=IncidentResponse,
    responses={404: ERROR_RESPONSES[404], 503: ERROR_RESPONSES[503]},
    summary="Get incident",
)
async def get_incident(
    incident_id: UUID,
    request: Request,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.get_incident(incident_id)
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.get(
    "/{incident_id}/audit",
    response_model=AuditTrailResponse,
    responses={404: ERROR_RESPONSES[404], 503: ERROR_RESPONSES[503]},
    summary="Get the incident audit trail",
)
async def list_audit_entries(
    incident_id: UUID,
    request: Request,
    services: Services,
) -> AuditTrailResponse:
    result = await services.incidents.list_audit_entries(incident_id)
    entries = unwrap_or_raise(result, request, services)
    return AuditTrailResponse(
        incident_id=incident_id,
        entries=[audit_entry_to_response(e) for e in entries],
        total=len(entries),
    )


@router.get(
    "/{incident_id}/investigation",
    response_model=InvestigationResponse | None,
    responses={404: ERROR_RESPONSES[404], 503: ERROR_RESPONSES[503]},
    summary="Get the active investigation",
)
async def get_active_investigation(
    incident_id: UUID,
    request: Request,
    services: Services,
) -> InvestigationResponse | None:
    result = await services.incidents.get_active_investigation(incident_id)
    investigation = unwrap_or_raise(result, request, services)
    return investigation_to_response(investigation) if investigation else None


@router.post(
    "/{incident_id}/transitions",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Propose a status transition",
    description=(
        "Generic transition for edges without a dedicated operation. "
        "Rejections require a reason; closure runs the closure checklist."
    ),
)
async def propose_transition(
    incident_id: UUID,
    body: TransitionRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.propose_transition(
        incident_id,
        actor_id,
        body.target_status,
        TransitionPayload(reason=body.reason, notes=body.notes),
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/close-on-spot",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Close a submitted observation on the spot",
)
async def close_on_spot(
    incident_id: UUID,
    body: CloseOnSpotRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.close_on_spot(
        incident_id, actor_id, [photo.to_domain() for photo in body.photos]
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/screening/start",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Take a submitted incident into expert screening",
)
async def start_screening(
    incident_id: UUID,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.start_screening(incident_id, actor_id)
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/screening",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Record the expert screening outcome",
)
async def screen_incident(
    incident_id: UUID,
    body: ScreenIncidentRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.screen_incident(
        incident_id,
        actor_id,
        body.recommendation,
        notes=body.notes,
        investigator_id=body.investigator_id,
        approver_id=body.approver_id,
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/manager-decision",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Approve or reject as the assigned department manager",
)
async def manager_approve_or_reject(
    incident_id: UUID,
    body: ManagerDecisionRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.manager_approve_or_reject(
        incident_id, actor_id, body.decision, reason=body.reason
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/escalate",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Escalate a pending approval to the HSSE manager",
)
async def escalate_to_hsse_manager(
    incident_id: UUID,
    body: EscalateRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.escalate_to_hsse_manager(
        incident_id, actor_id, body.reason
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/hsse-manager-decision",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Override or maintain an escalated rejection",
)
async def hsse_manager_decide(
    incident_id: UUID,
    body: HsseManagerDecisionRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.hsse_manager_decide(
        incident_id, actor_id, body.decision, body.notes
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/reporter-response",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Confirm, dispute or resubmit as the reporter",
)
async def reporter_respond_to_rejection(
    incident_id: UUID,
    body: ReporterResponseRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.reporter_respond_to_rejection(
        incident_id,
        actor_id,
        body.action,
        notes=body.notes,
        dispute_category=body.dispute_category,
        evidence_refs=tuple(body.evidence_refs),
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.put(
    "/{incident_id}/investigator",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Assign the investigator",
)
async def assign_investigator(
    incident_id: UUID,
    body: AssignInvestigatorRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.assign_investigator(
        incident_id, actor_id, body.investigator_id
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.put(
    "/{incident_id}/approver",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Assign the approving department manager",
)
async def assign_approver(
    incident_id: UUID,
    body: AssignApproverRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.assign_approver(
        incident_id, actor_id, body.approver_id
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/investigation/findings",
    response_model=InvestigationResponse,
    responses=ERROR_RESPONSES,
    summary="Submit investigation findings",
)
async def submit_investigation_findings(
    incident_id: UUID,
    body: InvestigationFindingsRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> InvestigationResponse:
    findings = InvestigationFindings(
        root_cause=body.root_cause,
        immediate_cause=body.immediate_cause,
        evidence_summary=body.evidence_summary,
        violation_identified=body.violation_identified,
        violation_type=body.violation_type,
        contractor_id=body.contractor_id,
        contractor_contribution_pct=body.contractor_contribution_pct,
        penalty_type=body.penalty_type,
        fine_amount=body.fine_amount,
    )
    result = await services.incidents.submit_investigation_findings(
        incident_id, actor_id, findings
    )
    return investigation_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/admin-override",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Override a terminal rejection as an administrator",
)
async def admin_override(
    incident_id: UUID,
    body: AdminOverrideRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.admin_override(
        incident_id,
        actor_id,
        body.justification,
        original_approver_name=body.original_approver_name,
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/severity",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Propose a change to the realized severity",
    description=(
        "The assigned investigator proposes a new severity with a "
        "justification. The incident keeps its current severity until an "
        "HSSE manager approves the change."
    ),
)
async def propose_severity_change(
    incident_id: UUID,
    body: ProposeSeverityChangeRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    result = await services.incidents.propose_severity_change(
        incident_id, actor_id, body.severity, body.justification
    )
    return incident_to_response(unwrap_or_raise(result, request, services))


@router.post(
    "/{incident_id}/severity/decision",
    response_model=IncidentResponse,
    responses=ERROR_RESPONSES,
    summary="Approve or reject a proposed severity change",
)
async def decide_severity_change(
    incident_id: UUID,
    body: SeverityDecisionRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> IncidentResponse:
    if body.approved:
        result = await services.incidents.approve_severity_change(incident_id, actor_id)
    else:
        result = await services.incidents.reject_severity_change(
            incident_id, actor_id, reason=body.notes
        )
    return incident_to_response(unwrap_or_raise(result, request, services))
