"""SLA escalation API routes.

Tenant threshold configuration, manual timer control and a manual sweep
trigger. The periodic sweep itself runs in the background monitor.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status

from hsse_workflow.api.dependencies import ActorId, Services
from hsse_workflow.api.errors import ERROR_RESPONSES, problem_exception, unwrap_or_raise
from hsse_workflow.api.models.sla import (
    EscalatableEventResponse,
    MonitorStatusResponse,
    SlaConfigModel,
    SweepSummaryResponse,
    TrackEventRequest,
)
from hsse_workflow.application.dtos.workflow_result import WorkflowResult
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.models.sla_config import WILDCARD

router = APIRouter(prefix="/v1/sla", tags=["sla"])

_EVENT_ERRORS = {code: ERROR_RESPONSES[code] for code in (404, 409, 503)}


@router.put(
    "/configs",
    response_model=SlaConfigModel,
    responses={422: ERROR_RESPONSES[422], 503: ERROR_RESPONSES[503]},
    summary="Create or replace an SLA config",
)
async def save_sla_config(
    body: SlaConfigModel,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> SlaConfigModel:
    try:
        config = body.to_domain()
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "type": "https://hsse-workflow.dev/errors/invalid-sla-config",
                "title": "Invalid SLA Config",
                "status": 422,
                "detail": str(e),
                "instance": str(request.url),
            },
        ) from None
    result = await services.sla.save_sla_config(config, actor_id=actor_id)
    return SlaConfigModel.from_domain(unwrap_or_raise(result, request, services))


@router.get(
    "/configs/{tenant_id}",
    response_model=SlaConfigModel,
    responses={503: ERROR_RESPONSES[503]},
    summary="Resolve the effective SLA config",
    description=(
        "Exact (category, priority) match first, then the tenant default, "
        "then the built-in 2 / 5 / 10 minute thresholds."
    ),
)
async def resolve_sla_config(
    tenant_id: UUID,
    request: Request,
    services: Services,
    category: str = Query(default=WILDCARD),
    priority: str = Query(default=WILDCARD),
) -> SlaConfigModel:
    try:
        config = await services.sla.resolve_sla_config(tenant_id, category, priority)
    except StoreError as e:
        raise problem_exception(
            WorkflowResult.failure(e),
            request,
            services.workflow_config.store_retry_after_seconds,
        ) from None
    return SlaConfigModel.from_domain(config)


@router.post(
    "/events",
    response_model=EscalatableEventResponse,
    status_code=status.HTTP_201_CREATED,
    responses={503: ERROR_RESPONSES[503]},
    summary="Start an SLA timer",
)
async def track_event(
    body: TrackEventRequest,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> EscalatableEventResponse:
    result = await services.sla.track_event(
        body.tenant_id,
        body.kind,
        body.source_id,
        body.category,
        body.priority,
        actor_id=actor_id,
    )
    return EscalatableEventResponse.from_domain(unwrap_or_raise(result, request, services))


@router.post(
    "/events/{event_id}/acknowledge",
    response_model=EscalatableEventResponse,
    responses=_EVENT_ERRORS,
    summary="Acknowledge an SLA event",
)
async def acknowledge_event(
    event_id: UUID,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> EscalatableEventResponse:
    result = await services.sla.acknowledge_event(event_id, actor_id=actor_id)
    return EscalatableEventResponse.from_domain(unwrap_or_raise(result, request, services))


@router.post(
    "/events/{event_id}/resolve",
    response_model=EscalatableEventResponse,
    responses=_EVENT_ERRORS,
    summary="Resolve an SLA event",
)
async def resolve_event(
    event_id: UUID,
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> EscalatableEventResponse:
    result = await services.sla.resolve_event(event_id, actor_id=actor_id)
    return EscalatableEventResponse.from_domain(unwrap_or_raise(result, request, services))


@router.post(
    "/sweep",
    response_model=SweepSummaryResponse,
    responses={409: ERROR_RESPONSES[409], 503: ERROR_RESPONSES[503]},
    summary="Run one SLA sweep now",
)
async def run_sweep(
    request: Request,
    actor_id: ActorId,
    services: Services,
) -> SweepSummaryResponse:
    try:
        summary = await services.monitor.run_once(actor_id=actor_id)
    except StoreError as e:
        raise problem_exception(
            WorkflowResult.failure(e),
            request,
            services.workflow_config.store_retry_after_seconds,
        ) from None
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "type": "https://hsse-workflow.dev/errors/sweep-in-progress",
                "title": "Sweep In Progress",
                "status": 409,
                "detail": "An SLA sweep is already running",
                "instance": str(request.url),
            },
        )
    return SweepSummaryResponse.from_domain(summary)


@router.get(
    "/monitor",
    response_model=MonitorStatusResponse,
    summary="SLA monitor status",
)
async def monitor_status(services: Services) -> MonitorStatusResponse:
    monitor = services.monitor
    last = monitor.last_summary
    return MonitorStatusResponse(
        running=monitor.running,
        interval_seconds=monitor.interval_seconds,
        sweep_in_progress=monitor.sweep_in_progress,
        skipped_ticks=monitor.skipped_ticks,
        last_summary=SweepSummaryResponse.from_domain(last) if last else None,
    )
