"""Unit tests for the dispute, violation and closure routes."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from hsse_workflow.domain.models.incident import IncidentStatus, Severity
from tests.helpers import WorkflowHarness, as_actor
from tests.helpers.workflow_harness import MEDIATION_NOTES

DISPUTE_REASON = "The rejection ignored the permit records we attached"


class TestDisputeRoutes:
    """Tests for /v1/incidents/{id}/disputes."""

    @pytest.mark.asyncio
    async def test_open_and_resolve(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_manager_rejected()
        base = f"/v1/incidents/{incident.id}/disputes"

        opened = await client.post(
            base,
            json={
                "category": "investigation_scope",
                "reason": DISPUTE_REASON,
                "evidence_refs": ["evidence/permit-44.pdf"],
            },
            headers=as_actor(harness.cast.investigator),
        )
        open_now = await client.get(f"{base}/open")
        resolved = await client.post(
            f"{base}/resolve",
            json={"decision": "override_rejection", "notes": MEDIATION_NOTES},
            headers=as_actor(harness.cast.hsse_manager),
        )
        history = await client.get(base)

        assert opened.status_code == 201
        assert opened.json()["origin_status"] == "manager_rejected"
        assert opened.json()["evidence_refs"] == ["evidence/permit-44.pdf"]
        assert open_now.json()["id"] == opened.json()["id"]
        assert resolved.status_code == 200
        assert resolved.json()["status"] == "resolved"
        assert resolved.json()["decision"] == "override_rejection"
        assert history.json()["total"] == 1
        stored = await harness.incident(incident.id)
        assert stored.status is IncidentStatus.PENDING_CLOSURE

    @pytest.mark.asyncio
    async def test_no_open_dispute(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.report()

        response = await client.get(f"/v1/incidents/{incident.id}/disputes/open")

        assert response.status_code == 200
        assert response.json() is None

    @pytest.mark.asyncio
    async def test_short_reason_is_422(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_manager_rejected()

        response = await client.post(
            f"/v1/incidents/{incident.id}/disputes",
            json={"category": "other", "reason": "unfair"},
            headers=as_actor(harness.cast.investigator),
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "missing_justification"

    @pytest.mark.asyncio
    async def test_non_mediator_is_403(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_manager_rejected()
        await client.post(
            f"/v1/incidents/{incident.id}/disputes",
            json={"category": "other", "reason": DISPUTE_REASON},
            headers=as_actor(harness.cast.investigator),
        )

        response = await client.post(
            f"/v1/incidents/{incident.id}/disputes/resolve",
            json={"decision": "maintain_rejection", "notes": MEDIATION_NOTES},
            headers=as_actor(harness.cast.dept_manager),
        )

        assert response.status_code == 403


class TestViolationRoutes:
    """Tests for the contractor violation routes."""

    @pytest.mark.asyncio
    async def test_warning_path_to_finalized(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_investigation()
        investigation = await harness.submit_findings(incident.id, violation=True)

        submitted = await client.post(
            f"/v1/investigations/{investigation.id}/violation",
            json={},
            headers=as_actor(harness.cast.investigator),
        )
        approved = await client.post(
            f"/v1/incidents/{incident.id}/violation/department-decision",
            json={"decision": "approved"},
            headers=as_actor(harness.cast.dept_manager),
        )
        acknowledged = await client.post(
            f"/v1/incidents/{incident.id}/violation/acknowledgment",
            json={"decision": "acknowledged"},
            headers=as_actor(harness.cast.contractor_rep),
        )

        assert submitted.status_code == 200
        violation = submitted.json()["violation"]
        assert violation["occurrence"] == 1
        assert violation["occurrence_label"] == "1st"
        assert violation["penalty_severity"] == "low"
        assert approved.json()["status"] == "pending_contractor_site_rep_approval"
        assert acknowledged.status_code == 200
        assert acknowledged.json()["status"] == "investigation_in_progress"
        assert acknowledged.json()["violation"]["stage"] == "finalized"

    @pytest.mark.asyncio
    async def test_controller_decision_in_wrong_status_is_409(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_investigation()

        response = await client.post(
            f"/v1/incidents/{incident.id}/violation/controller-decision",
            json={"decision": "approved"},
            headers=as_actor(harness.cast.contract_controller),
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_review_requires_notes_field(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_investigation()

        response = await client.post(
            f"/v1/incidents/{incident.id}/violation/review",
            json={"decision": "enforce"},
            headers=as_actor(harness.cast.expert),
        )

        assert response.status_code == 422
        assert isinstance(response.json()["detail"], list)


class TestClosureRoutes:
    """Tests for /v1/incidents/{id}/closure."""

    @pytest.mark.asyncio
    async def test_readiness_lists_blocking_reasons(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_pending_closure()

        response = await client.get(f"/v1/incidents/{incident.id}/closure/readiness")

        assert response.status_code == 200
        data = response.json()
        assert data["ready"] is False
        assert data["checks"]["hsse_validation_accepted"] is False
        assert "HSSE validation has not been accepted" in data["blocking_reasons"]

    @pytest.mark.asyncio
    async def test_validate_and_approve(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_pending_closure()
        base = f"/v1/incidents/{incident.id}/closure"

        validated = await client.post(
            f"{base}/validation",
            json={"decision": "accept"},
            headers=as_actor(harness.cast.expert),
        )
        readiness = await client.get(f"{base}/readiness")
        closed = await client.post(
            f"{base}/approve",
            json={"justification": "All actions verified on site"},
            headers=as_actor(harness.cast.hsse_manager),
        )

        assert validated.json()["status"] == "pending_final_closure"
        assert validated.json()["hsse_validation_accepted"] is True
        assert readiness.json()["ready"] is True
        assert closed.status_code == 200
        assert closed.json()["status"] == "closed"
        assert closed.json()["closed_at"] is not None

    @pytest.mark.asyncio
    async def test_level_5_readiness_with_actor(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_pending_final_closure(severity=Severity.LEVEL_5)
        url = f"/v1/incidents/{incident.id}/closure/readiness"

        anonymous = await client.get(url)
        authorised = await client.get(
            url,
            params={"justification": "Board reviewed the investigation"},
            headers=as_actor(harness.cast.hsse_manager),
        )

        assert anonymous.json()["ready"] is False
        assert anonymous.json()["checks"]["severity_authority"] is False
        assert authorised.json()["ready"] is True

    @pytest.mark.asyncio
    async def test_close_from_final_closure_by_officer_is_403(
        self, client: AsyncClient, harness: WorkflowHarness
    ) -> None:
        incident = await harness.to_pending_final_closure()

        response = await client.post(
            f"/v1/incidents/{incident.id}/closure/close",
            json={},
            headers=as_actor(harness.cast.reporter),
        )

        assert response.status_code == 403
