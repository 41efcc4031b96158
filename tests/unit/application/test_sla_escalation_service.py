"""Unit tests for SlaEscalationService.

Sweeps run against the escalation store stub with a FakeTimeAuthority,
so every threshold is crossed by advancing the clock.
"""

from __future__ import annotations

from unittest.mock import patch
from uuid import UUID, uuid4

import pytest

from hsse_workflow.application.services.sla_escalation_service import SlaEscalationService
from hsse_workflow.domain.errors.store import StoreError
from hsse_workflow.domain.errors.workflow import RejectionCode
from hsse_workflow.domain.events.workflow import (
    SLA_BREACHED_EVENT_TYPE,
    SLA_ESCALATED_EVENT_TYPE,
)
from hsse_workflow.domain.models.escalatable_event import (
    EscalatableEvent,
    EscalatableEventKind,
)
from hsse_workflow.domain.models.sla_config import SlaConfig
from hsse_workflow.infrastructure.stubs.escalation_store_stub import FailureMode
from hsse_workflow.infrastructure.stubs.notification_dispatcher_stub import (
    FailureMode as DispatchFailureMode,
)
from tests.helpers import WorkflowHarness
from tests.helpers.workflow_harness import ok


async def track(
    harness: WorkflowHarness,
    category: str = "incident",
    priority: str = "3",
    source_id: UUID | None = None,
) -> EscalatableEvent:
    return ok(
        await harness.services.sla.track_event(
            tenant_id=harness.cast.tenant_id,
            kind=EscalatableEventKind.INCIDENT_APPROVAL,
            source_id=source_id or uuid4(),
            category=category,
            priority=priority,
        )
    )


async def level_of(harness: WorkflowHarness, event_id: UUID) -> int:
    stored = await harness.escalation_store.get_event(event_id)
    assert stored is not None
    return stored.escalation_level


class TestTimers:
    """Tests for starting and stopping SLA timers."""

    @pytest.mark.asyncio
    async def test_track_event(self, harness: WorkflowHarness) -> None:
        event = await track(harness)

        assert event.triggered_at == harness.time.now()
        assert event.escalation_level == 0
        assert event.is_active
        assert harness.escalation_store.events == [event]

    @pytest.mark.asyncio
    async def test_track_event_store_failure(self, harness: WorkflowHarness) -> None:
        harness.escalation_store.set_failure_mode(FailureMode(save_fails=True))

        result = await harness.services.sla.track_event(
            tenant_id=harness.cast.tenant_id,
            kind=EscalatableEventKind.EMERGENCY_ALERT,
            source_id=uuid4(),
            category="fire",
            priority="1",
        )

        assert result.code is RejectionCode.STORE_ERROR
        assert result.retryable

    @pytest.mark.asyncio
    async def test_acknowledge(self, harness: WorkflowHarness) -> None:
        event = await track(harness)
        harness.time.advance(seconds=30)

        acknowledged = ok(await harness.services.sla.acknowledge_event(event.id))

        assert acknowledged.acknowledged_at == harness.time.now()
        assert not acknowledged.is_active
        assert acknowledged.version == event.version + 1

    @pytest.mark.asyncio
    async def test_acknowledge_twice_is_a_no_op(self, harness: WorkflowHarness) -> None:
        event = await track(harness)
        first = ok(await harness.services.sla.acknowledge_event(event.id))
        harness.time.advance(seconds=30)

        second = ok(await harness.services.sla.acknowledge_event(event.id))

        assert second == first

    @pytest.mark.asyncio
    async def test_acknowledge_unknown_event(self, harness: WorkflowHarness) -> None:
        result = await harness.services.sla.acknowledge_event(uuid4())

        assert result.code is RejectionCode.NOT_FOUND
        assert result.details["entity"] == "escalatable_event"

    @pytest.mark.asyncio
    async def test_resolve_event(self, harness: WorkflowHarness) -> None:
        event = await track(harness)

        resolved = ok(await harness.services.sla.resolve_event(event.id))

        assert resolved.resolved_at == harness.time.now()
        assert not resolved.is_active

    @pytest.mark.asyncio
    async def test_resolve_for_source(self, harness: WorkflowHarness) -> None:
        source_id = uuid4()
        await track(harness, source_id=source_id)
        await track(harness, source_id=source_id)
        other = await track(harness)

        count = ok(await harness.services.sla.resolve_for_source(source_id))

        assert count == 2
        assert await harness.escalation_store.find_active_by_source(source_id) == []
        assert (await harness.escalation_store.get_event(other.id)).is_active  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_resolve_for_source_without_timers(
        self, harness: WorkflowHarness
    ) -> None:
        assert ok(await harness.services.sla.resolve_for_source(uuid4())) == 0

    @pytest.mark.asyncio
    async def test_resolve_for_source_by_kind(self, harness: WorkflowHarness) -> None:
        source_id = uuid4()
        approval = await track(harness, source_id=source_id)
        alert = ok(
            await harness.services.sla.track_event(
                tenant_id=harness.cast.tenant_id,
                kind=EscalatableEventKind.EMERGENCY_ALERT,
                source_id=source_id,
                category="fire",
                priority="1",
            )
        )

        count = ok(
            await harness.services.sla.resolve_for_source(
                source_id, EscalatableEventKind.INCIDENT_APPROVAL
            )
        )

        assert count == 1
        assert not (await harness.escalation_store.get_event(approval.id)).is_active  # type: ignore[union-attr]
        assert (await harness.escalation_store.get_event(alert.id)).is_active  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_resolve_for_source_retries_after_concurrent_escalation(
        self, harness: WorkflowHarness
    ) -> None:
        """A sweep that wins the race does not leave the timer running."""
        event = await track(harness)
        harness.escalation_store.set_failure_mode(
            FailureMode(conflict_once_for=frozenset({event.id}))
        )

        count = ok(await harness.services.sla.resolve_for_source(event.source_id))

        stored = await harness.escalation_store.get_event(event.id)
        assert count == 1
        assert stored is not None
        assert stored.resolved_at == harness.time.now()
        assert stored.escalation_level == 1
        assert stored.version == event.version + 2

    @pytest.mark.asyncio
    async def test_actor_is_logged_on_config_save(
        self, harness: WorkflowHarness
    ) -> None:
        actor_id = uuid4()
        config = SlaConfig(tenant_id=harness.cast.tenant_id, max_response_seconds=60)

        with patch.object(harness.services.sla, "_log") as mock_log:
            ok(await harness.services.sla.save_sla_config(config, actor_id=actor_id))

        assert mock_log.bind.call_args.kwargs["actor_id"] == str(actor_id)
        mock_log.bind.return_value.info.assert_called_once_with("sla_config_saved")


class TestConfigResolution:
    """Thresholds resolve exact, then tenant wildcard, then default."""

    @pytest.mark.asyncio
    async def test_default_when_nothing_configured(
        self, harness: WorkflowHarness
    ) -> None:
        config = await harness.services.sla.resolve_sla_config(
            harness.cast.tenant_id, "incident", "3"
        )

        assert config.max_response_seconds == 120
        assert config.escalation_after_seconds == 300
        assert config.second_escalation_seconds == 600
        assert config.tenant_id == harness.cast.tenant_id

    @pytest.mark.asyncio
    async def test_tenant_wildcard_before_default(
        self, harness: WorkflowHarness
    ) -> None:
        wildcard = SlaConfig(
            tenant_id=harness.cast.tenant_id,
            max_response_seconds=60,
            escalation_after_seconds=120,
            second_escalation_seconds=180,
        )
        ok(await harness.services.sla.save_sla_config(wildcard))

        config = await harness.services.sla.resolve_sla_config(
            harness.cast.tenant_id, "incident", "3"
        )

        assert config == wildcard

    @pytest.mark.asyncio
    async def test_exact_match_wins(self, harness: WorkflowHarness) -> None:
        tenant = harness.cast.tenant_id
        ok(await harness.services.sla.save_sla_config(SlaConfig(tenant_id=tenant)))
        exact = SlaConfig(
            tenant_id=tenant,
            category="incident",
            priority="5",
            max_response_seconds=30,
            escalation_after_seconds=60,
            second_escalation_seconds=90,
            escalation_recipients=("hsse-duty@example.com",),
        )
        ok(await harness.services.sla.save_sla_config(exact))

        assert await harness.services.sla.resolve_sla_config(tenant, "incident", "5") == exact
        assert (
            await harness.services.sla.resolve_sla_config(tenant, "incident", "4")
        ).max_response_seconds == 120

    @pytest.mark.asyncio
    async def test_other_tenants_config_is_ignored(
        self, harness: WorkflowHarness
    ) -> None:
        ok(
            await harness.services.sla.save_sla_config(
                SlaConfig(
                    tenant_id=uuid4(),
                    max_response_seconds=10,
                    escalation_after_seconds=20,
                    second_escalation_seconds=30,
                )
            )
        )

        config = await harness.services.sla.resolve_sla_config(
            harness.cast.tenant_id, "incident", "3"
        )

        assert config.max_response_seconds == 120


class TestSweep:
    """Tests for run_sla_sweep."""

    @pytest.mark.asyncio
    async def test_nothing_due(self, harness: WorkflowHarness) -> None:
        event = await track(harness)
        harness.time.advance(seconds=120)

        summary = await harness.services.sla.run_sla_sweep()

        assert summary.processed == 1
        assert summary.breached == 0
        assert await level_of(harness, event.id) == 0
        assert harness.dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_levels_follow_default_thresholds(
        self, harness: WorkflowHarness
    ) -> None:
        event = await track(harness)

        harness.time.advance(seconds=121)
        first = await harness.services.sla.run_sla_sweep()
        harness.time.advance(seconds=180)
        second = await harness.services.sla.run_sla_sweep()
        harness.time.advance(seconds=300)
        third = await harness.services.sla.run_sla_sweep()

        assert (first.breached, second.escalated, third.escalated) == (1, 1, 1)
        assert await level_of(harness, event.id) == 3
        assert harness.dispatcher.event_types() == [
            SLA_BREACHED_EVENT_TYPE,
            SLA_ESCALATED_EVENT_TYPE,
            SLA_ESCALATED_EVENT_TYPE,
        ]
        critical = harness.dispatcher.sent[-1]
        assert critical.payload["level"] == 3
        assert critical.payload["critical"] is True
        assert critical.payload["threshold_seconds"] == 600

    @pytest.mark.asyncio
    async def test_one_step_per_sweep(self, harness: WorkflowHarness) -> None:
        """An event far past every threshold still climbs one level per sweep."""
        event = await track(harness)
        harness.time.advance(seconds=3600)

        for expected in (1, 2, 3):
            await harness.services.sla.run_sla_sweep()
            assert await level_of(harness, event.id) == expected

        summary = await harness.services.sla.run_sla_sweep()
        assert summary.breached == summary.escalated == 0
        assert len(harness.dispatcher.sent) == 3

    @pytest.mark.asyncio
    async def test_breach_payload(self, harness: WorkflowHarness) -> None:
        event = await track(harness)
        harness.time.advance(seconds=150)

        await harness.services.sla.run_sla_sweep()

        (notification,) = harness.dispatcher.sent_of_type(SLA_BREACHED_EVENT_TYPE)
        assert notification.entity_id == event.id
        assert notification.payload["source_id"] == str(event.source_id)
        assert notification.payload["level"] == 1
        assert notification.payload["critical"] is False
        assert notification.payload["elapsed_seconds"] == 150
        assert notification.payload["channels"] == ["push"]
        stored = await harness.escalation_store.get_event(event.id)
        assert stored is not None
        assert stored.sla_breach_notified_at == harness.time.now()

    @pytest.mark.asyncio
    async def test_acknowledged_and_resolved_events_never_escalate(
        self, harness: WorkflowHarness
    ) -> None:
        acknowledged = await track(harness)
        resolved = await track(harness)
        ok(await harness.services.sla.acknowledge_event(acknowledged.id))
        ok(await harness.services.sla.resolve_event(resolved.id))
        harness.time.advance(seconds=3600)

        summary = await harness.services.sla.run_sla_sweep()

        assert summary.processed == 0
        assert await level_of(harness, acknowledged.id) == 0
        assert await level_of(harness, resolved.id) == 0

    @pytest.mark.asyncio
    async def test_exact_config_thresholds_apply(self, harness: WorkflowHarness) -> None:
        ok(
            await harness.services.sla.save_sla_config(
                SlaConfig(
                    tenant_id=harness.cast.tenant_id,
                    category="incident",
                    priority="5",
                    max_response_seconds=30,
                    escalation_after_seconds=60,
                    second_escalation_seconds=90,
                )
            )
        )
        urgent = await track(harness, priority="5")
        routine = await track(harness, priority="2")
        harness.time.advance(seconds=45)

        await harness.services.sla.run_sla_sweep()

        assert await level_of(harness, urgent.id) == 1
        assert await level_of(harness, routine.id) == 0

    @pytest.mark.asyncio
    async def test_dispatch_failure_keeps_level(self, harness: WorkflowHarness) -> None:
        """The level is stored before dispatch, so a failed notice is not re-sent."""
        event = await track(harness)
        harness.time.advance(seconds=121)
        harness.dispatcher.set_failure_mode(DispatchFailureMode(fails=True))

        summary = await harness.services.sla.run_sla_sweep()
        harness.dispatcher.clear_failure_mode()
        again = await harness.services.sla.run_sla_sweep()

        assert summary.breached == 1
        assert harness.dispatcher.failure_count == 1
        assert await level_of(harness, event.id) == 1
        assert again.breached == 0
        assert harness.dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_failed_update_skips_event(self, harness: WorkflowHarness) -> None:
        failing = await track(harness)
        healthy = await track(harness)
        harness.time.advance(seconds=121)
        harness.escalation_store.set_failure_mode(
            FailureMode(update_fails_for=frozenset({failing.id}))
        )

        summary = await harness.services.sla.run_sla_sweep()

        assert summary.processed == 2
        assert summary.skipped == 1
        assert summary.breached == 1
        assert await level_of(harness, failing.id) == 0
        assert await level_of(harness, healthy.id) == 1

    @pytest.mark.asyncio
    async def test_escalations_counted_by_level(self, harness: WorkflowHarness) -> None:
        await track(harness)
        await track(harness)
        harness.time.advance(seconds=121)
        await harness.services.sla.run_sla_sweep()
        harness.time.advance(seconds=180)
        await harness.services.sla.run_sla_sweep()

        metrics = harness.metrics
        assert metrics.value("sla_escalations_total", level="1") == 2
        assert metrics.value("sla_escalations_total", level="2") == 2
        assert metrics.value("sla_escalations_total", level="3") == 0
        assert metrics.value("sla_sweeps_total") == 2

    @pytest.mark.asyncio
    async def test_dispatch_failure_is_counted(self, harness: WorkflowHarness) -> None:
        await track(harness)
        harness.time.advance(seconds=121)
        harness.dispatcher.set_failure_mode(DispatchFailureMode(fails=True))

        await harness.services.sla.run_sla_sweep()

        assert (
            harness.metrics.value(
                "notification_dispatch_failures_total",
                path="sla",
                event_type=SLA_BREACHED_EVENT_TYPE,
            )
            == 1
        )

    @pytest.mark.asyncio
    async def test_skipped_event_is_counted(self, harness: WorkflowHarness) -> None:
        failing = await track(harness)
        harness.time.advance(seconds=121)
        harness.escalation_store.set_failure_mode(
            FailureMode(update_fails_for=frozenset({failing.id}))
        )

        await harness.services.sla.run_sla_sweep()

        assert (
            harness.metrics.value("sla_events_skipped_total", error_type="StoreError")
            == 1
        )
        assert harness.metrics.value("sla_escalations_total", level="1") == 0

    @pytest.mark.asyncio
    async def test_list_failure_raises(self, harness: WorkflowHarness) -> None:
        harness.escalation_store.set_failure_mode(FailureMode(list_fails=True))

        with pytest.raises(StoreError) as exc_info:
            await harness.services.sla.run_sla_sweep()

        assert exc_info.value.operation == "list_unresolved"


class TestNextLevel:
    """Tests for the pure escalation step."""

    @pytest.fixture
    def config(self) -> SlaConfig:
        return SlaConfig(tenant_id=uuid4())

    @pytest.fixture
    def event(self, harness: WorkflowHarness) -> EscalatableEvent:
        return EscalatableEvent(
            id=uuid4(),
            tenant_id=uuid4(),
            kind=EscalatableEventKind.INCIDENT_APPROVAL,
            source_id=uuid4(),
            category="incident",
            priority="3",
            triggered_at=harness.time.now(),
        )

    @pytest.mark.parametrize(
        ("elapsed", "expected"),
        [(0, None), (120, None), (120.5, 1), (10_000, 1)],
    )
    def test_first_breach(
        self,
        event: EscalatableEvent,
        config: SlaConfig,
        elapsed: float,
        expected: int | None,
    ) -> None:
        assert SlaEscalationService.next_level(event, config, elapsed) == expected

    def test_level_two_and_three(
        self, event: EscalatableEvent, config: SlaConfig, harness: WorkflowHarness
    ) -> None:
        next_level = SlaEscalationService.next_level
        breached = event.with_escalation_level(1, breach_notified_at=harness.time.now())

        assert next_level(breached, config, 300) is None
        assert next_level(breached, config, 301) == 2
        assert next_level(breached.with_escalation_level(2), config, 600) is None
        assert next_level(breached.with_escalation_level(2), config, 601) == 3
        assert next_level(breached.with_escalation_level(3), config, 10_000) is None

    def test_inactive_event(
        self, event: EscalatableEvent, config: SlaConfig, harness: WorkflowHarness
    ) -> None:
        acknowledged = event.acknowledge(harness.time.now())

        assert SlaEscalationService.next_level(acknowledged, config, 10_000) is None
