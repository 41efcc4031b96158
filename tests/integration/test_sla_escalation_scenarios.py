"""Integration tests for SLA escalation.

Approval timers are started by the workflow itself and advanced with the
fake clock; the monitor runs its real loop on the test event loop.
"""

from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

import pytest

from hsse_workflow.domain.events.workflow import (
    SLA_BREACHED_EVENT_TYPE,
    SLA_ESCALATED_EVENT_TYPE,
)
from hsse_workflow.domain.models.decisions import ManagerDecision
from hsse_workflow.domain.models.escalatable_event import (
    EscalatableEvent,
    EscalatableEventKind,
)
from hsse_workflow.domain.models.incident import Severity
from hsse_workflow.domain.models.sla_config import WILDCARD, SlaConfig
from hsse_workflow.infrastructure.stubs.escalation_store_stub import FailureMode
from tests.helpers import WorkflowHarness, ok

pytestmark = pytest.mark.integration


async def approval_timer(harness: WorkflowHarness, severity: Severity) -> EscalatableEvent:
    incident = await harness.to_pending_manager_approval(severity=severity)
    (event,) = await harness.escalation_store.find_active_by_source(incident.id)
    return event


async def stored(harness: WorkflowHarness, event_id: UUID) -> EscalatableEvent:
    event = await harness.escalation_store.get_event(event_id)
    assert event is not None
    return event


class TestBreachWithoutDuplicates:
    """A breach is notified once and the level holds until the next threshold."""

    @pytest.mark.asyncio
    async def test_breach_then_quiet_sweep(self, harness: WorkflowHarness) -> None:
        event = ok(
            await harness.services.sla.track_event(
                tenant_id=harness.cast.tenant_id,
                kind=EscalatableEventKind.EMERGENCY_ALERT,
                source_id=uuid4(),
                category="security",
                priority="4",
            )
        )

        harness.time.advance(seconds=150)
        await harness.services.sla.run_sla_sweep()
        breached_at = harness.time.now()
        after_breach = await stored(harness, event.id)

        harness.time.advance(seconds=10)
        second = await harness.services.sla.run_sla_sweep()
        after_quiet = await stored(harness, event.id)

        assert after_breach.escalation_level == 1
        assert after_breach.sla_breach_notified_at == breached_at
        assert after_quiet == after_breach
        assert second.breached == 0
        assert second.escalated == 0
        assert len(harness.dispatcher.sent_of_type(SLA_BREACHED_EVENT_TYPE)) == 1


class TestMonotonicLevels:
    """Levels never go down and freeze once acknowledged."""

    @pytest.mark.asyncio
    async def test_levels_climb_and_freeze(self, harness: WorkflowHarness) -> None:
        event = await approval_timer(harness, Severity.LEVEL_3)
        levels: list[int] = []

        for step in (60, 70, 100, 100, 150, 200):
            harness.time.advance(seconds=step)
            await harness.services.sla.run_sla_sweep()
            levels.append((await stored(harness, event.id)).escalation_level)
            if levels[-1] == 2:
                ok(await harness.services.sla.acknowledge_event(event.id))

        assert levels == sorted(levels)
        assert max(levels) == 2
        assert levels[-1] == 2
        assert len(harness.dispatcher.sent_of_type(SLA_ESCALATED_EVENT_TYPE)) == 1

    @pytest.mark.asyncio
    async def test_decision_stops_the_timer(self, harness: WorkflowHarness) -> None:
        event = await approval_timer(harness, Severity.LEVEL_3)
        ok(
            await harness.services.incidents.manager_approve_or_reject(
                event.source_id, harness.cast.dept_manager, ManagerDecision.APPROVED
            )
        )

        harness.time.advance(seconds=1000)
        await harness.services.sla.run_sla_sweep()

        approval = await stored(harness, event.id)
        assert approval.resolved_at is not None
        assert approval.escalation_level == 0
        breaches = harness.dispatcher.sent_of_type(SLA_BREACHED_EVENT_TYPE)
        assert [n.payload["kind"] for n in breaches] == [
            EscalatableEventKind.INVESTIGATION.value
        ]

    @pytest.mark.asyncio
    async def test_decision_racing_a_sweep_still_stops_the_timer(
        self, harness: WorkflowHarness
    ) -> None:
        event = await approval_timer(harness, Severity.LEVEL_3)
        harness.escalation_store.set_failure_mode(
            FailureMode(conflict_once_for=frozenset({event.id}))
        )

        ok(
            await harness.services.incidents.manager_approve_or_reject(
                event.source_id, harness.cast.dept_manager, ManagerDecision.APPROVED
            )
        )
        harness.escalation_store.clear_failure_mode()
        harness.time.advance(seconds=1000)
        await harness.services.sla.run_sla_sweep()

        approval = await stored(harness, event.id)
        assert approval.resolved_at is not None
        assert approval.escalation_level == 1
        assert not any(
            n.payload["event_id"] == str(event.id)
            for n in harness.dispatcher.sent_of_type(SLA_ESCALATED_EVENT_TYPE)
        )


class TestConfigResolutionOrder:
    """Exact match, then tenant default, then built-in thresholds."""

    @pytest.mark.asyncio
    async def test_thresholds_follow_resolution_order(
        self, harness: WorkflowHarness
    ) -> None:
        tenant_id = harness.cast.tenant_id
        ok(
            await harness.services.sla.save_sla_config(
                SlaConfig(
                    tenant_id=tenant_id,
                    category="incident",
                    priority="5",
                    max_response_seconds=30,
                    escalation_after_seconds=60,
                    second_escalation_seconds=90,
                )
            )
        )
        ok(
            await harness.services.sla.save_sla_config(
                SlaConfig(
                    tenant_id=tenant_id,
                    category=WILDCARD,
                    priority=WILDCARD,
                    max_response_seconds=90,
                    escalation_after_seconds=180,
                    second_escalation_seconds=360,
                )
            )
        )
        catastrophic = await approval_timer(harness, Severity.LEVEL_5)
        serious = await approval_timer(harness, Severity.LEVEL_4)

        harness.time.advance(seconds=45)
        await harness.services.sla.run_sla_sweep()
        at_45 = [
            (await stored(harness, catastrophic.id)).escalation_level,
            (await stored(harness, serious.id)).escalation_level,
        ]

        harness.time.advance(seconds=50)
        await harness.services.sla.run_sla_sweep()
        at_95 = [
            (await stored(harness, catastrophic.id)).escalation_level,
            (await stored(harness, serious.id)).escalation_level,
        ]

        assert at_45 == [1, 0]
        assert at_95 == [2, 1]

    @pytest.mark.asyncio
    async def test_other_tenant_uses_builtin_thresholds(
        self, harness: WorkflowHarness
    ) -> None:
        ok(
            await harness.services.sla.save_sla_config(
                SlaConfig(
                    tenant_id=uuid4(),
                    category=WILDCARD,
                    priority=WILDCARD,
                    max_response_seconds=10,
                    escalation_after_seconds=20,
                    second_escalation_seconds=30,
                )
            )
        )
        event = await approval_timer(harness, Severity.LEVEL_3)

        harness.time.advance(seconds=119)
        await harness.services.sla.run_sla_sweep()
        before = (await stored(harness, event.id)).escalation_level
        harness.time.advance(seconds=2)
        await harness.services.sla.run_sla_sweep()
        after = (await stored(harness, event.id)).escalation_level

        assert (before, after) == (0, 1)


class TestMonitorLoop:
    """The background monitor sweeps on its own and skips overlapping ticks."""

    @pytest.mark.asyncio
    async def test_monitor_notifies_breach(self, harness: WorkflowHarness) -> None:
        event = await approval_timer(harness, Severity.LEVEL_3)
        harness.time.advance(seconds=121)
        monitor = harness.services.monitor

        await monitor.start()
        try:
            for _ in range(100):
                if harness.dispatcher.sent_of_type(SLA_BREACHED_EVENT_TYPE):
                    break
                await asyncio.sleep(0.01)
        finally:
            await monitor.stop()

        (breach,) = harness.dispatcher.sent_of_type(SLA_BREACHED_EVENT_TYPE)
        assert breach.entity_id == event.id
        assert breach.payload["source_id"] == str(event.source_id)
        assert (await stored(harness, event.id)).escalation_level == 1

    @pytest.mark.asyncio
    async def test_slow_sweeps_skip_ticks(self, harness: WorkflowHarness) -> None:
        await approval_timer(harness, Severity.LEVEL_3)
        harness.escalation_store.set_failure_mode(FailureMode(list_delay_seconds=0.2))
        monitor = harness.services.monitor

        await monitor.start()
        await asyncio.sleep(0.3)
        await monitor.stop()

        assert monitor.skipped_ticks >= 1
        assert harness.escalation_store.list_count <= 2
