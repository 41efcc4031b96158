"""SLA escalation monitor background service.

Runs the SLA sweep on a fixed interval, decoupled from request handling.

A sweep that overruns its interval is never queued behind: the tick that
finds the previous sweep still running is skipped and counted on the
workflow metrics, so a slow sweep cannot build an unbounded backlog.

Note:
    This service should be started with the application lifecycle
    and stopped when the application shuts down.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from hsse_workflow.config.workflow_config import DEFAULT_SLA_SWEEP_CONFIG
from hsse_workflow.infrastructure.observability.correlation import correlation_scope

if TYPE_CHECKING:
    from hsse_workflow.application.dtos.workflow_result import SweepSummary
    from hsse_workflow.application.ports.workflow_metrics import WorkflowMetricsProtocol
    from hsse_workflow.application.services.sla_escalation_service import (
        SlaEscalationService,
    )


class SlaEscalationMonitor:
    """Background SLA sweep scheduler.

    Attributes:
        running: Whether the monitor loop is running.
        interval_seconds: Seconds between ticks.
        skipped_ticks: Ticks skipped because a sweep was still running.
        last_summary: Summary of the most recent completed sweep.

    Example:
        >>> monitor = SlaEscalationMonitor(escalation_service, interval_seconds=60)
        >>> await monitor.start()
        >>> # ... application runs ...
        >>> await monitor.stop()
    """

    def __init__(
        self,
        escalation_service: SlaEscalationService,
        interval_seconds: float = DEFAULT_SLA_SWEEP_CONFIG.interval_seconds,
        metrics: WorkflowMetricsProtocol | None = None,
    ) -> None:
        self._escalation = escalation_service
        self._interval = interval_seconds
        self._metrics = metrics if metrics is not None else escalation_service.metrics
        self._running: bool = False
        self._task: asyncio.Task[None] | None = None
        self._sweep_task: asyncio.Task[SweepSummary] | None = None
        self._last_summary: SweepSummary | None = None
        self._log = structlog.get_logger().bind(service="sla_escalation_monitor")

    @property
    def running(self) -> bool:
        return self._running

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def skipped_ticks(self) -> int:
        if self._metrics is None:
            return 0
        return self._metrics.skipped_ticks

    @property
    def last_summary(self) -> SweepSummary | None:
        return self._last_summary

    @property
    def sweep_in_progress(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """Start the monitoring loop. Calling start twice is safe."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        self._log.info("sla_escalation_monitor_started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the loop and cancel any sweep still in flight.

        Calling stop when not running is safe.
        """
        self._running = False
        for task in (self._task, self._sweep_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._task = None
        self._sweep_task = None
        self._log.info("sla_escalation_monitor_stopped", skipped_ticks=self.skipped_ticks)

    def tick(self, actor_id: UUID | None = None) -> bool:
        """Start a sweep in the background unless one is still running.

        Args:
            actor_id: Who triggered a manual sweep. None for scheduled ticks.

        Returns:
            True if a sweep was started, False if the tick was skipped.
        """
        if self.sweep_in_progress:
            if self._metrics is not None:
                self._metrics.record_skipped_tick()
            self._log.warning(
                "sla_sweep_tick_skipped",
                reason="previous sweep still running",
                skipped_ticks=self.skipped_ticks,
            )
            return False
        self._sweep_task = asyncio.create_task(self._sweep(actor_id))
        self._sweep_task.add_done_callback(self._on_sweep_done)
        return True

    async def _sweep(self, actor_id: UUID | None) -> SweepSummary:
        with correlation_scope():
            summary = await self._escalation.run_sla_sweep(actor_id=actor_id)
        self._last_summary = summary
        return summary

    def _on_sweep_done(self, task: asyncio.Task[SweepSummary]) -> None:
        if task.cancelled():
            self._log.info("sla_sweep_cancelled")
            return
        error = task.exception()
        if error is not None:
            self._log.error(
                "sla_sweep_failed", error_type=type(error).__name__, error=str(error)
            )

    async def _run_loop(self) -> None:
        """Internal monitoring loop.

        Ticks at the configured interval. Waits for the sweep it started,
        but never past the next tick; a failed sweep is logged by the done
        callback and the loop carries on.
        """
        loop = asyncio.get_running_loop()
        while self._running:
            try:
                start_time = loop.time()
                if self.tick() and self._sweep_task is not None:
                    await asyncio.wait({self._sweep_task}, timeout=self._interval)

                elapsed = loop.time() - start_time
                self._log.debug("sla_tick_complete", elapsed_seconds=elapsed)

                # Sleep for remainder of interval
                await asyncio.sleep(max(0.0, self._interval - elapsed))

            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._log.error("sla_tick_failed", error=str(e))
                await asyncio.sleep(self._interval)

    async def run_once(self, actor_id: UUID | None = None) -> SweepSummary | None:
        """Run a single sweep now (for testing and manual triggers).

        Args:
            actor_id: Who asked for the sweep, recorded on its log entries.

        Returns:
            The sweep summary, or None if a sweep was already running.
        """
        if not self.tick(actor_id):
            return None
        assert self._sweep_task is not None
        return await self._sweep_task
