"""Scheduled collection runner."""

import asyncio

import structlog

from pool_metrics.application.services.metrics_orchestrator import MetricsOrchestrator

logger = structlog.get_logger()


class ScheduledCollectionRunner:
    """Runs scheduled collection passes until shutdown."""

    def __init__(self, orchestrator: MetricsOrchestrator, interval_seconds: float) -> None:
        """Initialize scheduled collection runner."""
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds

    async def run_once(self) -> int:
        """Run one scheduled pass. Returns the number of pools processed."""
        return await self.orchestrator.collect_metrics_for_scheduled_pools()

    async def run_forever(self, shutdown_event: asyncio.Event) -> None:
        """Run passes every interval until shutdown_event is set."""
        while not shutdown_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.error("scheduled_pass_error", exc_info=True, error=str(e))

            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
