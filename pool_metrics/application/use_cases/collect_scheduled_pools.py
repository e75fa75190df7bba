"""Collect metrics for all pools due for refresh."""

import asyncio

import structlog

from pool_metrics.application.services.collector_registry import CollectorRegistry
from pool_metrics.application.use_cases.collect_pool_metrics import run as collect_pool_metrics
from pool_metrics.domain.enums import CollectionMethod
from pool_metrics.domain.ports import ClockPort, MetricsStorePort, PoolRegistryPort

logger = structlog.get_logger()


async def run(
    registry: PoolRegistryPort,
    collectors: CollectorRegistry,
    metrics_store: MetricsStorePort,
    clock: ClockPort,
    delay_between_pools: float = 0.0,
) -> int:
    """Collect due pools one after another. Returns the number of pools processed."""
    try:
        pools = await registry.list_pools_due_for_collection(clock.now())
    except Exception as e:
        logger.error("scheduled_pool_selection_failed", error=str(e), exc_info=True)
        return 0

    logger.info("scheduled_collection_started", pool_count=len(pools))

    for index, pool in enumerate(pools):
        if index and delay_between_pools > 0:
            await asyncio.sleep(delay_between_pools)
        await collect_pool_metrics(
            pool.id,
            CollectionMethod.AUTO,
            registry,
            collectors,
            metrics_store,
            clock,
        )

    logger.info("scheduled_collection_completed", pool_count=len(pools))
    return len(pools)
