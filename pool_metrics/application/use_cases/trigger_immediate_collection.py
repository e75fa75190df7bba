"""Immediate first collection for a newly registered pool."""

from pool_metrics.application.services.collector_registry import CollectorRegistry
from pool_metrics.application.use_cases.collect_pool_metrics import run as collect_pool_metrics
from pool_metrics.domain.enums import CollectionMethod
from pool_metrics.domain.ports import ClockPort, MetricsStorePort, PoolRegistryPort


async def run(
    pool_id: str,
    registry: PoolRegistryPort,
    collectors: CollectorRegistry,
    metrics_store: MetricsStorePort,
    clock: ClockPort,
) -> None:
    """Collect all metrics for a pool with method=immediate."""
    await collect_pool_metrics(
        pool_id,
        CollectionMethod.IMMEDIATE,
        registry,
        collectors,
        metrics_store,
        clock,
    )
