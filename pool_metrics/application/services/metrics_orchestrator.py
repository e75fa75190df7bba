"""Metrics orchestrator bound to its collaborators."""

from pool_metrics.application.services.collector_registry import CollectorRegistry
from pool_metrics.application.use_cases.collect_pool_metrics import run as collect_pool_metrics
from pool_metrics.application.use_cases.collect_scheduled_pools import run as collect_scheduled_pools
from pool_metrics.application.use_cases.trigger_immediate_collection import run as trigger_immediate
from pool_metrics.domain.enums import CollectionMethod
from pool_metrics.domain.ports import ClockPort, MetricsStorePort, PoolRegistryPort


class MetricsOrchestrator:
    """Entry point for metrics collection, used by runners and the route layer."""

    def __init__(
        self,
        registry: PoolRegistryPort,
        collectors: CollectorRegistry,
        metrics_store: MetricsStorePort,
        clock: ClockPort,
        delay_between_pools: float = 0.0,
    ) -> None:
        self.registry = registry
        self.collectors = collectors
        self.metrics_store = metrics_store
        self.clock = clock
        self.delay_between_pools = delay_between_pools

    async def collect_all_metrics_for_pool(
        self,
        pool_id: str,
        method: CollectionMethod = CollectionMethod.AUTO,
    ) -> None:
        await collect_pool_metrics(
            pool_id,
            method,
            self.registry,
            self.collectors,
            self.metrics_store,
            self.clock,
        )

    async def trigger_immediate_collection(self, pool_id: str) -> None:
        await trigger_immediate(
            pool_id,
            self.registry,
            self.collectors,
            self.metrics_store,
            self.clock,
        )

    async def collect_metrics_for_scheduled_pools(self) -> int:
        return await collect_scheduled_pools(
            self.registry,
            self.collectors,
            self.metrics_store,
            self.clock,
            self.delay_between_pools,
        )
