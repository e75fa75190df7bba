"""Stale-while-revalidate cache for expensive per-pool snapshots."""

from datetime import timedelta

import structlog

from pool_metrics.application.services.build_coordinator import BuildCoordinator
from pool_metrics.domain.entities import CacheReadResult, CacheSnapshot
from pool_metrics.domain.errors import SnapshotBuildError
from pool_metrics.domain.ports import ClockPort, SnapshotBuilderPort, SnapshotStorePort
from pool_metrics.domain.types import CacheMetricsDict
from pool_metrics.infrastructure.observability.metrics import cache_reads, snapshot_rebuilds

logger = structlog.get_logger()

DEFAULT_STALE_TTL = timedelta(hours=1)
DEFAULT_HARD_TTL = timedelta(hours=24)


class SnapshotCache:
    """Serves persisted snapshots immediately and rebuilds them in the background.

    Per key the lifecycle is absent -> building -> fresh -> stale -> building
    -> fresh. Snapshots older than ``hard_ttl`` are never served; they read as
    absent and trigger a rebuild. At most one background rebuild runs per key.
    """

    def __init__(
        self,
        store: SnapshotStorePort,
        builder: SnapshotBuilderPort,
        clock: ClockPort,
        coordinator: BuildCoordinator | None = None,
        stale_ttl: timedelta = DEFAULT_STALE_TTL,
        hard_ttl: timedelta = DEFAULT_HARD_TTL,
        namespace: str = "topHolders",
    ) -> None:
        if stale_ttl > hard_ttl:
            raise ValueError("stale_ttl must not exceed hard_ttl")
        self.store = store
        self.builder = builder
        self.clock = clock
        self.coordinator = coordinator or BuildCoordinator()
        self.stale_ttl = stale_ttl
        self.hard_ttl = hard_ttl
        self.namespace = namespace

    def cache_key(self, chain: str, address: str) -> str:
        return f"{self.namespace}:{chain}:{address}"

    async def get(
        self,
        chain: str,
        pool_id: str,
        address: str,
        ensure_fresh: bool = False,
    ) -> CacheReadResult | None:
        """Return the best available snapshot without waiting on a rebuild.

        Returns None when there is no servable snapshot; a background
        rebuild has been requested in that case.
        """
        key = self.cache_key(chain, address)

        try:
            snapshot = await self.store.load(chain, pool_id)
        except Exception as e:
            logger.error("snapshot_load_failed", cache_key=key, error=str(e), exc_info=True)
            return None

        if snapshot is None:
            cache_reads.labels(state="miss").inc()
            self._trigger_background_build(key, chain, pool_id, address)
            return None

        age = self.clock.now() - snapshot.updated_at

        if age > self.hard_ttl:
            cache_reads.labels(state="expired").inc()
            logger.info("snapshot_expired", cache_key=key, age_seconds=age.total_seconds())
            self._trigger_background_build(key, chain, pool_id, address)
            return None

        is_stale = age > self.stale_ttl
        cache_reads.labels(state="stale" if is_stale else "fresh").inc()

        if is_stale or ensure_fresh:
            logger.info(
                "snapshot_refresh_requested",
                cache_key=key,
                is_stale=is_stale,
                ensure_fresh=ensure_fresh,
            )
            self._trigger_background_build(key, chain, pool_id, address)

        return CacheReadResult(
            data=snapshot.data,
            updated_at=snapshot.updated_at,
            is_stale=is_stale,
        )

    async def invalidate(self, chain: str, pool_id: str, address: str) -> CacheReadResult:
        """Force a rebuild and wait for it to finish.

        Runs even if a background rebuild for the same key is in flight.
        Raises SnapshotBuildError if the rebuild fails.
        """
        key = self.cache_key(chain, address)
        logger.info("snapshot_invalidating", cache_key=key)

        acquired = self.coordinator.try_acquire(key)
        try:
            snapshot = await self._rebuild(chain, pool_id, address)
        except Exception as e:
            snapshot_rebuilds.labels(outcome="failed").inc()
            logger.error("snapshot_invalidate_failed", cache_key=key, error=str(e), exc_info=True)
            raise SnapshotBuildError(f"Rebuild failed for {key}: {e}") from e
        finally:
            if acquired:
                self.coordinator.release(key)

        snapshot_rebuilds.labels(outcome="succeeded").inc()
        logger.info("snapshot_invalidated", cache_key=key)
        return CacheReadResult(data=snapshot.data, updated_at=snapshot.updated_at, is_stale=False)

    def is_building(self, chain: str, address: str) -> bool:
        return self.coordinator.is_building(self.cache_key(chain, address))

    def get_metrics(self) -> CacheMetricsDict:
        return self.coordinator.metrics()

    def _trigger_background_build(self, key: str, chain: str, pool_id: str, address: str) -> None:
        async def _build() -> None:
            try:
                await self._rebuild(chain, pool_id, address)
            except Exception as e:
                snapshot_rebuilds.labels(outcome="failed").inc()
                logger.error("background_build_failed", cache_key=key, error=str(e), exc_info=True)
                return
            snapshot_rebuilds.labels(outcome="succeeded").inc()
            logger.info("background_build_completed", cache_key=key)

        self.coordinator.spawn(key, _build)

    async def _rebuild(self, chain: str, pool_id: str, address: str) -> CacheSnapshot:
        previous = await self.store.load(chain, pool_id)
        data = await self.builder.build(chain, pool_id, address, previous)
        snapshot = CacheSnapshot(data=data, updated_at=self.clock.now())
        await self.store.save(chain, pool_id, snapshot)
        return snapshot
