"""Process-wide single-flight coordination of snapshot rebuilds."""

import asyncio
import threading
from collections.abc import Awaitable, Callable

import structlog

from pool_metrics.domain.types import CacheMetricsDict
from pool_metrics.infrastructure.observability.metrics import builds_in_flight

logger = structlog.get_logger()


class BuildCoordinator:
    """Set of cache keys currently being rebuilt.

    A key is inserted before its rebuild starts and removed once it
    ends, whatever the outcome. Membership is process-local.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    def try_acquire(self, key: str) -> bool:
        """Insert key unless already present. Returns True if inserted."""
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
            builds_in_flight.set(len(self._in_flight))
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)
            builds_in_flight.set(len(self._in_flight))

    def is_building(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def spawn(self, key: str, build: Callable[[], Awaitable[None]]) -> bool:
        """Start build in the background unless key is already in flight.

        Returns True if a new background build was started.
        """
        if not self.try_acquire(key):
            logger.info("build_already_running", cache_key=key)
            return False

        async def _run() -> None:
            try:
                await build()
            finally:
                self.release(key)

        task = asyncio.get_running_loop().create_task(_run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("build_started", cache_key=key)
        return True

    async def drain(self) -> None:
        """Wait for all background builds started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def metrics(self) -> CacheMetricsDict:
        with self._lock:
            return {
                "running_builds": len(self._in_flight),
                "build_queue": sorted(self._in_flight),
            }
