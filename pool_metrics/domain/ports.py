"""Ports (interfaces) for infrastructure adapters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from pool_metrics.domain.entities import (
    CacheSnapshot,
    CurrentMetrics,
    MetricResult,
    MetricsHistoryRecord,
    MetricState,
    Pool,
)
from pool_metrics.domain.enums import MetricName
from pool_metrics.domain.types import JsonDict, JsonValue, Timestamp


class PoolRegistryPort(ABC):
    """Port for looking up pools."""

    @abstractmethod
    async def get_pool(self, pool_id: str) -> Pool | None:
        """Get pool by id, or None if unknown."""

    @abstractmethod
    async def list_pools_due_for_collection(self, now: Timestamp) -> list[Pool]:
        """List pools whose platform refresh interval has elapsed."""


class MetricsStorePort(ABC):
    """Port for current metrics and metrics history."""

    @abstractmethod
    async def update_metric_status(
        self,
        pool_id: str,
        metric: MetricName,
        state: MetricState,
    ) -> None:
        """Overwrite the current state of one metric."""

    @abstractmethod
    async def get_current_metrics(self, pool_id: str) -> CurrentMetrics | None:
        """Get current metrics of a pool."""

    @abstractmethod
    async def append_history(self, record: MetricsHistoryRecord) -> None:
        """Append one history record."""

    @abstractmethod
    async def list_history(self, pool_id: str) -> list[MetricsHistoryRecord]:
        """List history records of a pool in append order."""


class SnapshotStorePort(ABC):
    """Port for persisted cache snapshots, keyed by chain then pool id."""

    @abstractmethod
    async def load(self, chain: str, pool_id: str) -> CacheSnapshot | None:
        """Load a snapshot, or None if absent or unreadable."""

    @abstractmethod
    async def save(self, chain: str, pool_id: str, snapshot: CacheSnapshot) -> None:
        """Persist a snapshot (last writer wins)."""


class SnapshotBuilderPort(ABC):
    """Port for the expensive routine that rebuilds a snapshot."""

    @abstractmethod
    async def build(
        self,
        chain: str,
        pool_id: str,
        address: str,
        previous: CacheSnapshot | None,
    ) -> JsonDict:
        """Build fresh snapshot data."""


class PlatformCollector(ABC):
    """Fetches the four metrics of a pool from one platform family.

    Implementations return a MetricResult for expected failures
    (unreachable API, missing data, rate limit) and only raise on
    truly unexpected conditions.
    """

    @abstractmethod
    async def collect_apy(self, pool: Pool) -> MetricResult:
        """Collect annualized yield, in percent."""

    @abstractmethod
    async def collect_tvl(self, pool: Pool) -> MetricResult:
        """Collect total value locked, in USD."""

    @abstractmethod
    async def collect_days(self, pool: Pool) -> MetricResult:
        """Collect operating days of the pool contract."""

    @abstractmethod
    async def collect_holders(self, pool: Pool) -> MetricResult:
        """Collect distinct holder count of the pool token."""


@dataclass(frozen=True)
class HttpResponse:
    """HTTP response returned by HttpClientPort."""

    status_code: int
    body: JsonValue
    text: str
    url: str


class HttpClientPort(ABC):
    """Port for async HTTP calls."""

    @abstractmethod
    async def get(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Execute GET request."""

    @abstractmethod
    async def post(
        self,
        url: str,
        payload: JsonValue,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Execute POST request with a JSON body."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying session."""


class ClockPort(ABC):
    """Port for time operations."""

    @abstractmethod
    def now(self) -> Timestamp:
        """Get current timestamp (timezone-aware UTC)."""
