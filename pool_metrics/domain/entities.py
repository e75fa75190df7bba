"""Domain entities."""

from dataclasses import dataclass, field

from pool_metrics.domain.enums import CollectionMethod, MetricName, MetricStatus
from pool_metrics.domain.types import JsonDict, JsonValue, Timestamp


@dataclass(frozen=True)
class Pool:
    """Pool as seen by the metrics core (owned by the registry)."""

    id: str
    platform: str
    contract_address: str | None
    chain: str
    name: str | None = None


@dataclass(frozen=True)
class MetricResult:
    """Outcome of one collector call."""

    value: float | None
    error: str | None = None

    @classmethod
    def ok(cls, value: float) -> "MetricResult":
        return cls(value=value)

    @classmethod
    def failed(cls, error: str) -> "MetricResult":
        return cls(value=None, error=error)


@dataclass(frozen=True)
class MetricState:
    """Current status of one metric of one pool."""

    status: MetricStatus
    value: float | None
    error: str | None
    updated_at: Timestamp

    def __post_init__(self) -> None:
        if (self.status is MetricStatus.SUCCESS) != (self.value is not None):
            raise ValueError("status=success requires a value and a value requires status=success")


@dataclass
class CurrentMetrics:
    """Latest state of all four metrics of one pool."""

    pool_id: str
    metrics: dict[MetricName, MetricState] = field(default_factory=dict)

    def get(self, metric: MetricName) -> MetricState | None:
        return self.metrics.get(metric)

    def last_success_at(self) -> Timestamp | None:
        """Most recent successful update across all metrics."""
        times = [
            state.updated_at
            for state in self.metrics.values()
            if state.status is MetricStatus.SUCCESS
        ]
        return max(times) if times else None


@dataclass(frozen=True)
class MetricsHistoryRecord:
    """Append-only record of one collection pass."""

    pool_id: str
    apy: float | None
    tvl: float | None
    operating_days: int | None
    holders_count: int | None
    data_source: str
    collection_method: CollectionMethod
    api_response: dict[str, JsonValue]
    error_log: str | None
    collected_at: Timestamp


@dataclass(frozen=True)
class CacheSnapshot:
    """Persisted snapshot of a derived dataset."""

    data: JsonDict
    updated_at: Timestamp


@dataclass(frozen=True)
class CacheReadResult:
    """Snapshot served by the cache, with derived staleness."""

    data: JsonDict
    updated_at: Timestamp
    is_stale: bool
