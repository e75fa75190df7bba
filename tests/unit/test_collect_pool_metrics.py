"""Unit tests for collect_pool_metrics use case."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from pool_metrics.application.services.collector_registry import CollectorRegistry
from pool_metrics.application.use_cases.collect_pool_metrics import COLLECTION_FAILED, run
from pool_metrics.domain.entities import MetricResult, Pool
from pool_metrics.domain.enums import CollectionMethod, MetricName, MetricStatus, Platform
from pool_metrics.domain.ports import PlatformCollector, PoolRegistryPort
from pool_metrics.infrastructure.storage.jsonl_metrics_store import JsonlMetricsStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Create fixed clock."""
    clock = MagicMock()
    clock.now.return_value = NOW
    return clock


@pytest.fixture
def metrics_store(tmp_path):
    """Create metrics store writing history under tmp_path."""
    return JsonlMetricsStore(tmp_path / "history.jsonl")


@pytest.fixture
def morpho_pool():
    return Pool(
        id="pool-1",
        platform="Morpho-Blue",
        contract_address="0xabc",
        chain="ethereum",
    )


@pytest.fixture
def registry(morpho_pool):
    """Create mock pool registry."""
    registry = MagicMock(spec=PoolRegistryPort)
    registry.get_pool = AsyncMock(return_value=morpho_pool)
    return registry


@pytest.fixture
def collector():
    """Create collector returning values for all four metrics."""
    collector = MagicMock(spec=PlatformCollector)
    collector.collect_apy = AsyncMock(return_value=MetricResult.ok(5.2))
    collector.collect_tvl = AsyncMock(return_value=MetricResult.ok(1_000_000.0))
    collector.collect_days = AsyncMock(return_value=MetricResult.ok(120))
    collector.collect_holders = AsyncMock(return_value=MetricResult.ok(340))
    return collector


@pytest.fixture
def collectors(collector):
    return CollectorRegistry({Platform.MORPHO: collector})


@pytest.mark.asyncio
async def test_all_metrics_succeed(registry, collectors, metrics_store, clock):
    """Test all four metrics are stored as success with one history record."""
    await run("pool-1", CollectionMethod.AUTO, registry, collectors, metrics_store, clock)

    current = await metrics_store.get_current_metrics("pool-1")
    assert current.get(MetricName.APY).status is MetricStatus.SUCCESS
    assert current.get(MetricName.APY).value == 5.2
    assert current.get(MetricName.TVL).value == 1_000_000.0
    assert current.get(MetricName.DAYS).value == 120
    assert current.get(MetricName.HOLDERS).value == 340
    assert all(state.error is None for state in current.metrics.values())

    history = await metrics_store.list_history("pool-1")
    assert len(history) == 1
    record = history[0]
    assert record.data_source == "morpho"
    assert record.collection_method is CollectionMethod.AUTO
    assert record.operating_days == 120
    assert record.holders_count == 340
    assert record.error_log is None


@pytest.mark.asyncio
async def test_tvl_exception_is_isolated(registry, collectors, collector, metrics_store, clock):
    """Test a raising TVL call does not affect the sibling metrics."""
    collector.collect_tvl.side_effect = RuntimeError("boom")

    await run("pool-1", CollectionMethod.AUTO, registry, collectors, metrics_store, clock)

    current = await metrics_store.get_current_metrics("pool-1")
    assert current.get(MetricName.APY).status is MetricStatus.SUCCESS
    assert current.get(MetricName.APY).value == 5.2
    assert current.get(MetricName.DAYS).status is MetricStatus.SUCCESS
    assert current.get(MetricName.DAYS).value == 120
    assert current.get(MetricName.HOLDERS).status is MetricStatus.SUCCESS
    assert current.get(MetricName.HOLDERS).value == 340

    tvl = current.get(MetricName.TVL)
    assert tvl.status is MetricStatus.ERROR
    assert tvl.value is None
    assert tvl.error == COLLECTION_FAILED

    history = await metrics_store.list_history("pool-1")
    assert len(history) == 1
    record = history[0]
    assert record.apy == 5.2
    assert record.tvl is None
    assert record.operating_days == 120
    assert record.holders_count == 340
    assert record.api_response["tvl"]["error"] == "Failed"
    assert "boom" in record.error_log


@pytest.mark.asyncio
async def test_structured_error_is_stored(registry, collectors, collector, metrics_store, clock):
    """Test a structured collector error is kept on the metric."""
    collector.collect_holders.return_value = MetricResult.failed("rate_limited: slow down")

    await run("pool-1", CollectionMethod.MANUAL, registry, collectors, metrics_store, clock)

    holders = (await metrics_store.get_current_metrics("pool-1")).get(MetricName.HOLDERS)
    assert holders.status is MetricStatus.ERROR
    assert holders.error == "rate_limited: slow down"

    record = (await metrics_store.list_history("pool-1"))[0]
    assert record.collection_method is CollectionMethod.MANUAL
    assert record.error_log == "holders: rate_limited: slow down"


@pytest.mark.asyncio
async def test_unknown_platform_marks_all_not_applicable(registry, metrics_store, clock):
    """Test a platform without collector sets all metrics to n/a."""
    registry.get_pool.return_value = Pool(
        id="pool-1", platform="Aave", contract_address="0xabc", chain="ethereum"
    )
    collectors = CollectorRegistry({})

    await run("pool-1", CollectionMethod.AUTO, registry, collectors, metrics_store, clock)

    current = await metrics_store.get_current_metrics("pool-1")
    assert len(current.metrics) == 4
    messages = {state.error for state in current.metrics.values()}
    assert messages == {"No collector for platform: aave"}
    assert all(state.status is MetricStatus.NOT_APPLICABLE for state in current.metrics.values())
    assert all(state.value is None for state in current.metrics.values())

    history = await metrics_store.list_history("pool-1")
    assert len(history) == 1
    assert history[0].error_log == "No collector for platform: aave"


@pytest.mark.asyncio
async def test_missing_pool_marks_all_not_applicable(registry, collectors, metrics_store, clock):
    """Test an unknown pool id degrades to n/a instead of raising."""
    registry.get_pool.return_value = None

    await run("missing", CollectionMethod.IMMEDIATE, registry, collectors, metrics_store, clock)

    current = await metrics_store.get_current_metrics("missing")
    assert all(state.status is MetricStatus.NOT_APPLICABLE for state in current.metrics.values())
    assert "not found" in current.get(MetricName.APY).error
    assert len(await metrics_store.list_history("missing")) == 1


@pytest.mark.asyncio
async def test_registry_failure_does_not_raise(registry, collectors, metrics_store, clock):
    """Test a registry exception is caught at the top of the orchestrator."""
    registry.get_pool.side_effect = ConnectionError("db down")

    await run("pool-1", CollectionMethod.AUTO, registry, collectors, metrics_store, clock)

    current = await metrics_store.get_current_metrics("pool-1")
    assert all(state.status is MetricStatus.NOT_APPLICABLE for state in current.metrics.values())
    assert "db down" in current.get(MetricName.TVL).error


@pytest.mark.asyncio
async def test_store_failure_does_not_raise(registry, collectors, clock):
    """Test persistence errors are logged, not propagated."""
    store = MagicMock()
    store.update_metric_status = AsyncMock(side_effect=OSError("disk full"))
    store.append_history = AsyncMock()

    await run("pool-1", CollectionMethod.AUTO, registry, collectors, store, clock)

    store.append_history.assert_not_called()


@pytest.mark.asyncio
async def test_every_call_appends_one_history_record(registry, collectors, metrics_store, clock):
    """Test repeated passes append one record each."""
    for _ in range(3):
        await run("pool-1", CollectionMethod.AUTO, registry, collectors, metrics_store, clock)

    assert len(await metrics_store.list_history("pool-1")) == 3
