"""Collect all four metrics for one pool - main orchestration."""

import asyncio
import time

import structlog

from pool_metrics.application.services.collector_registry import CollectorRegistry
from pool_metrics.domain.entities import MetricResult, MetricsHistoryRecord, MetricState, Pool
from pool_metrics.domain.enums import CollectionMethod, MetricName, MetricStatus
from pool_metrics.domain.errors import CollectorNotFoundError, PoolNotFoundError
from pool_metrics.domain.ports import ClockPort, MetricsStorePort, PlatformCollector, PoolRegistryPort
from pool_metrics.domain.types import JsonValue
from pool_metrics.infrastructure.observability.metrics import (
    collection_duration_seconds,
    collections_started,
    metric_outcomes,
)

logger = structlog.get_logger()

COLLECTION_FAILED = "collection failed"
UNKNOWN_SOURCE = "unknown"

_METRIC_ORDER = (MetricName.APY, MetricName.TVL, MetricName.DAYS, MetricName.HOLDERS)


async def run(
    pool_id: str,
    method: CollectionMethod,
    registry: PoolRegistryPort,
    collectors: CollectorRegistry,
    metrics_store: MetricsStorePort,
    clock: ClockPort,
) -> None:
    """Collect APY, TVL, days and holders for a pool.

    Never raises: a missing pool or platform marks all four metrics n/a,
    and per-metric failures are recorded on that metric only. Exactly one
    history record is appended per call.
    """
    collections_started.labels(method=method.value).inc()
    started = time.perf_counter()
    logger.info("collecting_pool_metrics", pool_id=pool_id, method=method.value)

    try:
        pool = await _resolve_pool(pool_id, registry)
        platform, collector = collectors.resolve(pool.platform)
    except (PoolNotFoundError, CollectorNotFoundError) as e:
        logger.warning("collection_not_applicable", pool_id=pool_id, error=str(e))
        await _record_not_applicable(pool_id, method, str(e), metrics_store, clock)
        return
    except Exception as e:
        logger.error("pool_lookup_failed", pool_id=pool_id, error=str(e), exc_info=True)
        await _record_not_applicable(pool_id, method, f"Pool lookup failed: {e}", metrics_store, clock)
        return

    try:
        results, errors = await _collect_settled(pool, collector)
        await _store_results(pool_id, results, metrics_store, clock)
        await metrics_store.append_history(
            _build_history_record(pool_id, platform.value, method, results, errors, clock)
        )
    except Exception as e:
        logger.error("collection_persist_failed", pool_id=pool_id, error=str(e), exc_info=True)
        return
    finally:
        collection_duration_seconds.observe(time.perf_counter() - started)

    logger.info(
        "pool_metrics_collected",
        pool_id=pool_id,
        platform=platform.value,
        apy=results[MetricName.APY].value,
        tvl=results[MetricName.TVL].value,
        days=results[MetricName.DAYS].value,
        holders=results[MetricName.HOLDERS].value,
    )


async def _resolve_pool(pool_id: str, registry: PoolRegistryPort) -> Pool:
    pool = await registry.get_pool(pool_id)
    if pool is None or not pool.platform:
        raise PoolNotFoundError(f"Pool {pool_id} not found or missing platform information")
    return pool


# ============================================================================
# Settle-all collection
# ============================================================================


async def _collect_settled(
    pool: Pool,
    collector: PlatformCollector,
) -> tuple[dict[MetricName, MetricResult], dict[MetricName, BaseException]]:
    """Run the four collector calls concurrently without short-circuiting."""
    calls = {
        MetricName.APY: collector.collect_apy(pool),
        MetricName.TVL: collector.collect_tvl(pool),
        MetricName.DAYS: collector.collect_days(pool),
        MetricName.HOLDERS: collector.collect_holders(pool),
    }
    outcomes = await asyncio.gather(*calls.values(), return_exceptions=True)

    results: dict[MetricName, MetricResult] = {}
    errors: dict[MetricName, BaseException] = {}
    for metric, outcome in zip(calls, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error(
                "metric_collection_raised",
                pool_id=pool.id,
                metric=metric.value,
                error=str(outcome),
                exc_info=outcome,
            )
            errors[metric] = outcome
            results[metric] = MetricResult.failed(COLLECTION_FAILED)
        else:
            results[metric] = outcome
    return results, errors


async def _store_results(
    pool_id: str,
    results: dict[MetricName, MetricResult],
    metrics_store: MetricsStorePort,
    clock: ClockPort,
) -> None:
    now = clock.now()
    for metric in _METRIC_ORDER:
        result = results[metric]
        if result.value is not None:
            state = MetricState(MetricStatus.SUCCESS, result.value, None, now)
        else:
            state = MetricState(MetricStatus.ERROR, None, result.error or COLLECTION_FAILED, now)
            logger.warning("metric_collection_failed", pool_id=pool_id, metric=metric.value, error=state.error)
        metric_outcomes.labels(metric=metric.value, status=state.status.value).inc()
        await metrics_store.update_metric_status(pool_id, metric, state)


# ============================================================================
# History
# ============================================================================


def _build_history_record(
    pool_id: str,
    data_source: str,
    method: CollectionMethod,
    results: dict[MetricName, MetricResult],
    errors: dict[MetricName, BaseException],
    clock: ClockPort,
) -> MetricsHistoryRecord:
    api_response: dict[str, JsonValue] = {}
    error_parts: list[str] = []
    for metric in _METRIC_ORDER:
        if metric in errors:
            api_response[metric.value] = {"error": "Failed", "exception": str(errors[metric])}
            error_parts.append(f"{metric.value}: {errors[metric]}")
            continue
        result = results[metric]
        api_response[metric.value] = {"value": result.value, "error": result.error}
        if result.value is None:
            error_parts.append(f"{metric.value}: {result.error or COLLECTION_FAILED}")

    days = results[MetricName.DAYS].value
    holders = results[MetricName.HOLDERS].value
    return MetricsHistoryRecord(
        pool_id=pool_id,
        apy=results[MetricName.APY].value,
        tvl=results[MetricName.TVL].value,
        operating_days=int(days) if days is not None else None,
        holders_count=int(holders) if holders is not None else None,
        data_source=data_source,
        collection_method=method,
        api_response=api_response,
        error_log="; ".join(error_parts) or None,
        collected_at=clock.now(),
    )


async def _record_not_applicable(
    pool_id: str,
    method: CollectionMethod,
    message: str,
    metrics_store: MetricsStorePort,
    clock: ClockPort,
) -> None:
    """Mark all four metrics n/a and append a history record of the failure."""
    now = clock.now()
    try:
        for metric in _METRIC_ORDER:
            await metrics_store.update_metric_status(
                pool_id,
                metric,
                MetricState(MetricStatus.NOT_APPLICABLE, None, message, now),
            )
            metric_outcomes.labels(metric=metric.value, status=MetricStatus.NOT_APPLICABLE.value).inc()
        await metrics_store.append_history(
            MetricsHistoryRecord(
                pool_id=pool_id,
                apy=None,
                tvl=None,
                operating_days=None,
                holders_count=None,
                data_source=UNKNOWN_SOURCE,
                collection_method=method,
                api_response={metric.value: {"error": message} for metric in _METRIC_ORDER},
                error_log=message,
                collected_at=now,
            )
        )
    except Exception as e:
        logger.error("not_applicable_persist_failed", pool_id=pool_id, error=str(e), exc_info=True)
