"""Prometheus metrics."""

import structlog
from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = structlog.get_logger()

collections_started = Counter(
    "pool_metric_collections_started_total",
    "Total number of pool metric collection passes started",
    ["method"],
)

metric_outcomes = Counter(
    "pool_metric_outcomes_total",
    "Outcome of individual metric collections",
    ["metric", "status"],
)

collection_duration_seconds = Histogram(
    "pool_metric_collection_duration_seconds",
    "Duration of one pool collection pass in seconds",
    buckets=[0.5, 1, 2, 5, 10, 30, 60, 120],
)

cache_reads = Counter(
    "snapshot_cache_reads_total",
    "Snapshot cache reads by state",
    ["state"],
)

snapshot_rebuilds = Counter(
    "snapshot_rebuilds_total",
    "Snapshot rebuilds by outcome",
    ["outcome"],
)

builds_in_flight = Gauge(
    "snapshot_builds_in_flight",
    "Snapshot rebuilds currently running",
)


def start_metrics_server(port: int) -> None:
    """Expose the default registry over HTTP."""
    start_http_server(port)
    logger.info("metrics_server_started", port=port)
