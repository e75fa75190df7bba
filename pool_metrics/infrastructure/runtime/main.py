"""Main entrypoint."""

import asyncio
import signal
from dataclasses import dataclass
from datetime import timedelta

import structlog

from pool_metrics.application.services.collector_registry import CollectorRegistry
from pool_metrics.application.services.metrics_orchestrator import MetricsOrchestrator
from pool_metrics.application.services.snapshot_cache import SnapshotCache
from pool_metrics.domain.enums import Chain, Platform
from pool_metrics.domain.ports import HttpClientPort, SnapshotStorePort
from pool_metrics.infrastructure.aws.s3_io import S3IO
from pool_metrics.infrastructure.aws.s3_snapshot_store import S3SnapshotStore
from pool_metrics.infrastructure.chain.alchemy_top_holders import AlchemyTopHoldersBuilder
from pool_metrics.infrastructure.collectors.lido import LidoCollector
from pool_metrics.infrastructure.collectors.morpho import MorphoCollector
from pool_metrics.infrastructure.config.settings import Settings
from pool_metrics.infrastructure.explorer.explorer_client import ExplorerClient
from pool_metrics.infrastructure.http.aiohttp_client import AiohttpClient
from pool_metrics.infrastructure.observability.logging import configure_logging
from pool_metrics.infrastructure.observability.metrics import start_metrics_server
from pool_metrics.infrastructure.registry.json_pool_registry import JsonPoolRegistry
from pool_metrics.infrastructure.runtime.clock import SystemClock
from pool_metrics.infrastructure.storage.file_snapshot_store import FileSnapshotStore
from pool_metrics.infrastructure.storage.jsonl_metrics_store import JsonlMetricsStore
from pool_metrics.interfaces.runners.scheduled_collection_runner import ScheduledCollectionRunner

logger = structlog.get_logger()

shutdown_event = asyncio.Event()


@dataclass
class Components:
    """Wired application components."""

    http: HttpClientPort
    orchestrator: MetricsOrchestrator
    top_holders_cache: SnapshotCache
    runner: ScheduledCollectionRunner


def signal_handler() -> None:
    """Handle shutdown signal."""
    logger.info("shutdown_signal_received")
    shutdown_event.set()


def build_snapshot_store(settings: Settings) -> SnapshotStorePort:
    if settings.snapshot_backend == "s3":
        return S3SnapshotStore(S3IO(settings), settings.snapshot_s3_prefix)
    if settings.snapshot_backend == "file":
        return FileSnapshotStore(settings.snapshot_dir)
    raise ValueError(f"Unknown snapshot backend: {settings.snapshot_backend}")


def build_components(settings: Settings) -> Components:
    """Wire adapters, collectors and services from settings."""
    clock = SystemClock()
    http = AiohttpClient(timeout=settings.http_timeout_seconds)

    explorer = ExplorerClient(
        http,
        {
            Chain.ETHEREUM: settings.etherscan_api_key,
            Chain.BASE: settings.basescan_api_key,
            Chain.ARBITRUM: settings.arbiscan_api_key,
        },
        clock,
        request_delay=settings.explorer_request_delay_seconds,
    )
    collectors = CollectorRegistry(
        {
            Platform.MORPHO: MorphoCollector(http, explorer, settings.morpho_api_url),
            Platform.LIDO: LidoCollector(
                http, explorer, settings.lido_api_url, settings.defillama_api_url
            ),
        }
    )

    metrics_store = JsonlMetricsStore(settings.history_file)
    registry = JsonPoolRegistry(settings.pools_file, metrics_store)
    orchestrator = MetricsOrchestrator(
        registry,
        collectors,
        metrics_store,
        clock,
        delay_between_pools=settings.scheduled_pool_delay_seconds,
    )

    builder = AlchemyTopHoldersBuilder(
        http,
        {
            Chain.ETHEREUM: settings.alchemy_rpc_url_ethereum,
            Chain.BASE: settings.alchemy_rpc_url_base,
            Chain.ARBITRUM: settings.alchemy_rpc_url_arbitrum,
        },
    )
    top_holders_cache = SnapshotCache(
        build_snapshot_store(settings),
        builder,
        clock,
        stale_ttl=timedelta(seconds=settings.stale_ttl_seconds),
        hard_ttl=timedelta(seconds=settings.hard_ttl_seconds),
    )

    runner = ScheduledCollectionRunner(orchestrator, settings.scheduler_interval_seconds)
    return Components(
        http=http,
        orchestrator=orchestrator,
        top_holders_cache=top_holders_cache,
        runner=runner,
    )


async def main_loop() -> None:
    """Main event loop."""
    settings = Settings()
    configure_logging(settings.log_level, settings.json_logs)
    logger.info("worker_starting")

    logger.info(
        "settings_loaded",
        pools_file=settings.pools_file,
        history_file=settings.history_file,
        snapshot_backend=settings.snapshot_backend,
        scheduler_interval_seconds=settings.scheduler_interval_seconds,
        etherscan_key_configured=bool(settings.etherscan_api_key),
        basescan_key_configured=bool(settings.basescan_api_key),
        arbiscan_key_configured=bool(settings.arbiscan_api_key),
    )

    if settings.prometheus_enabled:
        start_metrics_server(settings.prometheus_port)

    components = build_components(settings)
    logger.info("worker_ready")

    try:
        await components.runner.run_forever(shutdown_event)
    finally:
        logger.info("worker_shutting_down")
        await components.top_holders_cache.coordinator.drain()
        await components.http.close()


def main() -> None:
    """Entrypoint."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, signal_handler)

    try:
        loop.run_until_complete(main_loop())
    except KeyboardInterrupt:
        pass
    finally:
        loop.close()


if __name__ == "__main__":
    main()
