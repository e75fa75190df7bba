"""Pool registry backed by a JSON file."""

import json
from datetime import timedelta
from pathlib import Path

import structlog

from pool_metrics.application.dto.registry import (
    DEFAULT_REFRESH_INTERVAL_MINUTES,
    PoolRecord,
    RegistryFile,
)
from pool_metrics.domain.entities import Pool
from pool_metrics.domain.enums import Platform
from pool_metrics.domain.ports import MetricsStorePort, PoolRegistryPort
from pool_metrics.domain.types import Timestamp

logger = structlog.get_logger()


class JsonPoolRegistry(PoolRegistryPort):
    """Reads pools and platform refresh intervals from a JSON file.

    The file is re-read on every call so edits are picked up without a
    restart. A pool is due when none of its metrics has ever succeeded or
    when the last success is older than its platform's refresh interval.
    """

    def __init__(self, path: str | Path, metrics_store: MetricsStorePort) -> None:
        self.path = Path(path)
        self.metrics_store = metrics_store

    def _load(self) -> RegistryFile:
        if not self.path.exists():
            logger.warning("pool_registry_missing", path=str(self.path))
            return RegistryFile()
        return RegistryFile.model_validate(json.loads(self.path.read_text(encoding="utf-8")))

    async def get_pool(self, pool_id: str) -> Pool | None:
        for record in self._load().pools:
            if record.id == pool_id:
                return _to_pool(record)
        return None

    async def list_pools_due_for_collection(self, now: Timestamp) -> list[Pool]:
        registry = self._load()
        due = []
        for record in registry.pools:
            if not record.is_active:
                continue
            interval = timedelta(minutes=_refresh_interval(registry, record.platform))
            current = await self.metrics_store.get_current_metrics(record.id)
            last_success = current.last_success_at() if current else None
            if last_success is None or now - last_success >= interval:
                due.append(_to_pool(record))
        return due


def _refresh_interval(registry: RegistryFile, platform_identifier: str) -> int:
    platform = Platform.parse(platform_identifier)
    key = platform.value if platform else platform_identifier.strip().lower()
    settings = registry.platforms.get(key)
    return settings.refresh_interval_minutes if settings else DEFAULT_REFRESH_INTERVAL_MINUTES


def _to_pool(record: PoolRecord) -> Pool:
    return Pool(
        id=record.id,
        platform=record.platform,
        contract_address=record.contract_address,
        chain=record.chain,
        name=record.name,
    )
