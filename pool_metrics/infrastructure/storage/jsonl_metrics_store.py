"""Current metrics in memory, metrics history as JSON lines."""

import json
from datetime import datetime
from pathlib import Path

from pool_metrics.domain.entities import CurrentMetrics, MetricsHistoryRecord, MetricState
from pool_metrics.domain.enums import CollectionMethod, MetricName
from pool_metrics.domain.ports import MetricsStorePort


class JsonlMetricsStore(MetricsStorePort):
    """Metrics store with process-local current state and an append-only JSONL history."""

    def __init__(self, history_path: str | Path) -> None:
        self.history_path = Path(history_path)
        self._current: dict[str, CurrentMetrics] = {}

    async def update_metric_status(
        self,
        pool_id: str,
        metric: MetricName,
        state: MetricState,
    ) -> None:
        current = self._current.setdefault(pool_id, CurrentMetrics(pool_id=pool_id))
        current.metrics[metric] = state

    async def get_current_metrics(self, pool_id: str) -> CurrentMetrics | None:
        return self._current.get(pool_id)

    async def append_history(self, record: MetricsHistoryRecord) -> None:
        self.history_path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(_record_to_dict(record), ensure_ascii=False, default=str)
        with self.history_path.open("a", encoding="utf-8") as fh:
            fh.write(line)
            fh.write("\n")

    async def list_history(self, pool_id: str) -> list[MetricsHistoryRecord]:
        if not self.history_path.exists():
            return []
        records = []
        with self.history_path.open(encoding="utf-8") as fh:
            for line in fh:
                if not line.strip():
                    continue
                raw = json.loads(line)
                if raw["poolId"] == pool_id:
                    records.append(_record_from_dict(raw))
        return records


def _record_to_dict(record: MetricsHistoryRecord) -> dict:
    return {
        "poolId": record.pool_id,
        "apy": record.apy,
        "tvl": record.tvl,
        "operatingDays": record.operating_days,
        "holdersCount": record.holders_count,
        "dataSource": record.data_source,
        "collectionMethod": record.collection_method.value,
        "apiResponse": record.api_response,
        "errorLog": record.error_log,
        "collectedAt": record.collected_at.isoformat(),
    }


def _record_from_dict(raw: dict) -> MetricsHistoryRecord:
    return MetricsHistoryRecord(
        pool_id=raw["poolId"],
        apy=raw.get("apy"),
        tvl=raw.get("tvl"),
        operating_days=raw.get("operatingDays"),
        holders_count=raw.get("holdersCount"),
        data_source=raw["dataSource"],
        collection_method=CollectionMethod(raw["collectionMethod"]),
        api_response=raw.get("apiResponse") or {},
        error_log=raw.get("errorLog"),
        collected_at=datetime.fromisoformat(raw["collectedAt"]),
    )
