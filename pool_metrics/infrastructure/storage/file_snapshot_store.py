"""Local file snapshot store."""

import json
import os
import tempfile
from pathlib import Path

import structlog

from pool_metrics.domain.entities import CacheSnapshot
from pool_metrics.domain.ports import SnapshotStorePort
from pool_metrics.infrastructure.storage.snapshot_codec import decode_snapshot, encode_snapshot

logger = structlog.get_logger()


class FileSnapshotStore(SnapshotStorePort):
    """One JSON file per snapshot at <root>/<chain>/<pool_id>.json."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, chain: str, pool_id: str) -> Path:
        return self.root / chain / f"{pool_id}.json"

    async def load(self, chain: str, pool_id: str) -> CacheSnapshot | None:
        path = self.path_for(chain, pool_id)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("snapshot_unreadable", path=str(path), error=str(e))
            return None

        try:
            return decode_snapshot(raw)
        except ValueError as e:
            logger.warning("snapshot_malformed", path=str(path), error=str(e))
            return None

    async def save(self, chain: str, pool_id: str, snapshot: CacheSnapshot) -> None:
        path = self.path_for(chain, pool_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(encode_snapshot(snapshot), indent=2, default=str)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{pool_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("snapshot_saved", path=str(path))
