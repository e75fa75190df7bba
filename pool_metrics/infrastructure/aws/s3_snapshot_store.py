"""S3 snapshot store."""

import structlog

from pool_metrics.domain.entities import CacheSnapshot
from pool_metrics.domain.ports import SnapshotStorePort
from pool_metrics.infrastructure.aws.s3_io import S3IO
from pool_metrics.infrastructure.storage.snapshot_codec import decode_snapshot, encode_snapshot

logger = structlog.get_logger()


class S3SnapshotStore(SnapshotStorePort):
    """Snapshots stored as <prefix>/<chain>/<pool_id>.json objects."""

    def __init__(self, s3_io: S3IO, prefix: str) -> None:
        self.s3_io = s3_io
        self.prefix = prefix.strip("/")

    def key_for(self, chain: str, pool_id: str) -> str:
        return "/".join(part for part in (self.prefix, chain, f"{pool_id}.json") if part)

    async def load(self, chain: str, pool_id: str) -> CacheSnapshot | None:
        key = self.key_for(chain, pool_id)
        raw = await self.s3_io.get_json(key)
        if raw is None:
            return None
        try:
            return decode_snapshot(raw)
        except ValueError as e:
            logger.warning("snapshot_malformed", key=key, bucket=self.s3_io.bucket, error=str(e))
            return None

    async def save(self, chain: str, pool_id: str, snapshot: CacheSnapshot) -> None:
        key = self.key_for(chain, pool_id)
        await self.s3_io.put_json(key, encode_snapshot(snapshot))
        logger.info("snapshot_saved", key=key, bucket=self.s3_io.bucket)
