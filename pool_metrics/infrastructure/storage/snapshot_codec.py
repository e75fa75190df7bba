"""Serialization of cache snapshots to their persisted {data, updatedAt} form."""

from datetime import datetime, timezone

from pool_metrics.domain.entities import CacheSnapshot
from pool_metrics.domain.types import JsonValue, SnapshotFileDict


def encode_snapshot(snapshot: CacheSnapshot) -> SnapshotFileDict:
    return {
        "data": snapshot.data,
        "updatedAt": snapshot.updated_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


def decode_snapshot(raw: JsonValue) -> CacheSnapshot:
    """Parse a persisted snapshot.

    Raises ValueError if the payload does not have the expected shape.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
        raise ValueError("Snapshot payload must be an object with a 'data' object")
    updated_at = raw.get("updatedAt")
    if not isinstance(updated_at, str):
        raise ValueError("Snapshot payload is missing 'updatedAt'")

    parsed = datetime.fromisoformat(updated_at.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return CacheSnapshot(data=raw["data"], updated_at=parsed)
