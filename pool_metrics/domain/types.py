"""Domain types and aliases."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, TypedDict

Timestamp = datetime

# JSON-serializable types (recursive)
if TYPE_CHECKING:
    JsonValue = str | int | float | bool | None | dict[str, "JsonValue"] | list["JsonValue"]
else:
    JsonValue = str | int | float | bool | None | dict | list

JsonDict = dict[str, JsonValue]


class SnapshotFileDict(TypedDict):
    """On-disk layout of a cache snapshot."""
    data: JsonDict
    updatedAt: str


class CacheMetricsDict(TypedDict):
    """In-process build coordinator metrics."""
    running_builds: int
    build_queue: list[str]


class RawMetricResponseDict(TypedDict, total=False):
    """Raw per-metric response kept in the history record."""
    value: float | None
    error: str | None
