"""Unit tests for component wiring."""

import pytest

from pool_metrics.domain.enums import Platform
from pool_metrics.infrastructure.aws.s3_snapshot_store import S3SnapshotStore
from pool_metrics.infrastructure.collectors.lido import LidoCollector
from pool_metrics.infrastructure.collectors.morpho import MorphoCollector
from pool_metrics.infrastructure.config.settings import Settings
from pool_metrics.infrastructure.runtime.main import build_components, build_snapshot_store
from pool_metrics.infrastructure.storage.file_snapshot_store import FileSnapshotStore


def _settings(tmp_path, **overrides):
    return Settings(
        _env_file=None,
        pools_file=str(tmp_path / "pools.json"),
        history_file=str(tmp_path / "history.jsonl"),
        snapshot_dir=str(tmp_path / "snapshots"),
        **overrides,
    )


def test_file_snapshot_store(tmp_path):
    store = build_snapshot_store(_settings(tmp_path))

    assert isinstance(store, FileSnapshotStore)
    assert store.root == tmp_path / "snapshots"


def test_s3_snapshot_store(tmp_path, monkeypatch):
    monkeypatch.setattr("pool_metrics.infrastructure.aws.s3_io.boto3.client", lambda *a, **kw: object())

    store = build_snapshot_store(_settings(tmp_path, snapshot_backend="s3", aws_s3_bucket="bucket"))

    assert isinstance(store, S3SnapshotStore)
    assert store.key_for("base", "p") == "snapshots/top-holders/base/p.json"


def test_unknown_snapshot_backend(tmp_path):
    with pytest.raises(ValueError, match="Unknown snapshot backend"):
        build_snapshot_store(_settings(tmp_path, snapshot_backend="redis"))


def test_build_components(tmp_path):
    components = build_components(_settings(tmp_path, stale_ttl_seconds=60, hard_ttl_seconds=120))

    registry = components.orchestrator.collectors
    assert registry.supported_platforms() == [Platform.LIDO, Platform.MORPHO]
    assert isinstance(registry.resolve("morpho-blue")[1], MorphoCollector)
    assert isinstance(registry.resolve("lido")[1], LidoCollector)
    assert components.top_holders_cache.stale_ttl.total_seconds() == 60
    assert components.runner.interval_seconds == 300


def test_inverted_ttls_rejected(tmp_path):
    with pytest.raises(ValueError):
        build_components(_settings(tmp_path, stale_ttl_seconds=7200, hard_ttl_seconds=3600))
