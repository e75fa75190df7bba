"""Application settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    log_level: str = "INFO"
    json_logs: bool = True
    prometheus_enabled: bool = True
    prometheus_port: int = 9300

    # External registry and metric history
    pools_file: str = "data/pools.json"
    history_file: str = "data/metrics/history.jsonl"

    # Snapshot cache ("file" or "s3")
    snapshot_backend: str = "file"
    snapshot_dir: str = "data/snapshots/top-holders"
    snapshot_s3_prefix: str = "snapshots/top-holders"
    aws_region: str = "us-east-1"
    aws_s3_bucket: str | None = None
    stale_ttl_seconds: int = 60 * 60
    hard_ttl_seconds: int = 24 * 60 * 60

    # Upstream analytics APIs
    morpho_api_url: str = "https://blue-api.morpho.org/graphql"
    lido_api_url: str = "https://eth-api.lido.fi/v1"
    defillama_api_url: str = "https://api.llama.fi"
    http_timeout_seconds: float = 30.0

    # Block explorers (one key per chain)
    etherscan_api_key: str | None = None
    basescan_api_key: str | None = None
    arbiscan_api_key: str | None = None
    explorer_request_delay_seconds: float = 0.2

    # JSON-RPC endpoints for the top holders rebuild
    alchemy_rpc_url_ethereum: str | None = None
    alchemy_rpc_url_base: str | None = None
    alchemy_rpc_url_arbitrum: str | None = None

    # Scheduling
    scheduler_interval_seconds: int = 300
    scheduled_pool_delay_seconds: float = 0.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",
        extra="ignore",
    )
