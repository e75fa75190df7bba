"""Pool registry file DTOs."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_REFRESH_INTERVAL_MINUTES = 60


class PlatformSettings(BaseModel):
    """Per-platform scheduling settings."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_interval_minutes: int = Field(
        DEFAULT_REFRESH_INTERVAL_MINUTES,
        alias="refreshIntervalMinutes",
        gt=0,
    )


class PoolRecord(BaseModel):
    """Pool entry in the registry file."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    platform: str
    contract_address: str | None = Field(None, alias="contractAddress")
    chain: str
    name: str | None = None
    is_active: bool = Field(True, alias="isActive")


class RegistryFile(BaseModel):
    """Registry file structure."""

    platforms: dict[str, PlatformSettings] = Field(default_factory=dict)
    pools: list[PoolRecord] = Field(default_factory=list)
