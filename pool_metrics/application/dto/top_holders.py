"""Top holders snapshot DTOs."""

from pydantic import BaseModel, ConfigDict, Field


class TopHolder(BaseModel):
    """One ranked holder."""

    address: str
    balance: str  # Integer token units as a decimal string
    pct: float


class TopHoldersMetadata(BaseModel):
    """Provenance of a top holders snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    chain: str = Field(alias="chainId")
    pool_id: str = Field(alias="poolId")
    transfers_processed: int = Field(alias="transfersProcessed")
    from_block: int = Field(alias="fromBlock")
    to_block: int = Field(alias="toBlock")
    processing_time_ms: int = Field(alias="processingTimeMs")


class TopHoldersSnapshot(BaseModel):
    """Top holders of a pool token."""

    model_config = ConfigDict(populate_by_name=True)

    token_address: str = Field(alias="tokenAddress")
    total_supply: str | None = Field(None, alias="totalSupply")
    holders: list[TopHolder]
    metadata: TopHoldersMetadata
