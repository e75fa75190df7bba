"""Domain enums for platforms, chains and metric states."""

from enum import Enum


class Platform(str, Enum):
    """Supported upstream platform families."""

    MORPHO = "morpho"
    LIDO = "lido"

    @classmethod
    def parse(cls, identifier: str) -> "Platform | None":
        """Resolve a platform identifier (case-insensitive, aliases included)."""
        normalized = identifier.strip().lower()
        normalized = _PLATFORM_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return None


_PLATFORM_ALIASES = {
    "morpho-blue": "morpho",
}


class Chain(str, Enum):
    """Supported chains."""

    ETHEREUM = "ethereum"
    BASE = "base"
    ARBITRUM = "arbitrum"


class MetricName(str, Enum):
    """The four per-pool metrics."""

    APY = "apy"
    TVL = "tvl"
    DAYS = "days"
    HOLDERS = "holders"


class MetricStatus(str, Enum):
    """Status of a single current metric."""

    SUCCESS = "success"
    ERROR = "error"
    NOT_APPLICABLE = "n/a"


class CollectionMethod(str, Enum):
    """How a collection pass was started."""

    IMMEDIATE = "immediate"
    AUTO = "auto"
    MANUAL = "manual"
