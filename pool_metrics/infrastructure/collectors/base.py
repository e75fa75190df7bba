"""Shared collector behaviour: explorer-based age and holder metrics."""

from collections.abc import Awaitable, Callable

import structlog

from pool_metrics.domain.entities import MetricResult, Pool
from pool_metrics.domain.errors import DomainError, NoUsableDataError
from pool_metrics.domain.ports import PlatformCollector
from pool_metrics.infrastructure.explorer.explorer_client import ExplorerClient

logger = structlog.get_logger()


class ExplorerCollector(PlatformCollector):
    """Base collector that derives days and holders from a block explorer.

    Subclasses provide the platform-specific APY and TVL fetchers.
    """

    platform = "unknown"

    def __init__(self, explorer: ExplorerClient) -> None:
        self.explorer = explorer

    async def collect_days(self, pool: Pool) -> MetricResult:
        async def fetch() -> float:
            address = require_address(pool)
            return float(await self.explorer.operating_days(pool.chain, address))

        return await self._guard("days", pool, fetch)

    async def collect_holders(self, pool: Pool) -> MetricResult:
        async def fetch() -> float:
            address = require_address(pool)
            return float(await self.explorer.holder_count(pool.chain, address))

        return await self._guard("holders", pool, fetch)

    async def _guard(
        self,
        metric: str,
        pool: Pool,
        fetch: Callable[[], Awaitable[float]],
    ) -> MetricResult:
        """Turn expected domain failures into an error MetricResult."""
        try:
            return MetricResult.ok(await fetch())
        except DomainError as e:
            logger.warning(
                "metric_fetch_failed",
                platform=self.platform,
                pool_id=pool.id,
                metric=metric,
                error_code=e.code,
                error=str(e),
            )
            return MetricResult.failed(e.as_metric_error())


def require_address(pool: Pool) -> str:
    if not pool.contract_address:
        raise NoUsableDataError("Pool address not available")
    return pool.contract_address


def require_number(value: object, description: str) -> float:
    """Coerce an upstream field to float, or raise NoUsableDataError."""
    if value is None or isinstance(value, bool):
        raise NoUsableDataError(f"{description} missing from response")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise NoUsableDataError(f"{description} is not numeric: {value!r}") from e
