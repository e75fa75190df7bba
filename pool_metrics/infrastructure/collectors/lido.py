"""Lido collector (REST APR endpoint and DefiLlama TVL)."""

from pool_metrics.domain.entities import MetricResult, Pool
from pool_metrics.domain.errors import RateLimitedError, UpstreamUnavailableError
from pool_metrics.domain.ports import HttpClientPort, HttpResponse
from pool_metrics.infrastructure.collectors.base import ExplorerCollector, require_number
from pool_metrics.infrastructure.explorer.explorer_client import ExplorerClient


class LidoCollector(ExplorerCollector):
    """Collector for Lido staking."""

    platform = "lido"

    def __init__(
        self,
        http: HttpClientPort,
        explorer: ExplorerClient,
        api_url: str,
        defillama_url: str,
    ) -> None:
        super().__init__(explorer)
        self.http = http
        self.api_url = api_url.rstrip("/")
        self.defillama_url = defillama_url.rstrip("/")

    async def collect_apy(self, pool: Pool) -> MetricResult:
        async def fetch() -> float:
            response = await self.http.get(f"{self.api_url}/protocol/steth/apr/sma")
            _check_status(response, "Lido API")
            data = response.body.get("data") if isinstance(response.body, dict) else None
            sma_apr = data.get("smaApr") if isinstance(data, dict) else None
            return require_number(sma_apr, "Lido smaApr")

        return await self._guard("apy", pool, fetch)

    async def collect_tvl(self, pool: Pool) -> MetricResult:
        async def fetch() -> float:
            response = await self.http.get(f"{self.defillama_url}/tvl/lido")
            _check_status(response, "DefiLlama API")
            return require_number(response.body, "Lido TVL")

        return await self._guard("tvl", pool, fetch)


def _check_status(response: HttpResponse, source: str) -> None:
    if response.status_code == 429:
        raise RateLimitedError(f"{source} responded with 429")
    if response.status_code != 200:
        raise UpstreamUnavailableError(f"{source} responded with {response.status_code}")
