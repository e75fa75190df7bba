"""Morpho collector (GraphQL vault query)."""

from pool_metrics.domain.entities import MetricResult, Pool
from pool_metrics.domain.enums import Chain
from pool_metrics.domain.errors import (
    NoUsableDataError,
    RateLimitedError,
    UnsupportedChainError,
    UpstreamUnavailableError,
)
from pool_metrics.domain.ports import HttpClientPort
from pool_metrics.domain.types import JsonDict
from pool_metrics.infrastructure.collectors.base import ExplorerCollector, require_address, require_number
from pool_metrics.infrastructure.explorer.explorer_client import ExplorerClient, resolve_chain

CHAIN_IDS: dict[Chain, int] = {
    Chain.ETHEREUM: 1,
    Chain.BASE: 8453,
    Chain.ARBITRUM: 42161,
}

VAULT_STATE_QUERY = """
query GetVaultState($address: String!, $chainId: Int!) {
  vaultByAddress(address: $address, chainId: $chainId) {
    address
    createdAt
    state {
      apy
      netApy
      totalAssetsUsd
      totalSupplyUsd
    }
  }
}
"""


class MorphoCollector(ExplorerCollector):
    """Collector for Morpho vaults."""

    platform = "morpho"

    def __init__(self, http: HttpClientPort, explorer: ExplorerClient, api_url: str) -> None:
        super().__init__(explorer)
        self.http = http
        self.api_url = api_url

    async def collect_apy(self, pool: Pool) -> MetricResult:
        async def fetch() -> float:
            state = await self._vault_state(pool)
            apy = state.get("netApy")
            if apy is None:
                apy = state.get("apy")
            # Morpho reports a fraction
            return require_number(apy, "Morpho vault netApy") * 100

        return await self._guard("apy", pool, fetch)

    async def collect_tvl(self, pool: Pool) -> MetricResult:
        async def fetch() -> float:
            state = await self._vault_state(pool)
            tvl = state.get("totalAssetsUsd")
            if tvl is None:
                tvl = state.get("totalSupplyUsd")
            return require_number(tvl, "Morpho vault totalAssetsUsd")

        return await self._guard("tvl", pool, fetch)

    async def _vault_state(self, pool: Pool) -> JsonDict:
        address = require_address(pool)
        chain = resolve_chain(pool.chain)
        chain_id = CHAIN_IDS.get(chain)
        if chain_id is None:
            raise UnsupportedChainError(f"Morpho does not support chain: {chain.value}")

        response = await self.http.post(
            self.api_url,
            {"query": VAULT_STATE_QUERY, "variables": {"address": address, "chainId": chain_id}},
            headers={"Content-Type": "application/json"},
        )
        if response.status_code == 429:
            raise RateLimitedError("Morpho API responded with 429")
        if response.status_code != 200 or not isinstance(response.body, dict):
            raise UpstreamUnavailableError(f"Morpho API responded with {response.status_code}")

        errors = response.body.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message", "unknown error") if isinstance(first, dict) else first
            raise NoUsableDataError(f"Morpho GraphQL error: {message}")

        data = response.body.get("data")
        vault = data.get("vaultByAddress") if isinstance(data, dict) else None
        if not isinstance(vault, dict) or not isinstance(vault.get("state"), dict):
            raise NoUsableDataError(f"No Morpho vault found for {address} on {chain.value}")
        return vault["state"]
