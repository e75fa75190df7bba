"""Top holders snapshot builder on top of Alchemy JSON-RPC."""

import asyncio
import time

import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from pool_metrics.application.dto.top_holders import TopHoldersMetadata, TopHoldersSnapshot
from pool_metrics.application.services.top_holders import (
    Transfer,
    apply_deltas,
    balance_deltas,
    rank_holders,
)
from pool_metrics.domain.entities import CacheSnapshot
from pool_metrics.domain.enums import Chain
from pool_metrics.domain.errors import (
    RateLimitedError,
    SnapshotBuildError,
    UnsupportedChainError,
    UpstreamUnavailableError,
)
from pool_metrics.domain.ports import HttpClientPort, SnapshotBuilderPort
from pool_metrics.domain.types import JsonDict, JsonValue
from pool_metrics.infrastructure.explorer.explorer_client import resolve_chain

logger = structlog.get_logger()

BLOCKS_PER_DAY: dict[Chain, int] = {
    Chain.ETHEREUM: 7200,
    Chain.BASE: 43200,
    Chain.ARBITRUM: 345600,
}
INITIAL_LOOKBACK_DAYS = 7
PAGE_SIZE = 1000
MAX_PAGES = 100
TOTAL_SUPPLY_SELECTOR = "0x18160ddd"


class AlchemyTopHoldersBuilder(SnapshotBuilderPort):
    """Rebuilds top holders from ERC-20 transfer history.

    Runs incrementally from the previous snapshot's last block when one
    exists, otherwise from a week of blocks back.
    """

    def __init__(
        self,
        http: HttpClientPort,
        rpc_urls: dict[Chain, str | None],
        page_delay: float = 0.1,
    ) -> None:
        self.http = http
        self.rpc_urls = rpc_urls
        self.page_delay = page_delay

    async def build(
        self,
        chain: str,
        pool_id: str,
        address: str,
        previous: CacheSnapshot | None,
    ) -> JsonDict:
        started = time.perf_counter()
        chain_enum = resolve_chain(chain)
        rpc_url = self.rpc_urls.get(chain_enum)
        if not rpc_url:
            raise UnsupportedChainError(f"No JSON-RPC URL configured for chain: {chain_enum.value}")

        prior = _parse_previous(previous)
        current_block = await self._block_number(rpc_url)
        if prior is not None:
            from_block = prior.metadata.to_block + 1
            base_balances = {holder.address: int(holder.balance) for holder in prior.holders}
        else:
            lookback = BLOCKS_PER_DAY[chain_enum] * INITIAL_LOOKBACK_DAYS
            from_block = max(1, current_block - lookback)
            base_balances = {}

        logger.info(
            "top_holders_sync_started",
            chain=chain_enum.value,
            pool_id=pool_id,
            address=address,
            from_block=from_block,
            to_block=current_block,
            incremental=prior is not None,
        )

        transfers = []
        if from_block <= current_block:
            transfers = await self._fetch_transfers(rpc_url, address, from_block, current_block)

        balances = apply_deltas(base_balances, balance_deltas(transfers, address))
        total_supply = await self._total_supply(rpc_url, address)

        snapshot = TopHoldersSnapshot(
            token_address=address,
            total_supply=str(total_supply) if total_supply is not None else None,
            holders=rank_holders(balances, total_supply),
            metadata=TopHoldersMetadata(
                chain=chain_enum.value,
                pool_id=pool_id,
                transfers_processed=len(transfers),
                from_block=from_block,
                to_block=current_block,
                processing_time_ms=int((time.perf_counter() - started) * 1000),
            ),
        )
        logger.info(
            "top_holders_sync_completed",
            pool_id=pool_id,
            holders=len(snapshot.holders),
            transfers=len(transfers),
        )
        return snapshot.model_dump(by_alias=True)

    async def _fetch_transfers(
        self,
        rpc_url: str,
        address: str,
        from_block: int,
        to_block: int,
    ) -> list[Transfer]:
        transfers: list[Transfer] = []
        page_key: str | None = None

        for page in range(MAX_PAGES):
            if self.page_delay > 0:
                await asyncio.sleep(self.page_delay)
            params: JsonDict = {
                "fromBlock": hex(from_block),
                "toBlock": hex(to_block),
                "contractAddresses": [address],
                "category": ["erc20"],
                "withMetadata": False,
                "excludeZeroValue": False,
                "maxCount": hex(PAGE_SIZE),
            }
            if page_key:
                params["pageKey"] = page_key

            result = await self._rpc(rpc_url, "alchemy_getAssetTransfers", [params])
            if not isinstance(result, dict):
                raise SnapshotBuildError("alchemy_getAssetTransfers returned no result")
            for item in result.get("transfers") or []:
                transfers.append(
                    Transfer(
                        from_address=item.get("from") or "",
                        to_address=item.get("to") or "",
                        value=item.get("value"),
                    )
                )

            page_key = result.get("pageKey")
            if not page_key:
                break
        else:
            logger.warning("top_holders_page_limit_reached", address=address, pages=MAX_PAGES)

        return transfers

    async def _block_number(self, rpc_url: str) -> int:
        result = await self._rpc(rpc_url, "eth_blockNumber", [])
        if not isinstance(result, str):
            raise SnapshotBuildError("eth_blockNumber returned no result")
        return int(result, 16)

    async def _total_supply(self, rpc_url: str, address: str) -> int | None:
        try:
            result = await self._rpc(
                rpc_url,
                "eth_call",
                [{"to": address, "data": TOTAL_SUPPLY_SELECTOR}, "latest"],
            )
        except (SnapshotBuildError, UpstreamUnavailableError, RateLimitedError) as e:
            logger.warning("total_supply_unavailable", address=address, error=str(e))
            return None
        if not isinstance(result, str) or result in ("0x", ""):
            return None
        return int(result, 16)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type((UpstreamUnavailableError, RateLimitedError)),
        reraise=True,
    )
    async def _rpc(self, rpc_url: str, method: str, params: list) -> JsonValue:
        response = await self.http.post(
            rpc_url,
            {"id": 1, "jsonrpc": "2.0", "method": method, "params": params},
            headers={"Content-Type": "application/json"},
        )
        if response.status_code == 429:
            raise RateLimitedError(f"{method} rate limited")
        if response.status_code != 200 or not isinstance(response.body, dict):
            raise UpstreamUnavailableError(f"{method} responded with {response.status_code}")
        error = response.body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise SnapshotBuildError(f"{method} failed: {message}")
        return response.body.get("result")


def _parse_previous(previous: CacheSnapshot | None) -> TopHoldersSnapshot | None:
    if previous is None:
        return None
    try:
        return TopHoldersSnapshot.model_validate(previous.data)
    except ValidationError as e:
        logger.warning("previous_snapshot_ignored", error=str(e))
        return None
