"""Block explorer client for contract age and token holder counts."""

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog

from pool_metrics.domain.enums import Chain
from pool_metrics.domain.errors import (
    CredentialsRequiredError,
    NoUsableDataError,
    RateLimitedError,
    UnsupportedChainError,
    UpstreamUnavailableError,
)
from pool_metrics.domain.ports import ClockPort, HttpClientPort, HttpResponse
from pool_metrics.domain.types import Timestamp

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExplorerEndpoint:
    """Explorer endpoints of one chain."""

    api_url: str
    web_url: str
    api_key_name: str


EXPLORERS: dict[Chain, ExplorerEndpoint] = {
    Chain.ETHEREUM: ExplorerEndpoint(
        "https://api.etherscan.io/api", "https://etherscan.io", "ETHERSCAN_API_KEY"
    ),
    Chain.BASE: ExplorerEndpoint(
        "https://api.basescan.org/api", "https://basescan.org", "BASESCAN_API_KEY"
    ),
    Chain.ARBITRUM: ExplorerEndpoint(
        "https://api.arbiscan.io/api", "https://arbiscan.io", "ARBISCAN_API_KEY"
    ),
}

HOLDER_PATTERNS = (
    re.compile(r"Holders(?:\s*\([^)]*\))?(?::\s*|\s+)(\d[\d,]*)(?![\d,])"),
    re.compile(r"Holders?(?:\s*\([^)]*\))?:\s*(\d[\d,]*)(?![\d,])", re.IGNORECASE),
)

# Only consulted when no holder count could be extracted
CHALLENGE_MARKERS = ("just a moment", "attention required", "cf-chl", "too many requests", "rate limit")
BLOCKED_STATUSES = (403, 429)

ONE_DAY = timedelta(days=1)


def resolve_chain(identifier: str) -> Chain:
    try:
        return Chain(identifier.strip().lower())
    except ValueError as e:
        raise UnsupportedChainError(f"No explorer configured for chain: {identifier}") from e


def parse_holder_count(html: str) -> int:
    """Extract the holder count from an explorer token page.

    Raises NoUsableDataError if no known pattern matches.
    """
    for pattern in HOLDER_PATTERNS:
        match = pattern.search(html)
        if match:
            return int(match.group(1).replace(",", ""))
    raise NoUsableDataError("Holder count not found on explorer token page")


def operating_days(created_at: Timestamp, now: Timestamp) -> int:
    """Whole days elapsed since contract creation."""
    return (now - created_at) // ONE_DAY


class ExplorerClient:
    """Etherscan-family explorer client.

    A fixed delay precedes every explorer call to reduce rate limiting.
    """

    def __init__(
        self,
        http: HttpClientPort,
        api_keys: dict[Chain, str | None],
        clock: ClockPort,
        request_delay: float = 0.2,
    ) -> None:
        self.http = http
        self.api_keys = api_keys
        self.clock = clock
        self.request_delay = request_delay

    async def contract_creation_time(self, chain_id: str, address: str) -> Timestamp:
        """Timestamp of the first transaction of a contract."""
        chain = resolve_chain(chain_id)
        endpoint = EXPLORERS[chain]
        api_key = self.api_keys.get(chain)
        if not api_key:
            raise CredentialsRequiredError(
                f"{endpoint.api_key_name} not configured for {chain.value} explorer"
            )

        params = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": "0",
            "endblock": "99999999",
            "page": "1",
            "offset": "1",
            "sort": "asc",
            "apikey": api_key,
        }
        response = await self._call(lambda: self.http.get(endpoint.api_url, params=params))
        transactions = self._explorer_result(response, chain)

        if not isinstance(transactions, list) or not transactions:
            raise NoUsableDataError(f"No transactions found for {address} on {chain.value}")
        try:
            timestamp = int(transactions[0]["timeStamp"])
        except (KeyError, TypeError, ValueError) as e:
            raise NoUsableDataError(f"First transaction of {address} has no timestamp") from e
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)

    async def operating_days(self, chain_id: str, address: str) -> int:
        created_at = await self.contract_creation_time(chain_id, address)
        return operating_days(created_at, self.clock.now())

    async def holder_count(self, chain_id: str, address: str) -> int:
        """Distinct holder count scraped from the explorer token page."""
        chain = resolve_chain(chain_id)
        url = f"{EXPLORERS[chain].web_url}/token/{address}"
        response = await self._call(lambda: self.http.get(url))

        if response.status_code in BLOCKED_STATUSES:
            raise RateLimitedError(
                f"{chain.value} explorer token page responded with {response.status_code}"
            )
        if response.status_code != 200:
            raise UpstreamUnavailableError(
                f"{chain.value} explorer token page responded with {response.status_code}"
            )

        try:
            return parse_holder_count(response.text)
        except NoUsableDataError:
            lowered = response.text.lower()
            if any(marker in lowered for marker in CHALLENGE_MARKERS):
                raise RateLimitedError(f"{chain.value} explorer token page is behind a challenge") from None
            raise

    async def _call(self, request):
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)
        return await request()

    def _explorer_result(self, response: HttpResponse, chain: Chain):
        if response.status_code == 429:
            raise RateLimitedError(f"{chain.value} explorer API responded with 429")
        if response.status_code != 200 or not isinstance(response.body, dict):
            raise UpstreamUnavailableError(
                f"{chain.value} explorer API responded with {response.status_code}"
            )

        body = response.body
        if str(body.get("status")) == "1":
            return body.get("result")

        detail = f"{body.get('message', '')} {body.get('result', '')}".strip()
        lowered = detail.lower()
        if "rate limit" in lowered:
            raise RateLimitedError(f"{chain.value} explorer: {detail}")
        if "api key" in lowered or "apikey" in lowered:
            raise CredentialsRequiredError(f"{chain.value} explorer rejected API key: {detail}")
        if "no transactions found" in lowered:
            raise NoUsableDataError(f"{chain.value} explorer: {detail}")
        raise UpstreamUnavailableError(f"{chain.value} explorer: {detail}")
