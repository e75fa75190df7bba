"""Unit tests for the block explorer client."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from pool_metrics.domain.enums import Chain
from pool_metrics.domain.errors import (
    CredentialsRequiredError,
    NoUsableDataError,
    RateLimitedError,
    UnsupportedChainError,
    UpstreamUnavailableError,
)
from pool_metrics.domain.ports import HttpClientPort, HttpResponse
from pool_metrics.infrastructure.explorer.explorer_client import (
    ExplorerClient,
    operating_days,
    parse_holder_count,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _response(body=None, text="", status=200):
    return HttpResponse(status_code=status, body=body, text=text, url="https://example")


@pytest.fixture
def http():
    http = MagicMock(spec=HttpClientPort)
    http.get = AsyncMock()
    return http


@pytest.fixture
def clock():
    clock = MagicMock()
    clock.now.return_value = NOW
    return clock


@pytest.fixture
def explorer(http, clock):
    return ExplorerClient(
        http,
        {Chain.ETHEREUM: "eth-key", Chain.BASE: None, Chain.ARBITRUM: "arb-key"},
        clock,
        request_delay=0,
    )


@pytest.mark.parametrize(
    "html,expected",
    [
        ("<span>Holders: 12,345</span>", 12345),
        ("total holders: 987", 987),
        ("<span>Holders 1,234,567 (</span>", 1234567),
        ("<span>Holders: 48210</span>", 48210),
        ("<span>Holders 12345 (</span>", 12345),
        ('<div title="Holders (ERC-20)">Holders: 1,234</div>', 1234),
        ("<span>Holders (ERC-20): 7,001</span>", 7001),
    ],
)
def test_parse_holder_count(html, expected):
    """Test holder count extraction tolerates formatting variations."""
    assert parse_holder_count(html) == expected


def test_parse_holder_count_missing():
    with pytest.raises(NoUsableDataError, match="Holder count not found"):
        parse_holder_count("<html><body>Token tracker</body></html>")


def test_parse_holder_count_ignores_digits_in_token_tags():
    with pytest.raises(NoUsableDataError):
        parse_holder_count('<div title="Holders (ERC-20)">Token tracker</div>')


def test_operating_days_floors_partial_days():
    created = datetime(2025, 5, 1, 18, 0, tzinfo=timezone.utc)

    assert operating_days(created, NOW) == 30


@pytest.mark.asyncio
async def test_operating_days_from_first_transaction(explorer, http):
    """Test the first ascending transaction is taken as creation time."""
    created = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    http.get.return_value = _response(
        {"status": "1", "message": "OK", "result": [{"timeStamp": str(int(created.timestamp()))}]}
    )

    days = await explorer.operating_days("Ethereum", "0xabc")

    assert days == 365
    url = http.get.call_args.args[0]
    params = http.get.call_args.kwargs["params"]
    assert url == "https://api.etherscan.io/api"
    assert params["action"] == "txlist"
    assert params["sort"] == "asc"
    assert params["page"] == "1"
    assert params["offset"] == "1"
    assert params["apikey"] == "eth-key"


@pytest.mark.asyncio
async def test_chain_specific_endpoint(explorer, http):
    http.get.return_value = _response({"status": "1", "result": [{"timeStamp": "1700000000"}]})

    await explorer.contract_creation_time("arbitrum", "0xabc")

    assert http.get.call_args.args[0] == "https://api.arbiscan.io/api"
    assert http.get.call_args.kwargs["params"]["apikey"] == "arb-key"


@pytest.mark.asyncio
async def test_missing_api_key_is_credentials_required(explorer, http):
    """Test a missing key is reported without calling the explorer."""
    with pytest.raises(CredentialsRequiredError, match="BASESCAN_API_KEY"):
        await explorer.operating_days("base", "0xabc")

    http.get.assert_not_called()


@pytest.mark.asyncio
async def test_rate_limited_api_response(explorer, http):
    http.get.return_value = _response(
        {"status": "0", "message": "NOTOK", "result": "Max rate limit reached"}
    )

    with pytest.raises(RateLimitedError) as exc_info:
        await explorer.operating_days("ethereum", "0xabc")

    assert exc_info.value.as_metric_error().startswith("rate_limited:")


@pytest.mark.asyncio
async def test_http_429_is_rate_limited(explorer, http):
    http.get.return_value = _response(None, "Too Many Requests", status=429)

    with pytest.raises(RateLimitedError):
        await explorer.operating_days("ethereum", "0xabc")


@pytest.mark.asyncio
async def test_invalid_api_key_response(explorer, http):
    http.get.return_value = _response({"status": "0", "message": "NOTOK", "result": "Invalid API Key"})

    with pytest.raises(CredentialsRequiredError):
        await explorer.operating_days("ethereum", "0xabc")


@pytest.mark.asyncio
async def test_no_transactions(explorer, http):
    http.get.return_value = _response({"status": "0", "message": "No transactions found", "result": []})

    with pytest.raises(NoUsableDataError):
        await explorer.operating_days("ethereum", "0xabc")


@pytest.mark.asyncio
async def test_server_error_is_upstream_unavailable(explorer, http):
    http.get.return_value = _response(None, "bad gateway", status=502)

    with pytest.raises(UpstreamUnavailableError):
        await explorer.operating_days("ethereum", "0xabc")


@pytest.mark.asyncio
async def test_unsupported_chain(explorer):
    with pytest.raises(UnsupportedChainError):
        await explorer.operating_days("solana", "0xabc")


@pytest.mark.asyncio
async def test_holder_count_from_token_page(explorer, http):
    http.get.return_value = _response(None, "<div>Holders: 3,210</div>")

    count = await explorer.holder_count("base", "0xabc")

    assert count == 3210
    assert http.get.call_args.args[0] == "https://basescan.org/token/0xabc"


@pytest.mark.asyncio
async def test_holder_page_blocked_is_rate_limited(explorer, http):
    http.get.return_value = _response(None, "Checking your browser - Cloudflare", status=403)

    with pytest.raises(RateLimitedError):
        await explorer.holder_count("ethereum", "0xabc")


@pytest.mark.asyncio
async def test_holder_count_with_cloudflare_beacon_script(explorer, http):
    """Test a CDN script on a normal page does not read as rate limiting."""
    html = (
        '<script defer src="https://static.cloudflareinsights.com/beacon.min.js"></script>'
        '<script src="https://cdnjs.cloudflare.com/ajax/libs/jquery.js"></script>'
        "<div>Holders: 1,234</div>"
    )
    http.get.return_value = _response(None, html)

    assert await explorer.holder_count("ethereum", "0xabc") == 1234


@pytest.mark.asyncio
async def test_challenge_page_is_rate_limited(explorer, http):
    http.get.return_value = _response(None, "<title>Just a moment...</title><div id=\"cf-chl-widget\"></div>")

    with pytest.raises(RateLimitedError):
        await explorer.holder_count("ethereum", "0xabc")


@pytest.mark.asyncio
async def test_page_without_count_is_no_usable_data(explorer, http):
    http.get.return_value = _response(None, "<html><body>Token tracker</body></html>")

    with pytest.raises(NoUsableDataError):
        await explorer.holder_count("ethereum", "0xabc")


@pytest.mark.asyncio
async def test_request_delay_precedes_calls(http, clock, monkeypatch):
    """Test a fixed delay is awaited before each explorer call."""
    sleep = AsyncMock()
    monkeypatch.setattr("pool_metrics.infrastructure.explorer.explorer_client.asyncio.sleep", sleep)
    explorer = ExplorerClient(http, {Chain.ETHEREUM: "k"}, clock, request_delay=0.2)
    http.get.return_value = _response(None, "Holders: 5")

    await explorer.holder_count("ethereum", "0xabc")

    sleep.assert_awaited_once_with(0.2)
