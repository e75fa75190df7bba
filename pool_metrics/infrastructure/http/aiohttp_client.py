"""HTTP client implementation using aiohttp."""

import asyncio
import json

import aiohttp

from pool_metrics.domain.errors import UpstreamUnavailableError
from pool_metrics.domain.ports import HttpClientPort, HttpResponse
from pool_metrics.domain.types import JsonValue

DEFAULT_HEADERS = {"User-Agent": "pool-metrics/0.1"}


class AiohttpClient(HttpClientPort):
    """aiohttp-backed HTTP client sharing one session."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=DEFAULT_HEADERS,
            )
        return self._session

    async def get(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Execute GET request.

        Raises:
            UpstreamUnavailableError: On connection errors and timeouts
        """
        session = await self._get_session()
        try:
            async with session.get(url, params=params, headers=headers) as resp:
                text = await resp.text()
                return HttpResponse(
                    status_code=resp.status,
                    body=_parse_json(text),
                    text=text,
                    url=str(resp.url),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamUnavailableError(f"GET {url} failed: {e!r}") from e

    async def post(
        self,
        url: str,
        payload: JsonValue,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Execute POST request with a JSON body.

        Raises:
            UpstreamUnavailableError: On connection errors and timeouts
        """
        session = await self._get_session()
        try:
            async with session.post(url, json=payload, headers=headers) as resp:
                text = await resp.text()
                return HttpResponse(
                    status_code=resp.status,
                    body=_parse_json(text),
                    text=text,
                    url=str(resp.url),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamUnavailableError(f"POST {url} failed: {e!r}") from e

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


def _parse_json(text: str) -> JsonValue:
    try:
        return json.loads(text)
    except ValueError:
        return None
