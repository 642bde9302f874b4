"""Binance public REST API client for fetching candlestick data."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

from tradebot.core.models import Bar

# Binance caps a single klines request at 1000 bars
MAX_KLINES_PER_REQUEST = 1000


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


def _to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def parse_kline(item: list[Any]) -> Bar:
    """Convert one Binance kline row into a Bar.

    Row layout: [openTime, open, high, low, close, volume, closeTime, ...]
    """
    return Bar(
        begin_time=_to_datetime(int(item[0])),
        end_time=_to_datetime(int(item[6])),
        open=Decimal(str(item[1])),
        high=Decimal(str(item[2])),
        low=Decimal(str(item[3])),
        close=Decimal(str(item[4])),
        volume=Decimal(str(item[5])),
    )


class BinanceRestClient:
    """Binance spot REST API client (public endpoints, no API key needed)."""

    BASE_URL = "https://api.binance.com"

    def __init__(
        self,
        connect_timeout: float = 10.0,
        read_timeout: float = 15.0,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or self.BASE_URL
        self.timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self.rate_limiter = RateLimiter()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client (pooled connections are reused)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def get_klines(self, symbol: str, interval: str, limit: int = 500) -> list[Bar]:
        """
        Fetch the most recent klines for a symbol.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: Kline interval (e.g., "1m", "5m", "1h", "1d")
            limit: Number of klines (max 1000)

        Returns:
            List of Bar objects, oldest first

        Raises:
            httpx.HTTPError: On network errors, timeouts or non-2xx responses
            ValueError: If the payload is not a list of kline rows
        """
        params = {
            "symbol": symbol,
            "interval": interval,
            "limit": min(limit, MAX_KLINES_PER_REQUEST),
        }
        data = await self._request("GET", "/api/v3/klines", params)
        if not isinstance(data, list):
            raise ValueError(f"Unexpected klines payload for {symbol}: {type(data).__name__}")
        try:
            return [parse_kline(item) for item in data]
        except (IndexError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Malformed kline row for {symbol}: {e}") from e
