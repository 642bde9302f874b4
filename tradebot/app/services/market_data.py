"""Market data service: fetches bar series with a short-lived in-memory cache.

Cached data can be up to ``ttl`` seconds stale. Failed fetches (network
error, timeout, non-2xx response, malformed payload) are logged and
returned as an empty series, so callers cannot tell them apart from a
symbol with no history; they are never cached.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol, runtime_checkable

import httpx

from tradebot.app.clients.binance_rest import BinanceRestClient
from tradebot.core.models import DEFAULT_MAX_BAR_COUNT, Bar, BarSeries

logger = logging.getLogger(__name__)

# Market data TTL in seconds
DEFAULT_TTL = 30.0
# Maximum cached (symbol, interval, limit) entries
DEFAULT_MAX_ENTRIES = 500


@runtime_checkable
class MarketDataProvider(Protocol):
    """Source of bar series for the scan engine."""

    async def fetch_bars(self, symbol: str, interval: str, limit: int) -> BarSeries:
        """Return up to ``limit`` recent bars; empty or short on failure."""
        ...


class MarketDataService:
    """Fetch bars from Binance, caching successful responses for ``ttl`` seconds.

    Every call returns a new ``BarSeries`` built from the cached bars, so
    concurrent evaluations never share a series.
    """

    def __init__(
        self,
        client: BinanceRestClient | None = None,
        ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_bar_count: int = DEFAULT_MAX_BAR_COUNT,
    ):
        self.client = client or BinanceRestClient()
        self.ttl = ttl
        self.max_entries = max_entries
        self.max_bar_count = max_bar_count

        # (symbol, interval, limit) -> (stored_at, bars)
        self._cache: dict[tuple[str, str, int], tuple[float, tuple[Bar, ...]]] = {}
        self._lock = asyncio.Lock()

        self._cache_hits = 0
        self._cache_misses = 0

    async def fetch_bars(self, symbol: str, interval: str, limit: int) -> BarSeries:
        """Fetch OHLCV bars for a symbol.

        Args:
            symbol: e.g. "BTCUSDT"
            interval: e.g. "1m", "5m", "1h"
            limit: Number of bars requested

        Returns:
            A new BarSeries; empty if the fetch failed.
        """
        key = (symbol, interval, limit)
        bars = await self._get_cached(key)
        if bars is None:
            self._cache_misses += 1
            try:
                fetched = await self.client.get_klines(symbol, interval, limit)
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Failed to fetch market data for %s: HTTP %d",
                    symbol, e.response.status_code,
                )
                return BarSeries(symbol, self.max_bar_count)
            except httpx.HTTPError as e:
                logger.error("Network error fetching market data for %s: %s", symbol, e)
                return BarSeries(symbol, self.max_bar_count)
            except ValueError as e:
                logger.error("Invalid market data for %s: %s", symbol, e)
                return BarSeries(symbol, self.max_bar_count)

            bars = tuple(fetched)
            await self._store(key, bars)
            logger.info("Loaded %d bars for %s (%s)", len(bars), symbol, interval)
        else:
            self._cache_hits += 1

        try:
            return BarSeries.from_bars(symbol, list(bars), self.max_bar_count)
        except ValueError as e:
            logger.error("Unordered market data for %s: %s", symbol, e)
            return BarSeries(symbol, self.max_bar_count)

    async def _get_cached(self, key: tuple[str, str, int]) -> tuple[Bar, ...] | None:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            stored_at, bars = entry
            if time.monotonic() - stored_at > self.ttl:
                del self._cache[key]
                return None
            return bars

    async def _store(self, key: tuple[str, str, int], bars: tuple[Bar, ...]) -> None:
        async with self._lock:
            now = time.monotonic()
            if key not in self._cache and len(self._cache) >= self.max_entries:
                # Drop expired entries first, then the oldest
                for stale in [k for k, (t, _) in self._cache.items() if now - t > self.ttl]:
                    del self._cache[stale]
                if len(self._cache) >= self.max_entries:
                    oldest = min(self._cache, key=lambda k: self._cache[k][0])
                    del self._cache[oldest]
            self._cache[key] = (now, bars)

    async def clear_cache(self) -> None:
        async with self._lock:
            self._cache.clear()

    @property
    def cache_stats(self) -> dict[str, int]:
        return {
            "entries": len(self._cache),
            "hits": self._cache_hits,
            "misses": self._cache_misses,
        }

    async def close(self) -> None:
        await self.client.close()
