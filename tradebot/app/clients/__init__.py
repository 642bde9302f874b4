"""Exchange API clients."""

from tradebot.app.clients.binance_rest import BinanceRestClient, RateLimiter

__all__ = ["BinanceRestClient", "RateLimiter"]
