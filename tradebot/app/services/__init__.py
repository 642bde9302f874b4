"""Business services."""

from tradebot.app.services.market_data import MarketDataProvider, MarketDataService
from tradebot.app.services.scan_engine import (
    EngineStoppedError,
    ScanEngine,
    ScanRejectedError,
    SignalCallback,
)

__all__ = [
    "MarketDataProvider",
    "MarketDataService",
    "EngineStoppedError",
    "ScanEngine",
    "ScanRejectedError",
    "SignalCallback",
]
