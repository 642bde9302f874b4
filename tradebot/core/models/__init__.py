"""Data models."""

from tradebot.core.models.bar import DEFAULT_MAX_BAR_COUNT, Bar, BarSeries
from tradebot.core.models.signal import ACTIONABLE_CONFIDENCE, SignalType, TradeSignal
from tradebot.core.models.trading_record import (
    EventKind,
    PositionEvent,
    PositionState,
    Trade,
    TradingRecord,
)

__all__ = [
    "DEFAULT_MAX_BAR_COUNT",
    "Bar",
    "BarSeries",
    "ACTIONABLE_CONFIDENCE",
    "SignalType",
    "TradeSignal",
    "EventKind",
    "PositionEvent",
    "PositionState",
    "Trade",
    "TradingRecord",
]
