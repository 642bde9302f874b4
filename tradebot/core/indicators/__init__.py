"""Technical indicators (pure math, no I/O)."""

from tradebot.core.indicators.base import (
    NAN,
    CachedIndicator,
    ClosePriceIndicator,
    DifferenceIndicator,
    HighPriceIndicator,
    Indicator,
    LowPriceIndicator,
    RecursiveCachedIndicator,
    is_nan,
)
from tradebot.core.indicators.oscillators import RSIIndicator, StochasticOscillatorKIndicator
from tradebot.core.indicators.trend import EMAIndicator, MACDIndicator
from tradebot.core.indicators.volatility import (
    BollingerBandsLowerIndicator,
    BollingerBandsUpperIndicator,
    HighestValueIndicator,
    LowestValueIndicator,
    StandardDeviationIndicator,
)

__all__ = [
    "NAN",
    "is_nan",
    "Indicator",
    "CachedIndicator",
    "RecursiveCachedIndicator",
    "ClosePriceIndicator",
    "HighPriceIndicator",
    "LowPriceIndicator",
    "DifferenceIndicator",
    "EMAIndicator",
    "MACDIndicator",
    "RSIIndicator",
    "StochasticOscillatorKIndicator",
    "StandardDeviationIndicator",
    "HighestValueIndicator",
    "LowestValueIndicator",
    "BollingerBandsUpperIndicator",
    "BollingerBandsLowerIndicator",
]
