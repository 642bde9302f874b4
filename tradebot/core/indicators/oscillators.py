"""Bounded momentum oscillators (RSI, Stochastic %K)."""

from tradebot.core.indicators.base import (
    NAN,
    CachedIndicator,
    ClosePriceIndicator,
    HighPriceIndicator,
    Indicator,
    LowPriceIndicator,
    RecursiveCachedIndicator,
)
from tradebot.core.indicators.volatility import HighestValueIndicator, LowestValueIndicator
from tradebot.core.models.bar import BarSeries


class _WilderAverageIndicator(RecursiveCachedIndicator):
    """Wilder-smoothed average of the positive (or negative) price changes.

    Seed is the mean of the first ``period`` changes; afterwards
    ``avg[i] = (avg[i-1] * (period - 1) + change[i]) / period``.
    """

    def __init__(self, source: Indicator, period: int, gains: bool):
        super().__init__(source.series, source.warmup + period)
        self.source = source
        self.period = period
        self.gains = gains

    def _change(self, index: int) -> float:
        delta = self.source.value(index) - self.source.value(index - 1)
        if self.gains:
            return delta if delta > 0 else 0.0
        return -delta if delta < 0 else 0.0

    def calculate(self, index: int) -> float:
        first = self.first_defined_index()
        if index < first:
            return NAN
        if index == first:
            total = sum(self._change(i) for i in range(index - self.period + 1, index + 1))
            return total / self.period
        prev = self.previous(index)
        return (prev * (self.period - 1) + self._change(index)) / self.period


class RSIIndicator(CachedIndicator):
    """Relative Strength Index with Wilder smoothing, bounded to [0, 100]."""

    def __init__(self, source: Indicator, period: int = 14):
        if period < 1:
            raise ValueError(f"RSI period must be positive, got {period}")
        super().__init__(source.series, source.warmup + period)
        self.period = period
        self.average_gain = _WilderAverageIndicator(source, period, gains=True)
        self.average_loss = _WilderAverageIndicator(source, period, gains=False)

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        avg_gain = self.average_gain.value(index)
        avg_loss = self.average_loss.value(index)
        if avg_loss == 0:
            return 100.0
        rsi = 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
        return min(100.0, max(0.0, rsi))

    def __repr__(self) -> str:
        return f"RSI({self.period})"


class StochasticOscillatorKIndicator(CachedIndicator):
    """Stochastic %K: position of the close within the last ``period`` bars' range.

    ``100 * (close - lowest_low) / (highest_high - lowest_low)``, or 0 when
    the range is empty.
    """

    def __init__(self, series: BarSeries, period: int = 14):
        super().__init__(series, period - 1)
        self.period = period
        self.close = ClosePriceIndicator(series)
        self.highest_high = HighestValueIndicator(HighPriceIndicator(series), period)
        self.lowest_low = LowestValueIndicator(LowPriceIndicator(series), period)

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        highest = self.highest_high.value(index)
        lowest = self.lowest_low.value(index)
        price_range = highest - lowest
        if price_range == 0:
            return 0.0
        return 100.0 * (self.close.value(index) - lowest) / price_range

    def __repr__(self) -> str:
        return f"%K({self.period})"
