"""Moving-average based indicators (EMA, MACD)."""

from tradebot.core.indicators.base import (
    NAN,
    DifferenceIndicator,
    Indicator,
    RecursiveCachedIndicator,
)


class EMAIndicator(RecursiveCachedIndicator):
    """Exponential Moving Average of another indicator.

    Seeded with the simple average of the first ``period`` defined source
    values, then ``EMA[i] = EMA[i-1] + alpha * (src[i] - EMA[i-1])`` with
    ``alpha = 2 / (period + 1)``.
    """

    def __init__(self, source: Indicator, period: int):
        if period < 1:
            raise ValueError(f"EMA period must be positive, got {period}")
        super().__init__(source.series, source.warmup + period - 1)
        self.source = source
        self.period = period
        self.alpha = 2.0 / (period + 1)

    def calculate(self, index: int) -> float:
        first = self.first_defined_index()
        if index < first:
            return NAN
        if index == first:
            return float(self.source.window(index, self.period).mean())
        prev = self.previous(index)
        return prev + self.alpha * (self.source.value(index) - prev)

    def __repr__(self) -> str:
        return f"EMA({self.period})"


class MACDIndicator(DifferenceIndicator):
    """Moving Average Convergence Divergence: EMA(fast) - EMA(slow)."""

    def __init__(self, source: Indicator, fast_period: int = 12, slow_period: int = 26):
        if fast_period >= slow_period:
            raise ValueError(
                f"MACD fast period ({fast_period}) must be below slow period ({slow_period})"
            )
        self.fast_ema = EMAIndicator(source, fast_period)
        self.slow_ema = EMAIndicator(source, slow_period)
        super().__init__(self.fast_ema, self.slow_ema)

    def signal_line(self, period: int = 9) -> EMAIndicator:
        """EMA of the MACD series."""
        return EMAIndicator(self, period)

    def __repr__(self) -> str:
        return f"MACD({self.fast_ema.period},{self.slow_ema.period})"

