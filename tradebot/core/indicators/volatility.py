"""Window statistics and Bollinger Bands."""

from tradebot.core.indicators.base import NAN, CachedIndicator, Indicator


class StandardDeviationIndicator(CachedIndicator):
    """Population standard deviation over a rolling window."""

    def __init__(self, source: Indicator, period: int):
        super().__init__(source.series, source.warmup + period - 1)
        self.source = source
        self.period = period

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        return float(self.source.window(index, self.period).std(ddof=0))


class HighestValueIndicator(CachedIndicator):
    """Highest source value over the last ``period`` bars."""

    def __init__(self, source: Indicator, period: int):
        super().__init__(source.series, source.warmup + period - 1)
        self.source = source
        self.period = period

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        return float(self.source.window(index, self.period).max())


class LowestValueIndicator(CachedIndicator):
    """Lowest source value over the last ``period`` bars."""

    def __init__(self, source: Indicator, period: int):
        super().__init__(source.series, source.warmup + period - 1)
        self.source = source
        self.period = period

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        return float(self.source.window(index, self.period).min())


class BollingerBandsUpperIndicator(CachedIndicator):
    """``middle + k * deviation``."""

    def __init__(self, middle: Indicator, deviation: Indicator, k: float = 2.0):
        super().__init__(middle.series, max(middle.warmup, deviation.warmup))
        self.middle = middle
        self.deviation = deviation
        self.k = k

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        return self.middle.value(index) + self.k * self.deviation.value(index)


class BollingerBandsLowerIndicator(CachedIndicator):
    """``middle - k * deviation``."""

    def __init__(self, middle: Indicator, deviation: Indicator, k: float = 2.0):
        super().__init__(middle.series, max(middle.warmup, deviation.warmup))
        self.middle = middle
        self.deviation = deviation
        self.k = k

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        return self.middle.value(index) - self.k * self.deviation.value(index)
