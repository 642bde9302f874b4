"""Indicator base classes and price accessors.

Indicators are bound to a single ``BarSeries`` and evaluated at absolute bar
indices. Values are float64; ``nan`` marks an index inside the warm-up
window, where the indicator is undefined.

Caching:
- ``CachedIndicator`` memoises each computed index.
- ``RecursiveCachedIndicator`` is for recurrences (value at i needs the value
  at i-1). Missing predecessors are filled forward in a loop, so a cold
  request costs O(n) without deep recursion and the newest index after an
  append costs O(1).
- Entries older than ``begin_index - 1`` are pruned once bars are evicted.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import numpy as np

from tradebot.core.models.bar import BarSeries

NAN = float("nan")


def is_nan(value: float) -> bool:
    """Check if an indicator value is undefined."""
    return value is None or math.isnan(value)


class Indicator(ABC):
    """Numeric function of a bar series evaluated at an index."""

    def __init__(self, series: BarSeries, warmup: int = 0):
        self.series = series
        # Bars after begin_index before the first defined value
        self.warmup = warmup

    @abstractmethod
    def value(self, index: int) -> float:
        """Return the indicator value at absolute bar ``index``."""

    def first_defined_index(self) -> int:
        return self.series.begin_index + self.warmup

    def is_stable_at(self, index: int) -> bool:
        return index >= self.first_defined_index()

    def window(self, index: int, length: int) -> np.ndarray:
        """Values at ``index - length + 1 .. index`` as a float64 array."""
        return np.fromiter(
            (self.value(i) for i in range(index - length + 1, index + 1)),
            dtype=np.float64,
            count=length,
        )

    def _check_index(self, index: int) -> None:
        if index < self.series.begin_index or index > self.series.end_index:
            raise IndexError(
                f"{type(self).__name__}: index {index} outside "
                f"[{self.series.begin_index}, {self.series.end_index}]"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(warmup={self.warmup})"


class CachedIndicator(Indicator):
    """Indicator that memoises one value per bar index."""

    def __init__(self, series: BarSeries, warmup: int = 0):
        super().__init__(series, warmup)
        self._cache: dict[int, float] = {}
        self._pruned_at = series.begin_index

    @abstractmethod
    def calculate(self, index: int) -> float:
        """Compute the value at ``index`` (called at most once per index)."""

    def value(self, index: int) -> float:
        cached = self._cache.get(index)
        if cached is not None:
            return cached
        self._check_index(index)
        self._prune()
        result = self.calculate(index)
        self._cache[index] = result
        return result

    @property
    def cached_count(self) -> int:
        return len(self._cache)

    def _prune(self) -> None:
        begin = self.series.begin_index
        if begin == self._pruned_at:
            return
        # keep begin-1 so recurrences can continue across an eviction
        floor = begin - 1
        for stale in [i for i in self._cache if i < floor]:
            del self._cache[stale]
        self._pruned_at = begin


class RecursiveCachedIndicator(CachedIndicator):
    """Cached indicator whose value at i depends on its own value at i-1."""

    def value(self, index: int) -> float:
        cached = self._cache.get(index)
        if cached is not None:
            return cached
        self._check_index(index)
        self._prune()

        start = index
        begin = self.series.begin_index
        while start > begin and (start - 1) not in self._cache:
            start -= 1
        for i in range(start, index + 1):
            self._cache[i] = self.calculate(i)
        return self._cache[index]

    def previous(self, index: int) -> float:
        """Cached value at ``index - 1``; ``nan`` if never computed."""
        return self._cache.get(index - 1, NAN)


class ClosePriceIndicator(Indicator):
    """Close price of each bar."""

    def value(self, index: int) -> float:
        return float(self.series.get_bar(index).close)


class HighPriceIndicator(Indicator):
    """High price of each bar."""

    def value(self, index: int) -> float:
        return float(self.series.get_bar(index).high)


class LowPriceIndicator(Indicator):
    """Low price of each bar."""

    def value(self, index: int) -> float:
        return float(self.series.get_bar(index).low)


class DifferenceIndicator(CachedIndicator):
    """``first - second``, defined once both operands are."""

    def __init__(self, first: Indicator, second: Indicator):
        super().__init__(first.series, max(first.warmup, second.warmup))
        self.first = first
        self.second = second

    def calculate(self, index: int) -> float:
        if not self.is_stable_at(index):
            return NAN
        return self.first.value(index) - self.second.value(index)
