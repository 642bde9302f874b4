"""Tests for technical indicators."""

import math

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from tradebot.core.indicators import (
    BollingerBandsLowerIndicator,
    BollingerBandsUpperIndicator,
    ClosePriceIndicator,
    EMAIndicator,
    HighestValueIndicator,
    LowestValueIndicator,
    MACDIndicator,
    RSIIndicator,
    StandardDeviationIndicator,
    StochasticOscillatorKIndicator,
    is_nan,
)
from tradebot.core.models import Bar, BarSeries

START = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_series(closes, spread: float = 1.0, max_bar_count: int = 500) -> BarSeries:
    """Create a series of one-minute bars with high/low = close +/- spread."""
    series = BarSeries("TEST", max_bar_count=max_bar_count)
    for i, close in enumerate(closes):
        series.add(make_bar(i, close, spread))
    return series


def make_bar(i: int, close: float, spread: float = 1.0) -> Bar:
    price = Decimal(str(close))
    return Bar(
        begin_time=START + timedelta(minutes=i),
        end_time=START + timedelta(minutes=i + 1),
        open=price,
        high=price + Decimal(str(spread)),
        low=price - Decimal(str(spread)),
        close=price,
        volume=Decimal("1"),
    )


ZIGZAG = [100, 102, 101, 104, 103, 107, 105, 108, 106, 110, 107, 111, 109, 112, 108,
          113, 110, 115, 111, 116, 112, 118, 114, 117, 113, 119, 115, 120, 116, 121]


class TestEMA:
    """Tests for EMAIndicator."""

    def test_undefined_during_warmup(self):
        ema = EMAIndicator(ClosePriceIndicator(make_series(range(1, 11))), 3)

        assert ema.warmup == 2
        assert is_nan(ema.value(0))
        assert is_nan(ema.value(1))

    def test_seed_is_simple_average(self):
        ema = EMAIndicator(ClosePriceIndicator(make_series(range(1, 11))), 3)

        # (1 + 2 + 3) / 3
        assert ema.value(2) == pytest.approx(2.0)

    def test_recurrence(self):
        """Test EMA[i] = EMA[i-1] + alpha * (close[i] - EMA[i-1])."""
        series = make_series(ZIGZAG)
        close = ClosePriceIndicator(series)
        ema = EMAIndicator(close, 5)
        alpha = 2 / (5 + 1)

        for i in range(5, series.end_index + 1):
            expected = ema.value(i - 1) + alpha * (close.value(i) - ema.value(i - 1))
            assert ema.value(i) == pytest.approx(expected)

    def test_linear_series(self):
        ema = EMAIndicator(ClosePriceIndicator(make_series(range(1, 11))), 3)

        # alpha = 0.5 keeps EMA one step behind a unit-slope series
        assert ema.value(3) == pytest.approx(3.0)
        assert ema.value(9) == pytest.approx(9.0)

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            EMAIndicator(ClosePriceIndicator(make_series([1, 2])), 0)

    def test_long_series_no_recursion_error(self):
        """Test a cold request at the end of a long series is computed iteratively."""
        closes = [100 + (i % 7) for i in range(5000)]
        series = make_series(closes, max_bar_count=5000)
        ema = EMAIndicator(ClosePriceIndicator(series), 21)

        assert not is_nan(ema.value(4999))
        assert ema.cached_count == 5000

    def test_incremental_matches_full_recompute(self):
        """Test values computed bar-by-bar equal those of a fresh indicator."""
        live = BarSeries("TEST")
        live_ema = EMAIndicator(ClosePriceIndicator(live), 9)
        incremental = []
        for i, close in enumerate(ZIGZAG):
            live.add(make_bar(i, close))
            incremental.append(live_ema.value(live.end_index))

        fresh_ema = EMAIndicator(ClosePriceIndicator(make_series(ZIGZAG)), 9)
        for i, value in enumerate(incremental):
            if math.isnan(value):
                assert is_nan(fresh_ema.value(i))
            else:
                assert fresh_ema.value(i) == pytest.approx(value)

    def test_cache_pruned_after_eviction(self):
        series = BarSeries("TEST", max_bar_count=10)
        ema = EMAIndicator(ClosePriceIndicator(series), 3)
        for i, close in enumerate(ZIGZAG):
            series.add(make_bar(i, close))
            ema.value(series.end_index)

        assert series.begin_index == len(ZIGZAG) - 10
        # retained bars plus the one before begin_index
        assert ema.cached_count <= series.bar_count + 1
        with pytest.raises(IndexError):
            ema.value(0)


class TestRSI:
    """Tests for RSIIndicator."""

    def test_all_gains_is_100(self):
        rsi = RSIIndicator(ClosePriceIndicator(make_series(range(100, 130))), 14)
        assert rsi.value(29) == 100.0

    def test_all_losses_is_0(self):
        rsi = RSIIndicator(ClosePriceIndicator(make_series(range(130, 100, -1))), 14)
        assert rsi.value(29) == 0.0

    def test_flat_series_is_100(self):
        rsi = RSIIndicator(ClosePriceIndicator(make_series([100] * 30)), 14)
        assert rsi.value(29) == 100.0

    def test_bounds(self):
        series = make_series(ZIGZAG)
        rsi = RSIIndicator(ClosePriceIndicator(series), 5)

        for i in range(series.begin_index, series.end_index + 1):
            value = rsi.value(i)
            if i < rsi.first_defined_index():
                assert is_nan(value)
            else:
                assert 0.0 <= value <= 100.0

    def test_warmup(self):
        rsi = RSIIndicator(ClosePriceIndicator(make_series(ZIGZAG)), 14)

        assert rsi.warmup == 14
        assert is_nan(rsi.value(13))
        assert not is_nan(rsi.value(14))

    def test_wilder_seed(self):
        """Test the first value uses simple averages of gains and losses."""
        # changes: +2, -1, +3
        rsi = RSIIndicator(ClosePriceIndicator(make_series([10, 12, 11, 14])), 3)

        avg_gain, avg_loss = 5 / 3, 1 / 3
        expected = 100 - 100 / (1 + avg_gain / avg_loss)
        assert rsi.value(3) == pytest.approx(expected)


class TestMACD:
    """Tests for MACDIndicator."""

    def test_difference_of_emas(self):
        series = make_series(ZIGZAG)
        close = ClosePriceIndicator(series)
        macd = MACDIndicator(close, 3, 6)
        fast, slow = EMAIndicator(close, 3), EMAIndicator(close, 6)

        assert is_nan(macd.value(4))
        for i in range(5, series.end_index + 1):
            assert macd.value(i) == pytest.approx(fast.value(i) - slow.value(i))

    def test_flat_series_is_zero(self):
        macd = MACDIndicator(ClosePriceIndicator(make_series([50] * 40)))
        assert macd.value(39) == pytest.approx(0.0)

    def test_signal_line_warmup(self):
        macd = MACDIndicator(ClosePriceIndicator(make_series([50] * 40)), 12, 26)
        signal = macd.signal_line(9)

        assert signal.warmup == 33
        assert is_nan(signal.value(32))
        assert signal.value(33) == pytest.approx(0.0)

    def test_fast_must_be_below_slow(self):
        with pytest.raises(ValueError):
            MACDIndicator(ClosePriceIndicator(make_series([1])), 26, 12)


class TestBollingerBands:
    """Tests for Bollinger Bands and window statistics."""

    def test_population_standard_deviation(self):
        std = StandardDeviationIndicator(ClosePriceIndicator(make_series([1, 2, 3, 4])), 4)
        assert std.value(3) == pytest.approx(math.sqrt(1.25))

    def test_bands(self):
        series = make_series(ZIGZAG)
        close = ClosePriceIndicator(series)
        middle = EMAIndicator(close, 20)
        deviation = StandardDeviationIndicator(close, 20)
        upper = BollingerBandsUpperIndicator(middle, deviation, 2.0)
        lower = BollingerBandsLowerIndicator(middle, deviation, 2.0)

        assert is_nan(upper.value(18))
        i = series.end_index
        assert upper.value(i) == pytest.approx(middle.value(i) + 2 * deviation.value(i))
        assert lower.value(i) == pytest.approx(middle.value(i) - 2 * deviation.value(i))
        assert lower.value(i) < middle.value(i) < upper.value(i)

    def test_flat_series_collapses(self):
        series = make_series([100] * 25)
        close = ClosePriceIndicator(series)
        middle = EMAIndicator(close, 20)
        upper = BollingerBandsUpperIndicator(middle, StandardDeviationIndicator(close, 20))

        assert upper.value(24) == pytest.approx(100.0)

    def test_highest_lowest(self):
        close = ClosePriceIndicator(make_series([5, 1, 9, 3, 7]))

        assert HighestValueIndicator(close, 3).value(4) == 9.0
        assert LowestValueIndicator(close, 3).value(4) == 3.0
        assert is_nan(HighestValueIndicator(close, 3).value(1))


class TestStochastic:
    """Tests for StochasticOscillatorKIndicator."""

    def test_position_in_range(self):
        series = make_series(range(1, 15), spread=1.0)
        k = StochasticOscillatorKIndicator(series, 14)

        # highest high 15, lowest low 0, close 14
        assert k.value(13) == pytest.approx(100 * 14 / 15)
        assert is_nan(k.value(12))

    def test_zero_range_is_zero(self):
        series = make_series([100] * 14, spread=0)
        k = StochasticOscillatorKIndicator(series, 14)

        assert k.value(13) == 0.0
