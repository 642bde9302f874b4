"""Tests for composable trading rules."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from tradebot.core.indicators import NAN, ClosePriceIndicator, EMAIndicator, Indicator
from tradebot.core.models import Bar, BarSeries
from tradebot.core.rules import (
    Rule,
    and_rule,
    boolean_rule,
    crossed_down,
    crossed_up,
    or_rule,
    over,
    under,
)

START = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_series(closes) -> BarSeries:
    series = BarSeries("TEST")
    for i, close in enumerate(closes):
        price = Decimal(str(close))
        series.add(
            Bar(
                begin_time=START + timedelta(minutes=i),
                end_time=START + timedelta(minutes=i + 1),
                open=price,
                high=price,
                low=price,
                close=price,
                volume=Decimal("1"),
            )
        )
    return series


class FixedIndicator(Indicator):
    """Indicator returning preset values by index."""

    def __init__(self, series: BarSeries, values):
        super().__init__(series)
        self.values = list(values)

    def value(self, index: int) -> float:
        return self.values[index]


class CountingRule:
    """Wrap a constant rule and count evaluations."""

    def __init__(self, value: bool):
        self.calls = 0
        inner = boolean_rule(value)

        def predicate(index, record):
            self.calls += 1
            return inner.is_satisfied(index, record)

        self.rule = Rule(kind="counting", label="counting", predicate=predicate)


class TestComparisonRules:
    """Tests for over/under."""

    def test_over_under_with_constants(self):
        close = ClosePriceIndicator(make_series([10, 20, 30]))

        assert over(close, 15).is_satisfied(1)
        assert not over(close, 20).is_satisfied(1)
        assert under(close, 25).is_satisfied(1)
        assert not under(close, 20).is_satisfied(1)

    def test_over_two_indicators(self):
        series = make_series([1, 2, 3])
        a = FixedIndicator(series, [1, 5, 2])
        b = FixedIndicator(series, [2, 2, 2])

        assert not over(a, b).is_satisfied(0)
        assert over(a, b).is_satisfied(1)
        assert not over(a, b).is_satisfied(2)

    def test_nan_never_satisfies(self):
        series = make_series([1, 2])
        undefined = FixedIndicator(series, [NAN, NAN])

        assert not over(undefined, 0).is_satisfied(1)
        assert not under(undefined, 0).is_satisfied(1)

    def test_warmup_values_never_satisfy(self):
        close = ClosePriceIndicator(make_series([1, 2, 3, 4]))
        ema = EMAIndicator(close, 3)

        assert not over(close, ema).is_satisfied(1)
        assert not under(close, ema).is_satisfied(1)


class TestCrossingRules:
    """Tests for crossed_up/crossed_down."""

    def test_equal_series_never_cross(self):
        """Test A = B = [5, 5, 5] yields no crossing at any index."""
        series = make_series([5, 5, 5])
        a = FixedIndicator(series, [5, 5, 5])
        b = FixedIndicator(series, [5, 5, 5])

        for i in range(3):
            assert not crossed_up(a, b).is_satisfied(i)
            assert not crossed_down(a, b).is_satisfied(i)

    def test_crossed_up_only_on_crossing_bar(self):
        series = make_series([1, 2, 3, 4])
        a = FixedIndicator(series, [1, 2, 4, 5])
        b = FixedIndicator(series, [3, 3, 3, 3])
        rule = crossed_up(a, b)

        assert [rule.is_satisfied(i) for i in range(4)] == [False, False, True, False]

    def test_crossed_up_from_touch(self):
        """Test equality on the previous bar counts as not above."""
        series = make_series([1, 2])
        a = FixedIndicator(series, [3, 4])
        b = FixedIndicator(series, [3, 3])

        assert crossed_up(a, b).is_satisfied(1)

    def test_touch_is_not_a_crossing(self):
        series = make_series([1, 2])
        a = FixedIndicator(series, [2, 3])
        b = FixedIndicator(series, [3, 3])

        assert not crossed_up(a, b).is_satisfied(1)

    def test_crossed_down(self):
        series = make_series([1, 2, 3])
        a = FixedIndicator(series, [5, 4, 2])
        b = FixedIndicator(series, [3, 3, 3])
        rule = crossed_down(a, b)

        assert [rule.is_satisfied(i) for i in range(3)] == [False, False, True]

    def test_first_bar_never_crosses(self):
        series = make_series([1])
        a = FixedIndicator(series, [9])

        assert not crossed_up(a, 0).is_satisfied(0)

    def test_nan_previous_never_crosses(self):
        series = make_series([1, 2])
        a = FixedIndicator(series, [NAN, 9])

        assert not crossed_up(a, 0).is_satisfied(1)

    def test_needs_an_indicator(self):
        with pytest.raises(TypeError):
            crossed_up(1, 2)


class TestCombinators:
    """Tests for and/or composition."""

    def test_and_or(self):
        t, f = boolean_rule(True), boolean_rule(False)

        assert (t & t).is_satisfied(0)
        assert not (t & f).is_satisfied(0)
        assert (t | f).is_satisfied(0)
        assert not (f | f).is_satisfied(0)

    def test_and_short_circuits(self):
        counter = CountingRule(True)
        rule = and_rule(boolean_rule(False), counter.rule)

        assert not rule.is_satisfied(0)
        assert counter.calls == 0

    def test_or_short_circuits(self):
        counter = CountingRule(False)
        rule = or_rule(boolean_rule(True), counter.rule)

        assert rule.is_satisfied(0)
        assert counter.calls == 0

    def test_right_operand_evaluated_when_needed(self):
        counter = CountingRule(True)

        assert and_rule(boolean_rule(True), counter.rule).is_satisfied(0)
        assert counter.calls == 1

    def test_empty_combinator_rejected(self):
        with pytest.raises(ValueError):
            and_rule()
        with pytest.raises(ValueError):
            or_rule()

    def test_describe(self):
        close = ClosePriceIndicator(make_series([1]))
        rule = over(close, 5) & (boolean_rule(True) | boolean_rule(False))

        assert rule.kind == "and"
        assert rule.describe() == "and(ClosePriceIndicator(warmup=0) > 5, or(true, false))"
