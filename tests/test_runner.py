"""Tests for the position runner and backtest."""

import math

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from tradebot.core.indicators import ClosePriceIndicator
from tradebot.core.models import BarSeries, SignalType, TradingRecord
from tradebot.core.rules import boolean_rule, over, under
from tradebot.core.runner import StrategyRunner, total_return_pct
from tradebot.core.strategy import Strategy, build_composite_strategy, build_scalping_strategy
from tests.factories import make_bar, make_series

FIXED_TIME = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def always_enter(unstable_bars: int = 0) -> Strategy:
    return Strategy("Always", boolean_rule(True), boolean_rule(False), unstable_bars)


def wave(n: int) -> list[float]:
    """Trending sine wave with regular EMA crossings."""
    return [round(100 + 8 * math.sin(i / 6) + 0.05 * i, 2) for i in range(n)]


class TestEvaluate:
    """Tests for StrategyRunner.evaluate."""

    def test_empty_series_holds(self):
        runner = StrategyRunner(BarSeries("BTCUSDT"), always_enter(), clock=lambda: FIXED_TIME)
        signal = runner.evaluate("BTCUSDT")

        assert signal.type == SignalType.HOLD
        assert signal.price == Decimal("0")
        assert signal.confidence == Decimal("0.5")
        assert signal.reason == "No bars available"
        assert signal.timestamp == FIXED_TIME

    def test_warmup_holds(self):
        runner = StrategyRunner(make_series([100, 101, 102]), always_enter(unstable_bars=5))
        signal = runner.evaluate("BTCUSDT")

        assert signal.type == SignalType.HOLD
        assert signal.price == Decimal("102")
        assert "warming up at bar 2" in signal.reason
        assert runner.trading_record.is_flat

    def test_entry_then_hold(self):
        """Test an always-true entry emits one BUY, then HOLD while in position."""
        series = make_series([100, 101])
        runner = StrategyRunner(series, always_enter())

        first = runner.evaluate("BTCUSDT")
        second = runner.evaluate("BTCUSDT")
        series.add(make_bar(2, 102))
        third = runner.evaluate("BTCUSDT")

        assert first.type == SignalType.BUY
        assert first.confidence == Decimal("0.8")
        assert first.actionable
        assert first.reason == "Strategy entry condition met at bar 1"
        assert second.type == SignalType.HOLD
        assert second.reason == "No signal at bar 1"
        assert third.type == SignalType.HOLD
        assert runner.trading_record.is_in_position

    def test_exit_then_reenter(self):
        series = make_series([100])
        runner = StrategyRunner(series, Strategy("Flip", boolean_rule(True), boolean_rule(True)))

        types = [runner.evaluate("BTCUSDT").type for _ in range(3)]

        assert types == [SignalType.BUY, SignalType.SELL, SignalType.BUY]
        assert runner.trading_record.trade_count == 1

    def test_strategy_name_override(self):
        runner = StrategyRunner(make_series([1]), always_enter(), strategy_name="Custom")
        assert runner.evaluate("X").strategy_name == "Custom"


class TestBacktest:
    """Tests for StrategyRunner.backtest."""

    def test_total_return(self):
        """Test (110/100) * (120/100) compounds to +32%."""
        series = make_series([100, 110, 100, 120])
        close = ClosePriceIndicator(series)
        strategy = Strategy("Band", under(close, 105), over(close, 105))

        result = StrategyRunner(series, strategy).backtest()

        assert result.trade_count == 2
        assert result.winning_trades == 2
        assert result.total_return_pct == Decimal("32.000000")
        assert not result.has_open_position
        assert result.start_index == 0
        assert result.end_index == 3

    def test_open_position_ignored(self):
        series = make_series([100, 110, 100])
        close = ClosePriceIndicator(series)
        strategy = Strategy("Band", under(close, 105), over(close, 105))

        result = StrategyRunner(series, strategy).backtest()

        assert result.trade_count == 1
        assert result.has_open_position
        assert result.total_return_pct == Decimal("10.000000")

    def test_monotonic_series_no_trades(self):
        """Test a steadily rising series never produces a crossover entry."""
        series = make_series(range(100, 200))
        runner = StrategyRunner(series, build_composite_strategy(series))

        result = runner.backtest()

        assert result.start_index == 33
        assert result.trade_count == 0
        assert result.total_return_pct == Decimal("0")

    def test_idempotent_and_leaves_live_record(self):
        series = make_series(wave(200))
        runner = StrategyRunner(series, build_scalping_strategy(series))

        first = runner.backtest()
        second = runner.backtest()

        assert first.trading_record.events == second.trading_record.events
        assert first.total_return_pct == second.total_return_pct
        assert len(runner.trading_record) == 0

    def test_backtest_matches_live_evaluation(self):
        """Test replaying a full series records the same events as a live runner."""
        closes = wave(200)

        live_series = BarSeries("TEST")
        live = StrategyRunner(live_series, build_scalping_strategy(live_series))
        for i, close in enumerate(closes):
            live_series.add(make_bar(i, close))
            live.evaluate("TEST")

        full_series = make_series(closes)
        result = StrategyRunner(full_series, build_scalping_strategy(full_series)).backtest()

        assert result.trading_record.events == live.trading_record.events

    def test_start_after_evictions(self):
        series = make_series(range(100, 150), max_bar_count=20)
        result = StrategyRunner(series, always_enter(unstable_bars=5)).backtest()

        assert result.start_index == series.begin_index + 5
        assert result.trading_record.events[0].index == 35


class TestTotalReturn:
    """Tests for total_return_pct."""

    def test_empty_record(self):
        assert total_return_pct(TradingRecord()) == Decimal("0")

    def test_rounding(self):
        record = TradingRecord()
        record.enter(0, Decimal("3"))
        record.exit(1, Decimal("4"))

        # 4/3 - 1 = 33.3333...%
        assert total_return_pct(record) == Decimal("33.333333")

    def test_losing_trade(self):
        record = TradingRecord()
        record.enter(0, Decimal("100"))
        record.exit(1, Decimal("90"))

        assert total_return_pct(record) == Decimal("-10.000000")


class TestTradingRecord:
    """Tests for TradingRecord."""

    def test_enter_twice_rejected(self):
        record = TradingRecord()
        record.enter(0, Decimal("1"))
        with pytest.raises(ValueError):
            record.enter(1, Decimal("1"))

    def test_exit_when_flat_rejected(self):
        with pytest.raises(ValueError):
            TradingRecord().exit(0, Decimal("1"))

    def test_exit_before_entry_rejected(self):
        record = TradingRecord()
        record.enter(5, Decimal("1"))
        with pytest.raises(ValueError):
            record.exit(4, Decimal("1"))
