"""Position runner: turns strategy rules into BUY/SELL/HOLD signals.

The runner is a two-state machine over its own trading record:

- FLAT: only the entry rule is consulted; if satisfied, enter at the close
  and emit BUY.
- IN_POSITION: only the exit rule is consulted; if satisfied, exit at the
  close and emit SELL.
- Anything else is HOLD.

Raw rule truth is gated by position state, so an entry condition that holds
while already in a position is suppressed, and vice versa.

This module is pure business logic with no I/O dependencies.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

from tradebot.core.models.bar import BarSeries
from tradebot.core.models.signal import SignalType, TradeSignal
from tradebot.core.models.trading_record import TradingRecord
from tradebot.core.strategy.base import Strategy

logger = logging.getLogger(__name__)

ENTRY_CONFIDENCE = Decimal("0.8")
EXIT_CONFIDENCE = Decimal("0.8")
HOLD_CONFIDENCE = Decimal("0.5")

# Rounding applied to derived percentages
PERCENT_QUANTUM = Decimal("0.000001")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BacktestResult:
    """Outcome of replaying a strategy over a full series."""

    strategy_name: str
    trading_record: TradingRecord
    start_index: int
    end_index: int
    total_return_pct: Decimal

    @property
    def trade_count(self) -> int:
        return self.trading_record.trade_count

    @property
    def winning_trades(self) -> int:
        return sum(1 for t in self.trading_record.trades if t.is_win)

    @property
    def has_open_position(self) -> bool:
        return self.trading_record.is_in_position


def total_return_pct(record: TradingRecord) -> Decimal:
    """Compound return over closed trades, as a percentage delta from 1.

    ``(prod(exit / entry) - 1) * 100``, rounded half-up to 6 places. An open
    position is ignored; an empty record yields 0.
    """
    growth = Decimal("1")
    for trade in record.trades:
        growth *= trade.return_ratio
    return ((growth - 1) * 100).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


class StrategyRunner:
    """Evaluates a strategy against a bar series and emits trade signals.

    The runner can be kept alive while bars are appended to its series;
    position state then carries over between ``evaluate`` calls.
    """

    def __init__(
        self,
        series: BarSeries,
        strategy: Strategy,
        strategy_name: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.series = series
        self.strategy = strategy
        self.strategy_name = strategy_name or strategy.name
        self.trading_record = TradingRecord()
        self._clock = clock

    def evaluate(self, symbol: str) -> TradeSignal:
        """Evaluate the latest bar and return a signal."""
        index = self.series.end_index
        if index < 0:
            return self._signal(symbol, SignalType.HOLD, Decimal("0"), HOLD_CONFIDENCE, "No bars available")

        close = self.series.get_bar(index).close
        if self.strategy.is_unstable_at(index, self.series.begin_index):
            return self._signal(
                symbol,
                SignalType.HOLD,
                close,
                HOLD_CONFIDENCE,
                f"Strategy warming up at bar {index} "
                f"(needs {self.strategy.unstable_bars} bars)",
            )

        signal_type = self._step(index, self.trading_record)
        if signal_type == SignalType.BUY:
            return self._signal(
                symbol, SignalType.BUY, close, ENTRY_CONFIDENCE,
                f"Strategy entry condition met at bar {index}",
            )
        if signal_type == SignalType.SELL:
            return self._signal(
                symbol, SignalType.SELL, close, EXIT_CONFIDENCE,
                f"Strategy exit condition met at bar {index}",
            )
        return self._signal(
            symbol, SignalType.HOLD, close, HOLD_CONFIDENCE, f"No signal at bar {index}"
        )

    def backtest(self) -> BacktestResult:
        """Replay the whole series with a fresh record and compute total return.

        Uses the same gated entry/exit evaluation as ``evaluate``, bar by
        bar from the first stable index. The live trading record is not
        touched.
        """
        record = TradingRecord()
        start = self.series.begin_index + self.strategy.unstable_bars
        end = self.series.end_index
        for index in range(start, end + 1):
            self._step(index, record)

        result = BacktestResult(
            strategy_name=self.strategy_name,
            trading_record=record,
            start_index=start,
            end_index=end,
            total_return_pct=total_return_pct(record),
        )
        logger.debug(
            "Backtest %s on %s: bars %d..%d, %d trades, return %s%%",
            self.strategy_name,
            self.series.name,
            start,
            end,
            result.trade_count,
            result.total_return_pct,
        )
        return result

    def _step(self, index: int, record: TradingRecord) -> SignalType:
        """Apply one gated evaluation at ``index``, mutating ``record``."""
        close = self.series.get_bar(index).close
        if record.is_flat:
            if self.strategy.entry_rule.is_satisfied(index, record):
                record.enter(index, close)
                return SignalType.BUY
        elif self.strategy.exit_rule.is_satisfied(index, record):
            record.exit(index, close)
            return SignalType.SELL
        return SignalType.HOLD

    def _signal(
        self,
        symbol: str,
        signal_type: SignalType,
        price: Decimal,
        confidence: Decimal,
        reason: str,
    ) -> TradeSignal:
        return TradeSignal(
            symbol=symbol,
            type=signal_type,
            price=price,
            confidence=confidence,
            strategy_name=self.strategy_name,
            timestamp=self._clock(),
            reason=reason,
        )
