"""Report formatting for backtest results.

Outputs results to the console (formatted tables) and JSON files.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from tradebot.core.models import BarSeries
from tradebot.core.runner import BacktestResult


class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


@dataclass(frozen=True)
class SymbolReport:
    """Backtest result plus the series it was run on."""

    symbol: str
    series: BarSeries
    result: BacktestResult

    @property
    def win_rate(self) -> float:
        trades = self.result.trade_count
        return self.result.winning_trades / trades * 100 if trades else 0.0


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(reports: list[SymbolReport], interval: str) -> None:
        """Print formatted report to console."""
        strategy = reports[0].result.strategy_name if reports else "-"

        print("\n" + "=" * 70)
        print(f"  BACKTEST RESULTS: {strategy}")
        print("=" * 70)
        print(f"  Symbols: {', '.join(r.symbol for r in reports)}")
        print(f"  Interval: {interval}")

        print("\n" + "-" * 70)
        print("  BY SYMBOL")
        print("-" * 70)
        print(
            f"  {'Symbol':<12} {'Bars':>6} {'Trades':>7} {'Wins':>6} "
            f"{'Win%':>8} {'Return%':>12} {'Open':>6}"
        )
        for r in reports:
            open_flag = "YES" if r.result.has_open_position else "-"
            print(
                f"  {r.symbol:<12} {r.series.bar_count:>6} {r.result.trade_count:>7} "
                f"{r.result.winning_trades:>6} {r.win_rate:>7.1f}% "
                f"{float(r.result.total_return_pct):>+11.4f}% {open_flag:>6}"
            )

        for r in reports:
            trades = r.result.trading_record.trades
            if not trades:
                continue
            print("\n" + "-" * 70)
            print(f"  TRADES: {r.symbol} (last 10)")
            print("-" * 70)
            print(f"  {'Entry bar':>10} {'Entry':>14} {'Exit bar':>10} {'Exit':>14} {'Return%':>10}")
            for t in trades[-10:]:
                pct = (t.return_ratio - 1) * 100
                print(
                    f"  {t.entry.index:>10} {t.entry.price:>14} {t.exit.index:>10} "
                    f"{t.exit.price:>14} {float(pct):>+9.3f}%"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(reports: list[SymbolReport], interval: str) -> dict:
        """Convert results to JSON-serializable dict."""
        return {
            "interval": interval,
            "results": [
                {
                    "symbol": r.symbol,
                    "strategy": r.result.strategy_name,
                    "bars": r.series.bar_count,
                    "start_index": r.result.start_index,
                    "end_index": r.result.end_index,
                    "trades": r.result.trade_count,
                    "winning_trades": r.result.winning_trades,
                    "win_rate": round(r.win_rate, 2),
                    "open_position": r.result.has_open_position,
                    "total_return_pct": r.result.total_return_pct,
                    "trade_list": [
                        {
                            "entry_index": t.entry.index,
                            "entry_price": t.entry.price,
                            "exit_index": t.exit.index,
                            "exit_price": t.exit.price,
                        }
                        for t in r.result.trading_record.trades
                    ],
                }
                for r in reports
            ],
        }

    @staticmethod
    def save_json(reports: list[SymbolReport], interval: str, path: str) -> None:
        """Save results to a JSON file."""
        Path(path).write_text(
            json.dumps(ReportFormatter.to_dict(reports, interval), cls=DecimalEncoder, indent=2)
        )
        print(f"\n  Results saved to {path}")
