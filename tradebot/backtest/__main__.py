"""CLI entry point for backtesting.

Usage:
    python -m tradebot.backtest --symbols BTCUSDT,ETHUSDT --interval 1h --bars 500
    python -m tradebot.backtest --strategy scalping --strategy-config strategy.yaml
    python -m tradebot.backtest --csv BTCUSDT-1h-2025-06.csv --symbols BTCUSDT
"""

import argparse
import asyncio
import logging
import sys

from tradebot.app.clients import BinanceRestClient
from tradebot.app.services import MarketDataService
from tradebot.app.strategy_config import StrategyFileConfig, build_strategy, load_strategy_config
from tradebot.backtest.csv_source import load_csv_series
from tradebot.backtest.report import ReportFormatter, SymbolReport
from tradebot.core.models import BarSeries
from tradebot.core.runner import StrategyRunner
from tradebot.core.strategy import list_strategies

DEFAULT_SYMBOLS = "BTCUSDT,ETHUSDT,SOLUSDT"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backtest a signal strategy over recent Binance bars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tradebot.backtest --symbols BTCUSDT --interval 1h --bars 1000
  python -m tradebot.backtest --strategy scalping --interval 1m
  python -m tradebot.backtest --csv BTCUSDT-5m-2025-06.csv --symbols BTCUSDT
        """,
    )
    parser.add_argument(
        "--symbols",
        type=str,
        default=DEFAULT_SYMBOLS,
        help=f"Comma-separated symbols (default: {DEFAULT_SYMBOLS})",
    )
    parser.add_argument("--interval", type=str, default="5m", help="Kline interval (default: 5m)")
    parser.add_argument(
        "--bars",
        type=int,
        default=500,
        help="Bars to fetch per symbol, at most 1000 (default: 500)",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        choices=list_strategies(),
        help="Strategy to replay (default: from --strategy-config, else composite)",
    )
    parser.add_argument(
        "--strategy-config",
        type=str,
        default=None,
        help="YAML file with strategy parameters",
    )
    parser.add_argument(
        "--csv",
        type=str,
        default=None,
        help="Replay bars from a Binance kline CSV instead of the API (single symbol)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser.parse_args(argv)


def run_backtest(
    symbol: str, series: BarSeries, strategy_name: str, file_config: StrategyFileConfig
) -> SymbolReport:
    """Replay one series and wrap the result for reporting."""
    strategy = build_strategy(strategy_name, series, file_config)
    result = StrategyRunner(series, strategy).backtest()
    return SymbolReport(symbol=symbol, series=series, result=result)


async def load_series(args: argparse.Namespace, symbols: list[str]) -> dict[str, BarSeries]:
    """Load bars from the CSV file or the Binance REST API."""
    max_bar_count = max(args.bars, 1)
    if args.csv:
        return {symbols[0]: load_csv_series(args.csv, symbols[0], max_bar_count)}

    market_data = MarketDataService(client=BinanceRestClient(), max_bar_count=max_bar_count)
    try:
        series = {}
        for symbol in symbols:
            series[symbol] = await market_data.fetch_bars(symbol, args.interval, args.bars)
        return series
    finally:
        await market_data.close()


async def cmd_run_backtest(args: argparse.Namespace) -> int:
    """Run a backtest; returns the process exit code."""
    symbols = [s.strip().upper() for s in args.symbols.split(",") if s.strip()]
    if not symbols:
        print("Error: --symbols is empty")
        return 1
    if args.csv and len(symbols) > 1:
        print("Error: --csv replays a single symbol; pass exactly one with --symbols")
        return 1

    file_config = load_strategy_config(args.strategy_config)
    strategy_name = args.strategy or file_config.resolve_name("composite")

    print(f"\nBacktest: {', '.join(symbols)}")
    print(f"Strategy: {strategy_name}")
    print(f"Interval: {args.interval}")

    try:
        all_series = await load_series(args, symbols)
    except (OSError, ValueError) as e:
        print(f"Error: failed to load bars: {e}")
        return 1

    reports = []
    for symbol, series in all_series.items():
        if series.is_empty:
            print(f"  {symbol}: no bars loaded, skipping")
            continue
        reports.append(run_backtest(symbol, series, strategy_name, file_config))

    if not reports:
        print("Error: no data to backtest")
        return 1

    ReportFormatter.print_console(reports, args.interval)
    if args.output:
        ReportFormatter.save_json(reports, args.interval, args.output)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return asyncio.run(cmd_run_backtest(args))


if __name__ == "__main__":
    sys.exit(main())
