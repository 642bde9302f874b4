"""Load bars from Binance kline CSV files (data.binance.vision layout)."""

import csv
import logging
from pathlib import Path
from typing import Iterator

from tradebot.app.clients.binance_rest import parse_kline
from tradebot.core.models import DEFAULT_MAX_BAR_COUNT, Bar, BarSeries

logger = logging.getLogger(__name__)

# Archives from 2025 onward carry microsecond timestamps
_MICROSECOND_THRESHOLD = 10**14


def _normalise_time(raw: str) -> int:
    value = int(raw)
    return value // 1000 if value >= _MICROSECOND_THRESHOLD else value


def iter_csv_bars(path: Path | str) -> Iterator[Bar]:
    """Stream bars from a kline CSV, skipping the header and malformed rows."""
    with open(path, newline="") as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row or not row[0].strip().isdigit():
                continue
            try:
                yield parse_kline(
                    [_normalise_time(row[0]), *row[1:6], _normalise_time(row[6])]
                )
            except (IndexError, ValueError, ArithmeticError) as e:
                logger.warning("Skipping malformed row %d in %s: %s", line_no, path, e)


def load_csv_series(
    path: Path | str,
    name: str | None = None,
    max_bar_count: int = DEFAULT_MAX_BAR_COUNT,
) -> BarSeries:
    """Build a bar series from a CSV file; the oldest bars are evicted past ``max_bar_count``.

    Raises:
        ValueError: If bar end times are not strictly increasing.
    """
    series = BarSeries(name or Path(path).stem, max_bar_count)
    for bar in iter_csv_bars(path):
        series.add(bar)
    logger.info("Loaded %d bars from %s", series.bar_count, path)
    return series
