"""Bar (candlestick) data models."""

from collections import deque
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

# Bars kept per series before the oldest is evicted
DEFAULT_MAX_BAR_COUNT = 500

_PERCENT_QUANTUM = Decimal("0.000001")


class Bar(BaseModel):
    """Immutable OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    begin_time: datetime
    end_time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def time_period(self) -> timedelta:
        """Duration covered by the bar."""
        return self.end_time - self.begin_time

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def change_percent(self) -> Decimal:
        """Open-to-close change in percent, rounded half-up to 6 places."""
        if self.open == 0:
            return Decimal("0")
        ratio = ((self.close - self.open) / self.open).quantize(
            _PERCENT_QUANTUM, rounding=ROUND_HALF_UP
        )
        return ratio * 100


class BarSeries:
    """Bounded, append-only, chronological sequence of bars for one symbol.

    Indices are absolute: a bar keeps the index it was appended with for as
    long as it is retained. Once ``max_bar_count`` is exceeded the oldest bar
    is evicted and ``begin_index`` moves forward.

    A series belongs to a single evaluation context and is not synchronized.
    """

    def __init__(self, name: str, max_bar_count: int = DEFAULT_MAX_BAR_COUNT):
        if max_bar_count < 1:
            raise ValueError(f"max_bar_count must be positive, got {max_bar_count}")
        self.name = name
        self.max_bar_count = max_bar_count
        self._bars: deque[Bar] = deque()
        self._removed = 0

    @classmethod
    def from_bars(
        cls,
        name: str,
        bars: list[Bar],
        max_bar_count: int = DEFAULT_MAX_BAR_COUNT,
    ) -> "BarSeries":
        """Build a series by appending ``bars`` in order."""
        series = cls(name, max_bar_count=max_bar_count)
        for bar in bars:
            series.add(bar)
        return series

    def add(self, bar: Bar) -> None:
        """Append a bar, evicting the oldest one when over capacity.

        Raises:
            ValueError: If the bar does not end strictly after the last bar.
        """
        if self._bars and bar.end_time <= self._bars[-1].end_time:
            raise ValueError(
                f"{self.name}: bar ending {bar.end_time.isoformat()} is not after "
                f"last bar ending {self._bars[-1].end_time.isoformat()}"
            )
        self._bars.append(bar)
        if len(self._bars) > self.max_bar_count:
            self._bars.popleft()
            self._removed += 1

    def get_bar(self, index: int) -> Bar:
        """Return the bar at absolute ``index``.

        Raises:
            IndexError: If the bar was evicted or does not exist yet.
        """
        if index < self.begin_index or index > self.end_index:
            raise IndexError(
                f"{self.name}: bar index {index} outside "
                f"[{self.begin_index}, {self.end_index}]"
            )
        return self._bars[index - self._removed]

    @property
    def begin_index(self) -> int:
        """Index of the oldest retained bar."""
        return self._removed

    @property
    def end_index(self) -> int:
        """Index of the newest bar, -1 when empty."""
        return self._removed + len(self._bars) - 1

    @property
    def bar_count(self) -> int:
        return len(self._bars)

    @property
    def removed_bar_count(self) -> int:
        return self._removed

    @property
    def is_empty(self) -> bool:
        return not self._bars

    @property
    def bars(self) -> tuple[Bar, ...]:
        """Retained bars, oldest first."""
        return tuple(self._bars)

    @property
    def first_bar(self) -> Bar | None:
        return self._bars[0] if self._bars else None

    @property
    def last_bar(self) -> Bar | None:
        return self._bars[-1] if self._bars else None

    def __len__(self) -> int:
        return len(self._bars)

    def __repr__(self) -> str:
        return (
            f"BarSeries(name={self.name!r}, bars={len(self._bars)}, "
            f"begin_index={self.begin_index}, end_index={self.end_index})"
        )
