"""Trading record: the log of position events for one evaluation context."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class PositionState(str, Enum):
    """Position state derived from the trading record."""

    FLAT = "flat"
    IN_POSITION = "in_position"


class EventKind(str, Enum):
    ENTER = "enter"
    EXIT = "exit"


@dataclass(frozen=True)
class PositionEvent:
    """A single enter or exit at a bar index and price."""

    kind: EventKind
    index: int
    price: Decimal


@dataclass(frozen=True)
class Trade:
    """A closed (enter, exit) pair."""

    entry: PositionEvent
    exit: PositionEvent

    @property
    def return_ratio(self) -> Decimal:
        """Exit price over entry price (1 = break-even)."""
        return self.exit.price / self.entry.price

    @property
    def is_win(self) -> bool:
        return self.exit.price > self.entry.price


class TradingRecord:
    """Ordered log of enter/exit events.

    Enters and exits strictly alternate, starting with an enter, so the
    record is FLAT when empty or after an exit and IN_POSITION otherwise.
    """

    def __init__(self) -> None:
        self._events: list[PositionEvent] = []
        self._trades: list[Trade] = []

    @property
    def state(self) -> PositionState:
        if self._events and self._events[-1].kind == EventKind.ENTER:
            return PositionState.IN_POSITION
        return PositionState.FLAT

    @property
    def is_flat(self) -> bool:
        return self.state == PositionState.FLAT

    @property
    def is_in_position(self) -> bool:
        return self.state == PositionState.IN_POSITION

    @property
    def current_entry(self) -> PositionEvent | None:
        """The open entry, or None when flat."""
        if self.is_in_position:
            return self._events[-1]
        return None

    @property
    def events(self) -> tuple[PositionEvent, ...]:
        return tuple(self._events)

    @property
    def trades(self) -> tuple[Trade, ...]:
        """Closed trades in the order they were closed."""
        return tuple(self._trades)

    @property
    def trade_count(self) -> int:
        return len(self._trades)

    def enter(self, index: int, price: Decimal) -> PositionEvent:
        """Open a position.

        Raises:
            ValueError: If a position is already open.
        """
        if self.is_in_position:
            raise ValueError(
                f"Cannot enter at bar {index}: position already open since "
                f"bar {self._events[-1].index}"
            )
        event = PositionEvent(EventKind.ENTER, index, price)
        self._events.append(event)
        return event

    def exit(self, index: int, price: Decimal) -> PositionEvent:
        """Close the open position.

        Raises:
            ValueError: If no position is open or the exit precedes the entry.
        """
        entry = self.current_entry
        if entry is None:
            raise ValueError(f"Cannot exit at bar {index}: no open position")
        if index < entry.index:
            raise ValueError(
                f"Exit bar {index} precedes entry bar {entry.index}"
            )
        event = PositionEvent(EventKind.EXIT, index, price)
        self._events.append(event)
        self._trades.append(Trade(entry=entry, exit=event))
        return event

    def __len__(self) -> int:
        return len(self._events)
