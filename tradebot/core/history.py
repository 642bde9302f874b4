"""Bounded per-symbol signal history and process-wide signal counters.

Synchronization:
- Each symbol has its own lock and deque; writers to different symbols
  never contend. The shared registry lock is taken only the first time a
  symbol is seen.
- Counters have their own lock, held only for the increment, independent of
  any history lock.

Both containers are safe to use from worker threads and the event loop.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field

from tradebot.core.models.signal import SignalType, TradeSignal

# Signals kept per symbol before the oldest is evicted
DEFAULT_HISTORY_CAPACITY = 100


@dataclass
class _SymbolHistory:
    signals: deque[TradeSignal]
    lock: threading.Lock = field(default_factory=threading.Lock)


class SignalHistory:
    """Per-symbol FIFO of the most recent signals, oldest first."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._slots: dict[str, _SymbolHistory] = {}
        self._registry_lock = threading.Lock()

    def _slot(self, symbol: str) -> _SymbolHistory:
        slot = self._slots.get(symbol)
        if slot is None:
            with self._registry_lock:
                slot = self._slots.get(symbol)
                if slot is None:
                    slot = _SymbolHistory(deque(maxlen=self.capacity))
                    self._slots[symbol] = slot
        return slot

    def append(self, signal: TradeSignal) -> None:
        """Record a signal, evicting the symbol's oldest one when full."""
        slot = self._slot(signal.symbol)
        with slot.lock:
            slot.signals.append(signal)

    def get(self, symbol: str) -> list[TradeSignal]:
        """Copy of the symbol's signals, oldest first (empty if unknown)."""
        slot = self._slots.get(symbol)
        if slot is None:
            return []
        with slot.lock:
            return list(slot.signals)

    def snapshot(self) -> dict[str, list[TradeSignal]]:
        """Copy of every symbol's history."""
        return {symbol: self.get(symbol) for symbol in self.symbols()}

    def symbols(self) -> list[str]:
        with self._registry_lock:
            return list(self._slots)

    def __len__(self) -> int:
        return sum(len(self.get(symbol)) for symbol in self.symbols())


class SignalCounters:
    """Monotonic total and per-type signal counts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._by_type: dict[SignalType, int] = {t: 0 for t in SignalType}

    def increment(self, signal_type: SignalType) -> int:
        """Count one signal; returns the new total."""
        with self._lock:
            self._total += 1
            self._by_type[signal_type] += 1
            return self._total

    @property
    def total(self) -> int:
        return self._total

    def count(self, signal_type: SignalType) -> int:
        return self._by_type[signal_type]

    def snapshot(self) -> dict[str, int]:
        """Per-type counts keyed by type name, plus ``total``."""
        with self._lock:
            counts = {t.value: n for t, n in self._by_type.items()}
            counts["total"] = self._total
        return counts
