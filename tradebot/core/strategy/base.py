"""Strategy: a named pair of entry/exit rules plus a warm-up length."""

from __future__ import annotations

from dataclasses import dataclass

from tradebot.core.rules import Rule


@dataclass(frozen=True)
class Strategy:
    """Entry and exit rules evaluated by the position runner.

    Attributes:
        name: Strategy identifier carried on emitted signals.
        entry_rule: Consulted only while flat.
        exit_rule: Consulted only while a position is open.
        unstable_bars: Bars after the series' begin index during which the
            strategy must not be evaluated (indicator warm-up).
    """

    name: str
    entry_rule: Rule
    exit_rule: Rule
    unstable_bars: int = 0

    def is_unstable_at(self, index: int, begin_index: int = 0) -> bool:
        return index < begin_index + self.unstable_bars
