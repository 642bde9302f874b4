"""Composable trading rules.

A rule is a tagged predicate over ``(index, trading_record)``. Rules are
built from closures over indicators and combined structurally:

    entry = crossed_up(ema9, ema21) & under(rsi, 65) & (under(close, mid) | under(k, 30))

Comparisons against an undefined (``nan``) indicator value are always
false, so a rule never fires on warm-up data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Union

from tradebot.core.indicators.base import Indicator
from tradebot.core.models.trading_record import TradingRecord

Predicate = Callable[[int, "TradingRecord | None"], bool]
Operand = Union[Indicator, float, int]


@dataclass(frozen=True)
class Rule:
    """Boolean predicate over a bar index and the current trading record."""

    kind: str
    label: str
    predicate: Predicate = field(repr=False, compare=False)
    operands: tuple[Rule, ...] = ()

    def is_satisfied(self, index: int, record: TradingRecord | None = None) -> bool:
        return self.predicate(index, record)

    def and_(self, other: Rule) -> Rule:
        return and_rule(self, other)

    def or_(self, other: Rule) -> Rule:
        return or_rule(self, other)

    __and__ = and_
    __or__ = or_

    def describe(self) -> str:
        """Render the rule tree, e.g. ``and(crossed_up(EMA(9), EMA(21)), ...)``."""
        if not self.operands:
            return self.label
        return f"{self.kind}({', '.join(r.describe() for r in self.operands)})"


def _getter(operand: Operand) -> Callable[[int], float]:
    if isinstance(operand, Indicator):
        return operand.value
    constant = float(operand)
    return lambda index: constant


def _label(operand: Operand) -> str:
    return repr(operand) if isinstance(operand, Indicator) else f"{float(operand):g}"


def over(first: Operand, second: Operand) -> Rule:
    """Satisfied when ``first > second`` at the index."""
    a, b = _getter(first), _getter(second)
    return Rule(
        kind="over",
        label=f"{_label(first)} > {_label(second)}",
        predicate=lambda index, record: a(index) > b(index),
    )


def under(first: Operand, second: Operand) -> Rule:
    """Satisfied when ``first < second`` at the index."""
    a, b = _getter(first), _getter(second)
    return Rule(
        kind="under",
        label=f"{_label(first)} < {_label(second)}",
        predicate=lambda index, record: a(index) < b(index),
    )


def _series_of(first: Operand, second: Operand):
    for operand in (first, second):
        if isinstance(operand, Indicator):
            return operand.series
    raise TypeError("crossover rules need at least one indicator operand")


def crossed_up(first: Operand, second: Operand) -> Rule:
    """Satisfied only at the bar where ``first`` moves strictly above ``second``.

    Requires ``first <= second`` on the previous bar and ``first > second``
    on this one; equality on this bar does not count.
    """
    series = _series_of(first, second)
    a, b = _getter(first), _getter(second)

    def predicate(index: int, record: TradingRecord | None) -> bool:
        if index <= series.begin_index:
            return False
        return a(index - 1) <= b(index - 1) and a(index) > b(index)

    return Rule(
        kind="crossed_up",
        label=f"crossed_up({_label(first)}, {_label(second)})",
        predicate=predicate,
    )


def crossed_down(first: Operand, second: Operand) -> Rule:
    """Satisfied only at the bar where ``first`` moves strictly below ``second``."""
    series = _series_of(first, second)
    a, b = _getter(first), _getter(second)

    def predicate(index: int, record: TradingRecord | None) -> bool:
        if index <= series.begin_index:
            return False
        return a(index - 1) >= b(index - 1) and a(index) < b(index)

    return Rule(
        kind="crossed_down",
        label=f"crossed_down({_label(first)}, {_label(second)})",
        predicate=predicate,
    )


def and_rule(*rules: Rule) -> Rule:
    """All rules satisfied, evaluated left to right with short-circuit."""
    if not rules:
        raise ValueError("and_rule needs at least one rule")
    return Rule(
        kind="and",
        label="and",
        predicate=lambda index, record: all(r.is_satisfied(index, record) for r in rules),
        operands=tuple(rules),
    )


def or_rule(*rules: Rule) -> Rule:
    """Any rule satisfied, evaluated left to right with short-circuit."""
    if not rules:
        raise ValueError("or_rule needs at least one rule")
    return Rule(
        kind="or",
        label="or",
        predicate=lambda index, record: any(r.is_satisfied(index, record) for r in rules),
        operands=tuple(rules),
    )


def boolean_rule(value: bool) -> Rule:
    """Constant rule."""
    return Rule(
        kind="boolean",
        label=str(bool(value)).lower(),
        predicate=lambda index, record: bool(value),
    )
