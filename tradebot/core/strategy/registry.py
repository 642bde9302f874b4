"""Strategy registry for discovering and building strategies by name.

Usage:
    @register_strategy("my_strategy")
    def build_my_strategy(series, config=None) -> Strategy:
        ...

    strategy = create_strategy("my_strategy", series)
    names = list_strategies()
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from tradebot.core.models.bar import BarSeries
from tradebot.core.strategy.base import Strategy

logger = logging.getLogger(__name__)

StrategyBuilder = Callable[..., Strategy]

# Global registry: strategy_name -> builder(series, **kwargs)
_REGISTRY: dict[str, StrategyBuilder] = {}


def register_strategy(name: str):
    """Decorator to register a strategy builder under a given name.

    Args:
        name: Unique strategy name (e.g., 'composite').

    Returns:
        Decorator that registers the builder and returns it unchanged.

    Raises:
        ValueError: If a strategy with the same name is already registered.
    """

    def decorator(builder: StrategyBuilder) -> StrategyBuilder:
        if name in _REGISTRY:
            raise ValueError(
                f"Strategy '{name}' is already registered by {_REGISTRY[name].__name__}"
            )
        _REGISTRY[name] = builder
        logger.debug("Registered strategy: %s -> %s", name, builder.__name__)
        return builder

    return decorator


def get_strategy_builder(name: str) -> StrategyBuilder:
    """Get the builder registered under ``name``.

    Raises:
        KeyError: If no strategy is registered under the given name.
    """
    builder = _REGISTRY.get(name)
    if builder is None:
        available = ", ".join(sorted(_REGISTRY.keys())) or "(none)"
        raise KeyError(f"Unknown strategy '{name}'. Available: {available}")
    return builder


def create_strategy(name: str, series: BarSeries, **kwargs: Any) -> Strategy:
    """Build the named strategy over ``series``.

    Args:
        name: Registered strategy name.
        series: Bar series the strategy's indicators read from.
        **kwargs: Passed to the builder (e.g. ``config=``).

    Raises:
        KeyError: If no strategy is registered under the given name.
    """
    return get_strategy_builder(name)(series, **kwargs)


def list_strategies() -> list[str]:
    """Return a sorted list of registered strategy names."""
    return sorted(_REGISTRY.keys())
