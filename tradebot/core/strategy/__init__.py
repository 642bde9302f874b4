"""Strategies, their configuration models and the builder registry.

Importing this package registers the built-in strategies
(``composite`` and ``scalping``).
"""

from tradebot.core.strategy.base import Strategy
from tradebot.core.strategy.builders import build_composite_strategy, build_scalping_strategy
from tradebot.core.strategy.models import (
    COMPOSITE_STRATEGY_NAME,
    SCALPING_STRATEGY_NAME,
    CompositeConfig,
    ScalpingConfig,
)
from tradebot.core.strategy.registry import (
    StrategyBuilder,
    create_strategy,
    get_strategy_builder,
    list_strategies,
    register_strategy,
)

__all__ = [
    "Strategy",
    "StrategyBuilder",
    "build_composite_strategy",
    "build_scalping_strategy",
    "COMPOSITE_STRATEGY_NAME",
    "SCALPING_STRATEGY_NAME",
    "CompositeConfig",
    "ScalpingConfig",
    "register_strategy",
    "create_strategy",
    "get_strategy_builder",
    "list_strategies",
]
