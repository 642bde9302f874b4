"""Strategy parameters loaded from an optional YAML file.

Example ``strategy.yaml``::

    strategy: scalping        # overrides BOT_STRATEGY when present
    composite:
      rsi_entry_max: 60
    scalping:
      fast_ema: 5
      slow_ema: 13

No file means built-in defaults for every strategy.
"""

import logging
from functools import partial
from pathlib import Path

import yaml
from pydantic import BaseModel, model_validator

from tradebot.core.models import BarSeries
from tradebot.core.strategy import (
    CompositeConfig,
    ScalpingConfig,
    Strategy,
    get_strategy_builder,
    list_strategies,
)

logger = logging.getLogger(__name__)


class StrategyFileConfig(BaseModel):
    """Strategy selection and per-strategy parameters."""

    strategy: str | None = None
    composite: CompositeConfig = CompositeConfig()
    scalping: ScalpingConfig = ScalpingConfig()

    @model_validator(mode="after")
    def _validate(self):
        if self.strategy is not None and self.strategy not in list_strategies():
            raise ValueError(
                f"strategy must be one of {list_strategies()}, got '{self.strategy}'"
            )
        return self

    def config_for(self, name: str) -> BaseModel | None:
        """Parameters for the named strategy, if it takes any."""
        return {"composite": self.composite, "scalping": self.scalping}.get(name)

    def resolve_name(self, default_name: str) -> str:
        """Strategy selected by the file, else ``default_name``."""
        return self.strategy or default_name

    def factory_for(self, name: str):
        """Return ``series -> Strategy`` for the named strategy with this file's parameters.

        Raises:
            KeyError: If the strategy is not registered.
        """
        builder = get_strategy_builder(name)
        config = self.config_for(name)
        if config is None:
            return builder
        return partial(builder, config=config)


def build_strategy(name: str, series: BarSeries, file_config: StrategyFileConfig | None = None) -> Strategy:
    """Build a strategy over ``series`` using parameters from ``file_config``."""
    return (file_config or StrategyFileConfig()).factory_for(name)(series)


def load_strategy_config(path: Path | str | None = None) -> StrategyFileConfig:
    """Load strategy config from YAML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    """
    if path is None:
        return StrategyFileConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.info("No strategy config at %s, using defaults", config_path)
        return StrategyFileConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = StrategyFileConfig(**raw)
    logger.info(
        "Loaded strategy config from %s (strategy=%s)",
        config_path, config.strategy or "<settings>",
    )
    return config
