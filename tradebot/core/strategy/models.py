"""Strategy configuration models."""

from pydantic import BaseModel, Field, model_validator

COMPOSITE_STRATEGY_NAME = "CompositeEMA-RSI-MACD-BB"
SCALPING_STRATEGY_NAME = "ScalpingEMA5-13"


class CompositeConfig(BaseModel):
    """Parameters for the EMA/RSI/MACD/Bollinger/Stochastic strategy."""

    # EMA crossover (trend direction)
    fast_ema: int = Field(default=9, ge=1)
    slow_ema: int = Field(default=21, ge=2)

    # RSI (momentum)
    rsi_period: int = Field(default=14, ge=1)
    rsi_entry_max: float = 65.0  # entry only while RSI below this
    rsi_exit_min: float = 70.0  # exit when RSI above this
    rsi_confirm_min: float = 60.0  # exit on bearish MACD when RSI above this

    # MACD (momentum confirmation)
    macd_fast: int = Field(default=12, ge=1)
    macd_slow: int = Field(default=26, ge=2)
    macd_signal: int = Field(default=9, ge=1)

    # Bollinger Bands (volatility)
    bb_period: int = Field(default=20, ge=2)
    bb_k: float = Field(default=2.0, gt=0)

    # Stochastic %K (entry timing)
    stoch_period: int = Field(default=14, ge=1)
    stoch_oversold: float = 30.0

    @model_validator(mode="after")
    def _check_periods(self):
        if self.fast_ema >= self.slow_ema:
            raise ValueError("fast_ema must be below slow_ema")
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be below macd_slow")
        return self


class ScalpingConfig(BaseModel):
    """Parameters for the lightweight EMA + RSI strategy (1m/5m intervals)."""

    fast_ema: int = Field(default=5, ge=1)
    slow_ema: int = Field(default=13, ge=2)
    rsi_period: int = Field(default=7, ge=1)
    rsi_entry_max: float = 60.0
    rsi_exit_min: float = 75.0

    @model_validator(mode="after")
    def _check_periods(self):
        if self.fast_ema >= self.slow_ema:
            raise ValueError("fast_ema must be below slow_ema")
        return self
