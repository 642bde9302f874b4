"""Built-in strategies.

composite:
- BUY  when EMA9 crosses above EMA21 AND RSI14 < 65 AND MACD > signal
  AND (close < middle band OR %K14 < 30)
- SELL when EMA9 crosses below EMA21 OR RSI14 > 70 OR close > upper band
  OR (MACD < signal AND RSI14 > 60)

scalping:
- BUY  when EMA5 crosses above EMA13 AND RSI7 < 60
- SELL when EMA5 crosses below EMA13 OR RSI7 > 75

All indicators of a strategy share one close-price accessor, so each
cached series is computed once per build.
"""

from tradebot.core.indicators import (
    BollingerBandsUpperIndicator,
    ClosePriceIndicator,
    EMAIndicator,
    MACDIndicator,
    RSIIndicator,
    StandardDeviationIndicator,
    StochasticOscillatorKIndicator,
)
from tradebot.core.models.bar import BarSeries
from tradebot.core.rules import crossed_down, crossed_up, over, under
from tradebot.core.strategy.base import Strategy
from tradebot.core.strategy.models import (
    COMPOSITE_STRATEGY_NAME,
    SCALPING_STRATEGY_NAME,
    CompositeConfig,
    ScalpingConfig,
)
from tradebot.core.strategy.registry import register_strategy


@register_strategy("composite")
def build_composite_strategy(
    series: BarSeries, config: CompositeConfig | None = None
) -> Strategy:
    """Multi-indicator strategy: EMA crossover, RSI, MACD, Bollinger, Stochastic."""
    config = config or CompositeConfig()
    close = ClosePriceIndicator(series)

    ema_fast = EMAIndicator(close, config.fast_ema)
    ema_slow = EMAIndicator(close, config.slow_ema)
    rsi = RSIIndicator(close, config.rsi_period)
    macd = MACDIndicator(close, config.macd_fast, config.macd_slow)
    macd_signal = macd.signal_line(config.macd_signal)
    bb_middle = EMAIndicator(close, config.bb_period)
    bb_upper = BollingerBandsUpperIndicator(
        bb_middle, StandardDeviationIndicator(close, config.bb_period), config.bb_k
    )
    stoch_k = StochasticOscillatorKIndicator(series, config.stoch_period)

    entry_rule = (
        crossed_up(ema_fast, ema_slow)
        & under(rsi, config.rsi_entry_max)
        & over(macd, macd_signal)
        & (under(close, bb_middle) | under(stoch_k, config.stoch_oversold))
    )
    exit_rule = (
        crossed_down(ema_fast, ema_slow)
        | over(rsi, config.rsi_exit_min)
        | over(close, bb_upper)
        | (under(macd, macd_signal) & over(rsi, config.rsi_confirm_min))
    )

    unstable_bars = max(
        ema_slow.warmup + 1,  # crossover needs the previous bar defined
        rsi.warmup,
        macd_signal.warmup,
        bb_upper.warmup,
        stoch_k.warmup,
    )
    return Strategy(COMPOSITE_STRATEGY_NAME, entry_rule, exit_rule, unstable_bars)


@register_strategy("scalping")
def build_scalping_strategy(
    series: BarSeries, config: ScalpingConfig | None = None
) -> Strategy:
    """Lightweight EMA + RSI strategy for high-frequency intervals."""
    config = config or ScalpingConfig()
    close = ClosePriceIndicator(series)
    ema_fast = EMAIndicator(close, config.fast_ema)
    ema_slow = EMAIndicator(close, config.slow_ema)
    rsi = RSIIndicator(close, config.rsi_period)

    entry_rule = crossed_up(ema_fast, ema_slow) & under(rsi, config.rsi_entry_max)
    exit_rule = crossed_down(ema_fast, ema_slow) | over(rsi, config.rsi_exit_min)

    unstable_bars = max(ema_slow.warmup + 1, rsi.warmup)
    return Strategy(SCALPING_STRATEGY_NAME, entry_rule, exit_rule, unstable_bars)
