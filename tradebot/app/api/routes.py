"""REST API routes."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from tradebot.app.services import ScanEngine, ScanRejectedError
from tradebot.app.strategy_config import StrategyFileConfig
from tradebot.core.models import BarSeries, TradeSignal
from tradebot.core.runner import BacktestResult, StrategyRunner
from tradebot.core.strategy import Strategy

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class SignalResponse(BaseModel):
    """Signal response model."""

    symbol: str
    type: str
    price: float
    confidence: float
    strategy_name: str
    timestamp: datetime
    reason: str
    actionable: bool

    @classmethod
    def from_signal(cls, signal: TradeSignal) -> "SignalResponse":
        return cls(
            symbol=signal.symbol,
            type=signal.type.value,
            price=float(signal.price),
            confidence=float(signal.confidence),
            strategy_name=signal.strategy_name,
            timestamp=signal.timestamp,
            reason=signal.reason,
            actionable=signal.actionable,
        )


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    total_signals: int


class StatusResponse(BaseModel):
    """Bot status summary."""

    status: str
    watched_symbols: list[str]
    interval: str
    strategy: str
    total_signals: int
    signal_counts: dict[str, int]
    pending_tasks: int
    timestamp: datetime


class ScanResponse(BaseModel):
    message: str
    timestamp: datetime


class BacktestResponse(BaseModel):
    """Backtest summary for one symbol."""

    symbol: str
    strategy_name: str
    bars: int
    start_index: int
    end_index: int
    trades: int
    winning_trades: int
    open_position: bool
    total_return_pct: float


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _run_backtest(series: BarSeries, strategy: Strategy) -> BacktestResult:
    return StrategyRunner(series, strategy).backtest()


def get_scan_engine(request: Request) -> ScanEngine:
    engine = getattr(request.app.state, "scan_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Scan engine not initialised")
    return engine


def get_strategy_file_config(request: Request) -> StrategyFileConfig:
    return getattr(request.app.state, "strategy_config", None) or StrategyFileConfig()


@router.get("/health", response_model=HealthResponse)
async def health(engine: ScanEngine = Depends(get_scan_engine)):
    """Liveness probe."""
    return HealthResponse(
        status="UP",
        timestamp=_now(),
        total_signals=engine.get_total_signals(),
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(engine: ScanEngine = Depends(get_scan_engine)):
    """Get bot status."""
    return StatusResponse(
        status="RUNNING" if engine.is_running else "STOPPED",
        watched_symbols=engine.get_watched_symbols(),
        interval=engine.interval,
        strategy=engine.strategy_name,
        total_signals=engine.get_total_signals(),
        signal_counts=engine.get_signal_counts(),
        pending_tasks=engine.pending_tasks,
        timestamp=_now(),
    )


@router.get("/signals", response_model=dict[str, list[SignalResponse]])
async def all_signals(engine: ScanEngine = Depends(get_scan_engine)):
    """Signal history for every symbol, oldest first."""
    return {
        symbol: [SignalResponse.from_signal(s) for s in signals]
        for symbol, signals in engine.get_signal_history().items()
    }


@router.get("/signals/{symbol}", response_model=list[SignalResponse])
async def signals_for_symbol(symbol: str, engine: ScanEngine = Depends(get_scan_engine)):
    """Signal history for one symbol (empty if never evaluated)."""
    signals = engine.history.get(symbol.upper())
    return [SignalResponse.from_signal(s) for s in signals]


@router.post("/scan", response_model=ScanResponse)
async def trigger_scan(engine: ScanEngine = Depends(get_scan_engine)):
    """Trigger a manual scan of every watched symbol."""
    try:
        queued = engine.scan()
    except ScanRejectedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return ScanResponse(message=f"Scan triggered for {queued} symbols", timestamp=_now())


@router.post("/scan/{symbol}", response_model=ScanResponse)
async def trigger_symbol_scan(symbol: str, engine: ScanEngine = Depends(get_scan_engine)):
    """Trigger evaluation of a single symbol."""
    try:
        engine.evaluate_symbol(symbol)
    except ScanRejectedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return ScanResponse(message=f"Evaluation queued for {symbol.upper()}", timestamp=_now())


@router.get("/backtest/{symbol}", response_model=BacktestResponse)
async def backtest_symbol(
    symbol: str,
    strategy: Optional[str] = None,
    engine: ScanEngine = Depends(get_scan_engine),
    file_config: StrategyFileConfig = Depends(get_strategy_file_config),
):
    """Replay the current strategy over the latest bars of a symbol."""
    symbol = symbol.upper()
    series = await engine.market_data.fetch_bars(symbol, engine.interval, engine.bar_count)
    if series.bar_count < engine.min_bars:
        raise HTTPException(
            status_code=422,
            detail=f"Not enough bars for {symbol} (got {series.bar_count})",
        )
    try:
        factory = file_config.factory_for(strategy or engine.strategy_name)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))

    # CPU-bound replay runs on a worker thread
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, _run_backtest, series, factory(series))
    return BacktestResponse(
        symbol=symbol,
        strategy_name=result.strategy_name,
        bars=series.bar_count,
        start_index=result.start_index,
        end_index=result.end_index,
        trades=result.trade_count,
        winning_trades=result.winning_trades,
        open_position=result.has_open_position,
        total_return_pct=float(result.total_return_pct),
    )
