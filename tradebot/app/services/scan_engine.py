"""Scan engine: schedules per-symbol strategy evaluations on a bounded worker pool.

Scheduling model:
- A fixed-rate timer task enqueues one evaluation per watched symbol every
  ``scan_period`` seconds (the first scan fires immediately).
- Manual triggers (``scan()`` / ``evaluate_symbol()``) enqueue the same
  tasks onto the same queue. Scheduled and manual scans may overlap, so a
  symbol can be evaluated twice at once; evaluations are independent and
  only the order of history entries is affected.
- ``max_workers`` worker coroutines drain a bounded queue. The bar fetch is
  awaited in the worker; indicator and rule evaluation run on a thread pool
  of the same size so they never block the event loop.

Shutdown: ``stop()`` waits up to ``shutdown_grace`` seconds for queued
evaluations, then cancels the workers. A strategy evaluation already running
on the thread pool cannot be interrupted; when it finishes after ``stop()``
its signal is discarded and never reaches history or counters.

Rejection policy: a full queue or a stopped engine raises
``ScanRejectedError`` to the caller and is logged. Per-symbol failures never
leave the task.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, Sequence

from tradebot.app.services.market_data import MarketDataProvider
from tradebot.core.history import DEFAULT_HISTORY_CAPACITY, SignalCounters, SignalHistory
from tradebot.core.models import BarSeries, TradeSignal
from tradebot.core.runner import StrategyRunner
from tradebot.core.strategy import Strategy, create_strategy

logger = logging.getLogger(__name__)

# Type alias for signal callback (notification sink)
SignalCallback = Callable[[TradeSignal], Awaitable[None]]
StrategyFactory = Callable[[BarSeries], Strategy]

# Fewer bars than this and evaluation is skipped
MIN_BARS = 30


class ScanRejectedError(RuntimeError):
    """Evaluation task(s) could not be enqueued."""

    def __init__(self, message: str, symbols: Sequence[str] = ()):
        super().__init__(message)
        self.symbols = list(symbols)


class EngineStoppedError(ScanRejectedError):
    """The engine is not running or is shutting down."""


class ScanEngine:
    """
    Periodically evaluate watched symbols and keep bounded signal history.

    Owns:
    - the per-symbol signal history (``SignalHistory``)
    - the process-wide signal counters (``SignalCounters``)
    - the evaluation queue, worker coroutines and thread pool
    - the scan timer
    """

    def __init__(
        self,
        market_data: MarketDataProvider,
        symbols: Sequence[str],
        interval: str = "5m",
        bar_count: int = 200,
        scan_period: float = 60.0,
        max_workers: int = 8,
        queue_capacity: int = 50,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        min_bars: int = MIN_BARS,
        strategy_name: str = "composite",
        strategy_factory: StrategyFactory | None = None,
        shutdown_grace: float = 30.0,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        if queue_capacity < 1:
            raise ValueError(f"queue_capacity must be positive, got {queue_capacity}")

        self.market_data = market_data
        self.symbols = [s.strip().upper() for s in symbols if s.strip()]
        self.interval = interval
        self.bar_count = bar_count
        self.scan_period = scan_period
        self.max_workers = max_workers
        self.queue_capacity = queue_capacity
        self.min_bars = min_bars
        self.strategy_name = strategy_name
        self.shutdown_grace = shutdown_grace
        self._strategy_factory = strategy_factory or (
            lambda series: create_strategy(strategy_name, series)
        )

        self.history = SignalHistory(history_capacity)
        self.counters = SignalCounters()

        self._queue: asyncio.Queue[str] | None = None
        self._workers: list[asyncio.Task] = []
        self._timer_task: asyncio.Task | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._accepting = False
        self._closed = False
        self._record_lock = threading.Lock()
        self._callbacks: list[SignalCallback] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, schedule: bool = True) -> None:
        """Start workers and, if ``schedule``, the periodic scan timer."""
        if self._accepting:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_capacity)
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="strategy-"
        )
        self._workers = [
            asyncio.create_task(self._worker(self._queue), name=f"scan-worker-{n}")
            for n in range(self.max_workers)
        ]
        with self._record_lock:
            self._closed = False
        self._accepting = True
        if schedule:
            self._timer_task = asyncio.create_task(self._scan_loop(), name="scan-timer")
        logger.info(
            "Scan engine started: %d symbols, %s interval, %d workers, queue %d, period %.1fs",
            len(self.symbols), self.interval, self.max_workers,
            self.queue_capacity, self.scan_period,
        )

    async def stop(self) -> None:
        """Stop accepting tasks, let in-flight ones finish within the grace period, then cancel."""
        if self._queue is None:
            return
        self._accepting = False

        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.shutdown_grace)
        except asyncio.TimeoutError:
            abandoned = self._queue.qsize()
            logger.warning(
                "Scan engine shutdown grace (%.1fs) expired: cancelling workers, "
                "%d queued evaluations abandoned",
                self.shutdown_grace, abandoned,
            )

        with self._record_lock:
            self._closed = True
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        if self._executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        self._queue = None
        logger.info("Scan engine stopped (total signals: %d)", self.counters.total)

    @property
    def is_running(self) -> bool:
        return self._accepting

    @property
    def pending_tasks(self) -> int:
        return self._queue.qsize() if self._queue else 0

    async def wait_idle(self) -> None:
        """Wait until every queued evaluation has finished."""
        if self._queue is not None:
            await self._queue.join()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def on_signal(self, callback: SignalCallback) -> None:
        """Register callback for actionable signals."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_signal(self, callback: SignalCallback) -> None:
        """Unregister callback for actionable signals."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def scan(self) -> int:
        """Enqueue one evaluation per watched symbol.

        Returns:
            Number of evaluations enqueued.

        Raises:
            ScanRejectedError: If any symbol could not be enqueued (all are tried).
        """
        logger.info(
            "Starting scan for %d symbols on %s interval", len(self.symbols), self.interval
        )
        rejected: list[str] = []
        stopped = False
        for symbol in self.symbols:
            try:
                self.evaluate_symbol(symbol)
            except EngineStoppedError:
                stopped = True
                rejected.append(symbol)
            except ScanRejectedError:
                rejected.append(symbol)
        if rejected:
            error_cls = EngineStoppedError if stopped else ScanRejectedError
            raise error_cls(
                f"Scan rejected {len(rejected)} of {len(self.symbols)} symbols: "
                f"{', '.join(rejected)}",
                rejected,
            )
        return len(self.symbols)

    def evaluate_symbol(self, symbol: str) -> None:
        """Enqueue a single evaluation.

        Raises:
            EngineStoppedError: If the engine is not accepting tasks.
            ScanRejectedError: If the queue is full.
        """
        symbol = symbol.strip().upper()
        if not self._accepting or self._queue is None:
            logger.error("Rejected evaluation of %s: scan engine is not running", symbol)
            raise EngineStoppedError(f"Scan engine is not running; {symbol} rejected", [symbol])
        try:
            self._queue.put_nowait(symbol)
        except asyncio.QueueFull:
            logger.error(
                "Rejected evaluation of %s: queue full (%d pending)",
                symbol, self._queue.qsize(),
            )
            raise ScanRejectedError(
                f"Evaluation queue full ({self.queue_capacity}); {symbol} rejected", [symbol]
            ) from None

    async def _scan_loop(self) -> None:
        """Fixed-rate scan timer."""
        loop = asyncio.get_running_loop()
        next_run = loop.time()
        while True:
            try:
                self.scan()
            except ScanRejectedError as e:
                logger.warning("Scheduled scan incomplete: %s", e)
            next_run += self.scan_period
            await asyncio.sleep(max(0.0, next_run - loop.time()))

    async def _worker(self, queue: asyncio.Queue[str]) -> None:
        while True:
            symbol = await queue.get()
            try:
                await self.process_symbol(symbol)
            finally:
                queue.task_done()

    # ------------------------------------------------------------------
    # Per-symbol task
    # ------------------------------------------------------------------

    async def process_symbol(self, symbol: str) -> TradeSignal | None:
        """Fetch, evaluate, record and dispatch one symbol.

        Returns the recorded signal, or None when the evaluation was skipped
        or failed. Never raises (except on cancellation).
        """
        started = time.perf_counter()
        try:
            series = await self.market_data.fetch_bars(symbol, self.interval, self.bar_count)

            if series.bar_count < self.min_bars:
                logger.warning(
                    "Not enough bars for %s (got %d, need %d), skipping",
                    symbol, series.bar_count, self.min_bars,
                )
                return None

            if self._executor is not None:
                loop = asyncio.get_running_loop()
                signal = await loop.run_in_executor(
                    self._executor, self._evaluate_and_record, symbol, series
                )
            else:
                signal = self._evaluate_and_record(symbol, series)
            if signal is None:
                return None

            await self._dispatch(signal)
            return signal

        except Exception:
            logger.exception("Error evaluating %s", symbol)
            return None
        finally:
            logger.debug(
                "Evaluation of %s took %.1f ms", symbol, (time.perf_counter() - started) * 1000
            )

    def _evaluate_and_record(self, symbol: str, series: BarSeries) -> TradeSignal | None:
        """Run the strategy on the latest bar and record the signal (thread-safe).

        Returns None when the engine stopped while the strategy was running.
        """
        runner = StrategyRunner(series, self._strategy_factory(series))
        signal = runner.evaluate(symbol)
        with self._record_lock:
            if self._closed:
                logger.warning(
                    "Discarding %s signal for %s: scan engine stopped during evaluation",
                    signal.type.value, symbol,
                )
                return None
            self.history.append(signal)
            self.counters.increment(signal.type)
        return signal

    async def _dispatch(self, signal: TradeSignal) -> None:
        if not signal.actionable:
            logger.debug("Signal: %s %s @ %s", signal.type.value, signal.symbol, signal.price)
            return

        logger.info(
            "ACTIONABLE SIGNAL: %s %s @ %s [%s] confidence=%s",
            signal.type.value, signal.symbol, signal.price,
            signal.strategy_name, signal.confidence,
        )
        for callback in list(self._callbacks):
            try:
                await callback(signal)
            except Exception:
                logger.exception("Signal callback failed for %s", signal.symbol)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get_signal_history(self) -> dict[str, list[TradeSignal]]:
        """Signals per symbol, oldest first (at most ``history_capacity`` each)."""
        return self.history.snapshot()

    def get_total_signals(self) -> int:
        return self.counters.total

    def get_signal_counts(self) -> dict[str, int]:
        return self.counters.snapshot()

    def get_watched_symbols(self) -> list[str]:
        return list(self.symbols)
