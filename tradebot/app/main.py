"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tradebot import __version__
from tradebot.app.api import router
from tradebot.app.clients import BinanceRestClient
from tradebot.app.config import Settings, get_settings
from tradebot.app.services import MarketDataService, ScanEngine
from tradebot.app.strategy_config import StrategyFileConfig, load_strategy_config

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once and quieten third-party libraries."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_engine(settings: Settings, strategy_config: StrategyFileConfig | None = None) -> ScanEngine:
    """Wire market data, strategy parameters and the scan engine from settings."""
    if strategy_config is None:
        strategy_config = load_strategy_config(settings.strategy_config_path)
    strategy_name = strategy_config.resolve_name(settings.strategy)

    market_data = MarketDataService(
        client=BinanceRestClient(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            base_url=settings.binance_base_url,
        ),
        ttl=settings.market_data_ttl_seconds,
        max_entries=settings.market_data_cache_size,
        max_bar_count=settings.max_bar_count,
    )
    return ScanEngine(
        market_data=market_data,
        symbols=settings.watched_symbols,
        interval=settings.interval,
        bar_count=settings.bars,
        scan_period=settings.scan_period_seconds,
        max_workers=settings.max_workers,
        queue_capacity=settings.queue_capacity,
        history_capacity=settings.history_capacity,
        min_bars=settings.min_bars,
        strategy_name=strategy_name,
        strategy_factory=strategy_config.factory_for(strategy_name),
        shutdown_grace=settings.shutdown_grace_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting signal scanner v%s...", __version__)

    strategy_config = load_strategy_config(settings.strategy_config_path)
    engine = build_engine(settings, strategy_config)
    app.state.scan_engine = engine
    app.state.strategy_config = strategy_config
    await engine.start()

    yield

    logger.info("Shutting down...")
    await engine.stop()
    await engine.market_data.close()
    app.state.scan_engine = None
    logger.info("Shutdown complete")


app = FastAPI(
    title="Trading Signal Scanner",
    description="Rule-based BUY/SELL/HOLD signals for crypto spot markets",
    version=__version__,
    lifespan=lifespan,
)

# Allow the dashboard to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Trading Signal Scanner",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tradebot.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
