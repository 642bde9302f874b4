"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``BOT_``-prefixed environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Watchlist (comma-separated, e.g. "BTCUSDT,ETHUSDT")
    symbols: str = "BTCUSDT,ETHUSDT,SOLUSDT"
    interval: str = "5m"
    bars: int = Field(default=200, ge=1, le=1000)

    # Scheduling
    scan_rate_ms: int = Field(default=60_000, ge=1)
    max_workers: int = Field(default=8, ge=1)
    queue_capacity: int = Field(default=50, ge=1)
    shutdown_grace_seconds: float = Field(default=30.0, ge=0)

    # Evaluation
    strategy: str = "composite"
    strategy_config_path: str | None = None
    min_bars: int = Field(default=30, ge=1)
    history_capacity: int = Field(default=100, ge=1)
    max_bar_count: int = Field(default=500, ge=1)

    # Market data
    binance_base_url: str = "https://api.binance.com"
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=15.0, gt=0)
    market_data_ttl_seconds: float = Field(default=30.0, ge=0)
    market_data_cache_size: int = Field(default=500, ge=1)

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_level: str = "INFO"

    @property
    def watched_symbols(self) -> list[str]:
        """Configured symbols, upper-cased, in configuration order."""
        return [s.strip().upper() for s in self.symbols.split(",") if s.strip()]

    @property
    def scan_period_seconds(self) -> float:
        return self.scan_rate_ms / 1000.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
