"""Tests for application wiring."""

from fastapi.testclient import TestClient

from tradebot.app.config import Settings
from tradebot.app.main import app, build_engine


class TestBuildEngine:
    """Tests for build_engine."""

    def test_from_settings(self):
        settings = Settings(
            _env_file=None, symbols="btcusdt,ethusdt", scan_rate_ms=5000, max_workers=2
        )
        engine = build_engine(settings)

        assert engine.get_watched_symbols() == ["BTCUSDT", "ETHUSDT"]
        assert engine.scan_period == 5.0
        assert engine.max_workers == 2
        assert engine.strategy_name == "composite"
        assert not engine.is_running

    def test_strategy_file_overrides_setting(self, tmp_path):
        path = tmp_path / "strategy.yaml"
        path.write_text("strategy: scalping\n")
        settings = Settings(_env_file=None, strategy_config_path=str(path))

        engine = build_engine(settings)

        assert engine.strategy_name == "scalping"


class TestApp:
    """Tests for the FastAPI application."""

    def test_routes_mounted(self):
        paths = app.openapi()["paths"]

        assert "/" in paths
        assert "/health" in paths
        assert "/api/status" in paths
        assert "/api/backtest/{symbol}" in paths

    def test_root_and_health(self):
        client = TestClient(app)

        assert client.get("/").json()["docs"] == "/docs"
        assert client.get("/health").json() == {"status": "healthy"}
