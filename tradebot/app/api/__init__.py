"""API endpoints."""

from tradebot.app.api.routes import get_scan_engine, router

__all__ = ["router", "get_scan_engine"]
