"""Core signal-generation logic: models, indicators, rules, strategies.

This package contains pure business logic with no I/O dependencies
(no network or database access). The scan engine and HTTP API in
``tradebot.app`` and the backtest CLI in ``tradebot.backtest`` build on it.
"""
