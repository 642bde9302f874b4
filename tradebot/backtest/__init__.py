"""Command-line backtest: replay a strategy over recent or stored bars."""
