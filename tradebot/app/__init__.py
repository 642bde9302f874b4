"""Application layer: configuration, exchange client, scan engine, HTTP API."""
