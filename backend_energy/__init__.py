"""
Backend Energy — hold-to-earn energy analytics service for Stacks contracts.

Fetches energy-harvest logs from the Hiro indexer, aggregates them into
per-user and global stats and per-minute rates, and serves the result from
a Redis-backed cache. Modular layout: ingestion, analytics, storage,
agent worker (batch fan-out), scheduler and API server.
"""

__version__ = "0.1.0"
