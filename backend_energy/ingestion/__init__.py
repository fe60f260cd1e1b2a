"""
Ingestion — fetch raw hold-to-earn logs from the Hiro indexer.
"""

from backend_energy.ingestion.hiro_client import (
    HiroClient,
    HiroLogFetcher,
    LogFetcher,
    fetch_hold_to_earn_logs,
)

__all__ = ["HiroClient", "HiroLogFetcher", "LogFetcher", "fetch_hold_to_earn_logs"]
