"""
Configuration management for Backend Energy.

Loads settings from environment variables and the project .env file.
Exposes a single source of truth for KV, upstream indexer and cron settings.
"""

from backend_energy.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
