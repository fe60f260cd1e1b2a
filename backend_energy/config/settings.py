"""
Application settings.

Typed view over the environment (see config.env). get_settings() is cached;
tests that change env vars call reset_settings_for_test() afterwards.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

from backend_energy.config.env import (
    env_bool,
    env_float,
    env_int,
    env_str,
    get_app_env,
    get_hiro_api_url,
    get_redis_url,
    load_energy_env,
)

DEFAULT_CONTRACT_ID = "SP2D5BGGJ956A635JG7CJQ59FTRFRB0893514EZPJ.dexterity-hold-to-earn"

CACHE_TTL_SEC = 60 * 5
HISTORY_MAX_ENTRIES = 100
HISTORY_TTL_SEC = 60 * 60 * 24 * 30
CRON_INTERVAL_SEC = 60 * 5
HTTP_TIMEOUT_SEC = 30.0
EVENTS_PAGE_LIMIT = 200
TX_DETAILS_CONCURRENCY = 5


@dataclass(frozen=True)
class Settings:
    """Service configuration. Field defaults mirror the documented env defaults."""

    app_env: str = "production"
    redis_url: str = "memory"
    hiro_api_url: str = "https://api.hiro.so"
    hiro_api_key: str = ""
    cron_secret: str = ""
    cache_ttl_sec: int = CACHE_TTL_SEC
    history_max_entries: int = HISTORY_MAX_ENTRIES
    history_ttl_sec: int = HISTORY_TTL_SEC
    cron_enabled: bool = False
    cron_interval_sec: int = CRON_INTERVAL_SEC
    http_timeout_sec: float = HTTP_TIMEOUT_SEC
    events_page_limit: int = EVENTS_PAGE_LIMIT
    tx_details_concurrency: int = TX_DETAILS_CONCURRENCY
    default_contracts: tuple[str, ...] = field(default_factory=lambda: (DEFAULT_CONTRACT_ID,))
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the current application settings.

    ENERGY_DEFAULT_CONTRACTS is a comma-separated fallback list used when the
    monitored-contract list has never been written to the KV store.
    """
    load_energy_env()
    defaults_raw = env_str("ENERGY_DEFAULT_CONTRACTS")
    defaults = tuple(c.strip() for c in defaults_raw.split(",") if c.strip()) or (DEFAULT_CONTRACT_ID,)
    return Settings(
        app_env=get_app_env(),
        redis_url=get_redis_url(),
        hiro_api_url=get_hiro_api_url(),
        hiro_api_key=env_str("HIRO_API_KEY"),
        cron_secret=env_str("CRON_SECRET"),
        cache_ttl_sec=env_int("ENERGY_CACHE_TTL_SEC", CACHE_TTL_SEC),
        history_max_entries=env_int("ENERGY_HISTORY_MAX", HISTORY_MAX_ENTRIES),
        history_ttl_sec=env_int("ENERGY_HISTORY_TTL_SEC", HISTORY_TTL_SEC),
        cron_enabled=env_bool("ENERGY_CRON_ENABLED", False),
        cron_interval_sec=env_int("ENERGY_CRON_INTERVAL_SEC", CRON_INTERVAL_SEC),
        http_timeout_sec=env_float("HTTP_TIMEOUT_SEC", HTTP_TIMEOUT_SEC),
        events_page_limit=env_int("ENERGY_EVENTS_LIMIT", EVENTS_PAGE_LIMIT),
        tx_details_concurrency=env_int("ENERGY_TX_CONCURRENCY", TX_DETAILS_CONCURRENCY),
        default_contracts=defaults,
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
    )


def reset_settings_for_test() -> None:
    get_settings.cache_clear()
