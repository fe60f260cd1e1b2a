"""
Tests for environment-driven settings.
"""

from __future__ import annotations

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "APP_ENV",
        "NODE_ENV",
        "REDIS_URL",
        "KV_URL",
        "HIRO_API_URL",
        "ENERGY_CACHE_TTL_SEC",
        "ENERGY_CRON_ENABLED",
        "ENERGY_DEFAULT_CONTRACTS",
    ):
        monkeypatch.setenv(name, "")
    from backend_energy.config.settings import reset_settings_for_test

    reset_settings_for_test()
    yield monkeypatch
    reset_settings_for_test()


def test_defaults(clean_env):
    from backend_energy.config.settings import DEFAULT_CONTRACT_ID, get_settings

    s = get_settings()
    assert s.app_env == "production"
    assert s.is_development is False
    assert s.cache_ttl_sec == 300
    assert s.history_max_entries == 100
    assert s.hiro_api_url == "https://api.hiro.so"
    assert s.redis_url == "redis://localhost:6379/0"
    assert s.default_contracts == (DEFAULT_CONTRACT_ID,)
    assert s.cron_enabled is False


def test_env_overrides(clean_env):
    from backend_energy.config.settings import get_settings

    clean_env.setenv("NODE_ENV", "development")
    clean_env.setenv("KV_URL", "memory")
    clean_env.setenv("HIRO_API_URL", "https://hiro.example/")
    clean_env.setenv("ENERGY_CACHE_TTL_SEC", "60")
    clean_env.setenv("ENERGY_CRON_ENABLED", "yes")
    clean_env.setenv("ENERGY_DEFAULT_CONTRACTS", "SPA.one, SPB.two ,")

    s = get_settings()
    assert s.is_development is True
    assert s.redis_url == "memory"
    assert s.hiro_api_url == "https://hiro.example"
    assert s.cache_ttl_sec == 60
    assert s.cron_enabled is True
    assert s.default_contracts == ("SPA.one", "SPB.two")


def test_bad_numbers_fall_back_to_defaults(clean_env):
    from backend_energy.config.settings import get_settings

    clean_env.setenv("ENERGY_CACHE_TTL_SEC", "five minutes")
    assert get_settings().cache_ttl_sec == 300


def test_mask_url_hides_credentials():
    from backend_energy.config.env import mask_url

    assert mask_url("redis://user:pw@cache:6379/0") == "redis://***@cache:6379/0"
    assert mask_url("memory") == "memory"
