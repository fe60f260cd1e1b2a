"""
Pytest fixtures for energy analytics tests.

Storage is the in-process KV store driven by a controllable clock; the
indexer is replaced by a FakeFetcher holding raw logs per contract.
"""

from __future__ import annotations

import itertools
import random

import pytest

CONTRACT_ID = "SP2D5BGGJ956A635JG7CJQ59FTRFRB0893514EZPJ.dexterity-hold-to-earn"
CONTRACT_ID_2 = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9.energy-vault"
CONTRACT_ID_3 = "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7.hold-to-earn-v2"
USER_A = "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7"
USER_B = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9"

START_TIME = 1_700_000_000.0

_tx_counter = itertools.count(1)


class FakeClock:
    """Epoch seconds; advance() steps time for TTL tests."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """LogFetcher stand-in: raw logs per contract, optional per-contract errors."""

    def __init__(self):
        self.logs: dict[str, list[dict]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    async def __call__(self, contract_id: str) -> list[dict]:
        self.calls.append(contract_id)
        if contract_id in self.errors:
            raise self.errors[contract_id]
        return [dict(log) for log in self.logs.get(contract_id, [])]


def _make_log(sender, energy, block_time, integral=0.0, **extra):
    log = {
        "sender": sender,
        "energy": energy,
        "integral": integral,
        "block_time": block_time,
        "tx_id": extra.pop("tx_id", f"0x{next(_tx_counter):064x}"),
        "op": "HARVEST_ENERGY",
    }
    log.update(extra)
    return log


@pytest.fixture
def make_log():
    return _make_log


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv(clock):
    from backend_energy.storage.kv import MemoryKVStore

    return MemoryKVStore(clock=clock)


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def settings():
    from backend_energy.config.settings import Settings

    return Settings(app_env="production", redis_url="memory", default_contracts=(CONTRACT_ID,))


@pytest.fixture
def dev_settings():
    from backend_energy.config.settings import Settings

    return Settings(app_env="development", redis_url="memory", default_contracts=(CONTRACT_ID,))


@pytest.fixture
def service(kv, fetcher, settings, clock):
    from backend_energy.analytics.cache_controller import EnergyAnalyticsService

    return EnergyAnalyticsService(kv, fetcher, settings, clock=clock, rng=random.Random(7))


@pytest.fixture
def runtime(kv, fetcher, settings, clock):
    from backend_energy.agent_worker.runtime import build_runtime

    return build_runtime(settings, kv=kv, fetch_logs=fetcher, rng=random.Random(7), clock=clock)


@pytest.fixture
def client(runtime):
    """FastAPI TestClient over a pre-built runtime (memory KV, fake fetcher)."""
    from fastapi.testclient import TestClient

    from backend_energy.api_server.server import app

    app.state.runtime = runtime
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.state.runtime = None
