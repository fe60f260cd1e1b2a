"""
Tests for the KV store and the namespaced repositories.
"""

from __future__ import annotations

import asyncio

import pytest

CONTRACT_ID = "SP2D5BGGJ956A635JG7CJQ59FTRFRB0893514EZPJ.dexterity-hold-to-earn"
CONTRACT_ID_2 = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9.energy-vault"


def _analytics(total=10.0):
    from backend_energy.analytics.models import EnergyAnalyticsData, EnergyStats

    return EnergyAnalyticsData(contract_id=CONTRACT_ID, stats=EnergyStats(total_energy_harvested=total))


@pytest.mark.parametrize(
    "contract_id",
    [CONTRACT_ID, CONTRACT_ID_2, "  " + CONTRACT_ID + " "],
)
def test_validate_contract_id_accepts(contract_id):
    from backend_energy.storage.repositories import validate_contract_id

    assert validate_contract_id(contract_id) == contract_id.strip()


@pytest.mark.parametrize(
    "contract_id",
    ["", "not-a-contract", "SP2D5BGGJ956A635JG7CJQ59FTRFRB0893514EZPJ", "0x123.token", CONTRACT_ID + "/../x"],
)
def test_validate_contract_id_rejects(contract_id):
    from backend_energy.core.exceptions import InvalidContractIdError
    from backend_energy.storage.repositories import validate_contract_id

    with pytest.raises(InvalidContractIdError):
        validate_contract_id(contract_id)


def test_memory_kv_expiry_and_lists(kv, clock):
    async def scenario():
        await kv.set("a", {"x": 1}, ex=10)
        assert await kv.get("a") == {"x": 1}
        clock.advance(10)
        assert await kv.get("a") is None

        await kv.lpush("l", 1, 2, 3)
        assert await kv.lrange("l", 0, -1) == [3, 2, 1]
        await kv.ltrim("l", 0, 1)
        assert await kv.lrange("l", 0, -1) == [3, 2]
        await kv.expire("l", 5)
        clock.advance(6)
        assert await kv.lrange("l", 0, -1) == []

    asyncio.run(scenario())


def test_analytics_cache_round_trip_and_ttl(kv, clock):
    from backend_energy.storage.repositories import AnalyticsCacheRepository

    repo = AnalyticsCacheRepository(kv, ttl_sec=300)

    async def scenario():
        await repo.set(CONTRACT_ID, _analytics(42.0))
        hit = await repo.get(CONTRACT_ID)
        clock.advance(299)
        still = await repo.get(CONTRACT_ID)
        clock.advance(1)
        gone = await repo.get(CONTRACT_ID)
        return hit, still, gone

    hit, still, gone = asyncio.run(scenario())
    assert hit.stats.total_energy_harvested == 42.0
    assert still is not None
    assert gone is None


def test_analytics_cache_rejects_stale_schema(kv):
    """Records without the current schemaVersion, or not objects at all, raise CacheSchemaError."""
    from backend_energy.core.exceptions import CacheSchemaError
    from backend_energy.storage.repositories import AnalyticsCacheRepository, analytics_key

    repo = AnalyticsCacheRepository(kv)

    async def read(payload):
        await kv.set(analytics_key(CONTRACT_ID), payload)
        return await repo.get(CONTRACT_ID)

    legacy = _analytics().to_json_dict()
    del legacy["schemaVersion"]
    for payload in (legacy, ["not", "an", "object"], {"schemaVersion": 1, "stats": {"totalEnergyHarvested": "lots"}}):
        with pytest.raises(CacheSchemaError):
            asyncio.run(read(payload))


def test_monitored_contracts_management(kv):
    from backend_energy.core.exceptions import InvalidContractIdError
    from backend_energy.storage.repositories import MonitoredContractsRepository

    repo = MonitoredContractsRepository(kv, defaults=(CONTRACT_ID,))

    async def scenario():
        assert await repo.get() is None
        assert await repo.list() == [CONTRACT_ID]
        assert await repo.add(CONTRACT_ID_2) is True
        assert await repo.add(CONTRACT_ID_2) is False
        assert await repo.list() == [CONTRACT_ID, CONTRACT_ID_2]
        assert await repo.remove(CONTRACT_ID) is True
        assert await repo.remove(CONTRACT_ID) is False
        assert await repo.list() == [CONTRACT_ID_2]
        with pytest.raises(InvalidContractIdError):
            await repo.add("bogus")
        # an explicitly empty list does not fall back to defaults
        await repo.remove(CONTRACT_ID_2)
        assert await repo.list() == []

    asyncio.run(scenario())


def test_cron_status_last_run(kv):
    from backend_energy.storage.repositories import CronStatusRepository

    repo = CronStatusRepository(kv)

    async def scenario():
        assert await repo.get_last_run() is None
        await repo.set_last_run(1_700_000_000_123)
        return await repo.get_last_run()

    assert asyncio.run(scenario()) == 1_700_000_000_123


def test_redis_store_wraps_client_errors():
    """Redis errors surface as CacheStoreError; values are JSON strings on the wire."""
    from unittest.mock import AsyncMock, MagicMock

    from redis.exceptions import ConnectionError as RedisConnectionError

    from backend_energy.core.exceptions import CacheStoreError
    from backend_energy.storage.kv import RedisKVStore

    client = MagicMock()
    client.get = AsyncMock(return_value='{"a":1}')
    client.set = AsyncMock(side_effect=RedisConnectionError("down"))
    store = RedisKVStore("redis://localhost:6379/0", client=client)

    assert asyncio.run(store.get("k")) == {"a": 1}
    with pytest.raises(CacheStoreError):
        asyncio.run(store.set("k", {"a": 2}, ex=5))
    client.set.assert_awaited_once_with("k", '{"a":2}', ex=5)
