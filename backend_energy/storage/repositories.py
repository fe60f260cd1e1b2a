"""
Namespaced repositories over the KV store.

Keys:
  energy:analytics:{contractId}     JSON EnergyAnalyticsData, TTL 5 min
  energy:history:{contractId}       list of RateHistorySnapshot (newest first), <= 100, TTL 30 days
  energy:cron:last_run              epoch ms of the last completed batch
  energy:monitored_contracts        JSON list of contract ids

Each repository validates what it reads: a cached analytics record that does
not match the current schema raises CacheSchemaError, history entries that do
not parse are skipped.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import ValidationError

from backend_energy.analytics.models import SCHEMA_VERSION, EnergyAnalyticsData, RateHistorySnapshot
from backend_energy.config.settings import CACHE_TTL_SEC, HISTORY_MAX_ENTRIES, HISTORY_TTL_SEC
from backend_energy.core.exceptions import CacheSchemaError, InvalidContractIdError
from backend_energy.energy_logging import get_logger
from backend_energy.storage.kv import KVStore

logger = get_logger(__name__)

ANALYTICS_KEY_PREFIX = "energy:analytics:"
HISTORY_KEY_PREFIX = "energy:history:"
CRON_LAST_RUN_KEY = "energy:cron:last_run"
MONITORED_CONTRACTS_KEY = "energy:monitored_contracts"

# <address>.<contract-name>; Stacks addresses are c32 (no I, L, O, U)
CONTRACT_ID_RE = re.compile(r"^S[0-9A-HJKMNP-TV-Z]{27,40}\.[a-zA-Z][a-zA-Z0-9\-_]{0,127}$")


def analytics_key(contract_id: str) -> str:
    return f"{ANALYTICS_KEY_PREFIX}{contract_id}"


def history_key(contract_id: str) -> str:
    return f"{HISTORY_KEY_PREFIX}{contract_id}"


def validate_contract_id(contract_id: str) -> str:
    """Return the stripped contract id or raise InvalidContractIdError."""
    contract_id = (contract_id or "").strip()
    if not contract_id:
        raise InvalidContractIdError("Contract ID is required")
    if not CONTRACT_ID_RE.match(contract_id):
        raise InvalidContractIdError(
            f"Invalid contract ID format: {contract_id!r}. Expected 'address.contract-name'"
        )
    return contract_id


class AnalyticsCacheRepository:
    def __init__(self, kv: KVStore, ttl_sec: int = CACHE_TTL_SEC):
        self.kv = kv
        self.ttl_sec = ttl_sec

    async def get(self, contract_id: str) -> EnergyAnalyticsData | None:
        """Return the cached record, None on miss. Raises CacheSchemaError for stale/malformed payloads."""
        raw = await self.kv.get(analytics_key(contract_id))
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise CacheSchemaError(f"Cached analytics for {contract_id} is {type(raw).__name__}, expected object")
        version = raw.get("schemaVersion")
        if version != SCHEMA_VERSION:
            raise CacheSchemaError(
                f"Cached analytics for {contract_id} has schemaVersion={version!r}, expected {SCHEMA_VERSION}"
            )
        try:
            return EnergyAnalyticsData.model_validate(raw)
        except ValidationError as e:
            raise CacheSchemaError(f"Cached analytics for {contract_id} failed validation: {e}") from e

    async def set(self, contract_id: str, data: EnergyAnalyticsData) -> None:
        await self.kv.set(analytics_key(contract_id), data.to_json_dict(), ex=self.ttl_sec)

    async def delete(self, contract_id: str) -> None:
        await self.kv.delete(analytics_key(contract_id))


class RateHistoryRepository:
    """
    Capped snapshot list. append() is LPUSH then LTRIM: not atomic, so two
    concurrent refreshes of one contract can interleave and drop a snapshot.
    """

    def __init__(
        self,
        kv: KVStore,
        max_entries: int = HISTORY_MAX_ENTRIES,
        ttl_sec: int = HISTORY_TTL_SEC,
    ):
        self.kv = kv
        self.max_entries = max_entries
        self.ttl_sec = ttl_sec

    async def append(self, contract_id: str, snapshot: RateHistorySnapshot) -> None:
        key = history_key(contract_id)
        await self.kv.lpush(key, snapshot.to_json_dict())
        await self.kv.ltrim(key, 0, self.max_entries - 1)
        await self.kv.expire(key, self.ttl_sec)

    async def list(self, contract_id: str) -> list[RateHistorySnapshot]:
        """Stored snapshots, newest first. Unparseable entries are dropped."""
        raw_items = await self.kv.lrange(history_key(contract_id), 0, self.max_entries - 1)
        snapshots: list[RateHistorySnapshot] = []
        for item in raw_items:
            try:
                snapshots.append(RateHistorySnapshot.model_validate(item))
            except ValidationError:
                logger.warning("rate_history_entry_invalid", contract_id=contract_id)
        return snapshots


class MonitoredContractsRepository:
    """The managed contract list: explicit get/set/list over one namespaced key."""

    def __init__(self, kv: KVStore, defaults: tuple[str, ...] | list[str] = ()):
        self.kv = kv
        self.defaults = list(defaults)

    async def get(self) -> list[str] | None:
        raw = await self.kv.get(MONITORED_CONTRACTS_KEY)
        if raw is None:
            return None
        if not isinstance(raw, list):
            raise CacheSchemaError("Monitored contracts must be a JSON list")
        return [str(c) for c in raw if c]

    async def list(self) -> list[str]:
        """Stored list, or the configured defaults when the key was never written."""
        stored = await self.get()
        return stored if stored is not None else list(self.defaults)

    async def set(self, contract_ids: list[str]) -> list[str]:
        cleaned: list[str] = []
        for cid in contract_ids:
            cid = validate_contract_id(cid)
            if cid not in cleaned:
                cleaned.append(cid)
        await self.kv.set(MONITORED_CONTRACTS_KEY, cleaned)
        return cleaned

    async def add(self, contract_id: str) -> bool:
        """Add a contract; returns False when it was already monitored."""
        contract_id = validate_contract_id(contract_id)
        current = await self.list()
        if contract_id in current:
            return False
        await self.set(current + [contract_id])
        logger.info("monitored_contract_added", contract_id=contract_id)
        return True

    async def remove(self, contract_id: str) -> bool:
        contract_id = (contract_id or "").strip()
        current = await self.list()
        if contract_id not in current:
            return False
        await self.set([c for c in current if c != contract_id])
        logger.info("monitored_contract_removed", contract_id=contract_id)
        return True


class CronStatusRepository:
    def __init__(self, kv: KVStore):
        self.kv = kv

    async def get_last_run(self) -> int | None:
        raw: Any = await self.kv.get(CRON_LAST_RUN_KEY)
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    async def set_last_run(self, timestamp_ms: int) -> None:
        await self.kv.set(CRON_LAST_RUN_KEY, int(timestamp_ms))
