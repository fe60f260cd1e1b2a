"""
Cache controller: serve energy analytics for a contract.

Read path (refresh=False):
  energy:analytics:{contractId} hit -> rebuild history buckets from the
  snapshot list when it has >= 2 entries -> narrow to ?address -> return
  (from_cache=True).

Miss or refresh=True:
  fetch -> validate -> aggregate/estimate -> write cache (TTL 5 min) ->
  append rate snapshot when the global rate is nonzero -> return.

Always answers with something: no valid logs or an indexer failure yields an
all-zero object (mock data in development), neither cached nor snapshotted.
KV failures are logged and skipped; the request is answered from fresh data.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable

from backend_energy.analytics.analytics_pipeline import (
    compute_energy_analytics,
    empty_analytics,
    scope_to_address,
)
from backend_energy.analytics.history import MIN_SNAPSHOTS_FOR_HISTORY, build_snapshot, history_from_snapshots
from backend_energy.analytics.mocks import mock_analytics
from backend_energy.analytics.models import EnergyAnalyticsData, RateHistorySnapshot
from backend_energy.analytics.validator import filter_valid_logs
from backend_energy.config.settings import Settings
from backend_energy.core.exceptions import CacheSchemaError, CacheStoreError, UpstreamFetchError
from backend_energy.energy_logging import bind_contract, get_logger
from backend_energy.ingestion.hiro_client import LogFetcher
from backend_energy.storage.kv import KVStore
from backend_energy.storage.repositories import (
    AnalyticsCacheRepository,
    RateHistoryRepository,
    validate_contract_id,
)

logger = get_logger(__name__)

SOURCE_CACHE = "cache"
SOURCE_FRESH = "fresh"
SOURCE_EMPTY = "empty"
SOURCE_MOCK = "mock"


@dataclass
class AnalyticsResult:
    data: EnergyAnalyticsData
    source: str

    @property
    def from_cache(self) -> bool:
        return self.source == SOURCE_CACHE


class EnergyAnalyticsService:
    """Cache controller plus the strict refresh used by the batch processor."""

    def __init__(
        self,
        kv: KVStore,
        fetch_logs: LogFetcher,
        settings: Settings,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ):
        self.kv = kv
        self.fetch_logs = fetch_logs
        self.settings = settings
        self.clock = clock
        self.rng = rng
        self.cache = AnalyticsCacheRepository(kv, ttl_sec=settings.cache_ttl_sec)
        self.history = RateHistoryRepository(
            kv,
            max_entries=settings.history_max_entries,
            ttl_sec=settings.history_ttl_sec,
        )

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    # -------------------------------------------------------------------------
    # KV access that degrades instead of failing the request
    # -------------------------------------------------------------------------

    async def read_cache(self, contract_id: str) -> EnergyAnalyticsData | None:
        try:
            return await self.cache.get(contract_id)
        except CacheSchemaError as e:
            logger.warning("energy_cache_schema_mismatch", contract_id=contract_id, error=str(e))
        except CacheStoreError as e:
            logger.error("energy_cache_read_failed", contract_id=contract_id, error=str(e))
        return None

    async def read_history(self, contract_id: str) -> list[RateHistorySnapshot]:
        try:
            return await self.history.list(contract_id)
        except CacheStoreError as e:
            logger.error("energy_history_read_failed", contract_id=contract_id, error=str(e))
            return []

    async def _write_cache(self, contract_id: str, data: EnergyAnalyticsData) -> None:
        try:
            await self.cache.set(contract_id, data)
        except CacheStoreError as e:
            logger.error("energy_cache_write_failed", contract_id=contract_id, error=str(e))

    async def _append_snapshot(self, contract_id: str, data: EnergyAnalyticsData, now_ms: int) -> None:
        snapshot = build_snapshot(
            now_ms,
            data.rates.overall_energy_per_minute,
            data.rates.overall_integral_per_minute,
            data.stats.total_energy_harvested,
            data.stats.unique_users,
        )
        try:
            await self.history.append(contract_id, snapshot)
        except CacheStoreError as e:
            logger.error("energy_history_write_failed", contract_id=contract_id, error=str(e))

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def refresh_contract(self, contract_id: str) -> EnergyAnalyticsData | None:
        """
        Recompute analytics from the indexer and persist them.

        Returns None when the contract has no valid logs (nothing is cached).
        Raises UpstreamFetchError when the fetch fails.
        """
        contract_id = validate_contract_id(contract_id)
        log = bind_contract(contract_id, __name__)
        try:
            raw_logs = await self.fetch_logs(contract_id)
        except UpstreamFetchError:
            raise
        except Exception as e:
            raise UpstreamFetchError(f"Log fetch failed: {e}", contract_id=contract_id) from e

        now_ms = self.now_ms()
        logs = filter_valid_logs(raw_logs, now=now_ms / 1000, contract_id=contract_id)
        if not logs:
            log.info("energy_no_valid_logs", raw=len(raw_logs))
            return None

        snapshots = await self.read_history(contract_id)
        data = compute_energy_analytics(contract_id, logs, snapshots, now_ms, self.rng)
        log.info(
            "energy_analytics_computed",
            logs=len(logs),
            unique_users=data.stats.unique_users,
            total_energy=data.stats.total_energy_harvested,
            energy_per_minute=data.rates.overall_energy_per_minute,
        )

        await self._write_cache(contract_id, data)
        if data.rates.overall_energy_per_minute > 0:
            await self._append_snapshot(contract_id, data, now_ms)
        return data

    def _fallback(self, contract_id: str, now_ms: int) -> AnalyticsResult:
        if self.settings.is_development:
            logger.info("energy_analytics_mock_data", contract_id=contract_id)
            return AnalyticsResult(mock_analytics(contract_id, now_ms, self.rng), SOURCE_MOCK)
        return AnalyticsResult(empty_analytics(contract_id, now_ms), SOURCE_EMPTY)

    async def get_analytics(
        self,
        contract_id: str,
        refresh: bool = False,
        address: str | None = None,
    ) -> AnalyticsResult:
        contract_id = validate_contract_id(contract_id)
        address = (address or "").strip() or None

        if not refresh:
            cached = await self.read_cache(contract_id)
            if cached is not None:
                now_ms = self.now_ms()
                snapshots = await self.read_history(contract_id)
                if len(snapshots) >= MIN_SNAPSHOTS_FOR_HISTORY:
                    rates = cached.rates.model_copy(
                        update={"rate_history_timeframes": history_from_snapshots(snapshots, now_ms)}
                    )
                    cached = cached.model_copy(update={"rates": rates})
                logger.debug("energy_cache_hit", contract_id=contract_id)
                return AnalyticsResult(scope_to_address(cached, address, now_ms), SOURCE_CACHE)
        else:
            logger.info("energy_cache_bypass", contract_id=contract_id)

        try:
            data = await self.refresh_contract(contract_id)
        except UpstreamFetchError as e:
            logger.warning("energy_upstream_failed", contract_id=contract_id, error=str(e))
            data = None

        now_ms = self.now_ms()
        if data is None:
            return self._fallback(contract_id, now_ms)
        return AnalyticsResult(scope_to_address(data, address, now_ms), SOURCE_FRESH)
