"""
Process-wide wiring for the energy worker.

EnergyRuntime bundles the KV store, the analytics service and the
repositories the batch needs. The API lifespan builds one per process; the
scheduler CLI builds one per run.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable

from backend_energy.agent_worker.runner import run_energy_batch
from backend_energy.agent_worker.tasks import TaskQueue
from backend_energy.analytics.cache_controller import EnergyAnalyticsService
from backend_energy.analytics.models import BatchSummary
from backend_energy.config.settings import Settings
from backend_energy.energy_logging import get_logger
from backend_energy.ingestion.hiro_client import HiroLogFetcher, LogFetcher
from backend_energy.storage.kv import KVStore, create_kv_store
from backend_energy.storage.repositories import CronStatusRepository, MonitoredContractsRepository

logger = get_logger(__name__)

BATCH_TASK_NAME = "energy_batch"


@dataclass
class EnergyRuntime:
    settings: Settings
    kv: KVStore
    service: EnergyAnalyticsService
    contracts: MonitoredContractsRepository
    cron_status: CronStatusRepository
    tasks: TaskQueue = field(default_factory=TaskQueue)

    async def run_batch(self) -> BatchSummary:
        return await run_energy_batch(self.service, self.contracts, self.cron_status)

    async def close(self) -> None:
        await self.tasks.shutdown()
        await self.kv.close()


def build_runtime(
    settings: Settings,
    kv: KVStore | None = None,
    fetch_logs: LogFetcher | None = None,
    rng: random.Random | None = None,
    clock: Callable[[], float] = time.time,
) -> EnergyRuntime:
    """Wire a runtime from settings; ``kv`` and ``fetch_logs`` override the defaults."""
    if kv is None:
        kv = create_kv_store(settings.redis_url)
    if fetch_logs is None:
        fetch_logs = HiroLogFetcher(settings)
    service = EnergyAnalyticsService(kv, fetch_logs, settings, clock=clock, rng=rng)
    return EnergyRuntime(
        settings=settings,
        kv=kv,
        service=service,
        contracts=MonitoredContractsRepository(kv, defaults=settings.default_contracts),
        cron_status=CronStatusRepository(kv),
    )
