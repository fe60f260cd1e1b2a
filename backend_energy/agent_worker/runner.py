"""
Contract fan-out processor — refresh analytics for every monitored contract.

- run_energy_batch(): one batch. Contracts are refreshed concurrently with
  all-settle semantics: a contract that fails is recorded as success=False
  and does not abort the others. energy:cron:last_run is written after every
  batch, whatever the individual outcomes.
- Used by the scheduler job, the cron HTTP route and the admin task queue.
"""

from __future__ import annotations

import asyncio

from backend_energy.analytics.cache_controller import EnergyAnalyticsService
from backend_energy.analytics.models import BatchSummary, ContractBatchResult
from backend_energy.core.exceptions import CacheSchemaError, CacheStoreError, EnergyError
from backend_energy.energy_logging import get_logger
from backend_energy.storage.repositories import CronStatusRepository, MonitoredContractsRepository

logger = get_logger(__name__)


async def _process_contract(service: EnergyAnalyticsService, contract_id: str) -> ContractBatchResult:
    data = await service.refresh_contract(contract_id)
    if data is None:
        return ContractBatchResult(contract_id=contract_id, success=True, total_energy_harvested=0.0, unique_users=0)
    return ContractBatchResult(
        contract_id=contract_id,
        success=True,
        total_energy_harvested=data.stats.total_energy_harvested,
        unique_users=data.stats.unique_users,
    )


async def process_contracts(service: EnergyAnalyticsService, contract_ids: list[str]) -> list[ContractBatchResult]:
    """Refresh each contract in parallel; results keep the input order."""
    outcomes = await asyncio.gather(
        *(_process_contract(service, cid) for cid in contract_ids),
        return_exceptions=True,
    )
    results: list[ContractBatchResult] = []
    for cid, outcome in zip(contract_ids, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            code = outcome.code if isinstance(outcome, EnergyError) else EnergyError.code
            logger.warning("energy_batch_contract_failed", contract_id=cid, error=str(outcome), error_code=code)
            results.append(ContractBatchResult(contract_id=cid, success=False, error=str(outcome), error_code=code))
        else:
            results.append(outcome)
    return results


async def run_energy_batch(
    service: EnergyAnalyticsService,
    contracts: MonitoredContractsRepository,
    cron_status: CronStatusRepository,
) -> BatchSummary:
    """Run one batch over the monitored contracts and record the run time."""
    started_ms = service.now_ms()
    try:
        contract_ids = await contracts.list()
    except (CacheStoreError, CacheSchemaError) as e:
        logger.error("energy_batch_contract_list_failed", error=str(e))
        contract_ids = list(contracts.defaults)
    logger.info("energy_batch_start", contracts=len(contract_ids))

    results = await process_contracts(service, contract_ids)

    finished_ms = service.now_ms()
    try:
        await cron_status.set_last_run(finished_ms)
    except CacheStoreError as e:
        logger.error("energy_batch_last_run_write_failed", error=str(e))

    errors = [f"{r.contract_id}: {r.error}" for r in results if not r.success]
    summary = BatchSummary(
        success=True,
        timestamp=finished_ms,
        duration=finished_ms - started_ms,
        contracts_processed=sum(1 for r in results if r.success),
        errors=errors,
        results=results,
    )
    logger.info(
        "energy_batch_done",
        contracts=len(contract_ids),
        succeeded=summary.contracts_processed,
        failed=len(errors),
        duration_ms=summary.duration,
    )
    return summary
