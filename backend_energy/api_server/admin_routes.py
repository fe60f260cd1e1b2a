"""
FastAPI router: /admin — monitored contracts, background batch, rate analytics.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from backend_energy.agent_worker.runtime import BATCH_TASK_NAME, EnergyRuntime
from backend_energy.analytics.history import history_from_snapshots, trend_direction
from backend_energy.api_server.dependencies import get_runtime, require_cron_secret
from backend_energy.core.exceptions import CacheSchemaError, CacheStoreError
from backend_energy.energy_logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_cron_secret)])

TIMEFRAMES = ("daily", "weekly", "monthly")


async def _monitored_contracts(runtime: EnergyRuntime) -> list[str]:
    try:
        return await runtime.contracts.list()
    except (CacheStoreError, CacheSchemaError) as e:
        logger.error("energy_contracts_read_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to read monitored contracts") from e


@router.get("/energy-contracts")
async def list_energy_contracts(runtime: EnergyRuntime = Depends(get_runtime)) -> dict[str, Any]:
    """Monitored contracts with their cached analytics (null when not cached)."""
    contracts = await _monitored_contracts(runtime)
    items = []
    for cid in contracts:
        cached = await runtime.service.read_cache(cid)
        items.append({"contractId": cid, "analytics": cached.to_json_dict() if cached else None})
    return {"contracts": items}


@router.post("/energy-processing", status_code=202)
async def start_energy_processing(runtime: EnergyRuntime = Depends(get_runtime)) -> JSONResponse:
    """Enqueue one background batch; at most one runs at a time."""
    tasks = runtime.tasks
    if tasks.has_running(BATCH_TASK_NAME):
        running = next(r for r in tasks.list() if r.name == BATCH_TASK_NAME and not r.done)
        return JSONResponse(status_code=409, content={"detail": "Batch already running", "taskId": running.task_id})

    async def _batch() -> dict[str, Any]:
        summary = await runtime.run_batch()
        return summary.to_json_dict()

    record = tasks.submit(BATCH_TASK_NAME, _batch)
    logger.info("energy_processing_enqueued", task_id=record.task_id)
    return JSONResponse(status_code=202, content={"taskId": record.task_id, "status": record.status})


@router.get("/energy-processing-status")
async def energy_processing_status(runtime: EnergyRuntime = Depends(get_runtime)) -> dict[str, Any]:
    last_run = await runtime.cron_status.get_last_run()
    return {
        "lastRun": last_run,
        "cronEnabled": runtime.settings.cron_enabled,
        "intervalSec": runtime.settings.cron_interval_sec,
        "tasks": [r.to_dict() for r in runtime.tasks.list()],
    }


@router.get("/energy-rate-analytics")
async def energy_rate_analytics(
    timeframe: str | None = Query(None, description="daily | weekly | monthly; all when omitted"),
    runtime: EnergyRuntime = Depends(get_runtime),
) -> JSONResponse:
    if timeframe is not None and timeframe not in TIMEFRAMES:
        return JSONResponse(status_code=400, content={"detail": f"timeframe must be one of {', '.join(TIMEFRAMES)}"})
    now_ms = runtime.service.now_ms()
    results = []
    for cid in await _monitored_contracts(runtime):
        cached = await runtime.service.read_cache(cid)
        snapshots = await runtime.service.read_history(cid)
        buckets = history_from_snapshots(snapshots, now_ms).to_json_dict()
        if timeframe is not None:
            buckets = {timeframe: buckets[timeframe]}
        results.append(
            {
                "contractId": cid,
                "currentEnergyPerMinute": cached.rates.overall_energy_per_minute if cached else None,
                "currentIntegralPerMinute": cached.rates.overall_integral_per_minute if cached else None,
                "snapshots": len(snapshots),
                "trend": trend_direction(snapshots),
                "history": buckets,
            }
        )
    return JSONResponse(status_code=200, content={"contracts": results, "timestamp": now_ms})
