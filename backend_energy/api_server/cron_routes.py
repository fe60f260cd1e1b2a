"""
FastAPI router: /cron/energy-data.

GET runs one batch over the monitored contracts. POST/DELETE {contractId}
add or remove a monitored contract. All three require Authorization: Bearer
CRON_SECRET when one is configured.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from backend_energy.agent_worker.runtime import EnergyRuntime
from backend_energy.api_server.dependencies import get_runtime, require_cron_secret
from backend_energy.core.exceptions import CacheSchemaError, CacheStoreError, InvalidContractIdError
from backend_energy.energy_logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


class ContractRequest(BaseModel):
    contractId: str = Field(..., min_length=1, description="Contract id, address.contract-name")


@router.get("/energy-data")
async def run_energy_cron(runtime: EnergyRuntime = Depends(get_runtime)) -> dict[str, Any]:
    summary = await runtime.run_batch()
    return summary.to_json_dict()


@router.post("/energy-data")
async def add_energy_contract(body: ContractRequest, runtime: EnergyRuntime = Depends(get_runtime)) -> dict[str, Any]:
    try:
        added = await runtime.contracts.add(body.contractId)
        contracts = await runtime.contracts.list()
    except InvalidContractIdError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (CacheStoreError, CacheSchemaError) as e:
        logger.error("monitored_contract_add_failed", contract_id=body.contractId, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to update monitored contracts") from e
    return {"success": True, "added": added, "contracts": contracts}


@router.delete("/energy-data")
async def remove_energy_contract(body: ContractRequest, runtime: EnergyRuntime = Depends(get_runtime)) -> dict[str, Any]:
    try:
        removed = await runtime.contracts.remove(body.contractId)
        if removed:
            await runtime.service.cache.delete(body.contractId.strip())
        contracts = await runtime.contracts.list()
    except (CacheStoreError, CacheSchemaError) as e:
        logger.error("monitored_contract_remove_failed", contract_id=body.contractId, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to update monitored contracts") from e
    if not removed:
        raise HTTPException(status_code=404, detail=f"Contract {body.contractId} is not monitored")
    return {"success": True, "removed": True, "contracts": contracts}
