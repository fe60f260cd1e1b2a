"""
FastAPI router: GET /api/v1/energy/{contractId}, OPTIONS preflight.

Body: {"status": "success", "data": EnergyAnalyticsData, "fromCache": true?}.
Every response, errors included, carries the CORS headers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from backend_energy.analytics.cache_controller import EnergyAnalyticsService
from backend_energy.api_server.dependencies import get_app_settings, get_service
from backend_energy.config.settings import Settings
from backend_energy.core.exceptions import InvalidContractIdError
from backend_energy.energy_logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/energy", tags=["energy"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@router.options("/{contract_id}")
def energy_analytics_preflight(contract_id: str) -> Response:
    return Response(status_code=204, headers=CORS_HEADERS)


@router.get("/{contract_id}")
async def get_energy_analytics(
    contract_id: str,
    refresh: str | None = Query(None, description="'true' bypasses the cache"),
    address: str | None = Query(None, description="Narrow userStats to this sender"),
    service: EnergyAnalyticsService = Depends(get_service),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    force_refresh = (refresh or "").strip().lower() == "true"
    logger.info("energy_analytics_request", contract_id=contract_id, refresh=force_refresh)
    try:
        result = await service.get_analytics(contract_id, refresh=force_refresh, address=address)
    except InvalidContractIdError as e:
        return JSONResponse(
            status_code=400,
            content={"status": "error", "error": str(e)},
            headers=CORS_HEADERS,
        )
    except Exception as e:
        logger.exception("energy_analytics_request_failed", contract_id=contract_id, error=str(e))
        body = {"status": "error", "error": "Failed to fetch energy analytics"}
        if settings.is_development:
            body["message"] = str(e)
        return JSONResponse(status_code=500, content=body, headers=CORS_HEADERS)

    body = {"status": "success", "data": result.data.to_json_dict()}
    if result.from_cache:
        body["fromCache"] = True
    return JSONResponse(status_code=200, content=body, headers=CORS_HEADERS)
