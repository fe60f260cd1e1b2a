"""
Request dependencies.

Everything a route needs hangs off the EnergyRuntime stored on app.state by
the lifespan. Tests either pre-seed app.state.runtime or override these.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from backend_energy.agent_worker.runtime import EnergyRuntime
from backend_energy.analytics.cache_controller import EnergyAnalyticsService
from backend_energy.config.settings import Settings


def get_runtime(request: Request) -> EnergyRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Service is starting")
    return runtime


def get_app_settings(runtime: EnergyRuntime = Depends(get_runtime)) -> Settings:
    return runtime.settings


def get_service(runtime: EnergyRuntime = Depends(get_runtime)) -> EnergyAnalyticsService:
    return runtime.service


def require_cron_secret(request: Request, settings: Settings = Depends(get_app_settings)) -> None:
    """Bearer CRON_SECRET check; open when no secret is configured."""
    if not settings.cron_secret:
        return
    if request.headers.get("authorization", "") != f"Bearer {settings.cron_secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")
