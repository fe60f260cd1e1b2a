"""
FastAPI server — energy analytics API.

Routes live under /api/v1 (energy, cron, admin) plus /health. The lifespan
builds the process runtime (KV store, analytics service, task queue) unless
one was placed on app.state beforehand, and starts the interval batch when
ENERGY_CRON_ENABLED is set.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from backend_energy import __version__
from backend_energy.agent_worker.runtime import build_runtime
from backend_energy.api_server.admin_routes import router as admin_router
from backend_energy.api_server.cron_routes import router as cron_router
from backend_energy.api_server.energy_routes import router as energy_router
from backend_energy.config.env import mask_url
from backend_energy.config.settings import get_settings
from backend_energy.energy_logging import get_logger
from backend_energy.scheduler.engine import create_batch_scheduler

logger = get_logger(__name__)

API_PREFIX = "/api/v1"


# -----------------------------------------------------------------------------
# Lifespan: runtime wiring and the optional interval batch
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime = getattr(app.state, "runtime", None)
    owns_runtime = runtime is None
    if owns_runtime:
        settings = get_settings()
        runtime = build_runtime(settings)
        app.state.runtime = runtime
    logger.info(
        "api_runtime_ready",
        app_env=runtime.settings.app_env,
        kv=mask_url(runtime.settings.redis_url),
        hiro_api_url=runtime.settings.hiro_api_url,
    )

    scheduler = None
    if runtime.settings.cron_enabled:
        scheduler = create_batch_scheduler(runtime.run_batch, runtime.settings.cron_interval_sec)
        scheduler.start()
        logger.info("energy_scheduler_started", interval_sec=runtime.settings.cron_interval_sec)

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("energy_scheduler_stopped")
    if owns_runtime:
        await runtime.close()
        app.state.runtime = None
        logger.info("api_runtime_closed")


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Backend Energy API",
    description="Hold-to-earn energy analytics per contract, cached in a KV store.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(energy_router, prefix=API_PREFIX)
app.include_router(cron_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness probe: API is up."""
    return {"status": "ok"}


@app.exception_handler(HTTPException)
def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
    """Consistent JSON error response for HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
