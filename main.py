"""
Main entrypoint: FastAPI server for energy analytics.

The interval batch runs inside the server process when ENERGY_CRON_ENABLED=true
(see backend_energy.scheduler). Without it, trigger batches through
GET /api/v1/cron/energy-data or run the scheduler CLI separately.

Env: APP_ENV, REDIS_URL, HIRO_API_URL, HIRO_API_KEY, CRON_SECRET, API_HOST, API_PORT, LOG_LEVEL.
"""

import os

from backend_energy.config.settings import get_settings
from backend_energy.energy_logging import get_logger

logger = get_logger("main")


def main() -> None:
    settings = get_settings()

    from backend_energy.api_server.app import app
    import uvicorn

    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        app_env=settings.app_env,
        cron_enabled=settings.cron_enabled,
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
