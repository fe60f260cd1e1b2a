"""
Energy batch scheduler — refresh every monitored contract on an interval via APScheduler.

Inside the API the batch runs on the server's event loop (AsyncIOScheduler,
started from the lifespan). Standalone:

  python -m backend_energy.scheduler.engine            # run every ENERGY_CRON_INTERVAL_SEC
  python -m backend_energy.scheduler.engine --run-now  # run once, then exit
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from pytz import utc

from backend_energy.agent_worker.runtime import build_runtime
from backend_energy.analytics.models import BatchSummary
from backend_energy.config.settings import Settings, get_settings
from backend_energy.energy_logging import get_logger

logger = get_logger(__name__)

JOB_ID = "energy_batch"


def create_batch_scheduler(
    run_batch: Callable[[], Awaitable[BatchSummary]],
    interval_sec: int,
) -> AsyncIOScheduler:
    """AsyncIOScheduler with one interval job; a run never overlaps the previous one."""

    async def job_energy_batch() -> None:
        logger.info("energy_scheduler_job_start")
        try:
            summary = await run_batch()
            logger.info(
                "energy_scheduler_job_end",
                processed=summary.contracts_processed,
                errors=len(summary.errors),
            )
        except Exception as e:
            logger.exception("energy_scheduler_job_error", error=str(e))

    scheduler = AsyncIOScheduler(timezone=utc)
    scheduler.add_job(
        job_energy_batch,
        "interval",
        seconds=interval_sec,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def run_batch_once(settings: Settings) -> BatchSummary:
    runtime = build_runtime(settings)
    try:
        return await runtime.run_batch()
    finally:
        await runtime.close()


def job_energy_batch_blocking() -> None:
    logger.info("energy_scheduler_job_start")
    try:
        summary = asyncio.run(run_batch_once(get_settings()))
        logger.info(
            "energy_scheduler_job_end",
            processed=summary.contracts_processed,
            errors=len(summary.errors),
        )
    except Exception as e:
        logger.exception("energy_scheduler_job_error", error=str(e))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Refresh energy analytics for monitored contracts on an interval.")
    parser.add_argument(
        "--run-now",
        action="store_true",
        help="Run one batch immediately, then exit.",
    )
    args = parser.parse_args(argv)
    settings = get_settings()

    if args.run_now:
        logger.info("energy_scheduler_manual_run_start")
        summary = asyncio.run(run_batch_once(settings))
        logger.info(
            "energy_scheduler_manual_run_end",
            processed=summary.contracts_processed,
            errors=len(summary.errors),
        )
        return 0 if not summary.errors else 1

    scheduler = BlockingScheduler(timezone=utc)
    scheduler.add_job(
        job_energy_batch_blocking,
        "interval",
        seconds=settings.cron_interval_sec,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    logger.info("energy_scheduler_started", interval_sec=settings.cron_interval_sec)

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("energy_scheduler_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
