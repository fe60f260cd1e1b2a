"""Periodic energy batch scheduling (APScheduler)."""

from backend_energy.scheduler.engine import create_batch_scheduler

__all__ = ["create_batch_scheduler"]
