"""
In-process background task queue with observable state.

Background work started from a request (e.g. an admin-triggered batch) is
submitted here instead of being left as an unawaited coroutine: each task
gets an id and a record moving pending -> running -> succeeded | failed,
with the result or error kept for status queries. Records are bounded; the
oldest finished ones are dropped first.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from backend_energy.energy_logging import get_logger

logger = get_logger(__name__)

STATUS_PENDING = "pending"
STATUS_RUNNING = "running"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

MAX_TASK_RECORDS = 50


@dataclass
class TaskRecord:
    task_id: str
    name: str
    status: str = STATUS_PENDING
    created_at: int = field(default_factory=lambda: int(time.time() * 1000))
    started_at: int | None = None
    finished_at: int | None = None
    result: Any = None
    error: str | None = None

    @property
    def done(self) -> bool:
        return self.status in (STATUS_SUCCEEDED, STATUS_FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "name": self.name,
            "status": self.status,
            "createdAt": self.created_at,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "result": self.result,
            "error": self.error,
        }


class TaskQueue:
    """Runs submitted coroutines on the current event loop and tracks them."""

    def __init__(self, max_records: int = MAX_TASK_RECORDS):
        self.max_records = max_records
        self._records: OrderedDict[str, TaskRecord] = OrderedDict()
        self._tasks: dict[str, asyncio.Task] = {}

    def submit(self, name: str, factory: Callable[[], Awaitable[Any]]) -> TaskRecord:
        """Schedule ``factory()``; must be called from a running event loop."""
        record = TaskRecord(task_id=uuid.uuid4().hex, name=name)
        self._records[record.task_id] = record
        self._tasks[record.task_id] = asyncio.get_running_loop().create_task(self._run(record, factory))
        self._prune()
        logger.info("task_submitted", task_id=record.task_id, task_name=name)
        return record

    async def _run(self, record: TaskRecord, factory: Callable[[], Awaitable[Any]]) -> None:
        record.status = STATUS_RUNNING
        record.started_at = int(time.time() * 1000)
        try:
            record.result = await factory()
            record.status = STATUS_SUCCEEDED
            logger.info("task_succeeded", task_id=record.task_id, task_name=record.name)
        except Exception as e:
            record.status = STATUS_FAILED
            record.error = str(e)
            logger.exception("task_failed", task_id=record.task_id, task_name=record.name, error=str(e))
        finally:
            record.finished_at = int(time.time() * 1000)
            self._tasks.pop(record.task_id, None)

    def _prune(self) -> None:
        while len(self._records) > self.max_records:
            victim = next((tid for tid, r in self._records.items() if r.done), None)
            if victim is None:
                break
            del self._records[victim]

    def get(self, task_id: str) -> TaskRecord | None:
        return self._records.get(task_id)

    def list(self) -> list[TaskRecord]:
        return list(reversed(self._records.values()))

    def has_running(self, name: str) -> bool:
        return any(r.name == name and not r.done for r in self._records.values())

    async def wait(self, task_id: str) -> TaskRecord | None:
        task = self._tasks.get(task_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self._records.get(task_id)

    async def shutdown(self) -> None:
        for task in list(self._tasks.values()):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()
