"""
Tests for the contract fan-out batch, the background task queue and the scheduler wiring.
"""

from __future__ import annotations

import asyncio

import pytest

CONTRACT_1 = "SP2D5BGGJ956A635JG7CJQ59FTRFRB0893514EZPJ.dexterity-hold-to-earn"
CONTRACT_2 = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9.energy-vault"
CONTRACT_3 = "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7.hold-to-earn-v2"
USER_A = "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7"


@pytest.fixture
def three_contracts(runtime, fetcher, clock, make_log):
    now = int(clock())
    for cid in (CONTRACT_1, CONTRACT_3):
        fetcher.logs[cid] = [make_log(USER_A, 100, now - 600), make_log(USER_A, 200, now)]
    fetcher.errors[CONTRACT_2] = RuntimeError("indexer timeout")
    asyncio.run(runtime.contracts.set([CONTRACT_1, CONTRACT_2, CONTRACT_3]))
    return runtime


def test_batch_isolates_failures(three_contracts, clock):
    """Contract #2 fails; #1 and #3 still refresh, the batch succeeds and last_run is written."""
    runtime = three_contracts
    summary = asyncio.run(runtime.run_batch())

    assert summary.success is True
    assert [r.success for r in summary.results] == [True, False, True]
    assert [r.contract_id for r in summary.results] == [CONTRACT_1, CONTRACT_2, CONTRACT_3]
    assert summary.contracts_processed == 2
    assert len(summary.errors) == 1
    assert CONTRACT_2 in summary.errors[0]
    assert "indexer timeout" in summary.results[1].error
    assert summary.results[1].error_code == "upstream_fetch_failed"
    assert summary.results[0].error_code is None
    assert summary.results[0].total_energy_harvested == 300
    assert summary.results[0].unique_users == 1

    last_run = asyncio.run(runtime.cron_status.get_last_run())
    assert last_run == summary.timestamp == int(clock() * 1000)

    cached = asyncio.run(runtime.service.read_cache(CONTRACT_1))
    assert cached is not None
    assert asyncio.run(runtime.service.read_cache(CONTRACT_2)) is None


def test_batch_uses_default_contracts_when_unset(runtime, fetcher):
    summary = asyncio.run(runtime.run_batch())
    assert [r.contract_id for r in summary.results] == list(runtime.settings.default_contracts)
    # no logs for the default contract: success with zero totals
    assert summary.results[0].success is True
    assert summary.results[0].total_energy_harvested == 0
    assert fetcher.calls == list(runtime.settings.default_contracts)


def test_batch_with_no_contracts(runtime):
    asyncio.run(runtime.contracts.set([]))
    summary = asyncio.run(runtime.run_batch())
    assert summary.success is True
    assert summary.results == []
    assert asyncio.run(runtime.cron_status.get_last_run()) is not None


def test_task_queue_states():
    from backend_energy.agent_worker.tasks import TaskQueue

    async def ok():
        await asyncio.sleep(0)
        return {"done": True}

    async def fail():
        raise ValueError("bad batch")

    async def scenario():
        queue = TaskQueue()
        good = queue.submit("energy_batch", ok)
        bad = queue.submit("other", fail)
        assert good.status == "pending"
        assert queue.has_running("energy_batch") is True
        await queue.wait(good.task_id)
        await queue.wait(bad.task_id)
        return queue, good, bad

    queue, good, bad = asyncio.run(scenario())
    assert good.status == "succeeded"
    assert good.result == {"done": True}
    assert good.started_at is not None and good.finished_at is not None
    assert bad.status == "failed"
    assert bad.error == "bad batch"
    assert queue.has_running("energy_batch") is False
    assert [r.task_id for r in queue.list()] == [bad.task_id, good.task_id]
    assert good.to_dict()["taskId"] == good.task_id


def test_task_queue_prunes_finished_records():
    from backend_energy.agent_worker.tasks import TaskQueue

    async def noop():
        return None

    async def scenario():
        queue = TaskQueue(max_records=3)
        for i in range(5):
            record = queue.submit(f"t{i}", noop)
            await queue.wait(record.task_id)
        return queue

    queue = asyncio.run(scenario())
    assert [r.name for r in queue.list()] == ["t4", "t3", "t2"]


def test_scheduler_job_is_single_instance_interval():
    from backend_energy.scheduler.engine import JOB_ID, create_batch_scheduler

    async def run_batch():
        raise AssertionError("not executed in this test")

    scheduler = create_batch_scheduler(run_batch, interval_sec=300)
    job = scheduler.get_job(JOB_ID)
    assert job is not None
    assert job.max_instances == 1
    assert job.trigger.interval.total_seconds() == 300


def test_scheduler_cli_run_now():
    """--run-now runs one batch and exits with 0 when every contract succeeded."""
    from unittest.mock import AsyncMock, patch

    from backend_energy.analytics.models import BatchSummary
    from backend_energy.scheduler import engine

    summary = BatchSummary(success=True, timestamp=1, duration=0, contracts_processed=1, errors=[], results=[])
    with patch.object(engine, "run_batch_once", AsyncMock(return_value=summary)) as run_once:
        assert engine.main(["--run-now"]) == 0
    run_once.assert_awaited_once()
