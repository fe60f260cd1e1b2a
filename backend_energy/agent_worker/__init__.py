"""
Agent worker package — background refresh of monitored contracts.

Runs the contract fan-out batch, tracks background tasks started over HTTP,
and wires the shared runtime used by the API and the scheduler.
"""

from backend_energy.agent_worker.runner import process_contracts, run_energy_batch
from backend_energy.agent_worker.runtime import EnergyRuntime, build_runtime
from backend_energy.agent_worker.tasks import TaskQueue, TaskRecord

__all__ = [
    "EnergyRuntime",
    "TaskQueue",
    "TaskRecord",
    "build_runtime",
    "process_contracts",
    "run_energy_batch",
]
