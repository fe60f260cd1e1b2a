"""
Aggregator: global totals and per-user totals from validated logs.

Grouping is a pure reduction keyed by sender, so the result does not depend
on input order except for ties in a user's most recent entry (same
block_time), which go to the later input entry. Sums are plain float
additions.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from backend_energy.analytics.models import EnergyLogEntry


def block_time_key(entry: EnergyLogEntry) -> int:
    """Sort key: missing block_time sorts first, as 0."""
    return entry.block_time if entry.block_time is not None else 0


def sort_by_block_time(logs: Iterable[EnergyLogEntry]) -> list[EnergyLogEntry]:
    """Stable ascending sort by block_time."""
    return sorted(logs, key=block_time_key)


def entry_timestamp_ms(entry: EnergyLogEntry, now_ms: int | None = None) -> int:
    """Epoch ms for an entry: block_time_iso, else block_time, else now."""
    if entry.block_time_iso:
        try:
            return int(datetime.fromisoformat(entry.block_time_iso.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            pass
    if entry.block_time is not None:
        return entry.block_time * 1000
    return now_ms if now_ms is not None else int(time.time() * 1000)


@dataclass
class UserTotals:
    address: str
    total_energy: float = 0.0
    total_integral: float = 0.0
    harvest_count: int = 0
    logs: list[EnergyLogEntry] = field(default_factory=list)

    @property
    def sorted_logs(self) -> list[EnergyLogEntry]:
        return sort_by_block_time(self.logs)

    @property
    def last_entry(self) -> EnergyLogEntry | None:
        ordered = self.sorted_logs
        return ordered[-1] if ordered else None


@dataclass
class Aggregate:
    total_energy: float = 0.0
    total_integral: float = 0.0
    log_count: int = 0
    users: dict[str, UserTotals] = field(default_factory=dict)

    @property
    def unique_users(self) -> int:
        return len(self.users)

    @property
    def average_energy(self) -> float:
        return self.total_energy / self.log_count if self.log_count else 0.0

    @property
    def average_integral(self) -> float:
        return self.total_integral / self.log_count if self.log_count else 0.0


def aggregate_logs(logs: Iterable[EnergyLogEntry]) -> Aggregate:
    result = Aggregate()
    for entry in logs:
        energy = float(entry.energy or 0.0)
        integral = float(entry.integral or 0.0)
        result.total_energy += energy
        result.total_integral += integral
        result.log_count += 1

        user = result.users.get(entry.sender)
        if user is None:
            user = result.users[entry.sender] = UserTotals(address=entry.sender)
        user.total_energy += energy
        user.total_integral += integral
        user.harvest_count += 1
        user.logs.append(entry)
    return result
