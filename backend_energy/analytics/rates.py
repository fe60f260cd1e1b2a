"""
Rate estimator: energy and integral per minute for a set of logs.

Heuristic for display, not an accounting figure:
  - two or more entries with first and last block_time: total / (max(1s, last - first) / 60)
  - otherwise, with nonzero energy: total / 1440 (assume roughly one day of accrual)
  - zero energy: 0
block_time 0 is a real timestamp here, only None counts as missing.
"""

from __future__ import annotations

from typing import Iterable

from backend_energy.analytics.aggregator import UserTotals, sort_by_block_time
from backend_energy.analytics.models import EnergyLogEntry, UserRate

MIN_SPAN_SEC = 1
FALLBACK_WINDOW_MINUTES = 1440
DEGENERATE_SPAN_MINUTES = 60
TOP_USER_RATES_LIMIT = 5


def elapsed_minutes(sorted_logs: list[EnergyLogEntry]) -> float | None:
    """Minutes between first and last entry, or None if the span is not measurable."""
    if len(sorted_logs) < 2:
        return None
    first, last = sorted_logs[0], sorted_logs[-1]
    if first.block_time is None or last.block_time is None:
        return None
    minutes = max(MIN_SPAN_SEC, last.block_time - first.block_time) / 60
    if minutes <= 0:
        return DEGENERATE_SPAN_MINUTES
    return minutes


def estimate_rates(
    logs: Iterable[EnergyLogEntry],
    total_energy: float | None = None,
    total_integral: float | None = None,
) -> tuple[float, float]:
    """Return (energy_per_minute, integral_per_minute)."""
    ordered = sort_by_block_time(logs)
    if total_energy is None:
        total_energy = sum(float(e.energy or 0.0) for e in ordered)
    if total_integral is None:
        total_integral = sum(float(e.integral or 0.0) for e in ordered)

    minutes = elapsed_minutes(ordered)
    if minutes is not None:
        return total_energy / minutes, total_integral / minutes
    if total_energy != 0:
        return total_energy / FALLBACK_WINDOW_MINUTES, total_integral / FALLBACK_WINDOW_MINUTES
    return 0.0, 0.0


def estimate_user_rates(user: UserTotals) -> tuple[float, float]:
    return estimate_rates(user.logs, user.total_energy, user.total_integral)


def top_user_rates(rates: dict[str, float], limit: int = TOP_USER_RATES_LIMIT) -> list[UserRate]:
    """Highest energy-per-minute users first; ties keep insertion order."""
    ranked = sorted(rates.items(), key=lambda item: item[1], reverse=True)
    return [UserRate(address=addr, energy_per_minute=rate) for addr, rate in ranked[:limit]]
