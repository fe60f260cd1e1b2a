"""
Analytics pipeline: validated logs -> EnergyAnalyticsData.

Pure computation; no I/O. The cache controller supplies the logs, the stored
snapshots (for the history buckets) and the clock.

userStats holds every sender. scope_to_address() narrows a computed or
cached object to one user for a response and attaches that user's harvest
history.
"""

from __future__ import annotations

import random
from typing import Sequence

from backend_energy.analytics.aggregator import UserTotals, aggregate_logs, entry_timestamp_ms
from backend_energy.analytics.history import rate_history
from backend_energy.analytics.models import (
    EnergyAnalyticsData,
    EnergyLogEntry,
    EnergyRates,
    EnergyStats,
    HarvestRecord,
    RateHistorySnapshot,
    RateHistoryTimeframes,
    UserEnergyStats,
)
from backend_energy.analytics.rates import estimate_rates, estimate_user_rates, top_user_rates


def build_user_stats(user: UserTotals, now_ms: int, include_history: bool = False) -> UserEnergyStats:
    energy_rate, integral_rate = estimate_user_rates(user)
    ordered = user.sorted_logs
    last = ordered[-1] if ordered else None
    history = None
    if include_history:
        history = [
            HarvestRecord(
                timestamp=entry_timestamp_ms(e, now_ms),
                energy=float(e.energy or 0.0),
                integral=float(e.integral or 0.0),
                block_height=e.block_height,
                tx_id=e.tx_id,
            )
            for e in ordered
        ]
    return UserEnergyStats(
        address=user.address,
        total_energy_harvested=user.total_energy,
        total_integral_calculated=user.total_integral,
        harvest_count=user.harvest_count,
        average_energy_per_harvest=user.total_energy / user.harvest_count if user.harvest_count else 0.0,
        energy_per_minute=energy_rate,
        integral_per_minute=integral_rate,
        last_harvest_timestamp=entry_timestamp_ms(last, now_ms) if last else now_ms,
        harvest_history=history,
    )


def compute_energy_analytics(
    contract_id: str | None,
    logs: list[EnergyLogEntry],
    snapshots: Sequence[RateHistorySnapshot],
    now_ms: int,
    rng: random.Random | None = None,
) -> EnergyAnalyticsData:
    """Aggregate, estimate rates and build history buckets for validated logs."""
    agg = aggregate_logs(logs)
    energy_rate, integral_rate = estimate_rates(logs, agg.total_energy, agg.total_integral)

    user_stats = {addr: build_user_stats(user, now_ms) for addr, user in agg.users.items()}
    top_users = top_user_rates({addr: s.energy_per_minute for addr, s in user_stats.items()})

    return EnergyAnalyticsData(
        contract_id=contract_id,
        logs=list(logs),
        stats=EnergyStats(
            total_energy_harvested=agg.total_energy,
            total_integral_calculated=agg.total_integral,
            unique_users=agg.unique_users,
            average_energy_per_harvest=agg.average_energy,
            average_integral_per_harvest=agg.average_integral,
            last_updated=now_ms,
        ),
        rates=EnergyRates(
            overall_energy_per_minute=energy_rate,
            overall_integral_per_minute=integral_rate,
            top_user_rates=top_users,
            last_calculated=now_ms,
            rate_history_timeframes=rate_history(snapshots, energy_rate, now_ms, rng),
        ),
        user_stats=user_stats,
    )


def empty_analytics(contract_id: str | None, now_ms: int) -> EnergyAnalyticsData:
    """All-zero analytics for a contract with no usable logs."""
    return EnergyAnalyticsData(
        contract_id=contract_id,
        stats=EnergyStats(last_updated=now_ms),
        rates=EnergyRates(last_calculated=now_ms, rate_history_timeframes=RateHistoryTimeframes()),
    )


def scope_to_address(data: EnergyAnalyticsData, address: str | None, now_ms: int) -> EnergyAnalyticsData:
    """Copy of ``data`` whose userStats holds only ``address`` (with harvest history)."""
    if not address:
        return data
    user_logs = [e for e in data.logs if e.sender == address]
    scoped: dict[str, UserEnergyStats] = {}
    if user_logs:
        agg = aggregate_logs(user_logs)
        scoped[address] = build_user_stats(agg.users[address], now_ms, include_history=True)
    return data.model_copy(update={"user_stats": scoped})
