"""
Rate history: snapshots and the daily / weekly / monthly chart buckets.

Buckets are rebuilt from the stored snapshot list (at most 100, newest
first), so what a chart shows depends on which refreshes happened to write a
snapshot, not on the raw log history.

With fewer than two snapshots there is nothing to draw, and the buckets are
filled with placeholder points: ten per window, jittered around the current
rate. These are fabricated for presentation and marked synthetic=True.
"""

from __future__ import annotations

import random
from statistics import fmean
from typing import Sequence

from backend_energy.analytics.models import RateHistorySnapshot, RateHistoryTimeframes, RatePoint

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

MIN_SNAPSHOTS_FOR_HISTORY = 2

DAILY_WINDOW_MS = DAY_MS
WEEKLY_WINDOW_MS = 7 * DAY_MS
MONTHLY_WINDOW_MS = 30 * DAY_MS

PLACEHOLDER_POINTS = 10
# (spacing between points, jitter low, jitter high)
PLACEHOLDER_DAILY = (2 * HOUR_MS, 0.8, 1.2)
PLACEHOLDER_WEEKLY = (DAY_MS, 0.7, 1.3)
PLACEHOLDER_MONTHLY = (3 * DAY_MS, 0.6, 1.4)

TREND_THRESHOLD = 0.05
TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


def build_snapshot(
    now_ms: int,
    energy_rate: float,
    integral_rate: float,
    total_energy: float,
    unique_users: int,
) -> RateHistorySnapshot:
    return RateHistorySnapshot(
        timestamp=now_ms,
        energy_rate=energy_rate,
        integral_rate=integral_rate,
        total_energy_harvested=total_energy,
        unique_users=unique_users,
    )


def _window(snapshots: Sequence[RateHistorySnapshot], now_ms: int, window_ms: int) -> list[RatePoint]:
    start = now_ms - window_ms
    points = [
        RatePoint(timestamp=s.timestamp, rate=s.energy_rate)
        for s in snapshots
        if start <= s.timestamp <= now_ms
    ]
    points.sort(key=lambda p: p.timestamp)
    return points


def history_from_snapshots(snapshots: Sequence[RateHistorySnapshot], now_ms: int) -> RateHistoryTimeframes:
    """Chart buckets from stored snapshots: last 24h, 7d and 30d, oldest first."""
    return RateHistoryTimeframes(
        daily=_window(snapshots, now_ms, DAILY_WINDOW_MS),
        weekly=_window(snapshots, now_ms, WEEKLY_WINDOW_MS),
        monthly=_window(snapshots, now_ms, MONTHLY_WINDOW_MS),
        synthetic=False,
    )


def _placeholder_series(
    rate: float,
    now_ms: int,
    shape: tuple[int, float, float],
    rng: random.Random,
    points: int = PLACEHOLDER_POINTS,
) -> list[RatePoint]:
    spacing, low, high = shape
    return [
        RatePoint(timestamp=now_ms - (points - i) * spacing, rate=rate * rng.uniform(low, high))
        for i in range(points)
    ]


def placeholder_history(rate: float, now_ms: int, rng: random.Random | None = None) -> RateHistoryTimeframes:
    """Fabricated points around ``rate`` for contracts without snapshot history."""
    rng = rng or random.Random()
    return RateHistoryTimeframes(
        daily=_placeholder_series(rate, now_ms, PLACEHOLDER_DAILY, rng),
        weekly=_placeholder_series(rate, now_ms, PLACEHOLDER_WEEKLY, rng),
        monthly=_placeholder_series(rate, now_ms, PLACEHOLDER_MONTHLY, rng),
        synthetic=True,
    )


def rate_history(
    snapshots: Sequence[RateHistorySnapshot],
    current_rate: float,
    now_ms: int,
    rng: random.Random | None = None,
) -> RateHistoryTimeframes:
    if len(snapshots) >= MIN_SNAPSHOTS_FOR_HISTORY:
        return history_from_snapshots(snapshots, now_ms)
    return placeholder_history(current_rate, now_ms, rng)


def trend_direction(snapshots: Sequence[RateHistorySnapshot]) -> str:
    """
    Compare the mean energy rate of the newer half of the snapshots with the
    older half: > +5% is up, < -5% is down.
    """
    if len(snapshots) < MIN_SNAPSHOTS_FOR_HISTORY:
        return TREND_STABLE
    ordered = sorted(snapshots, key=lambda s: s.timestamp)
    mid = len(ordered) // 2
    older = [s.energy_rate for s in ordered[:mid]]
    newer = [s.energy_rate for s in ordered[mid:]]
    older_mean = fmean(older)
    newer_mean = fmean(newer)
    if older_mean == 0:
        return TREND_UP if newer_mean > 0 else TREND_STABLE
    change = (newer_mean - older_mean) / older_mean
    if change > TREND_THRESHOLD:
        return TREND_UP
    if change < -TREND_THRESHOLD:
        return TREND_DOWN
    return TREND_STABLE
