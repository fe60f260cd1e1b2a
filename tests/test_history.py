"""
Tests for rate-history snapshots, chart buckets and trend direction.
"""

from __future__ import annotations

import asyncio
import random

import pytest

NOW_MS = 1_700_000_000_000
HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS
CONTRACT_ID = "SP2D5BGGJ956A635JG7CJQ59FTRFRB0893514EZPJ.dexterity-hold-to-earn"


def _snap(timestamp, rate):
    from backend_energy.analytics.history import build_snapshot

    return build_snapshot(timestamp, rate, rate * 5, 1000.0, 3)


def test_history_buckets_use_snapshot_windows():
    """Daily holds the last 24h, weekly the last 7d, monthly the last 30d; oldest first."""
    from backend_energy.analytics.history import history_from_snapshots

    snapshots = [
        _snap(NOW_MS - HOUR_MS, 4.0),
        _snap(NOW_MS - 2 * HOUR_MS, 3.0),
        _snap(NOW_MS - 3 * DAY_MS, 2.0),
        _snap(NOW_MS - 20 * DAY_MS, 1.0),
        _snap(NOW_MS - 40 * DAY_MS, 0.5),
    ]
    buckets = history_from_snapshots(snapshots, NOW_MS)
    assert [p.rate for p in buckets.daily] == [3.0, 4.0]
    assert [p.rate for p in buckets.weekly] == [2.0, 3.0, 4.0]
    assert [p.rate for p in buckets.monthly] == [1.0, 2.0, 3.0, 4.0]
    assert buckets.synthetic is False


def test_placeholder_history_shape_and_jitter():
    from backend_energy.analytics.history import placeholder_history

    buckets = placeholder_history(100.0, NOW_MS, random.Random(1))
    assert buckets.synthetic is True
    for series, spacing, low, high in (
        (buckets.daily, 2 * HOUR_MS, 80.0, 120.0),
        (buckets.weekly, DAY_MS, 70.0, 130.0),
        (buckets.monthly, 3 * DAY_MS, 60.0, 140.0),
    ):
        assert len(series) == 10
        assert series[0].timestamp == NOW_MS - 10 * spacing
        assert series[-1].timestamp == NOW_MS - spacing
        assert all(low <= p.rate <= high for p in series)


def test_placeholder_history_is_reproducible_with_seeded_rng():
    from backend_energy.analytics.history import placeholder_history

    a = placeholder_history(10.0, NOW_MS, random.Random(42))
    b = placeholder_history(10.0, NOW_MS, random.Random(42))
    assert a == b


def test_rate_history_needs_two_snapshots():
    from backend_energy.analytics.history import rate_history

    one = rate_history([_snap(NOW_MS - HOUR_MS, 1.0)], 5.0, NOW_MS, random.Random(0))
    assert one.synthetic is True
    two = rate_history([_snap(NOW_MS - HOUR_MS, 1.0), _snap(NOW_MS - 2 * HOUR_MS, 2.0)], 5.0, NOW_MS)
    assert two.synthetic is False
    assert len(two.daily) == 2


def test_zero_rate_placeholder_is_all_zero():
    from backend_energy.analytics.history import placeholder_history

    buckets = placeholder_history(0.0, NOW_MS, random.Random(3))
    assert all(p.rate == 0.0 for p in buckets.daily + buckets.weekly + buckets.monthly)


@pytest.mark.parametrize(
    "rates,expected",
    [
        ([1.0, 1.0, 2.0, 2.0], "up"),
        ([2.0, 2.0, 1.0, 1.0], "down"),
        ([1.0, 1.02, 1.01, 1.03], "stable"),
        ([0.0, 0.0, 1.0], "up"),
        ([1.0], "stable"),
    ],
)
def test_trend_direction(rates, expected):
    from backend_energy.analytics.history import trend_direction

    snapshots = [_snap(NOW_MS - (len(rates) - i) * HOUR_MS, r) for i, r in enumerate(rates)]
    # newest-first like the stored list
    assert trend_direction(list(reversed(snapshots))) == expected


def test_history_list_is_capped_at_100_newest_first(kv):
    from backend_energy.storage.repositories import RateHistoryRepository

    repo = RateHistoryRepository(kv)

    async def scenario():
        for i in range(105):
            await repo.append(CONTRACT_ID, _snap(NOW_MS + i, float(i)))
        return await repo.list(CONTRACT_ID)

    snapshots = asyncio.run(scenario())
    assert len(snapshots) == 100
    assert snapshots[0].timestamp == NOW_MS + 104
    assert snapshots[-1].timestamp == NOW_MS + 5


def test_history_skips_invalid_entries(kv):
    from backend_energy.storage.repositories import RateHistoryRepository, history_key

    repo = RateHistoryRepository(kv)

    async def scenario():
        await repo.append(CONTRACT_ID, _snap(NOW_MS, 1.0))
        await kv.lpush(history_key(CONTRACT_ID), {"garbage": True})
        return await repo.list(CONTRACT_ID)

    snapshots = asyncio.run(scenario())
    assert [s.energy_rate for s in snapshots] == [1.0]
