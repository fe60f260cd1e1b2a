"""
Tests for the energy log validator.
"""

from __future__ import annotations

NOW = 1_700_000_000
USER = "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7"


def test_filter_keeps_well_formed_logs_in_order():
    from backend_energy.analytics.validator import filter_valid_logs

    raw = [
        {"sender": USER, "energy": 10, "integral": 1, "block_time": NOW - 60},
        {"sender": USER, "energy": 0, "block_time": NOW - 30},
        {"sender": USER, "energy": 5},
    ]
    valid = filter_valid_logs(raw, now=NOW)
    assert [e.energy for e in valid] == [10.0, 0.0, 5.0]
    assert valid[2].block_time is None


def test_filter_drops_missing_sender_or_energy():
    from backend_energy.analytics.validator import filter_valid_logs

    raw = [
        {"energy": 10, "block_time": NOW},
        {"sender": "", "energy": 10, "block_time": NOW},
        {"sender": USER, "block_time": NOW},
        {"sender": USER, "energy": None, "block_time": NOW},
        None,
        "not-a-log",
        {"sender": USER, "energy": "not-a-number"},
    ]
    assert filter_valid_logs(raw, now=NOW) == []


def test_filter_future_tolerance_is_24_hours():
    """block_time up to now + 86400 is kept; one second later is dropped."""
    from backend_energy.analytics.validator import FUTURE_TOLERANCE_SEC, filter_valid_logs

    raw = [
        {"sender": USER, "energy": 1, "block_time": NOW + FUTURE_TOLERANCE_SEC},
        {"sender": USER, "energy": 2, "block_time": NOW + FUTURE_TOLERANCE_SEC + 1},
    ]
    valid = filter_valid_logs(raw, now=NOW)
    assert len(valid) == 1
    assert valid[0].energy == 1.0


def test_filter_ignores_unknown_fields():
    from backend_energy.analytics.validator import filter_valid_logs

    raw = [{"sender": USER, "energy": 3, "block_time": 0, "event_index": 4, "extra": {"a": 1}}]
    valid = filter_valid_logs(raw, now=NOW)
    assert len(valid) == 1
    assert valid[0].block_time == 0


def test_filter_keeps_null_integral():
    from backend_energy.analytics.validator import filter_valid_logs

    raw = [{"sender": USER, "energy": 100, "integral": None, "block_time": NOW}]
    valid = filter_valid_logs(raw, now=NOW)
    assert len(valid) == 1
    assert valid[0].energy == 100.0
    assert valid[0].integral is None


def test_filter_accepts_fractional_block_time():
    from backend_energy.analytics.validator import filter_valid_logs

    raw = [{"sender": USER, "energy": 7, "integral": 1, "block_time": NOW + 0.5}]
    valid = filter_valid_logs(raw, now=NOW)
    assert len(valid) == 1
    assert valid[0].block_time == NOW


def test_null_integral_still_counts_toward_totals():
    from backend_energy.analytics.analytics_pipeline import compute_energy_analytics
    from backend_energy.analytics.validator import filter_valid_logs

    raw = [
        {"sender": USER, "energy": 100, "integral": None, "block_time": NOW - 60},
        {"sender": USER, "energy": 50, "integral": 10, "block_time": NOW},
    ]
    logs = filter_valid_logs(raw, now=NOW)
    data = compute_energy_analytics("SP2D5BGGJ956A635JG7CJQ59FTRFRB0893514EZPJ.dexterity-hold-to-earn", logs, [], NOW * 1000)
    assert data.stats.total_energy_harvested == 150
    assert data.stats.total_integral_calculated == 10
