"""
Development-only mock analytics.

Served by the cache controller when APP_ENV=development and a contract has
no usable logs (or the indexer is unreachable), so dashboards have something
to render locally. Never served in production.
"""

from __future__ import annotations

import random

from backend_energy.analytics.analytics_pipeline import compute_energy_analytics
from backend_energy.analytics.models import EnergyAnalyticsData, EnergyLogEntry

MOCK_USER_A = "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7"
MOCK_USER_B = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9"

# (sender, hours before now, energy); integral is 5x energy
_MOCK_HARVESTS = (
    (MOCK_USER_A, 30, 10000.0),
    (MOCK_USER_B, 26, 11875.0),
    (MOCK_USER_A, 20, 12500.0),
    (MOCK_USER_A, 12, 11250.0),
    (MOCK_USER_B, 6, 11875.0),
    (MOCK_USER_A, 1, 10000.0),
)


def mock_energy_logs(now_ms: int) -> list[EnergyLogEntry]:
    now_sec = now_ms // 1000
    logs = []
    for i, (sender, hours_ago, energy) in enumerate(_MOCK_HARVESTS):
        block_time = now_sec - hours_ago * 3600
        logs.append(
            EnergyLogEntry(
                sender=sender,
                energy=energy,
                integral=energy * 5,
                block_time=block_time,
                block_height=150000 + i * 60,
                tx_id=f"0x{i + 1:064x}",
                op="HARVEST_ENERGY",
                tx_status="success",
            )
        )
    return logs


def mock_analytics(contract_id: str | None, now_ms: int, rng: random.Random | None = None) -> EnergyAnalyticsData:
    """Analytics over the mock logs: 67500 energy, 2 users, synthetic history."""
    return compute_energy_analytics(contract_id, mock_energy_logs(now_ms), [], now_ms, rng)
