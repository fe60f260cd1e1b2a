"""
Log validator: drop malformed and implausibly dated energy logs.

Kept: entries with a sender, a defined energy amount, and a block_time (when
present) no more than 24 hours past wall-clock time. An empty result is not
an error; the caller decides what a zero-log contract looks like.
"""

from __future__ import annotations

import time
from typing import Any, Iterable

from pydantic import ValidationError

from backend_energy.analytics.models import EnergyLogEntry
from backend_energy.energy_logging import get_logger

logger = get_logger(__name__)

FUTURE_TOLERANCE_SEC = 24 * 60 * 60


def _coerce(entry: Any) -> EnergyLogEntry | None:
    if isinstance(entry, EnergyLogEntry):
        return entry
    if not isinstance(entry, dict):
        return None
    try:
        return EnergyLogEntry.model_validate(entry)
    except ValidationError:
        return None


def filter_valid_logs(
    raw_logs: Iterable[Any],
    now: float | None = None,
    contract_id: str | None = None,
) -> list[EnergyLogEntry]:
    """Return valid entries in input order; logs how many were discarded."""
    now = time.time() if now is None else now
    cutoff = now + FUTURE_TOLERANCE_SEC

    valid: list[EnergyLogEntry] = []
    total = 0
    future = 0
    for raw in raw_logs:
        total += 1
        entry = _coerce(raw)
        if entry is None or not entry.sender or entry.energy is None:
            continue
        if entry.block_time is not None and entry.block_time > cutoff:
            future += 1
            continue
        valid.append(entry)

    discarded = total - len(valid)
    if discarded:
        logger.info(
            "energy_logs_filtered",
            contract_id=contract_id,
            total=total,
            valid=len(valid),
            discarded=discarded,
            future_dated=future,
        )
    return valid
