"""
Energy analytics data models.

EnergyLogEntry keeps the indexer's snake_case keys (tx_id, block_time) since
that is how logs are served and cached. Derived models are serialized with
camelCase keys (totalEnergyHarvested, overallEnergyPerMinute) for the
dashboard clients; construct them with either spelling.

EnergyAnalyticsData is the cached payload. It carries schemaVersion so a
record written by an older deploy is rejected at the deserialization
boundary instead of flowing into arithmetic.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class EnergyLogEntry(BaseModel):
    """One hold-to-earn contract log, enriched with transaction details when available."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    sender: str | None = None
    energy: float | None = None
    integral: float | None = None
    block_time: int | None = Field(None, description="Unix seconds")
    block_time_iso: str | None = None
    block_height: int | None = None
    tx_id: str | None = None
    message: str | None = None
    op: str | None = None
    tx_status: str | None = None

    @field_validator("block_time", mode="before")
    @classmethod
    def _truncate_block_time(cls, value: Any) -> Any:
        # some indexers report fractional seconds
        if isinstance(value, float) and math.isfinite(value):
            return int(value)
        return value


class EnergyStats(CamelModel):
    total_energy_harvested: float = 0.0
    total_integral_calculated: float = 0.0
    unique_users: int = 0
    average_energy_per_harvest: float = 0.0
    average_integral_per_harvest: float = 0.0
    last_updated: int = Field(0, description="Epoch milliseconds")


class UserRate(CamelModel):
    address: str
    energy_per_minute: float = 0.0


class RatePoint(CamelModel):
    timestamp: int = Field(..., description="Epoch milliseconds")
    rate: float


class RateHistoryTimeframes(CamelModel):
    daily: list[RatePoint] = Field(default_factory=list)
    weekly: list[RatePoint] = Field(default_factory=list)
    monthly: list[RatePoint] = Field(default_factory=list)
    synthetic: bool = Field(False, description="True when points are placeholders, not measured snapshots")


class EnergyRates(CamelModel):
    overall_energy_per_minute: float = 0.0
    overall_integral_per_minute: float = 0.0
    top_user_rates: list[UserRate] = Field(default_factory=list)
    last_calculated: int = 0
    rate_history_timeframes: RateHistoryTimeframes = Field(default_factory=RateHistoryTimeframes)


class HarvestRecord(CamelModel):
    timestamp: int
    energy: float
    integral: float
    block_height: int | None = None
    tx_id: str | None = None


class UserEnergyStats(CamelModel):
    address: str
    total_energy_harvested: float = 0.0
    total_integral_calculated: float = 0.0
    harvest_count: int = 0
    average_energy_per_harvest: float = 0.0
    energy_per_minute: float = 0.0
    integral_per_minute: float = 0.0
    last_harvest_timestamp: int = 0
    harvest_history: list[HarvestRecord] | None = None


class EnergyAnalyticsData(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    schema_version: int = SCHEMA_VERSION
    contract_id: str | None = None
    logs: list[EnergyLogEntry] = Field(default_factory=list)
    stats: EnergyStats = Field(default_factory=EnergyStats)
    rates: EnergyRates = Field(default_factory=EnergyRates)
    user_stats: dict[str, UserEnergyStats] = Field(default_factory=dict)


class RateHistorySnapshot(CamelModel):
    timestamp: int
    energy_rate: float
    integral_rate: float = 0.0
    total_energy_harvested: float = 0.0
    unique_users: int = 0


class ContractBatchResult(CamelModel):
    contract_id: str
    success: bool
    error: str | None = None
    error_code: str | None = None
    total_energy_harvested: float | None = None
    unique_users: int | None = None


class BatchSummary(CamelModel):
    success: bool = True
    timestamp: int
    duration: int = Field(..., description="Milliseconds")
    contracts_processed: int = 0
    errors: list[str] = Field(default_factory=list)
    results: list[ContractBatchResult] = Field(default_factory=list)
