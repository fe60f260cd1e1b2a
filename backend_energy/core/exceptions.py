"""
Application-level exceptions.

The API maps InvalidContractIdError to 400. UpstreamFetchError and
CacheStoreError are recovered where they happen (zero/mock fallback, fresh
data); they only surface as a failed batch item in the fan-out processor.
"""

from __future__ import annotations


class EnergyError(Exception):
    """Base class for backend_energy errors."""

    code = "energy_error"


class InvalidContractIdError(EnergyError, ValueError):
    """Contract id is not of the form '<address>.<contract-name>'."""

    code = "invalid_contract_id"


class UpstreamFetchError(EnergyError):
    """The blockchain indexer failed or returned an unusable payload."""

    code = "upstream_fetch_failed"

    def __init__(self, message: str, contract_id: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.contract_id = contract_id
        self.status_code = status_code


class CacheStoreError(EnergyError):
    """The key-value store rejected or failed an operation."""

    code = "cache_store_failed"


class CacheSchemaError(EnergyError):
    """A cached payload does not match the current schema (stale version or malformed)."""

    code = "cache_schema_mismatch"


class ClarityDecodeError(EnergyError, ValueError):
    """A Clarity serialized value could not be decoded."""

    code = "clarity_decode_failed"
