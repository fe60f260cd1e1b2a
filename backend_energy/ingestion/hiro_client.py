"""
Hiro (Stacks blockchain indexer) client: hold-to-earn contract logs.

fetch_hold_to_earn_logs() pulls one page of smart_contract_log events for a
contract, decodes each log's Clarity tuple (energy, integral, sender, op,
message) and enriches it with block_time / block_time_iso / tx_status from
the transaction endpoint. Transaction lookups run concurrently under a
semaphore; a failed lookup keeps the log without timing fields.

Events that cannot be decoded are skipped and counted. An HTTP or transport
failure on the events endpoint raises UpstreamFetchError. No retries: the
next request or batch run simply fetches again.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from backend_energy.clarity import decode_clarity_hex
from backend_energy.config.settings import EVENTS_PAGE_LIMIT, TX_DETAILS_CONCURRENCY, Settings
from backend_energy.core.exceptions import ClarityDecodeError, UpstreamFetchError
from backend_energy.energy_logging import get_logger
from backend_energy.storage.repositories import validate_contract_id

logger = get_logger(__name__)

LogFetcher = Callable[[str], Awaitable[list[dict[str, Any]]]]

EVENTS_PATH = "/extended/v1/contract/{contract_id}/events"
TX_PATH = "/extended/v1/tx/{tx_id}"


class HiroClient:
    """Thin async wrapper over the two Hiro endpoints the service reads."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["x-api-key"] = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HiroClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            r = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"GET {path} failed: {e}") from e
        if r.status_code != 200:
            raise UpstreamFetchError(f"GET {path} returned HTTP {r.status_code}", status_code=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamFetchError(f"GET {path} returned invalid JSON") from e

    async def get_contract_events(self, contract_id: str, limit: int = EVENTS_PAGE_LIMIT, offset: int = 0) -> dict[str, Any]:
        data = await self._get_json(
            EVENTS_PATH.format(contract_id=contract_id),
            params={"limit": limit, "offset": offset},
        )
        return data if isinstance(data, dict) else {}

    async def get_transaction(self, tx_id: str) -> dict[str, Any]:
        data = await self._get_json(TX_PATH.format(tx_id=tx_id))
        return data if isinstance(data, dict) else {}


def _to_number(value: Any) -> float:
    """Clarity uint/int -> float; missing or non-numeric -> 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def parse_energy_event(event: dict[str, Any]) -> dict[str, Any] | None:
    """
    Decode one events-endpoint result into a raw log dict.
    Returns None for non-log events or payloads that are not a Clarity tuple.
    """
    contract_log = event.get("contract_log") or {}
    hex_value = (contract_log.get("value") or {}).get("hex")
    if not hex_value:
        return None
    try:
        value = decode_clarity_hex(hex_value)
    except ClarityDecodeError as e:
        logger.warning("energy_log_decode_failed", tx_id=event.get("tx_id"), error=str(e))
        return None
    if not isinstance(value, dict):
        return None
    return {
        "tx_id": event.get("tx_id"),
        "block_height": event.get("block_height"),
        "energy": _to_number(value.get("energy")),
        "integral": _to_number(value.get("integral")),
        "message": value.get("message") if isinstance(value.get("message"), str) else "",
        "op": value.get("op") if isinstance(value.get("op"), str) else "",
        "sender": value.get("sender") if isinstance(value.get("sender"), str) else "",
    }


async def _with_tx_details(client: HiroClient, log: dict[str, Any], sem: asyncio.Semaphore) -> dict[str, Any]:
    tx_id = log.get("tx_id")
    if not tx_id:
        return log
    async with sem:
        try:
            tx = await client.get_transaction(tx_id)
        except UpstreamFetchError as e:
            logger.warning("energy_tx_details_failed", tx_id=tx_id, error=str(e))
            return log
    enriched = dict(log)
    enriched["block_time"] = tx.get("block_time")
    enriched["block_time_iso"] = tx.get("block_time_iso")
    enriched["tx_status"] = tx.get("tx_status")
    if enriched.get("block_height") is None:
        enriched["block_height"] = tx.get("block_height")
    return enriched


async def fetch_hold_to_earn_logs(
    client: HiroClient,
    contract_id: str,
    limit: int = EVENTS_PAGE_LIMIT,
    offset: int = 0,
    concurrency: int = TX_DETAILS_CONCURRENCY,
) -> list[dict[str, Any]]:
    """Fetch and decode one page of hold-to-earn logs for ``contract_id``."""
    contract_id = validate_contract_id(contract_id)
    logger.info("energy_logs_fetch_start", contract_id=contract_id, limit=limit, offset=offset)

    data = await client.get_contract_events(contract_id, limit=limit, offset=offset)
    results = data.get("results")
    if not isinstance(results, list):
        logger.warning("energy_logs_no_results", contract_id=contract_id)
        return []

    parsed = [parse_energy_event(r) for r in results if isinstance(r, dict)]
    logs = [p for p in parsed if p is not None]
    skipped = len(results) - len(logs)

    sem = asyncio.Semaphore(max(1, concurrency))
    enriched = await asyncio.gather(*(_with_tx_details(client, log, sem) for log in logs))

    logger.info(
        "energy_logs_fetch_done",
        contract_id=contract_id,
        events=len(results),
        logs=len(enriched),
        skipped=skipped,
    )
    return list(enriched)


class HiroLogFetcher:
    """LogFetcher bound to settings; opens one HTTP client per fetch."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    async def __call__(self, contract_id: str) -> list[dict[str, Any]]:
        async with HiroClient(
            self.settings.hiro_api_url,
            api_key=self.settings.hiro_api_key,
            timeout=self.settings.http_timeout_sec,
            transport=self.transport,
        ) as client:
            return await fetch_hold_to_earn_logs(
                client,
                contract_id,
                limit=self.settings.events_page_limit,
                concurrency=self.settings.tx_details_concurrency,
            )
