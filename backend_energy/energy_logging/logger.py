"""
Structured logging for energy analytics: JSON lines keyed by event_type.

Every log call names an event (``energy_cache_hit``, ``energy_batch_done``)
and passes context as keywords, usually contract_id. Secrets that end up in
log context (Hiro API key, cron bearer) are masked before rendering.

Level and format come from LOG_LEVEL / LOG_FORMAT (json | console).
Only stdlib logging and structlog are imported here so that every other
module can import this one first.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

SECRET_KEYS = frozenset({"api_key", "hiro_api_key", "cron_secret", "authorization"})


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog calls the first positional arg 'event'; expose it as event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _mask_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """(Re)configure structlog. Called once at import with env defaults."""
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        _add_timestamp,
        _event_type,
        _mask_secrets,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("energy_analytics_computed", contract_id=cid, logs=42)

    JSON output: {"event_type": "energy_analytics_computed", "contract_id": "...",
    "logs": 42, "level": "info", "logger": "backend_energy.analytics...", "timestamp": "..."}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_contract(contract_id: str, name: str = "backend_energy") -> structlog.BoundLogger:
    """Logger with contract_id bound to every call (one per pipeline run)."""
    return get_logger(name).bind(contract_id=contract_id)
