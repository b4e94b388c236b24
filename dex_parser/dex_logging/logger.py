"""
Parser log setup.

Every record carries event_type, level, timestamp and the emitting module;
per-transaction records also carry the signature, and decode failures the
program_id and idx of the instruction. Records go to stderr so stdout stays
free for callers that print parse results.

LOG_LEVEL picks the threshold (default INFO); LOG_FORMAT=json (default)
renders one JSON object per line, anything else the console renderer.
This module imports nothing from dex_parser.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Store the positional event under event_type, mirrored into message."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def _renderer() -> Any:
    if LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_timestamp,
            _event_type,
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger; pass the event type first and context as keywords:

        log = get_logger(__name__)
        log.info("decode_failed", program_id=pid, idx="2-1", reason="unrecognized layout")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_signature(signature: str | None) -> structlog.BoundLogger:
    """Logger for one transaction: signature is attached to every record."""
    return get_logger("dex_parser").bind(signature=signature)
