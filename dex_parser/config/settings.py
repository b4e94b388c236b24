"""
Parser settings.

Typed view over the environment (see env.py) shared by the parser and the
metadata resolver. Cached; call get_settings.cache_clear() after changing env in tests.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

from dex_parser.config.env import (
    get_metadata_rpc_url,
    get_symbol_timeout,
    get_throw_error_default,
)


@dataclass(frozen=True)
class Settings:
    """Resolved parser configuration."""

    metadata_rpc_url: str | None
    """DAS-capable RPC endpoint for symbol lookup; None disables remote lookup."""
    symbol_timeout_sec: float
    """Per-mint timeout for the async symbol lookup."""
    throw_error: bool
    """Default error policy when ParseOptions does not say otherwise."""


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the current parser settings."""
    return Settings(
        metadata_rpc_url=get_metadata_rpc_url(),
        symbol_timeout_sec=get_symbol_timeout(),
        throw_error=get_throw_error_default(),
    )
