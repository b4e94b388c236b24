"""
Environment variable loading for the DEX parser.

- DEX_PARSER_METADATA_RPC_URL: RPC endpoint serving the DAS getAsset method (symbols)
- HELIUS_API_KEY: fallback for the metadata RPC URL
- DEX_PARSER_SYMBOL_TIMEOUT: seconds allowed per symbol lookup (default: 2.0)
- DEX_PARSER_THROW_ERROR: default error policy (default: collect, not raise)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is dex_parser/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
DEFAULT_SYMBOL_TIMEOUT_SEC = 2.0


def load_parser_env() -> None:
    """Load .env from project root. Safe to call multiple times."""
    load_dotenv(_ENV_PATH)


def get_metadata_rpc_url() -> str | None:
    """
    Resolve the metadata RPC URL from env.
    Order: DEX_PARSER_METADATA_RPC_URL > HELIUS_API_KEY > None (symbol lookup disabled).
    """
    load_parser_env()
    url = (os.getenv("DEX_PARSER_METADATA_RPC_URL") or "").strip()
    if url:
        return url
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return None


def get_symbol_timeout() -> float:
    """Return DEX_PARSER_SYMBOL_TIMEOUT in seconds; invalid or non-positive values fall back to the default."""
    load_parser_env()
    raw = (os.getenv("DEX_PARSER_SYMBOL_TIMEOUT") or "").strip()
    if not raw:
        return DEFAULT_SYMBOL_TIMEOUT_SEC
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_SYMBOL_TIMEOUT_SEC
    return value if value > 0 else DEFAULT_SYMBOL_TIMEOUT_SEC


def get_throw_error_default() -> bool:
    """Return True when DEX_PARSER_THROW_ERROR asks for the raising error policy."""
    load_parser_env()
    raw = (os.getenv("DEX_PARSER_THROW_ERROR") or "").strip().lower()
    return raw in ("1", "true", "yes", "on")


def mask_api_key(url: str) -> str:
    """Mask an api-key query parameter for logging."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
