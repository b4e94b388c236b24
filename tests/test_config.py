"""
Tests for parser configuration (config.env, config.settings).
"""

from __future__ import annotations

from dex_parser.config import get_settings
from dex_parser.config.env import (
    DEFAULT_SYMBOL_TIMEOUT_SEC,
    get_metadata_rpc_url,
    get_symbol_timeout,
    get_throw_error_default,
    mask_api_key,
)


def test_defaults():
    settings = get_settings()
    assert settings.metadata_rpc_url is None
    assert settings.symbol_timeout_sec == DEFAULT_SYMBOL_TIMEOUT_SEC
    assert settings.throw_error is False


def test_metadata_url_precedence(monkeypatch):
    """Explicit URL wins over the Helius key."""
    monkeypatch.setenv("HELIUS_API_KEY", "key123")
    assert get_metadata_rpc_url() == "https://mainnet.helius-rpc.com/?api-key=key123"
    monkeypatch.setenv("DEX_PARSER_METADATA_RPC_URL", "https://das.example")
    assert get_metadata_rpc_url() == "https://das.example"


def test_symbol_timeout_parsing(monkeypatch):
    monkeypatch.setenv("DEX_PARSER_SYMBOL_TIMEOUT", "0.75")
    assert get_symbol_timeout() == 0.75
    monkeypatch.setenv("DEX_PARSER_SYMBOL_TIMEOUT", "soon")
    assert get_symbol_timeout() == DEFAULT_SYMBOL_TIMEOUT_SEC
    monkeypatch.setenv("DEX_PARSER_SYMBOL_TIMEOUT", "-1")
    assert get_symbol_timeout() == DEFAULT_SYMBOL_TIMEOUT_SEC


def test_throw_error_flag(monkeypatch):
    for value, expected in (("1", True), ("YES", True), ("off", False), ("", False)):
        monkeypatch.setenv("DEX_PARSER_THROW_ERROR", value)
        assert get_throw_error_default() is expected


def test_settings_cached_until_cleared(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("DEX_PARSER_SYMBOL_TIMEOUT", "5")
    assert get_settings() is first
    get_settings.cache_clear()
    assert get_settings().symbol_timeout_sec == 5.0


def test_mask_api_key():
    assert mask_api_key("https://x/?api-key=secret") == "https://x/?api-key=***"
    assert mask_api_key("https://x/") == "https://x/"
