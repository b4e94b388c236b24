"""
Pytest fixtures for dex_parser tests. Settings are re-read per test so
monkeypatched environment variables take effect.
"""

from __future__ import annotations

import pytest

from dex_parser import DexParser
from dex_parser.config.settings import get_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Clear cached settings and parser env vars around every test."""
    for name in (
        "DEX_PARSER_METADATA_RPC_URL",
        "DEX_PARSER_SYMBOL_TIMEOUT",
        "DEX_PARSER_THROW_ERROR",
        "HELIUS_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def parser():
    """Parser with every built-in decoder registered."""
    return DexParser()
