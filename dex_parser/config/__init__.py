"""
Configuration management for the DEX parser.

Loads settings from environment variables and an optional .env file at the
project root. Exposes a single source of truth for parser configuration.
"""

from dex_parser.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
