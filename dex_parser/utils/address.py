"""Address and instruction-data encoding utilities."""

from __future__ import annotations

import base64
from typing import Any

import base58
from solders.pubkey import Pubkey


def is_valid_pubkey(value: str) -> bool:
    """Return True if value is a valid base58 Solana public key."""
    try:
        Pubkey.from_string(value.strip())
        return True
    except (ValueError, TypeError):
        return False


def pubkey_from_bytes(raw: bytes) -> str:
    """Render a 32-byte public key as base58."""
    return str(Pubkey.from_bytes(raw))


def decode_instruction_data(data: Any) -> bytes:
    """
    Decode instruction data as returned by RPC.

    "json" encoding gives a base58 string; some clients return a
    [payload, "base64"] pair. Raises ValueError if neither decodes.
    """
    if data is None or data == "":
        return b""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, (list, tuple)) and len(data) == 2 and data[1] == "base64":
        try:
            return base64.b64decode(data[0], validate=True)
        except ValueError as e:
            raise ValueError(f"Could not decode base64 instruction data: {e}") from e
    if isinstance(data, str):
        try:
            return base58.b58decode(data)
        except ValueError as e:
            raise ValueError(f"Could not decode base58 instruction data: {e}") from e
    raise ValueError(f"Unsupported instruction data type: {type(data).__name__}")
