"""
Token symbol lookup: the optional, best-effort metadata collaborator.

Symbols never take part in amount computation. After a parse, the distinct
mints of the result are looked up once each, concurrently, each bounded by a
timeout; any failure, timeout or unknown mint degrades to "UNK".
"""

from __future__ import annotations

import asyncio
import dataclasses
import itertools
from typing import Any, Mapping, Protocol

import httpx

from dex_parser.config import get_settings
from dex_parser.config.env import mask_api_key
from dex_parser.core.constants import KNOWN_SYMBOLS, UNKNOWN_SYMBOL
from dex_parser.dex_logging import get_logger
from dex_parser.models import LiquidityChange, ParseResult, TokenAmount, Trade

logger = get_logger(__name__)

_request_ids = itertools.count(1)


class SymbolResolver(Protocol):
    async def lookup_symbol(self, mint: str) -> str | None:
        """Return the symbol for mint, or None when unavailable."""
        ...


class StaticSymbolResolver:
    """Resolver backed by a fixed mapping (defaults to SOL / USDC / USDT)."""

    def __init__(self, symbols: Mapping[str, str] | None = None) -> None:
        self._symbols = dict(KNOWN_SYMBOLS)
        self._symbols.update(symbols or {})

    async def lookup_symbol(self, mint: str) -> str | None:
        return self._symbols.get(mint)


def _symbol_from_asset(asset: Any) -> str | None:
    """Pull the symbol out of a DAS getAsset result; handles missing keys safely."""
    if not isinstance(asset, dict):
        return None
    content = asset.get("content") or {}
    if not isinstance(content, dict):
        content = {}
    metadata = content.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    symbol = (metadata.get("symbol") or "").strip()
    if not symbol:
        token_info = asset.get("token_info") or {}
        if isinstance(token_info, dict):
            symbol = (token_info.get("symbol") or "").strip()
    return symbol or None


class DasSymbolResolver:
    """
    Resolver calling the DAS getAsset JSON-RPC method (e.g. a Helius endpoint).

    Static symbols are answered locally; everything else costs one HTTP request.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        request_timeout_sec: float = 10.0,
    ) -> None:
        url = rpc_url or get_settings().metadata_rpc_url
        if not url:
            raise ValueError("rpc_url must be set (or DEX_PARSER_METADATA_RPC_URL / HELIUS_API_KEY)")
        self._rpc_url = url
        self._client = client
        self._request_timeout = request_timeout_sec
        self._static = StaticSymbolResolver()

    async def lookup_symbol(self, mint: str) -> str | None:
        known = await self._static.lookup_symbol(mint)
        if known is not None:
            return known
        body = {
            "jsonrpc": "2.0",
            "id": next(_request_ids),
            "method": "getAsset",
            "params": {"id": mint},
        }
        if self._client is not None:
            resp = await self._client.post(self._rpc_url, json=body, timeout=self._request_timeout)
        else:
            async with httpx.AsyncClient(timeout=self._request_timeout) as client:
                resp = await client.post(self._rpc_url, json=body)
        resp.raise_for_status()
        data = resp.json()
        if data.get("error"):
            logger.debug("symbol_lookup_rpc_error", mint=mint, rpc=mask_api_key(self._rpc_url), error=data["error"])
            return None
        return _symbol_from_asset(data.get("result"))


async def _lookup(resolver: SymbolResolver, mint: str, timeout: float) -> str:
    try:
        symbol = await asyncio.wait_for(resolver.lookup_symbol(mint), timeout=timeout)
    except asyncio.TimeoutError:
        logger.info("symbol_lookup_timeout", mint=mint, timeout_sec=timeout)
        return UNKNOWN_SYMBOL
    except Exception as e:  # best-effort: any resolver failure degrades to UNK
        logger.info("symbol_lookup_failed", mint=mint, error=str(e))
        return UNKNOWN_SYMBOL
    return symbol or UNKNOWN_SYMBOL


def _with_symbol(token: TokenAmount | None, symbols: Mapping[str, str]) -> TokenAmount | None:
    if token is None:
        return None
    return dataclasses.replace(token, symbol=symbols.get(token.mint, UNKNOWN_SYMBOL))


def _trade_with_symbols(trade: Trade, symbols: Mapping[str, str]) -> Trade:
    return dataclasses.replace(
        trade,
        input_token=_with_symbol(trade.input_token, symbols),
        output_token=_with_symbol(trade.output_token, symbols),
        fee=_with_symbol(trade.fee, symbols),
    )


def _liquidity_with_symbols(change: LiquidityChange, symbols: Mapping[str, str]) -> LiquidityChange:
    return dataclasses.replace(
        change,
        token0=_with_symbol(change.token0, symbols),
        token1=_with_symbol(change.token1, symbols),
        lp_token=_with_symbol(change.lp_token, symbols),
        extra_tokens=tuple(_with_symbol(t, symbols) for t in change.extra_tokens),
    )


def _mints_of(result: ParseResult) -> list[str]:
    mints: dict[str, None] = {}
    for trade in result.trades:
        for token in (trade.input_token, trade.output_token, trade.fee):
            if token is not None:
                mints[token.mint] = None
    for change in result.liquidities:
        for token in (change.token0, change.token1, change.lp_token, *change.extra_tokens):
            if token is not None:
                mints[token.mint] = None
    return list(mints)


async def resolve_symbols(
    result: ParseResult,
    resolver: SymbolResolver,
    *,
    timeout: float | None = None,
) -> ParseResult:
    """
    Return a copy of result with symbols on every trade and liquidity token.

    Each distinct mint is looked up once; lookups run concurrently, each
    bounded by timeout (default from settings) and degrading to "UNK".
    """
    if timeout is None:
        timeout = get_settings().symbol_timeout_sec
    mints = _mints_of(result)
    found = await asyncio.gather(*(_lookup(resolver, mint, timeout) for mint in mints))
    symbols = dict(zip(mints, found))
    return dataclasses.replace(
        result,
        trades=[_trade_with_symbols(t, symbols) for t in result.trades],
        liquidities=[_liquidity_with_symbols(c, symbols) for c in result.liquidities],
    )
