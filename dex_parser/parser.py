"""
Parser orchestrator: raw transaction -> ParseResult.

One parse call runs START -> DISPATCHING -> AGGREGATING -> DONE:
  - START: failed transactions (meta.err set) go straight to DONE with empty
    trades, liquidities and transfers; only the fee is reported.
  - DISPATCHING: build the instruction tree, walk it in pre-order and hand each
    instruction of a registered program to its decoder together with the
    transfers of its own subtree; normalize the resulting actions.
  - AGGREGATING: collapse multi-hop routes and assemble the result.

Decode failures follow the caller's ErrorPolicy; MalformedTransactionError
always propagates. A DexParser holds only its frozen registry, so one
instance may parse any number of transactions concurrently.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from dex_parser.collapser import collapse_routes
from dex_parser.config import get_settings
from dex_parser.core.exceptions import DecodeError
from dex_parser.decoders import build_default_registry
from dex_parser.decoders.registry import DecoderRegistry
from dex_parser.dex_logging.logger import bind_signature
from dex_parser.metadata import SymbolResolver, resolve_symbols
from dex_parser.models import ActionKind, LiquidityChange, ParseResult, Trade
from dex_parser.normalizer import Normalizer, fee_amount
from dex_parser.transaction import (
    InstructionTree,
    TransferEvent,
    TransferExtractor,
    build_instruction_tree,
    peek_outcome,
)


class ParseState(str, Enum):
    START = "start"
    DISPATCHING = "dispatching"
    AGGREGATING = "aggregating"
    DONE = "done"


@dataclass(frozen=True)
class ParseOptions:
    throw_error: bool = False
    """Raise the first DecodeError instead of collecting it into ParseResult.msg."""
    symbol_timeout: float | None = None
    """Per-mint symbol lookup timeout in seconds; None uses DEX_PARSER_SYMBOL_TIMEOUT."""

    @classmethod
    def coerce(cls, options: "ParseOptions | Mapping[str, Any] | None") -> "ParseOptions":
        """Accept ParseOptions, a {"throwError": ..., "symbolTimeout": ...} dict, or None."""
        if isinstance(options, ParseOptions):
            return options
        if options is None:
            return cls(throw_error=get_settings().throw_error)
        if isinstance(options, Mapping):
            throw_error = options.get("throwError", options.get("throw_error"))
            timeout = options.get("symbolTimeout", options.get("symbol_timeout"))
            return cls(
                throw_error=get_settings().throw_error if throw_error is None else bool(throw_error),
                symbol_timeout=float(timeout) if timeout is not None else None,
            )
        raise TypeError(f"unsupported parse options: {type(options).__name__}")


class ErrorPolicy:
    """Collects DecodeErrors, or raises the first one when raising=True."""

    def __init__(self, raising: bool = False) -> None:
        self.raising = raising
        self.errors: list[DecodeError] = []

    @classmethod
    def from_options(cls, options: ParseOptions) -> "ErrorPolicy":
        return cls(raising=options.throw_error)

    def handle(self, error: DecodeError) -> None:
        if self.raising:
            raise error
        self.errors.append(error)

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def message(self) -> str | None:
        if not self.errors:
            return None
        return "; ".join(e.describe() for e in self.errors)


class DexParser:
    """
    Entry point: parse_all / parse_trades / parse_liquidity / parse_transfers.

    The registry defaults to every built-in decoder and is frozen on construction.
    """

    def __init__(self, registry: DecoderRegistry | None = None) -> None:
        self.registry = (registry or build_default_registry()).freeze()

    def parse_all(
        self,
        tx: dict[str, Any],
        options: ParseOptions | Mapping[str, Any] | None = None,
    ) -> ParseResult:
        opts = ParseOptions.coerce(options)
        policy = ErrorPolicy.from_options(opts)
        failed, fee_lamports = peek_outcome(tx)
        if failed:
            log = bind_signature(_signature_of(tx))
            log.debug("parse_state", state=ParseState.DONE.value, reason="transaction_failed")
            return ParseResult(fee=fee_amount(fee_lamports))

        tree = build_instruction_tree(tx)
        log = bind_signature(tree.signature)
        log.debug("parse_state", state=ParseState.START.value, instruction_count=len(tree))

        log.debug("parse_state", state=ParseState.DISPATCHING.value)
        extractor = TransferExtractor(tree)
        normalizer = Normalizer(tree)
        trades: list[Trade] = []
        liquidities: list[LiquidityChange] = []
        routers: dict[str, tuple[str, str]] = {}

        for ix in tree:
            decoder = self.registry.get(ix.program_id)
            if decoder is None:
                continue
            # an instruction contributes all of its records or none
            ix_trades: list[Trade] = []
            ix_liquidities: list[LiquidityChange] = []
            try:
                for action in decoder.decode(ix, extractor.extract(ix.position), tree):
                    if action.kind is ActionKind.SWAP:
                        ix_trades.append(normalizer.to_trade(action, decoder.name))
                    else:
                        ix_liquidities.append(normalizer.to_liquidity(action, decoder.name))
            except DecodeError as e:
                located = e.located(ix.program_id, ix.idx)
                log.info("decode_failed", program_id=ix.program_id, idx=ix.idx, reason=located.reason)
                policy.handle(located)
                continue
            router = self._enclosing_router(tree, ix.position)
            if router is not None:
                routers.update((trade.idx, router) for trade in ix_trades)
            trades.extend(ix_trades)
            liquidities.extend(ix_liquidities)

        log.debug("parse_state", state=ParseState.AGGREGATING.value, trades=len(trades), liquidities=len(liquidities))
        result = ParseResult(
            trades=collapse_routes(trades, routers),
            liquidities=liquidities,
            transfers=extractor.extract_all(),
            fee=normalizer.fee_amount(),
            state=not policy.failed,
            msg=policy.message,
        )
        log.debug("parse_state", state=ParseState.DONE.value, ok=result.state)
        return result

    def parse_trades(
        self,
        tx: dict[str, Any],
        options: ParseOptions | Mapping[str, Any] | None = None,
    ) -> list[Trade]:
        return self.parse_all(tx, options).trades

    def parse_liquidity(
        self,
        tx: dict[str, Any],
        options: ParseOptions | Mapping[str, Any] | None = None,
    ) -> list[LiquidityChange]:
        return self.parse_all(tx, options).liquidities

    def parse_transfers(
        self,
        tx: dict[str, Any],
        options: ParseOptions | Mapping[str, Any] | None = None,
    ) -> list[TransferEvent]:
        return self.parse_all(tx, options).transfers

    async def parse_all_with_symbols(
        self,
        tx: dict[str, Any],
        resolver: SymbolResolver,
        options: ParseOptions | Mapping[str, Any] | None = None,
    ) -> ParseResult:
        """parse_all, then fill token symbols from resolver (best effort, "UNK" on failure)."""
        opts = ParseOptions.coerce(options)
        result = self.parse_all(tx, opts)
        return await resolve_symbols(result, resolver, timeout=opts.symbol_timeout)

    def _enclosing_router(self, tree: InstructionTree, position: int) -> tuple[str, str] | None:
        for parent in tree.ancestors(position):
            if self.registry.is_router(parent.program_id):
                return self.registry.name_of(parent.program_id) or "", parent.program_id
        return None


def _signature_of(tx: dict[str, Any]) -> str | None:
    obj = tx
    for envelope in ("result", "value"):
        if isinstance(obj, dict) and envelope in obj and "transaction" not in obj:
            obj = obj[envelope]
    tx_obj = obj.get("transaction") if isinstance(obj, dict) else None
    signatures = tx_obj.get("signatures") if isinstance(tx_obj, dict) else None
    return signatures[0] if signatures else None
