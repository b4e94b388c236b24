"""
Data models for parser output and the intermediate protocol actions.

ProtocolAction is what a decoder produces; the normalizer turns it into a
Trade or LiquidityChange. to_dict() on the output records is the wire
contract: camelCase keys, optional fields omitted when absent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from dex_parser.transaction.transfers import TransferEvent


class ActionKind(str, Enum):
    SWAP = "Swap"
    ADD_LIQUIDITY = "AddLiquidity"
    REMOVE_LIQUIDITY = "RemoveLiquidity"
    CREATE_POOL = "CreatePool"


class Direction(str, Enum):
    """Leg direction from the pool's point of view of the user: IN = paid by user, OUT = received."""

    IN = "in"
    OUT = "out"


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    SWAP = "SWAP"


class LiquidityType(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    CREATE = "CREATE"


LIQUIDITY_TYPE_BY_KIND = {
    ActionKind.ADD_LIQUIDITY: LiquidityType.ADD,
    ActionKind.REMOVE_LIQUIDITY: LiquidityType.REMOVE,
    ActionKind.CREATE_POOL: LiquidityType.CREATE,
}


@dataclass(frozen=True)
class Leg:
    """One token movement of a protocol action."""

    mint: str
    raw_amount: int
    direction: Direction
    decimals: int | None = None
    """Decimals carried by a checked transfer, if any; the normalizer prefers balance records."""


@dataclass(frozen=True)
class ProtocolAction:
    """
    A decoded DEX action, before normalization.

    Transient: produced by a decoder for one instruction and consumed
    immediately by the normalizer.
    """

    kind: ActionKind
    program_id: str
    pool_id: str | None
    legs: tuple[Leg, ...]
    position: int
    """Arena position of the instruction that produced the action."""
    user: str | None = None
    fee: Leg | None = None
    lp: Leg | None = None
    """LP token minted (add/create) or burned (remove)."""


@dataclass(frozen=True)
class TokenAmount:
    """A token quantity, raw and scaled by the mint's decimals."""

    mint: str
    raw_amount: int
    decimals: int
    amount: Decimal
    """Exact raw / 10^decimals; rendered as a fixed-point string on the wire."""
    symbol: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "mint": self.mint,
            "amount": format(self.amount, "f"),
            "amountRaw": self.raw_amount,
            "decimals": self.decimals,
        }
        if self.symbol is not None:
            out["symbol"] = self.symbol
        return out


@dataclass(frozen=True)
class Trade:
    """A normalized swap, either one hop or a synthesized multi-hop route."""

    signature: str | None
    slot: int | None
    timestamp: int | None
    type: TradeType
    user: str | None
    input_token: TokenAmount
    output_token: TokenAmount
    amm: str
    program_id: str
    idx: str
    """Position of the originating instruction ("3" or "3-1")."""
    route: int | None = None
    """Route ordinal; set only on trades synthesized by the collapser."""
    fee: TokenAmount | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type.value,
            "user": self.user,
            "inputToken": self.input_token.to_dict(),
            "outputToken": self.output_token.to_dict(),
            "amm": self.amm,
            "programId": self.program_id,
            "idx": self.idx,
            "signature": self.signature,
            "slot": self.slot,
            "timestamp": self.timestamp,
        }
        if self.route is not None:
            out["route"] = self.route
        if self.fee is not None:
            out["fee"] = self.fee.to_dict()
        return out


@dataclass(frozen=True)
class LiquidityChange:
    """A normalized liquidity add, remove or pool creation."""

    signature: str | None
    slot: int | None
    timestamp: int | None
    type: LiquidityType
    pool_id: str | None
    user: str | None
    amm: str
    program_id: str
    idx: str
    token0: TokenAmount
    token1: TokenAmount | None = None
    lp_token: TokenAmount | None = None
    extra_tokens: tuple[TokenAmount, ...] = ()
    """Legs beyond the second, for multi-token pools, in listed order."""

    @property
    def token0_mint(self) -> str:
        return self.token0.mint

    @property
    def token0_amount(self) -> Decimal:
        return self.token0.amount

    @property
    def token1_mint(self) -> str | None:
        return self.token1.mint if self.token1 else None

    @property
    def token1_amount(self) -> Decimal | None:
        return self.token1.amount if self.token1 else None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type.value,
            "poolId": self.pool_id,
            "user": self.user,
            "amm": self.amm,
            "programId": self.program_id,
            "idx": self.idx,
            "token0": self.token0.to_dict(),
            "signature": self.signature,
            "slot": self.slot,
            "timestamp": self.timestamp,
        }
        if self.token1 is not None:
            out["token1"] = self.token1.to_dict()
        if self.lp_token is not None:
            out["lpToken"] = self.lp_token.to_dict()
        if self.extra_tokens:
            out["extraTokens"] = [t.to_dict() for t in self.extra_tokens]
        return out


@dataclass
class ParseResult:
    """Everything extracted from one transaction."""

    trades: list[Trade] = field(default_factory=list)
    liquidities: list[LiquidityChange] = field(default_factory=list)
    transfers: list[TransferEvent] = field(default_factory=list)
    fee: TokenAmount | None = None
    """Transaction fee paid in SOL."""
    state: bool = True
    msg: str | None = None
    """Concatenated decode failures; present only when state is False."""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "state": self.state,
            "fee": self.fee.to_dict() if self.fee else None,
            "trades": [t.to_dict() for t in self.trades],
            "liquidities": [l.to_dict() for l in self.liquidities],
            "transfers": [t.to_dict() for t in self.transfers],
        }
        if self.msg is not None:
            out["msg"] = self.msg
        return out
