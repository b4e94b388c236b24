"""
Event normalizer: ProtocolAction to Trade / LiquidityChange.

Scales raw amounts by decimals taken from the transaction's own token
balance records, assigns direction and stamps signature, slot and
timestamp. Never fetches anything; symbols are filled in later, if at all.
"""

from __future__ import annotations

from decimal import Decimal

from dex_parser.core.constants import QUOTE_MINTS, SOL_DECIMALS, SOL_MINT
from dex_parser.core.exceptions import DecodeError
from dex_parser.models import (
    LIQUIDITY_TYPE_BY_KIND,
    ActionKind,
    Direction,
    Leg,
    LiquidityChange,
    ProtocolAction,
    TokenAmount,
    Trade,
    TradeType,
)
from dex_parser.transaction.models import InstructionTree


def scale_amount(raw_amount: int, decimals: int) -> Decimal:
    """raw / 10^decimals, exact at the mint's decimal precision."""
    return Decimal(raw_amount).scaleb(-decimals)


def trade_type(input_mint: str, output_mint: str) -> TradeType:
    """BUY when paying with a quote token, SELL when receiving one, SWAP otherwise."""
    input_quote = input_mint in QUOTE_MINTS
    output_quote = output_mint in QUOTE_MINTS
    if input_quote and not output_quote:
        return TradeType.BUY
    if output_quote and not input_quote:
        return TradeType.SELL
    return TradeType.SWAP


def fee_amount(fee_lamports: int | None) -> TokenAmount | None:
    """The transaction fee as a SOL amount."""
    if fee_lamports is None:
        return None
    return TokenAmount(
        mint=SOL_MINT,
        raw_amount=fee_lamports,
        decimals=SOL_DECIMALS,
        amount=scale_amount(fee_lamports, SOL_DECIMALS),
    )


def _swap_sides(legs: tuple[Leg, ...]) -> tuple[Leg, Leg]:
    paid = [leg for leg in legs if leg.direction is Direction.IN]
    received = [leg for leg in legs if leg.direction is Direction.OUT]
    if not paid or not received:
        raise DecodeError("swap needs at least one input and one output leg")
    return paid[0], received[-1]


class Normalizer:
    """Normalizes the actions of one transaction; bound to its instruction tree."""

    def __init__(self, tree: InstructionTree) -> None:
        self._tree = tree

    def decimals_for(self, mint: str, hint: int | None = None) -> int:
        decimals = self._tree.decimals_for(mint)
        if decimals is not None:
            return decimals
        if mint == SOL_MINT:
            return SOL_DECIMALS
        if hint is not None:
            return hint
        raise DecodeError(f"decimals unavailable for mint {mint}")

    def token_amount(self, leg: Leg) -> TokenAmount:
        decimals = self.decimals_for(leg.mint, leg.decimals)
        return TokenAmount(
            mint=leg.mint,
            raw_amount=leg.raw_amount,
            decimals=decimals,
            amount=scale_amount(leg.raw_amount, decimals),
        )

    def fee_amount(self) -> TokenAmount | None:
        return fee_amount(self._tree.fee)

    def _stamp(self) -> dict:
        return {
            "signature": self._tree.signature,
            "slot": self._tree.slot,
            "timestamp": self._tree.block_time,
        }

    def to_trade(self, action: ProtocolAction, amm: str) -> Trade:
        if action.kind is not ActionKind.SWAP:
            raise ValueError(f"not a swap action: {action.kind}")
        paid, received = _swap_sides(action.legs)
        input_token = self.token_amount(paid)
        output_token = self.token_amount(received)
        return Trade(
            **self._stamp(),
            type=trade_type(input_token.mint, output_token.mint),
            user=action.user or self._tree.fee_payer,
            input_token=input_token,
            output_token=output_token,
            amm=amm,
            program_id=action.program_id,
            idx=self._tree[action.position].idx,
            fee=self.token_amount(action.fee) if action.fee else None,
        )

    def to_liquidity(self, action: ProtocolAction, amm: str) -> LiquidityChange:
        liquidity_type = LIQUIDITY_TYPE_BY_KIND.get(action.kind)
        if liquidity_type is None:
            raise ValueError(f"not a liquidity action: {action.kind}")
        if not action.legs:
            raise DecodeError("liquidity action has no legs")
        tokens = [self.token_amount(leg) for leg in action.legs]
        return LiquidityChange(
            **self._stamp(),
            type=liquidity_type,
            pool_id=action.pool_id,
            user=action.user or self._tree.fee_payer,
            amm=amm,
            program_id=action.program_id,
            idx=self._tree[action.position].idx,
            token0=tokens[0],
            token1=tokens[1] if len(tokens) > 1 else None,
            lp_token=self.token_amount(action.lp) if action.lp else None,
            extra_tokens=tuple(tokens[2:]),
        )
