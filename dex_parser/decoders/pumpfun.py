"""
Pump.fun bonding-curve decoder.

Argument driven: buy/sell arguments only carry slippage limits, but the
program emits a TradeEvent through an Anchor self-CPI inside the same
subtree, and that event carries the executed sol_amount and token_amount.
The platform fee on buys is the System transfer to the fee recipient.
"""

from __future__ import annotations

from dataclasses import dataclass

from dex_parser.core.constants import (
    ANCHOR_EVENT_IX_TAG,
    PUMPFUN_BUY,
    PUMPFUN_PASSIVE,
    PUMPFUN_PROGRAM_ID,
    PUMPFUN_SELL,
    PUMPFUN_TRADE_EVENT,
    SOL_DECIMALS,
    SOL_MINT,
)
from dex_parser.core.exceptions import DecodeError
from dex_parser.decoders.base import (
    Decoder,
    LayoutReader,
    anchor_discriminator_of,
    is_anchor_event,
    require_accounts,
    unrecognized,
)
from dex_parser.models import ActionKind, Direction, Leg, ProtocolAction
from dex_parser.transaction.models import CanonicalInstruction, InstructionTree
from dex_parser.transaction.transfers import KIND_SYSTEM_TRANSFER, TransferEvent

TRADE_ACCOUNTS = 10
TRADE_EVENT_PREFIX = ANCHOR_EVENT_IX_TAG + PUMPFUN_TRADE_EVENT


@dataclass(frozen=True)
class TradeEvent:
    mint: str
    sol_amount: int
    token_amount: int
    is_buy: bool
    user: str
    timestamp: int


def decode_trade_event(data: bytes) -> TradeEvent:
    """Decode a TradeEvent self-CPI payload (tag + event discriminator + Borsh fields)."""
    if data[:16] != TRADE_EVENT_PREFIX:
        raise unrecognized("not a TradeEvent")
    reader = LayoutReader(data, 16)
    return TradeEvent(
        mint=reader.pubkey(),
        sol_amount=reader.u64(),
        token_amount=reader.u64(),
        is_buy=reader.boolean(),
        user=reader.pubkey(),
        timestamp=reader.i64(),
    )


class PumpfunDecoder(Decoder):
    name = "Pumpfun"
    program_ids = (PUMPFUN_PROGRAM_ID,)

    def decode(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
    ) -> list[ProtocolAction]:
        if is_anchor_event(ix):
            return []
        disc = anchor_discriminator_of(ix)
        if disc == PUMPFUN_BUY:
            return [self._trade(ix, transfers, tree, is_buy=True)]
        if disc == PUMPFUN_SELL:
            return [self._trade(ix, transfers, tree, is_buy=False)]
        if disc in PUMPFUN_PASSIVE:
            return []
        raise unrecognized(f"discriminator {disc.hex()}")

    def _find_event(self, ix: CanonicalInstruction, tree: InstructionTree) -> TradeEvent:
        for node in tree.subtree(ix.position)[1:]:
            if node.program_id in self.program_ids and node.data[:16] == TRADE_EVENT_PREFIX:
                return decode_trade_event(node.data)
        raise DecodeError("trade event absent from instruction subtree")

    def _trade(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
        *,
        is_buy: bool,
    ) -> ProtocolAction:
        require_accounts(ix, TRADE_ACCOUNTS)
        reader = LayoutReader(ix.data, 8)
        reader.u64()  # amount
        reader.u64()  # max_sol_cost / min_sol_output
        mint, fee_recipient = ix.accounts[2], ix.accounts[1]

        event = self._find_event(ix, tree)
        if event.mint != mint or event.is_buy != is_buy:
            raise DecodeError("trade event does not match instruction")

        sol = Leg(mint=SOL_MINT, raw_amount=event.sol_amount, direction=Direction.IN, decimals=SOL_DECIMALS)
        token = Leg(mint=mint, raw_amount=event.token_amount, direction=Direction.OUT)
        if not is_buy:
            sol = Leg(mint=SOL_MINT, raw_amount=event.sol_amount, direction=Direction.OUT, decimals=SOL_DECIMALS)
            token = Leg(mint=mint, raw_amount=event.token_amount, direction=Direction.IN)

        fee = None
        for ev in transfers:
            if ev.kind == KIND_SYSTEM_TRANSFER and ev.destination == fee_recipient:
                fee = Leg(mint=SOL_MINT, raw_amount=ev.raw_amount, direction=Direction.IN, decimals=SOL_DECIMALS)
                break

        return ProtocolAction(
            kind=ActionKind.SWAP,
            program_id=ix.program_id,
            pool_id=ix.accounts[3],
            legs=(sol, token) if is_buy else (token, sol),
            position=ix.position,
            user=event.user,
            fee=fee,
        )
