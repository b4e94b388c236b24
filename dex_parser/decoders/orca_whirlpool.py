"""
Orca Whirlpool (concentrated liquidity, Anchor) decoder.

swap / swapV2 carry the direction (a_to_b) in their arguments; executed
amounts come from the vault transfers. twoHopSwap and twoHopSwapV2 yield
one swap action per pool; the V2 accounts name the vaults by role (input,
intermediate, output) instead of by token A/B. Liquidity changes follow
the vault transfers; a position out of range may legitimately move only
one of the two tokens.
"""

from __future__ import annotations

from dex_parser.core.constants import (
    WHIRLPOOL_DECREASE_LIQUIDITY,
    WHIRLPOOL_DECREASE_LIQUIDITY_V2,
    WHIRLPOOL_INCREASE_LIQUIDITY,
    WHIRLPOOL_INCREASE_LIQUIDITY_V2,
    WHIRLPOOL_PASSIVE,
    WHIRLPOOL_PROGRAM_ID,
    WHIRLPOOL_SWAP,
    WHIRLPOOL_SWAP_V2,
    WHIRLPOOL_TWO_HOP_SWAP,
    WHIRLPOOL_TWO_HOP_SWAP_V2,
)
from dex_parser.core.exceptions import DecodeError
from dex_parser.decoders.base import (
    Decoder,
    LayoutReader,
    anchor_discriminator_of,
    is_anchor_event,
    leg_from_transfer,
    require_accounts,
    transfer_into,
    transfer_out_of,
    unrecognized,
    vault_legs,
)
from dex_parser.models import ActionKind, Direction, ProtocolAction
from dex_parser.transaction.models import CanonicalInstruction, InstructionTree
from dex_parser.transaction.transfers import TransferEvent

# (min accounts, authority, whirlpool, vault_a, vault_b)
SWAP_LAYOUT = (11, 1, 2, 4, 6)
SWAP_V2_LAYOUT = (15, 3, 4, 8, 10)
# (min accounts, position_authority, vault_a, vault_b)
LIQUIDITY_LAYOUT = (11, 2, 7, 8)
LIQUIDITY_V2_LAYOUT = (15, 4, 11, 12)
TWO_HOP_ACCOUNTS = 20
TWO_HOP_V2_ACCOUNTS = 24


class OrcaWhirlpoolDecoder(Decoder):
    name = "Orca"
    program_ids = (WHIRLPOOL_PROGRAM_ID,)

    def decode(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
    ) -> list[ProtocolAction]:
        if is_anchor_event(ix):
            return []
        disc = anchor_discriminator_of(ix)
        if disc == WHIRLPOOL_SWAP:
            return [self._swap(ix, transfers, SWAP_LAYOUT)]
        if disc == WHIRLPOOL_SWAP_V2:
            return [self._swap(ix, transfers, SWAP_V2_LAYOUT)]
        if disc == WHIRLPOOL_TWO_HOP_SWAP:
            return self._two_hop_swap(ix, transfers)
        if disc == WHIRLPOOL_TWO_HOP_SWAP_V2:
            return self._two_hop_swap_v2(ix, transfers)
        if disc == WHIRLPOOL_INCREASE_LIQUIDITY:
            return [self._liquidity(ix, transfers, tree, LIQUIDITY_LAYOUT, ActionKind.ADD_LIQUIDITY)]
        if disc == WHIRLPOOL_INCREASE_LIQUIDITY_V2:
            return [self._liquidity(ix, transfers, tree, LIQUIDITY_V2_LAYOUT, ActionKind.ADD_LIQUIDITY)]
        if disc == WHIRLPOOL_DECREASE_LIQUIDITY:
            return [self._liquidity(ix, transfers, tree, LIQUIDITY_LAYOUT, ActionKind.REMOVE_LIQUIDITY)]
        if disc == WHIRLPOOL_DECREASE_LIQUIDITY_V2:
            return [self._liquidity(ix, transfers, tree, LIQUIDITY_V2_LAYOUT, ActionKind.REMOVE_LIQUIDITY)]
        if disc in WHIRLPOOL_PASSIVE:
            return []
        raise unrecognized(f"discriminator {disc.hex()}")

    @staticmethod
    def _hop(
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        pool: str,
        vault_a: str,
        vault_b: str,
        a_to_b: bool,
        user: str,
    ) -> ProtocolAction:
        vault_in, vault_out = (vault_a, vault_b) if a_to_b else (vault_b, vault_a)
        paid = transfer_into(transfers, (vault_in,))
        received = transfer_out_of(transfers, (vault_out,))
        if paid is None or received is None:
            raise DecodeError(f"swap vault transfers missing for pool {pool}")
        return ProtocolAction(
            kind=ActionKind.SWAP,
            program_id=ix.program_id,
            pool_id=pool,
            legs=(leg_from_transfer(paid, Direction.IN), leg_from_transfer(received, Direction.OUT)),
            position=ix.position,
            user=user,
        )

    def _swap(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        layout: tuple[int, int, int, int, int],
    ) -> ProtocolAction:
        min_accounts, authority, pool, vault_a, vault_b = layout
        require_accounts(ix, min_accounts)
        reader = LayoutReader(ix.data, 8)
        reader.u64()  # amount
        reader.u64()  # other_amount_threshold
        reader.u128()  # sqrt_price_limit
        reader.boolean()  # amount_specified_is_input
        a_to_b = reader.boolean()
        return self._hop(
            ix,
            transfers,
            ix.accounts[pool],
            ix.accounts[vault_a],
            ix.accounts[vault_b],
            a_to_b,
            ix.accounts[authority],
        )

    def _two_hop_swap(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> list[ProtocolAction]:
        require_accounts(ix, TWO_HOP_ACCOUNTS)
        reader = LayoutReader(ix.data, 8)
        reader.u64()  # amount
        reader.u64()  # other_amount_threshold
        reader.boolean()  # amount_specified_is_input
        a_to_b_one = reader.boolean()
        a_to_b_two = reader.boolean()
        reader.u128()  # sqrt_price_limit_one
        reader.u128()  # sqrt_price_limit_two
        a = ix.accounts
        return [
            self._hop(ix, transfers, a[2], a[5], a[7], a_to_b_one, a[1]),
            self._hop(ix, transfers, a[3], a[9], a[11], a_to_b_two, a[1]),
        ]

    def _two_hop_swap_v2(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> list[ProtocolAction]:
        require_accounts(ix, TWO_HOP_V2_ACCOUNTS)
        reader = LayoutReader(ix.data, 8)
        reader.u64()  # amount
        reader.u64()  # other_amount_threshold
        reader.boolean()  # amount_specified_is_input
        reader.boolean()  # a_to_b_one
        reader.boolean()  # a_to_b_two
        a = ix.accounts
        # vaults: one_input 9, one_intermediate 10, two_intermediate 11, two_output 12
        return [
            self._hop(ix, transfers, a[0], a[9], a[10], True, a[14]),
            self._hop(ix, transfers, a[1], a[11], a[12], True, a[14]),
        ]

    def _liquidity(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
        layout: tuple[int, int, int, int],
        kind: ActionKind,
    ) -> ProtocolAction:
        min_accounts, authority, vault_a, vault_b = layout
        require_accounts(ix, min_accounts)
        reader = LayoutReader(ix.data, 8)
        reader.u128()  # liquidity_amount
        reader.u64()  # token_max_a / token_min_a
        reader.u64()  # token_max_b / token_min_b
        direction = Direction.IN if kind is ActionKind.ADD_LIQUIDITY else Direction.OUT
        return ProtocolAction(
            kind=kind,
            program_id=ix.program_id,
            pool_id=ix.accounts[0],
            legs=vault_legs(
                transfers,
                (ix.accounts[vault_a], ix.accounts[vault_b]),
                direction,
                tree,
                allow_missing=True,
            ),
            position=ix.position,
            user=ix.accounts[authority],
        )
