"""
Raydium CPMM (constant-product, Anchor) decoder.

Swaps read the executed amounts from the vault transfers of their own
subtree. When those are absent, a vault touched by no other CPMM instruction
falls back to its balance delta over the transaction.
Pool creation reads the initial amounts from the arguments; deposit and
withdraw follow the vault transfers.
"""

from __future__ import annotations

from dex_parser.core.constants import (
    CPMM_DEPOSIT,
    CPMM_INITIALIZE,
    CPMM_PASSIVE,
    CPMM_SWAP_BASE_INPUT,
    CPMM_SWAP_BASE_OUTPUT,
    CPMM_WITHDRAW,
    RAYDIUM_CPMM_PROGRAM_ID,
)
from dex_parser.core.exceptions import DecodeError
from dex_parser.decoders.base import (
    Decoder,
    LayoutReader,
    anchor_discriminator_of,
    is_anchor_event,
    leg_from_transfer,
    lp_leg,
    require_accounts,
    transfer_into,
    transfer_out_of,
    unrecognized,
    vault_delta,
    vault_legs,
)
from dex_parser.models import ActionKind, Direction, Leg, ProtocolAction
from dex_parser.transaction.models import CanonicalInstruction, InstructionTree
from dex_parser.transaction.transfers import KIND_BURN, KIND_MINT_TO, TransferEvent

SWAP_ACCOUNTS = 13
INITIALIZE_ACCOUNTS = 20
DEPOSIT_ACCOUNTS = 13
WITHDRAW_ACCOUNTS = 13


class RaydiumCpmmDecoder(Decoder):
    name = "RaydiumCPMM"
    program_ids = (RAYDIUM_CPMM_PROGRAM_ID,)

    def decode(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
    ) -> list[ProtocolAction]:
        if is_anchor_event(ix):
            return []
        disc = anchor_discriminator_of(ix)
        if disc in (CPMM_SWAP_BASE_INPUT, CPMM_SWAP_BASE_OUTPUT):
            return [self._swap(ix, transfers, tree)]
        if disc == CPMM_INITIALIZE:
            return [self._initialize(ix, transfers)]
        if disc == CPMM_DEPOSIT:
            return [self._liquidity(ix, transfers, tree, ActionKind.ADD_LIQUIDITY)]
        if disc == CPMM_WITHDRAW:
            return [self._liquidity(ix, transfers, tree, ActionKind.REMOVE_LIQUIDITY)]
        if disc in CPMM_PASSIVE:
            return []
        raise unrecognized(f"discriminator {disc.hex()}")

    def _swap(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
    ) -> ProtocolAction:
        require_accounts(ix, SWAP_ACCOUNTS)
        reader = LayoutReader(ix.data, 8)
        reader.u64()  # amount_in / max_amount_in
        reader.u64()  # minimum_amount_out / amount_out
        input_vault, output_vault = ix.accounts[6], ix.accounts[7]
        paid = transfer_into(transfers, (input_vault,))
        received = transfer_out_of(transfers, (output_vault,))
        if paid is not None and received is not None:
            legs = (leg_from_transfer(paid, Direction.IN), leg_from_transfer(received, Direction.OUT))
        else:
            legs = self._delta_legs(ix, tree, input_vault, output_vault)
        return ProtocolAction(
            kind=ActionKind.SWAP,
            program_id=ix.program_id,
            pool_id=ix.accounts[3],
            legs=legs,
            position=ix.position,
            user=ix.accounts[0],
        )

    @staticmethod
    def _delta_legs(
        ix: CanonicalInstruction,
        tree: InstructionTree,
        input_vault: str,
        output_vault: str,
    ) -> tuple[Leg, Leg]:
        """Swap legs from the vaults' whole-transaction balance change."""
        users = sum(
            1
            for other in tree
            if other.program_id == ix.program_id and (input_vault in other.accounts or output_vault in other.accounts)
        )
        if users > 1:
            raise DecodeError("swap vault transfers missing and vault balances are shared with another instruction")
        input_mint, gained = vault_delta(tree, input_vault)
        output_mint, lost = vault_delta(tree, output_vault)
        if gained < 0 or lost > 0:
            raise DecodeError("vault balance deltas contradict swap direction")
        return (
            Leg(mint=input_mint, raw_amount=gained, direction=Direction.IN),
            Leg(mint=output_mint, raw_amount=-lost, direction=Direction.OUT),
        )

    def _initialize(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> ProtocolAction:
        require_accounts(ix, INITIALIZE_ACCOUNTS)
        reader = LayoutReader(ix.data, 8)
        init_amount_0 = reader.u64()
        init_amount_1 = reader.u64()
        reader.u64()  # open_time
        return ProtocolAction(
            kind=ActionKind.CREATE_POOL,
            program_id=ix.program_id,
            pool_id=ix.accounts[3],
            legs=(
                Leg(mint=ix.accounts[4], raw_amount=init_amount_0, direction=Direction.IN),
                Leg(mint=ix.accounts[5], raw_amount=init_amount_1, direction=Direction.IN),
            ),
            position=ix.position,
            user=ix.accounts[0],
            lp=lp_leg(transfers, ix.accounts[6], KIND_MINT_TO, Direction.OUT),
        )

    def _liquidity(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
        kind: ActionKind,
    ) -> ProtocolAction:
        require_accounts(ix, DEPOSIT_ACCOUNTS if kind is ActionKind.ADD_LIQUIDITY else WITHDRAW_ACCOUNTS)
        adding = kind is ActionKind.ADD_LIQUIDITY
        direction = Direction.IN if adding else Direction.OUT
        lp_mint = ix.accounts[12]
        return ProtocolAction(
            kind=kind,
            program_id=ix.program_id,
            pool_id=ix.accounts[2],
            legs=vault_legs(transfers, (ix.accounts[6], ix.accounts[7]), direction, tree),
            position=ix.position,
            user=ix.accounts[0],
            lp=lp_leg(
                transfers,
                lp_mint,
                KIND_MINT_TO if adding else KIND_BURN,
                Direction.OUT if adding else Direction.IN,
            ),
        )
