"""
Raydium AMM V4 decoder.

Native (non-Anchor) program with a 1-byte instruction index:
- swapBaseIn (9) / swapBaseOut (11): 17 accounts, or 18 with the
  legacy target-orders account. Executed amounts come from the vault
  transfers; the arguments only carry limits.
- swapBaseInV2 (16) / swapBaseOutV2 (17): the same swap without the
  OpenBook accounts (8 accounts: vaults at 3 and 4, user at 7).
- initialize2 (1): creates the pool; deposited amounts are arguments.
- deposit (3) / withdraw (4): amounts from vault transfers, LP mint/burn
  reported separately.
"""

from __future__ import annotations

from dex_parser.core.constants import (
    RAYDIUM_V4_DEPOSIT,
    RAYDIUM_V4_INITIALIZE2,
    RAYDIUM_V4_PASSIVE,
    RAYDIUM_V4_PROGRAM_ID,
    RAYDIUM_V4_SWAP_BASE_IN,
    RAYDIUM_V4_SWAP_BASE_OUT,
    RAYDIUM_V4_SWAP_BASE_IN_V2,
    RAYDIUM_V4_SWAP_BASE_OUT_V2,
    RAYDIUM_V4_WITHDRAW,
)
from dex_parser.core.exceptions import DecodeError
from dex_parser.decoders.base import (
    Decoder,
    LayoutReader,
    leg_from_transfer,
    lp_leg,
    require_accounts,
    transfer_into,
    transfer_out_of,
    unrecognized,
)
from dex_parser.models import ActionKind, Direction, Leg, ProtocolAction
from dex_parser.transaction.models import CanonicalInstruction, InstructionTree
from dex_parser.transaction.transfers import KIND_BURN, KIND_MINT_TO, TransferEvent

SWAP_ACCOUNTS = 17
SWAP_ACCOUNTS_WITH_TARGET_ORDERS = 18
SWAP_V2_ACCOUNTS = 8
INITIALIZE2_ACCOUNTS = 21
DEPOSIT_ACCOUNTS = 13
WITHDRAW_ACCOUNTS = 17


class RaydiumV4Decoder(Decoder):
    name = "RaydiumV4"
    program_ids = (RAYDIUM_V4_PROGRAM_ID,)

    def decode(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
    ) -> list[ProtocolAction]:
        if not ix.data:
            raise unrecognized("empty instruction data")
        opcode = ix.data[0]
        if opcode in (RAYDIUM_V4_SWAP_BASE_IN, RAYDIUM_V4_SWAP_BASE_OUT):
            return [self._swap(ix, transfers)]
        if opcode in (RAYDIUM_V4_SWAP_BASE_IN_V2, RAYDIUM_V4_SWAP_BASE_OUT_V2):
            return [self._swap_v2(ix, transfers)]
        if opcode == RAYDIUM_V4_INITIALIZE2:
            return [self._initialize2(ix, transfers)]
        if opcode == RAYDIUM_V4_DEPOSIT:
            return [self._deposit(ix, transfers)]
        if opcode == RAYDIUM_V4_WITHDRAW:
            return [self._withdraw(ix, transfers)]
        if opcode in RAYDIUM_V4_PASSIVE:
            return []
        raise unrecognized(f"opcode {opcode}")

    def _swap(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> ProtocolAction:
        require_accounts(ix, SWAP_ACCOUNTS)
        reader = LayoutReader(ix.data, 1)
        reader.u64()  # amount_in / max_amount_in
        reader.u64()  # minimum_amount_out / amount_out
        shift = 1 if len(ix.accounts) >= SWAP_ACCOUNTS_WITH_TARGET_ORDERS else 0
        vaults = (ix.accounts[4 + shift], ix.accounts[5 + shift])
        return self._vault_swap(ix, transfers, vaults, ix.accounts[16 + shift])

    def _swap_v2(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> ProtocolAction:
        require_accounts(ix, SWAP_V2_ACCOUNTS)
        reader = LayoutReader(ix.data, 1)
        reader.u64()  # amount_in / max_amount_in
        reader.u64()  # minimum_amount_out / amount_out
        return self._vault_swap(ix, transfers, (ix.accounts[3], ix.accounts[4]), ix.accounts[7])

    @staticmethod
    def _vault_swap(
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        vaults: tuple[str, str],
        user: str,
    ) -> ProtocolAction:
        paid = transfer_into(transfers, vaults)
        received = transfer_out_of(transfers, vaults)
        if paid is None or received is None:
            raise DecodeError("swap vault transfers missing")
        return ProtocolAction(
            kind=ActionKind.SWAP,
            program_id=ix.program_id,
            pool_id=ix.accounts[1],
            legs=(leg_from_transfer(paid, Direction.IN), leg_from_transfer(received, Direction.OUT)),
            position=ix.position,
            user=user,
        )

    def _initialize2(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> ProtocolAction:
        require_accounts(ix, INITIALIZE2_ACCOUNTS)
        reader = LayoutReader(ix.data, 1)
        reader.u8()  # nonce
        reader.u64()  # open_time
        init_pc_amount = reader.u64()
        init_coin_amount = reader.u64()
        lp_mint, coin_mint, pc_mint = ix.accounts[7], ix.accounts[8], ix.accounts[9]
        return ProtocolAction(
            kind=ActionKind.CREATE_POOL,
            program_id=ix.program_id,
            pool_id=ix.accounts[4],
            legs=(
                Leg(mint=coin_mint, raw_amount=init_coin_amount, direction=Direction.IN),
                Leg(mint=pc_mint, raw_amount=init_pc_amount, direction=Direction.IN),
            ),
            position=ix.position,
            user=ix.accounts[17],
            lp=lp_leg(transfers, lp_mint, KIND_MINT_TO, Direction.OUT),
        )

    def _deposit(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> ProtocolAction:
        require_accounts(ix, DEPOSIT_ACCOUNTS)
        lp_mint, coin_vault, pc_vault = ix.accounts[5], ix.accounts[6], ix.accounts[7]
        coin = transfer_into(transfers, (coin_vault,))
        pc = transfer_into(transfers, (pc_vault,))
        if coin is None or pc is None:
            raise DecodeError("deposit vault transfers missing")
        return ProtocolAction(
            kind=ActionKind.ADD_LIQUIDITY,
            program_id=ix.program_id,
            pool_id=ix.accounts[1],
            legs=(leg_from_transfer(coin, Direction.IN), leg_from_transfer(pc, Direction.IN)),
            position=ix.position,
            user=ix.accounts[12],
            lp=lp_leg(transfers, lp_mint, KIND_MINT_TO, Direction.OUT),
        )

    def _withdraw(self, ix: CanonicalInstruction, transfers: list[TransferEvent]) -> ProtocolAction:
        require_accounts(ix, WITHDRAW_ACCOUNTS)
        lp_mint, coin_vault, pc_vault = ix.accounts[5], ix.accounts[6], ix.accounts[7]
        coin = transfer_out_of(transfers, (coin_vault,))
        pc = transfer_out_of(transfers, (pc_vault,))
        if coin is None or pc is None:
            raise DecodeError("withdraw vault transfers missing")
        burned = lp_leg(transfers, lp_mint, KIND_BURN, Direction.IN)
        user = coin.destination_owner or pc.destination_owner
        if user is None:
            user = next((ev.authority for ev in transfers if ev.kind == KIND_BURN and ev.mint == lp_mint), None)
        return ProtocolAction(
            kind=ActionKind.REMOVE_LIQUIDITY,
            program_id=ix.program_id,
            pool_id=ix.accounts[1],
            legs=(leg_from_transfer(coin, Direction.OUT), leg_from_transfer(pc, Direction.OUT)),
            position=ix.position,
            user=user,
            lp=burned,
        )
