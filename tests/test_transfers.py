"""
Tests for the transfer extractor (decode_transfer, TransferExtractor).

Transfers are recognized by program id and discriminator at any depth and
reported in pre-order; extraction for a node never leaves its subtree.
"""

from __future__ import annotations

from dex_parser.core.constants import SOL_MINT, TOKEN_2022_PROGRAM_ID
from dex_parser.transaction import TransferExtractor, build_instruction_tree
from dex_parser.transaction.transfers import (
    KIND_BURN,
    KIND_MINT_TO,
    KIND_SYSTEM_TRANSFER,
    KIND_TRANSFER,
    KIND_TRANSFER_CHECKED,
)
from txbuilder import TxBuilder, addr, token_transfer_checked

USER = addr(1)
OTHER = addr(2)
PROGRAM_A = addr(10)
PROGRAM_B = addr(11)
MINT = addr(20)
LP_MINT = addr(21)
USER_ATA = addr(30)
POOL_ATA = addr(31)
USER_LP = addr(32)


def _tx() -> dict:
    b = TxBuilder(USER)
    first = b.instruction(PROGRAM_A, [USER])
    b.transfer(first, USER_ATA, POOL_ATA, USER, 250)
    b.inner_instruction(first, PROGRAM_B, [USER], b"\x07", stack_height=2)
    b.sol_transfer(first, USER, OTHER, 1_000, stack_height=3)
    b.mint_to(first, LP_MINT, USER_LP, OTHER, 9, stack_height=2)
    second = b.instruction(PROGRAM_A, [USER])
    b.burn(second, USER_LP, LP_MINT, USER, 4)
    b.inner_instruction(
        second,
        TOKEN_2022_PROGRAM_ID,
        [POOL_ATA, MINT, USER_ATA, OTHER],
        token_transfer_checked(77, 6),
    )
    b.token_balance(USER_ATA, MINT, USER, 6, 1_000, 827)
    b.token_balance(POOL_ATA, MINT, OTHER, 6, 0, 173)
    b.token_balance(USER_LP, LP_MINT, USER, 9, 0, 5)
    return b.build()


def test_all_transfers_in_pre_order():
    """Ordering of extracted transfers equals the arena's pre-order."""
    tree = build_instruction_tree(_tx())
    events = TransferExtractor(tree).extract_all()
    assert [ev.kind for ev in events] == [
        KIND_TRANSFER,
        KIND_SYSTEM_TRANSFER,
        KIND_MINT_TO,
        KIND_BURN,
        KIND_TRANSFER_CHECKED,
    ]
    positions = [ev.position for ev in events]
    assert positions == sorted(positions)


def test_plain_transfer_resolves_mint_from_balances():
    tree = build_instruction_tree(_tx())
    ev = TransferExtractor(tree).extract_all()[0]
    assert ev.mint == MINT
    assert ev.decimals == 6
    assert ev.raw_amount == 250
    assert ev.source == USER_ATA
    assert ev.destination == POOL_ATA
    assert ev.source_owner == USER
    assert ev.destination_owner == OTHER


def test_system_transfer_is_wrapped_sol():
    tree = build_instruction_tree(_tx())
    ev = TransferExtractor(tree).extract_all()[1]
    assert ev.mint == SOL_MINT
    assert ev.decimals == 9
    assert ev.raw_amount == 1_000
    assert (ev.source, ev.destination) == (USER, OTHER)


def test_mint_and_burn_have_one_sided_accounts():
    """mintTo has no source, burn has no destination."""
    tree = build_instruction_tree(_tx())
    events = TransferExtractor(tree).extract_all()
    minted, burned = events[2], events[3]
    assert minted.source is None
    assert minted.destination == USER_LP
    assert minted.mint == LP_MINT
    assert burned.destination is None
    assert burned.source == USER_LP
    assert burned.decimals == 9


def test_checked_transfer_carries_decimals_for_token_2022():
    tree = build_instruction_tree(_tx())
    ev = TransferExtractor(tree).extract_all()[-1]
    assert ev.program_id == TOKEN_2022_PROGRAM_ID
    assert ev.mint == MINT
    assert ev.decimals == 6
    assert ev.raw_amount == 77


def test_extract_stays_within_subtree():
    """A node's transfers never include those of its siblings."""
    tree = build_instruction_tree(_tx())
    extractor = TransferExtractor(tree)
    nested = tree[2]
    assert nested.program_id == PROGRAM_B
    assert [ev.kind for ev in extractor.extract(nested.position)] == [KIND_SYSTEM_TRANSFER]
    first = extractor.extract(0)
    assert len(first) == 3
    second_root = next(ix.position for ix in tree if ix.parent is None and ix.outer_index == 1)
    assert [ev.kind for ev in extractor.extract(second_root)] == [KIND_BURN, KIND_TRANSFER_CHECKED]


def test_non_transfer_instructions_ignored():
    """Unrelated program ids and non-transfer token opcodes produce no event."""
    b = TxBuilder(USER)
    outer = b.instruction(PROGRAM_A, [USER], b"\x03" + bytes(8))
    b.inner_instruction(outer, PROGRAM_B, [USER_ATA, POOL_ATA, USER], b"\x03" + bytes(8))
    tree = build_instruction_tree(b.build())
    assert TransferExtractor(tree).extract_all() == []


def test_to_dict_uses_wire_keys():
    tree = build_instruction_tree(_tx())
    out = TransferExtractor(tree).extract_all()[0].to_dict()
    assert out["type"] == "transfer"
    assert out["amountRaw"] == 250
    assert out["mint"] == MINT
    assert out["sourceOwner"] == USER
