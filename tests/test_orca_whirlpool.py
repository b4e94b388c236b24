"""
Tests for the Orca Whirlpool decoder: swap direction from a_to_b, two-hop
swaps (V1 and V2), one-sided liquidity changes and instructions that move
no swap value.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from dex_parser.core.constants import (
    SOL_MINT,
    USDC_MINT,
    WHIRLPOOL_INCREASE_LIQUIDITY,
    WHIRLPOOL_PROGRAM_ID,
    WHIRLPOOL_SWAP,
    WHIRLPOOL_TWO_HOP_SWAP,
    WHIRLPOOL_TWO_HOP_SWAP_V2,
    anchor_discriminator,
)
from dex_parser.models import LiquidityType, TradeType
from txbuilder import TxBuilder, addr, u64

USER = addr(1)
POOL = addr(3)
POOL_TWO = addr(4)
TOKEN_MINT = addr(20)
VAULT_A = addr(40)
VAULT_B = addr(41)
VAULT_C = addr(42)
VAULT_D = addr(43)
USER_A = addr(50)
USER_B = addr(51)
USER_C = addr(52)


def _u128(value: int) -> bytes:
    return u64(value & (2 ** 64 - 1)) + u64(value >> 64)


def _swap_data(a_to_b: bool) -> bytes:
    return WHIRLPOOL_SWAP + u64(1_000) + u64(0) + _u128(4295048016) + bytes([1, int(a_to_b)])


def _swap_accounts() -> list[str]:
    accounts = [addr(100 + i) for i in range(11)]
    accounts[1] = USER
    accounts[2] = POOL
    accounts[3] = USER_A
    accounts[4] = VAULT_A
    accounts[5] = USER_B
    accounts[6] = VAULT_B
    return accounts


def _balances(b: TxBuilder) -> TxBuilder:
    b.token_balance(VAULT_A, SOL_MINT, POOL, 9, 10 ** 12, 10 ** 12)
    b.token_balance(VAULT_B, USDC_MINT, POOL, 6, 10 ** 12, 10 ** 12)
    return b


def test_swap_a_to_b_sells_token_a(parser):
    b = _balances(TxBuilder(USER))
    outer = b.instruction(WHIRLPOOL_PROGRAM_ID, _swap_accounts(), _swap_data(a_to_b=True))
    b.transfer(outer, USER_A, VAULT_A, USER, 1_000_000_000)
    b.transfer(outer, VAULT_B, USER_B, POOL, 171_250_000)
    trade = parser.parse_trades(b.build())[0]
    assert trade.amm == "Orca"
    assert trade.input_token.mint == SOL_MINT
    assert trade.input_token.amount == Decimal("1.0")
    assert trade.output_token.mint == USDC_MINT
    assert trade.output_token.amount == Decimal("171.25")
    assert trade.type is TradeType.SWAP


def test_swap_b_to_a_buys_token_a(parser):
    b = _balances(TxBuilder(USER))
    outer = b.instruction(WHIRLPOOL_PROGRAM_ID, _swap_accounts(), _swap_data(a_to_b=False))
    b.transfer(outer, USER_B, VAULT_B, USER, 171_250_000)
    b.transfer(outer, VAULT_A, USER_A, POOL, 1_000_000_000)
    trade = parser.parse_trades(b.build())[0]
    assert trade.input_token.mint == USDC_MINT
    assert trade.output_token.mint == SOL_MINT


def test_two_hop_swap_yields_two_legs_and_a_route(parser):
    """twoHopSwap produces one trade per pool; the collapser adds the route trade."""
    accounts = [addr(100 + i) for i in range(20)]
    accounts[1] = USER
    accounts[2] = POOL
    accounts[3] = POOL_TWO
    accounts[5] = VAULT_A
    accounts[7] = VAULT_B
    accounts[9] = VAULT_C
    accounts[11] = VAULT_D
    data = WHIRLPOOL_TWO_HOP_SWAP + u64(1_000) + u64(0) + bytes([1, 1, 0]) + _u128(0) + _u128(0)
    b = _balances(TxBuilder(USER))
    b.token_balance(VAULT_C, TOKEN_MINT, POOL_TWO, 6, 10 ** 12, 10 ** 12)
    b.token_balance(VAULT_D, USDC_MINT, POOL_TWO, 6, 10 ** 12, 10 ** 12)
    outer = b.instruction(WHIRLPOOL_PROGRAM_ID, accounts, data)
    b.transfer(outer, USER_A, VAULT_A, USER, 1_000_000_000)
    b.transfer(outer, VAULT_B, USER_B, POOL, 170_000_000)
    b.transfer(outer, USER_B, VAULT_D, USER, 170_000_000)
    b.transfer(outer, VAULT_C, USER_C, POOL_TWO, 42_000_000)
    trades = parser.parse_trades(b.build())
    assert len(trades) == 3
    first, second, route = trades
    assert (first.input_token.mint, first.output_token.mint) == (SOL_MINT, USDC_MINT)
    assert (second.input_token.mint, second.output_token.mint) == (USDC_MINT, TOKEN_MINT)
    assert route.route == 0
    assert route.input_token == first.input_token
    assert route.output_token == second.output_token
    assert route.type is TradeType.BUY


def test_two_hop_swap_v2_follows_role_named_vaults(parser):
    """twoHopSwapV2 moves the intermediate token vault to vault; both hops still decode."""
    accounts = [addr(100 + i) for i in range(24)]
    accounts[0] = POOL
    accounts[1] = POOL_TWO
    accounts[9] = VAULT_A
    accounts[10] = VAULT_B
    accounts[11] = VAULT_D
    accounts[12] = VAULT_C
    accounts[14] = USER
    data = WHIRLPOOL_TWO_HOP_SWAP_V2 + u64(1_000) + u64(0) + bytes([1, 1, 0]) + _u128(0) + _u128(0) + bytes([0])
    b = _balances(TxBuilder(USER))
    b.token_balance(VAULT_C, TOKEN_MINT, POOL_TWO, 6, 10 ** 12, 10 ** 12)
    b.token_balance(VAULT_D, USDC_MINT, POOL_TWO, 6, 10 ** 12, 10 ** 12)
    outer = b.instruction(WHIRLPOOL_PROGRAM_ID, accounts, data)
    b.transfer(outer, USER_A, VAULT_A, USER, 1_000_000_000)
    b.transfer(outer, VAULT_B, VAULT_D, POOL, 170_000_000)
    b.transfer(outer, VAULT_C, USER_C, POOL_TWO, 42_000_000)
    result = parser.parse_all(b.build())
    assert result.state is True
    first, second, route = result.trades
    assert (first.input_token.raw_amount, first.output_token.raw_amount) == (1_000_000_000, 170_000_000)
    assert (second.input_token.raw_amount, second.output_token.raw_amount) == (170_000_000, 42_000_000)
    assert second.output_token.mint == TOKEN_MINT
    assert first.user == second.user == USER
    assert route.type is TradeType.BUY


@pytest.mark.parametrize(
    "name",
    ["initialize_pool_v2", "open_position_with_token_extensions", "close_position_with_token_extensions"],
)
def test_instructions_without_swap_value_yield_nothing(parser, name):
    b = TxBuilder(USER)
    b.instruction(WHIRLPOOL_PROGRAM_ID, [USER, POOL], anchor_discriminator(name) + bytes(16))
    result = parser.parse_all(b.build())
    assert result.state is True
    assert result.trades == []
    assert result.liquidities == []

def test_one_sided_increase_liquidity_keeps_zero_leg(parser):
    """A position out of range deposits only one token; the other leg is zero."""
    accounts = [addr(100 + i) for i in range(11)]
    accounts[0] = POOL
    accounts[2] = USER
    accounts[7] = VAULT_A
    accounts[8] = VAULT_B
    data = WHIRLPOOL_INCREASE_LIQUIDITY + _u128(10 ** 9) + u64(10 ** 12) + u64(10 ** 12)
    b = _balances(TxBuilder(USER))
    outer = b.instruction(WHIRLPOOL_PROGRAM_ID, accounts, data)
    b.transfer(outer, USER_A, VAULT_A, USER, 2_500_000_000)
    change = parser.parse_liquidity(b.build())[0]
    assert change.type is LiquidityType.ADD
    assert change.pool_id == POOL
    assert change.token0_amount == Decimal("2.5")
    assert change.token1_mint == USDC_MINT
    assert change.token1_amount == Decimal("0")
    assert change.token1.raw_amount == 0


def test_missing_swap_transfer_is_reported(parser):
    b = _balances(TxBuilder(USER))
    outer = b.instruction(WHIRLPOOL_PROGRAM_ID, _swap_accounts(), _swap_data(a_to_b=True))
    b.transfer(outer, USER_A, VAULT_A, USER, 1_000_000_000)
    result = parser.parse_all(b.build())
    assert result.state is False
    assert result.msg.startswith(f"{WHIRLPOOL_PROGRAM_ID}@0: swap vault transfers missing")
