"""
Tests for the event normalizer: amount scaling, decimals resolution,
trade type classification and leg selection.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from dex_parser.core.constants import SOL_MINT, USDC_MINT, USDT_MINT
from dex_parser.core.exceptions import DecodeError
from dex_parser.models import ActionKind, Direction, Leg, LiquidityType, ProtocolAction, TradeType
from dex_parser.normalizer import Normalizer, fee_amount, scale_amount, trade_type
from dex_parser.transaction import build_instruction_tree
from txbuilder import FEE_LAMPORTS, SIGNATURE, TxBuilder, addr

USER = addr(1)
OTHER = addr(2)
PROGRAM = addr(10)
MINT_A = addr(20)
MINT_B = addr(21)
MINT_C = addr(22)


def _tree():
    b = TxBuilder(USER)
    b.instruction(PROGRAM, [USER])
    b.token_balance(addr(30), MINT_A, USER, 6, 0, 0)
    b.token_balance(addr(31), MINT_B, USER, 0, 0, 0)
    return build_instruction_tree(b.build())


def _swap(*legs: Leg, user: str | None = None) -> ProtocolAction:
    return ProtocolAction(
        kind=ActionKind.SWAP,
        program_id=PROGRAM,
        pool_id=addr(3),
        legs=legs,
        position=0,
        user=user,
    )


@pytest.mark.parametrize(
    "raw, decimals",
    [
        (1, 9),
        (1_950_837_707, 6),
        (147_754_335, 9),
        (12_345, 0),
        (999_999_999_999, 6),
        (10 ** 15, 9),
        (12_345_678_901_234_567, 9),
        (2 ** 64 - 1, 9),
    ],
)
def test_round_trip_law(raw, decimals):
    """amount * 10^d rounds back to the raw amount."""
    amount = scale_amount(raw, decimals)
    assert round(amount * 10 ** decimals) == raw


def test_scale_amount_examples():
    assert scale_amount(1_950_837_707, 6) == Decimal("1950.837707")
    assert scale_amount(147_754_335, 9) == Decimal("0.147754335")
    assert scale_amount(0, 6) == 0


def test_large_amounts_stay_exact():
    """Raw amounts above 2^53 keep every digit, in the model and on the wire."""
    normalizer = Normalizer(_tree())
    token = normalizer.token_amount(Leg(mint=MINT_C, raw_amount=12_345_678_901_234_567, direction=Direction.IN, decimals=9))
    assert token.amount == Decimal("12345678.901234567")
    assert token.to_dict()["amount"] == "12345678.901234567"
    assert fee_amount(0).to_dict()["amount"] == "0.000000000"


@pytest.mark.parametrize(
    "input_mint, output_mint, expected",
    [
        (SOL_MINT, MINT_A, TradeType.BUY),
        (USDC_MINT, MINT_A, TradeType.BUY),
        (MINT_A, USDT_MINT, TradeType.SELL),
        (MINT_A, MINT_B, TradeType.SWAP),
        (SOL_MINT, USDC_MINT, TradeType.SWAP),
    ],
)
def test_trade_type(input_mint, output_mint, expected):
    assert trade_type(input_mint, output_mint) is expected


def test_decimals_resolution_order():
    """Balance records first, then SOL default, then a checked-transfer hint."""
    normalizer = Normalizer(_tree())
    assert normalizer.decimals_for(MINT_A, hint=2) == 6
    assert normalizer.decimals_for(MINT_B) == 0
    assert normalizer.decimals_for(SOL_MINT) == 9
    assert normalizer.decimals_for(MINT_C, hint=4) == 4
    with pytest.raises(DecodeError):
        normalizer.decimals_for(MINT_C)


def test_to_trade_stamps_and_defaults_user():
    normalizer = Normalizer(_tree())
    trade = normalizer.to_trade(
        _swap(
            Leg(mint=SOL_MINT, raw_amount=2_000_000_000, direction=Direction.IN),
            Leg(mint=MINT_A, raw_amount=3_000_000, direction=Direction.OUT),
        ),
        "TestAmm",
    )
    assert trade.signature == SIGNATURE
    assert trade.user == USER
    assert trade.type is TradeType.BUY
    assert trade.input_token.amount == Decimal("2.0")
    assert trade.output_token.amount == Decimal("3.0")
    assert trade.amm == "TestAmm"
    assert trade.idx == "0"
    assert trade.input_token.symbol is None


def test_to_trade_with_extra_legs_uses_first_in_last_out():
    normalizer = Normalizer(_tree())
    trade = normalizer.to_trade(
        _swap(
            Leg(mint=MINT_A, raw_amount=1, direction=Direction.IN),
            Leg(mint=MINT_B, raw_amount=2, direction=Direction.OUT),
            Leg(mint=SOL_MINT, raw_amount=3, direction=Direction.IN),
            Leg(mint=MINT_C, raw_amount=4, direction=Direction.OUT, decimals=1),
        ),
        "TestAmm",
    )
    assert trade.input_token.mint == MINT_A
    assert trade.output_token.mint == MINT_C
    assert trade.output_token.amount == Decimal("0.4")


def test_to_trade_requires_both_directions():
    normalizer = Normalizer(_tree())
    with pytest.raises(DecodeError):
        normalizer.to_trade(_swap(Leg(mint=MINT_A, raw_amount=1, direction=Direction.IN)), "TestAmm")


def test_to_liquidity_puts_extra_legs_in_order():
    normalizer = Normalizer(_tree())
    action = ProtocolAction(
        kind=ActionKind.ADD_LIQUIDITY,
        program_id=PROGRAM,
        pool_id=addr(3),
        legs=(
            Leg(mint=MINT_A, raw_amount=1_000_000, direction=Direction.IN),
            Leg(mint=MINT_B, raw_amount=5, direction=Direction.IN),
            Leg(mint=SOL_MINT, raw_amount=10 ** 9, direction=Direction.IN),
        ),
        position=0,
        user=OTHER,
    )
    change = normalizer.to_liquidity(action, "TestAmm")
    assert change.type is LiquidityType.ADD
    assert change.user == OTHER
    assert change.token0_amount == Decimal("1.0")
    assert change.token1_amount == Decimal("5")
    assert [t.mint for t in change.extra_tokens] == [SOL_MINT]
    assert "extraTokens" in change.to_dict()
    assert "lpToken" not in change.to_dict()


def test_fee_amount_is_sol():
    fee = fee_amount(FEE_LAMPORTS)
    assert fee.mint == SOL_MINT
    assert fee.amount == Decimal("0.000005")
    assert fee_amount(None) is None
