"""
Tests for the multi-hop collapser (group_routes, collapse_routes, get_final_swap).
"""

from __future__ import annotations

from dex_parser.collapser import collapse_routes, get_final_swap, group_routes
from dex_parser.core.constants import SOL_MINT, USDC_MINT
from dex_parser.models import TokenAmount, Trade, TradeType
from dex_parser.normalizer import scale_amount
from txbuilder import addr

USER = addr(1)
OTHER_USER = addr(2)
MINT_A = addr(20)
MINT_B = addr(21)


def _token(mint: str, raw: int, decimals: int = 6) -> TokenAmount:
    return TokenAmount(mint=mint, raw_amount=raw, decimals=decimals, amount=scale_amount(raw, decimals))


def _trade(input_mint: str, output_mint: str, idx: str, user: str = USER, amm: str = "RaydiumV4") -> Trade:
    return Trade(
        signature="sig",
        slot=1,
        timestamp=2,
        type=TradeType.SWAP,
        user=user,
        input_token=_token(input_mint, 100),
        output_token=_token(output_mint, 200),
        amm=amm,
        program_id=addr(10),
        idx=idx,
        fee=_token(SOL_MINT, 5, 9),
    )


def test_multi_hop_law():
    """A.output == B.input with the same user collapses into A.input -> B.output."""
    a = _trade(SOL_MINT, MINT_A, "0-0")
    b = _trade(MINT_A, MINT_B, "0-3", amm="Orca")
    trades = collapse_routes([a, b])
    assert trades[:2] == [a, b]
    route = trades[2]
    assert route.input_token == a.input_token
    assert route.output_token == b.output_token
    assert route.route == 0
    assert route.type is TradeType.BUY
    assert route.amm == "RaydiumV4"
    assert route.idx == "0-0"
    assert route.fee is None


def test_router_label_applies_to_route():
    a = _trade(SOL_MINT, MINT_A, "0-0")
    b = _trade(MINT_A, USDC_MINT, "0-3")
    route = collapse_routes([a, b], {"0-0": ("Jupiter", addr(11)), "0-3": ("Jupiter", addr(11))})[-1]
    assert route.amm == "Jupiter"
    assert route.program_id == addr(11)
    assert route.type is TradeType.SWAP


def test_single_and_unrelated_trades_not_collapsed():
    a = _trade(SOL_MINT, MINT_A, "0")
    b = _trade(MINT_B, USDC_MINT, "1")
    c = _trade(MINT_A, MINT_B, "2", user=OTHER_USER)
    assert collapse_routes([a]) == [a]
    assert collapse_routes([a, b]) == [a, b]
    assert collapse_routes([a, c]) == [a, c]


def test_route_ordinals_count_up():
    trades = [
        _trade(SOL_MINT, MINT_A, "0"),
        _trade(MINT_A, MINT_B, "1"),
        _trade(USDC_MINT, MINT_B, "2"),
        _trade(MINT_B, SOL_MINT, "3"),
    ]
    assert [len(g) for g in group_routes(trades)] == [2, 2]
    collapsed = collapse_routes(trades)
    assert [t.route for t in collapsed[4:]] == [0, 1]


def test_get_final_swap():
    a = _trade(SOL_MINT, MINT_A, "0")
    b = _trade(MINT_A, MINT_B, "1")
    assert get_final_swap([]) is None
    assert get_final_swap([a]) is a
    assert get_final_swap([a, _trade(MINT_B, USDC_MINT, "1")]) is None
    collapsed = collapse_routes([a, b])
    assert get_final_swap(collapsed) is collapsed[-1]


def test_route_in_wire_dict_only_for_synthesized_trades():
    a = _trade(SOL_MINT, MINT_A, "0")
    b = _trade(MINT_A, MINT_B, "1")
    collapsed = collapse_routes([a, b])
    assert "route" not in collapsed[0].to_dict()
    assert collapsed[-1].to_dict()["route"] == 0
    assert "fee" not in collapsed[-1].to_dict()
