"""
Multi-hop collapser: derive the outer-facing swap of a routed trade.

Consecutive trades of the same user chain into a route when each leg's
output mint is the next leg's input mint. Each route of two or more legs
adds one synthesized trade (first input, last output); the legs themselves
are kept unmodified. No intent is inferred beyond mint continuity.
"""

from __future__ import annotations

import dataclasses
from typing import Mapping

from dex_parser.models import Trade
from dex_parser.normalizer import trade_type


def _chains(prev: Trade, nxt: Trade) -> bool:
    return prev.user == nxt.user and prev.output_token.mint == nxt.input_token.mint


def group_routes(trades: list[Trade]) -> list[list[Trade]]:
    """Split trades into maximal chains of consecutive, mint-continuous legs."""
    groups: list[list[Trade]] = []
    for trade in trades:
        if groups and _chains(groups[-1][-1], trade):
            groups[-1].append(trade)
        else:
            groups.append([trade])
    return groups


def collapse_routes(
    trades: list[Trade],
    routers: Mapping[str, tuple[str, str]] | None = None,
) -> list[Trade]:
    """
    Return trades followed by one synthesized trade per multi-leg route.

    routers maps a leg's idx to (router name, router program id) when the
    leg ran under a registered router; the route trade is labelled with it.
    """
    routers = routers or {}
    synthesized: list[Trade] = []
    for legs in group_routes(trades):
        if len(legs) < 2:
            continue
        first, last = legs[0], legs[-1]
        amm, program_id = routers.get(first.idx, (first.amm, first.program_id))
        synthesized.append(dataclasses.replace(
            first,
            type=trade_type(first.input_token.mint, last.output_token.mint),
            output_token=last.output_token,
            amm=amm,
            program_id=program_id,
            route=len(synthesized),
            fee=None,
        ))
    return list(trades) + synthesized


def get_final_swap(trades: list[Trade]) -> Trade | None:
    """
    The single swap a user experienced: the last synthesized route if any,
    else the only trade, else None.
    """
    routed = [t for t in trades if t.route is not None]
    if routed:
        return routed[-1]
    if len(trades) == 1:
        return trades[0]
    return None
