"""
Jupiter aggregator V6 decoder.

The router itself moves no value of its own: every hop of a route is a CPI
into an AMM program, and those hops are decoded by the AMM decoders. This
decoder validates route instructions and yields nothing; its name labels the
route trade the collapser synthesizes.
"""

from __future__ import annotations

from dex_parser.core.constants import JUPITER_PASSIVE, JUPITER_ROUTES, JUPITER_V6_PROGRAM_ID
from dex_parser.decoders.base import (
    Decoder,
    anchor_discriminator_of,
    is_anchor_event,
    require_accounts,
    unrecognized,
)
from dex_parser.models import ProtocolAction
from dex_parser.transaction.models import CanonicalInstruction, InstructionTree
from dex_parser.transaction.transfers import TransferEvent

ROUTE_ACCOUNTS = 4


class JupiterDecoder(Decoder):
    name = "Jupiter"
    program_ids = (JUPITER_V6_PROGRAM_ID,)
    is_router = True

    def decode(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
    ) -> list[ProtocolAction]:
        if is_anchor_event(ix):
            return []
        disc = anchor_discriminator_of(ix)
        if disc in JUPITER_ROUTES:
            require_accounts(ix, ROUTE_ACCOUNTS)
            return []
        if disc in JUPITER_PASSIVE:
            return []
        raise unrecognized(f"discriminator {disc.hex()}")
