"""
Solana DEX parser. Decode DEX actions out of raw Solana transactions.

Turns a getTransaction payload into uniform Trade and LiquidityChange records
regardless of which on-chain program produced them. Stateless: every parse
call builds and discards its own instruction tree.
"""

from dex_parser.core.exceptions import DecodeError, DexParserError, MalformedTransactionError
from dex_parser.models import LiquidityChange, ParseResult, TokenAmount, Trade
from dex_parser.parser import DexParser, ParseOptions

__version__ = "0.1.0"

__all__ = [
    "DecodeError",
    "DexParser",
    "DexParserError",
    "LiquidityChange",
    "MalformedTransactionError",
    "ParseOptions",
    "ParseResult",
    "TokenAmount",
    "Trade",
]
