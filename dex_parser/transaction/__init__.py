"""
Transaction package.

Flattens a raw getTransaction payload into an instruction arena with balance
indexes, and extracts the elementary transfers that happened inside it.
"""

from dex_parser.transaction.builder import build_instruction_tree, peek_outcome
from dex_parser.transaction.models import (
    BalanceSnapshot,
    CanonicalInstruction,
    InstructionTree,
    TokenAccountBalance,
)
from dex_parser.transaction.transfers import TransferEvent, TransferExtractor

__all__ = [
    "BalanceSnapshot",
    "CanonicalInstruction",
    "InstructionTree",
    "TokenAccountBalance",
    "TransferEvent",
    "TransferExtractor",
    "build_instruction_tree",
    "peek_outcome",
]
