"""
Transfer extractor: elementary value movements within an instruction subtree.

Recognizes SPL Token / Token-2022 transfer, transferChecked, mintTo(Checked),
burn(Checked) and System Program transfers by program id + discriminator, at
any nesting depth and whichever program issued the CPI. Everything else is
ignored; an expected transfer that never executed simply leaves no event.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

from dex_parser.core.constants import (
    SOL_DECIMALS,
    SOL_MINT,
    SYSTEM_PROGRAM_ID,
    SYSTEM_TRANSFER_DISCRIMINATOR,
    TOKEN_IX_BURN,
    TOKEN_IX_BURN_CHECKED,
    TOKEN_IX_MINT_TO,
    TOKEN_IX_MINT_TO_CHECKED,
    TOKEN_IX_TRANSFER,
    TOKEN_IX_TRANSFER_CHECKED,
    TOKEN_PROGRAM_IDS,
)
from dex_parser.transaction.models import CanonicalInstruction, InstructionTree

KIND_TRANSFER = "transfer"
KIND_TRANSFER_CHECKED = "transferChecked"
KIND_MINT_TO = "mintTo"
KIND_BURN = "burn"
KIND_SYSTEM_TRANSFER = "systemTransfer"


@dataclass(frozen=True)
class TransferEvent:
    """One elementary value movement observed in the instruction tree."""

    position: int
    kind: str
    mint: str | None
    """None when a plain Transfer touches no account with a recorded token balance."""
    raw_amount: int
    decimals: int | None
    source: str | None
    """None for mintTo (value created)."""
    destination: str | None
    """None for burn (value destroyed)."""
    authority: str | None
    program_id: str
    source_owner: str | None = None
    destination_owner: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "position": self.position,
            "type": self.kind,
            "programId": self.program_id,
            "mint": self.mint,
            "amountRaw": self.raw_amount,
            "source": self.source,
            "destination": self.destination,
            "authority": self.authority,
        }
        if self.decimals is not None:
            out["decimals"] = self.decimals
        if self.source_owner is not None:
            out["sourceOwner"] = self.source_owner
        if self.destination_owner is not None:
            out["destinationOwner"] = self.destination_owner
        return out


def _read_u64(data: bytes, offset: int) -> int:
    return struct.unpack_from("<Q", data, offset)[0]


def _decode_system_transfer(ix: CanonicalInstruction) -> TransferEvent | None:
    """Decode System Program transfer instruction data; None if not a transfer."""
    data = ix.data
    if len(data) < 12 or len(ix.accounts) < 2:
        return None
    if struct.unpack_from("<I", data, 0)[0] != SYSTEM_TRANSFER_DISCRIMINATOR:
        return None
    source, destination = ix.accounts[0], ix.accounts[1]
    return TransferEvent(
        position=ix.position,
        kind=KIND_SYSTEM_TRANSFER,
        mint=SOL_MINT,
        raw_amount=_read_u64(data, 4),
        decimals=SOL_DECIMALS,
        source=source,
        destination=destination,
        authority=source,
        program_id=ix.program_id,
        source_owner=source,
        destination_owner=destination,
    )


def _decode_token_instruction(ix: CanonicalInstruction, tree: InstructionTree) -> TransferEvent | None:
    """Decode one SPL Token instruction; None if it moves no value or is truncated."""
    data = ix.data
    if len(data) < 9:
        return None
    opcode = data[0]
    amount = _read_u64(data, 1)
    accounts = ix.accounts

    if opcode == TOKEN_IX_TRANSFER and len(accounts) >= 3:
        source, destination, authority = accounts[0], accounts[1], accounts[2]
        known = tree.token_account(source) or tree.token_account(destination)
        mint = known.mint if known else None
        decimals = known.decimals if known else None
        kind = KIND_TRANSFER
    elif opcode == TOKEN_IX_TRANSFER_CHECKED and len(accounts) >= 4 and len(data) >= 10:
        source, mint, destination, authority = accounts[0], accounts[1], accounts[2], accounts[3]
        decimals = data[9]
        kind = KIND_TRANSFER_CHECKED
    elif opcode in (TOKEN_IX_MINT_TO, TOKEN_IX_MINT_TO_CHECKED) and len(accounts) >= 3:
        mint, destination, authority = accounts[0], accounts[1], accounts[2]
        source = None
        decimals = data[9] if opcode == TOKEN_IX_MINT_TO_CHECKED and len(data) >= 10 else tree.decimals_for(mint)
        kind = KIND_MINT_TO
    elif opcode in (TOKEN_IX_BURN, TOKEN_IX_BURN_CHECKED) and len(accounts) >= 3:
        source, mint, authority = accounts[0], accounts[1], accounts[2]
        destination = None
        decimals = data[9] if opcode == TOKEN_IX_BURN_CHECKED and len(data) >= 10 else tree.decimals_for(mint)
        kind = KIND_BURN
    else:
        return None

    src_bal = tree.token_account(source)
    dst_bal = tree.token_account(destination)
    return TransferEvent(
        position=ix.position,
        kind=kind,
        mint=mint,
        raw_amount=amount,
        decimals=decimals,
        source=source,
        destination=destination,
        authority=authority,
        program_id=ix.program_id,
        source_owner=src_bal.owner if src_bal else None,
        destination_owner=dst_bal.owner if dst_bal else None,
    )


def decode_transfer(ix: CanonicalInstruction, tree: InstructionTree) -> TransferEvent | None:
    """Return the TransferEvent for a value-moving instruction, else None."""
    if ix.program_id in TOKEN_PROGRAM_IDS:
        return _decode_token_instruction(ix, tree)
    if ix.program_id == SYSTEM_PROGRAM_ID:
        return _decode_system_transfer(ix)
    return None


class TransferExtractor:
    """
    Per-tree transfer index.

    Decodes every node once, then answers subtree queries by slicing the
    pre-order arena. Lives exactly as long as the tree it was built for.
    """

    def __init__(self, tree: InstructionTree) -> None:
        self._tree = tree
        self._events: list[TransferEvent | None] = [decode_transfer(ix, tree) for ix in tree]

    def extract(self, root_position: int) -> list[TransferEvent]:
        """Ordered transfers within the subtree rooted at root_position."""
        end = self._tree.subtree_end(root_position)
        return [ev for ev in self._events[root_position:end] if ev is not None]

    def extract_all(self) -> list[TransferEvent]:
        return [ev for ev in self._events if ev is not None]
