"""
Decoder base class and layout helpers shared by the protocol decoders.

A decoder owns one or more program ids and turns one instruction of those
programs (plus the transfers of its subtree and the transaction's balance
records) into zero or more ProtocolActions. It validates account arity and
discriminator before reading payload bytes and raises DecodeError instead
of guessing.
"""

from __future__ import annotations

import struct
from typing import Iterable, Sequence

from dex_parser.core.constants import ANCHOR_EVENT_IX_TAG
from dex_parser.core.exceptions import UNRECOGNIZED_LAYOUT, DecodeError
from dex_parser.models import Direction, Leg, ProtocolAction
from dex_parser.transaction.models import CanonicalInstruction, InstructionTree
from dex_parser.transaction.transfers import TransferEvent
from dex_parser.utils.address import pubkey_from_bytes


class LayoutReader:
    """Sequential little-endian reader over instruction data (Borsh layout)."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self.offset = offset

    def _unpack(self, fmt: str) -> tuple:
        try:
            values = struct.unpack_from(fmt, self._data, self.offset)
        except struct.error as e:
            raise DecodeError(f"{UNRECOGNIZED_LAYOUT}: truncated data at offset {self.offset}") from e
        self.offset += struct.calcsize(fmt)
        return values

    def u8(self) -> int:
        return self._unpack("<B")[0]

    def u64(self) -> int:
        return self._unpack("<Q")[0]

    def i64(self) -> int:
        return self._unpack("<q")[0]

    def u128(self) -> int:
        lo, hi = self._unpack("<QQ")
        return lo | (hi << 64)

    def boolean(self) -> bool:
        return self.u8() != 0

    def pubkey(self) -> str:
        raw = self._data[self.offset:self.offset + 32]
        if len(raw) != 32:
            raise DecodeError(f"{UNRECOGNIZED_LAYOUT}: truncated pubkey at offset {self.offset}")
        self.offset += 32
        return pubkey_from_bytes(raw)


def unrecognized(detail: str | None = None) -> DecodeError:
    return DecodeError(f"{UNRECOGNIZED_LAYOUT}: {detail}" if detail else UNRECOGNIZED_LAYOUT)


def require_accounts(ix: CanonicalInstruction, minimum: int) -> None:
    """Raise unless the instruction has at least minimum accounts."""
    if len(ix.accounts) < minimum:
        raise unrecognized(f"expected {minimum} accounts, got {len(ix.accounts)}")


def anchor_discriminator_of(ix: CanonicalInstruction) -> bytes:
    if len(ix.data) < 8:
        raise unrecognized("data shorter than an 8-byte discriminator")
    return ix.data[:8]


def is_anchor_event(ix: CanonicalInstruction) -> bool:
    """True for Anchor emit_cpi! self-invocations carrying an event payload."""
    return ix.data[:8] == ANCHOR_EVENT_IX_TAG


def transfer_into(transfers: Iterable[TransferEvent], accounts: Sequence[str]) -> TransferEvent | None:
    """First transfer whose destination is one of accounts."""
    for ev in transfers:
        if ev.destination is not None and ev.destination in accounts and ev.source not in accounts:
            return ev
    return None


def transfer_out_of(transfers: Iterable[TransferEvent], accounts: Sequence[str]) -> TransferEvent | None:
    """First transfer whose source is one of accounts."""
    for ev in transfers:
        if ev.source is not None and ev.source in accounts and ev.destination not in accounts:
            return ev
    return None


def leg_from_transfer(ev: TransferEvent, direction: Direction) -> Leg:
    if ev.mint is None:
        raise DecodeError(f"mint unresolved for transfer at position {ev.position}")
    return Leg(mint=ev.mint, raw_amount=ev.raw_amount, direction=direction, decimals=ev.decimals)


def lp_leg(transfers: Iterable[TransferEvent], lp_mint: str | None, kind: str, direction: Direction) -> Leg | None:
    """The LP mint/burn of lp_mint within transfers, if it happened."""
    if lp_mint is None:
        return None
    for ev in transfers:
        if ev.kind == kind and ev.mint == lp_mint:
            return leg_from_transfer(ev, direction)
    return None


def vault_legs(
    transfers: list[TransferEvent],
    vaults: Sequence[str],
    direction: Direction,
    tree: InstructionTree,
    *,
    allow_missing: bool = False,
) -> tuple[Leg, ...]:
    """
    One leg per pool vault, in vault order: deposits into (IN) or withdrawals out of (OUT) each vault.

    With allow_missing, a vault that saw no transfer yields a zero-amount leg
    (one-sided concentrated-liquidity positions); otherwise it is a DecodeError.
    """
    legs = []
    for vault in vaults:
        if direction is Direction.IN:
            ev = transfer_into(transfers, (vault,))
        else:
            ev = transfer_out_of(transfers, (vault,))
        if ev is not None:
            legs.append(leg_from_transfer(ev, direction))
            continue
        bal = tree.token_account(vault)
        if not allow_missing or bal is None:
            raise DecodeError(f"expected transfer for vault {vault} is absent")
        legs.append(Leg(mint=bal.mint, raw_amount=0, direction=direction, decimals=bal.decimals))
    return tuple(legs)


def vault_delta(tree: InstructionTree, vault: str) -> tuple[str, int]:
    """(mint, post - pre) of a pool vault from the transaction's token balance records."""
    bal = tree.token_account(vault)
    if bal is None:
        raise DecodeError(f"no balance record for vault {vault}")
    return bal.mint, bal.delta


class Decoder:
    """
    Base class for protocol decoders.

    Subclasses set name and program_ids and implement decode(). decode()
    returns a list of ProtocolAction (possibly empty) or raises DecodeError.
    The orchestrator binds program id and position to raised errors.
    """

    name: str = ""
    program_ids: tuple[str, ...] = ()
    is_router: bool = False
    """Routers delegate every hop to AMM programs via CPI and label the collapsed route."""

    def decode(
        self,
        ix: CanonicalInstruction,
        transfers: list[TransferEvent],
        tree: InstructionTree,
    ) -> list[ProtocolAction]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
