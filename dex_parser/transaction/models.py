"""
Data models for the flattened instruction tree.

The tree is an arena: one flat list of CanonicalInstruction in pre-order
(a top-level instruction immediately followed by its inner instructions in
emission order), linked to parents by index. A node's subtree is the
contiguous slice [position, subtree_end(position)).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass(frozen=True)
class CanonicalInstruction:
    """One executed instruction, top-level or CPI, with resolved account keys."""

    position: int
    """Index in the arena (pre-order emission order)."""
    program_id: str
    accounts: tuple[str, ...]
    data: bytes
    parent: int | None
    """Arena index of the invoking instruction; None for top-level."""
    depth: int
    """0 for top-level, 1 for direct CPI children, and so on."""
    outer_index: int
    """Index of the top-level instruction this one belongs to."""
    inner_index: int | None = None
    """Index within meta.innerInstructions[outer]; None for top-level."""

    @property
    def idx(self) -> str:
        """Human-readable position: "3" for top-level, "3-1" for inner."""
        if self.inner_index is None:
            return str(self.outer_index)
        return f"{self.outer_index}-{self.inner_index}"

    def account(self, i: int) -> str | None:
        if 0 <= i < len(self.accounts):
            return self.accounts[i]
        return None


@dataclass(frozen=True)
class TokenAccountBalance:
    """Pre/post balance of one token account, from meta.pre/postTokenBalances."""

    account: str
    owner: str | None
    mint: str
    decimals: int
    pre_raw: int
    post_raw: int

    @property
    def delta(self) -> int:
        return self.post_raw - self.pre_raw


@dataclass(frozen=True)
class BalanceSnapshot:
    """Pre/post balance of one (owner, mint), summed over the owner's token accounts."""

    owner: str | None
    mint: str
    pre_raw: int
    post_raw: int
    decimals: int

    @property
    def delta(self) -> int:
        return self.post_raw - self.pre_raw

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "mint": self.mint,
            "preRaw": self.pre_raw,
            "postRaw": self.post_raw,
            "decimals": self.decimals,
        }


@dataclass
class InstructionTree:
    """
    Flattened instruction tree plus the balance indexes of one transaction.

    Built fresh for each parse call by build_instruction_tree(); never mutated after.
    """

    signature: str | None
    slot: int | None
    block_time: int | None
    failed: bool
    """True when meta.err is set (execution outcome failure)."""
    fee: int | None
    """Transaction fee in lamports; None if meta omits it."""
    account_keys: tuple[str, ...]
    signers: tuple[str, ...]
    instructions: tuple[CanonicalInstruction, ...] = ()
    subtree_ends: tuple[int, ...] = ()
    token_accounts: dict[str, TokenAccountBalance] = field(default_factory=dict)
    balances: dict[tuple[str | None, str], BalanceSnapshot] = field(default_factory=dict)
    mint_decimals: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[CanonicalInstruction]:
        return iter(self.instructions)

    def __getitem__(self, position: int) -> CanonicalInstruction:
        return self.instructions[position]

    @property
    def fee_payer(self) -> str | None:
        return self.signers[0] if self.signers else None

    def subtree_end(self, position: int) -> int:
        """Exclusive end of the subtree rooted at position."""
        return self.subtree_ends[position]

    def subtree(self, position: int) -> tuple[CanonicalInstruction, ...]:
        """The node at position followed by all its descendants, in pre-order."""
        return self.instructions[position:self.subtree_ends[position]]

    def ancestors(self, position: int) -> Iterator[CanonicalInstruction]:
        """Parents of the node at position, nearest first."""
        parent = self.instructions[position].parent
        while parent is not None:
            node = self.instructions[parent]
            yield node
            parent = node.parent

    def decimals_for(self, mint: str) -> int | None:
        return self.mint_decimals.get(mint)

    def token_account(self, address: str | None) -> TokenAccountBalance | None:
        if address is None:
            return None
        return self.token_accounts.get(address)

    def balance(self, owner: str | None, mint: str) -> BalanceSnapshot | None:
        return self.balances.get((owner, mint))
