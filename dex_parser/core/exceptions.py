"""
Parser exceptions.

MalformedTransactionError is fatal for a parse call. DecodeError concerns one
instruction and is either collected into ParseResult.msg or raised, depending
on the caller's error policy. An unknown program id is not an error.
"""

from __future__ import annotations


class DexParserError(Exception):
    """Base class for all parser errors."""


class MalformedTransactionError(DexParserError):
    """Account-key resolution cannot complete (missing message, bad index, lookup table mismatch)."""


class DecodeError(DexParserError):
    """An instruction of a registered program did not match its expected layout."""

    def __init__(self, reason: str, *, program_id: str | None = None, idx: str | None = None) -> None:
        self.reason = reason
        self.program_id = program_id
        self.idx = idx
        super().__init__(self.describe())

    def describe(self) -> str:
        where = self.program_id or "unknown program"
        if self.idx is not None:
            where = f"{where}@{self.idx}"
        return f"{where}: {self.reason}"

    def located(self, program_id: str, idx: str) -> "DecodeError":
        """Return a copy bound to the instruction it came from (keeps values already set)."""
        return DecodeError(
            self.reason,
            program_id=self.program_id or program_id,
            idx=self.idx if self.idx is not None else idx,
        )


UNRECOGNIZED_LAYOUT = "unrecognized layout"
