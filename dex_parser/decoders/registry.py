"""
Decoder registry: program id to decoder lookup.

Built once when a parser is constructed, then frozen: the mapping is
immutable configuration passed into every parse call, never a process-wide
mutable singleton.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping

from dex_parser.decoders.base import Decoder
from dex_parser.dex_logging import get_logger
from dex_parser.utils.address import is_valid_pubkey

logger = get_logger(__name__)


class DecoderRegistry:
    """Program id → Decoder. Open for register() until freeze()."""

    def __init__(self, decoders: Mapping[str, Decoder] | None = None) -> None:
        self._decoders: dict[str, Decoder] = {}
        self._frozen = False
        for program_id, decoder in (decoders or {}).items():
            self.register(program_id, decoder)

    def register(self, program_id: str, decoder: Decoder) -> "DecoderRegistry":
        if self._frozen:
            raise RuntimeError("decoder registry is frozen")
        if not is_valid_pubkey(program_id):
            raise ValueError(f"invalid program id: {program_id!r}")
        if program_id in self._decoders:
            logger.warning(
                "decoder_replaced",
                program_id=program_id,
                previous=self._decoders[program_id].name,
                decoder=decoder.name,
            )
        self._decoders[program_id] = decoder
        return self

    def register_decoder(self, decoder: Decoder) -> "DecoderRegistry":
        """Register decoder under every program id it declares."""
        for program_id in decoder.program_ids:
            self.register(program_id, decoder)
        return self

    def freeze(self) -> "DecoderRegistry":
        if not self._frozen:
            self._decoders = MappingProxyType(dict(self._decoders))  # type: ignore[assignment]
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, program_id: str) -> Decoder | None:
        return self._decoders.get(program_id)

    def name_of(self, program_id: str) -> str | None:
        decoder = self._decoders.get(program_id)
        return decoder.name if decoder else None

    def is_router(self, program_id: str) -> bool:
        decoder = self._decoders.get(program_id)
        return bool(decoder and decoder.is_router)

    def __contains__(self, program_id: object) -> bool:
        return program_id in self._decoders

    def __iter__(self) -> Iterator[str]:
        return iter(self._decoders)

    def __len__(self) -> int:
        return len(self._decoders)
