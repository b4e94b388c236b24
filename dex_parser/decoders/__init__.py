"""
Protocol decoders.

One decoder per supported program family; build_default_registry() wires
all of them into a frozen DecoderRegistry.
"""

from dex_parser.decoders.base import Decoder
from dex_parser.decoders.jupiter import JupiterDecoder
from dex_parser.decoders.orca_whirlpool import OrcaWhirlpoolDecoder
from dex_parser.decoders.pumpfun import PumpfunDecoder
from dex_parser.decoders.raydium_cpmm import RaydiumCpmmDecoder
from dex_parser.decoders.raydium_v4 import RaydiumV4Decoder
from dex_parser.decoders.registry import DecoderRegistry

DEFAULT_DECODERS = (
    RaydiumV4Decoder,
    RaydiumCpmmDecoder,
    OrcaWhirlpoolDecoder,
    PumpfunDecoder,
    JupiterDecoder,
)


def build_default_registry() -> DecoderRegistry:
    """A frozen registry with every built-in decoder."""
    registry = DecoderRegistry()
    for decoder_cls in DEFAULT_DECODERS:
        registry.register_decoder(decoder_cls())
    return registry.freeze()


__all__ = [
    "DEFAULT_DECODERS",
    "Decoder",
    "DecoderRegistry",
    "JupiterDecoder",
    "OrcaWhirlpoolDecoder",
    "PumpfunDecoder",
    "RaydiumCpmmDecoder",
    "RaydiumV4Decoder",
    "build_default_registry",
]
