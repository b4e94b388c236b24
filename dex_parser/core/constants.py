"""
Constant tables: program ids, instruction discriminators, well-known mints.

Data only. Anchor discriminators are derived the way Anchor derives them
(first 8 bytes of sha256 over "global:<ix>" / "event:<Event>").
"""

from __future__ import annotations

import hashlib


def anchor_discriminator(ix_name: str) -> bytes:
    """Anchor instruction discriminator for a snake_case instruction name."""
    return hashlib.sha256(f"global:{ix_name}".encode()).digest()[:8]


def anchor_event_discriminator(event_name: str) -> bytes:
    """Anchor event discriminator for a CamelCase event name."""
    return hashlib.sha256(f"event:{event_name}".encode()).digest()[:8]


# Native programs
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
TOKEN_PROGRAM_IDS = frozenset({TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID})

# System Program transfer: u32 LE instruction index 2, then u64 lamports
SYSTEM_TRANSFER_DISCRIMINATOR = 2

# SPL Token instruction indices (1 byte)
TOKEN_IX_TRANSFER = 3
TOKEN_IX_MINT_TO = 7
TOKEN_IX_BURN = 8
TOKEN_IX_TRANSFER_CHECKED = 12
TOKEN_IX_MINT_TO_CHECKED = 14
TOKEN_IX_BURN_CHECKED = 15

# Mints
SOL_MINT = "So11111111111111111111111111111111111111112"
SOL_DECIMALS = 9
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
QUOTE_MINTS = frozenset({SOL_MINT, USDC_MINT, USDT_MINT})
KNOWN_SYMBOLS = {
    SOL_MINT: "SOL",
    USDC_MINT: "USDC",
    USDT_MINT: "USDT",
}
UNKNOWN_SYMBOL = "UNK"

# Anchor self-CPI event instruction prefix (emit_cpi!)
ANCHOR_EVENT_IX_TAG = bytes.fromhex("e445a52e51cb9a1d")

# Raydium AMM V4 (1-byte instruction index)
RAYDIUM_V4_PROGRAM_ID = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
RAYDIUM_V4_INITIALIZE2 = 1
RAYDIUM_V4_DEPOSIT = 3
RAYDIUM_V4_WITHDRAW = 4
RAYDIUM_V4_SWAP_BASE_IN = 9
RAYDIUM_V4_SWAP_BASE_OUT = 11
RAYDIUM_V4_SWAP_BASE_IN_V2 = 16
RAYDIUM_V4_SWAP_BASE_OUT_V2 = 17
# Admin / maintenance opcodes that move no user value
RAYDIUM_V4_PASSIVE = frozenset({0, 2, 5, 6, 7, 8, 10, 12, 13, 14, 15})

# Raydium CPMM (Anchor)
RAYDIUM_CPMM_PROGRAM_ID = "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP8C"
CPMM_SWAP_BASE_INPUT = anchor_discriminator("swap_base_input")
CPMM_SWAP_BASE_OUTPUT = anchor_discriminator("swap_base_output")
CPMM_INITIALIZE = anchor_discriminator("initialize")
CPMM_DEPOSIT = anchor_discriminator("deposit")
CPMM_WITHDRAW = anchor_discriminator("withdraw")
CPMM_PASSIVE = frozenset(
    anchor_discriminator(name)
    for name in (
        "create_amm_config",
        "update_amm_config",
        "update_pool_status",
        "collect_protocol_fee",
        "collect_fund_fee",
    )
)

# Orca Whirlpool (Anchor)
WHIRLPOOL_PROGRAM_ID = "whirLbMiicVdio4qvUfM5KQ6ebyKoEK6KqnioypnfdR"
WHIRLPOOL_SWAP = anchor_discriminator("swap")
WHIRLPOOL_SWAP_V2 = anchor_discriminator("swap_v2")
WHIRLPOOL_TWO_HOP_SWAP = anchor_discriminator("two_hop_swap")
WHIRLPOOL_TWO_HOP_SWAP_V2 = anchor_discriminator("two_hop_swap_v2")
WHIRLPOOL_INCREASE_LIQUIDITY = anchor_discriminator("increase_liquidity")
WHIRLPOOL_INCREASE_LIQUIDITY_V2 = anchor_discriminator("increase_liquidity_v2")
WHIRLPOOL_DECREASE_LIQUIDITY = anchor_discriminator("decrease_liquidity")
WHIRLPOOL_DECREASE_LIQUIDITY_V2 = anchor_discriminator("decrease_liquidity_v2")
WHIRLPOOL_PASSIVE = frozenset(
    anchor_discriminator(name)
    for name in (
        "initialize_config",
        "initialize_config_extension",
        "initialize_fee_tier",
        "initialize_pool",
        "initialize_pool_v2",
        "initialize_reward",
        "initialize_reward_v2",
        "initialize_tick_array",
        "initialize_token_badge",
        "delete_token_badge",
        "open_position",
        "open_position_with_metadata",
        "open_position_with_token_extensions",
        "close_position",
        "close_position_with_token_extensions",
        "initialize_position_bundle",
        "initialize_position_bundle_with_metadata",
        "delete_position_bundle",
        "open_bundled_position",
        "close_bundled_position",
        "update_fees_and_rewards",
        "collect_fees",
        "collect_fees_v2",
        "collect_reward",
        "collect_reward_v2",
        "collect_protocol_fees",
        "collect_protocol_fees_v2",
        "set_reward_emissions",
        "set_reward_emissions_v2",
        "set_default_fee_rate",
        "set_default_protocol_fee_rate",
        "set_fee_rate",
        "set_protocol_fee_rate",
        "set_fee_authority",
        "set_collect_protocol_fees_authority",
        "set_reward_authority",
        "set_reward_authority_by_super_authority",
        "set_reward_emissions_super_authority",
        "set_config_extension_authority",
        "set_token_badge_authority",
    )
)

# Pump.fun bonding curve (Anchor)
PUMPFUN_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
PUMPFUN_BUY = anchor_discriminator("buy")
PUMPFUN_SELL = anchor_discriminator("sell")
PUMPFUN_TRADE_EVENT = anchor_event_discriminator("TradeEvent")
PUMPFUN_PASSIVE = frozenset(
    anchor_discriminator(name)
    for name in (
        "create",
        "initialize",
        "set_params",
        "withdraw",
        "extend_account",
        "set_creator",
        "collect_creator_fee",
    )
)

# Jupiter aggregator V6 (Anchor)
JUPITER_V6_PROGRAM_ID = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
JUPITER_ROUTES = frozenset(
    anchor_discriminator(name)
    for name in (
        "route",
        "route_with_token_ledger",
        "exact_out_route",
        "shared_accounts_route",
        "shared_accounts_route_with_token_ledger",
        "shared_accounts_exact_out_route",
    )
)
JUPITER_PASSIVE = frozenset(
    anchor_discriminator(name)
    for name in (
        "set_token_ledger",
        "create_open_orders",
        "create_token_account",
        "create_program_open_orders",
        "claim",
        "claim_token",
        "create_token_ledger",
    )
)
