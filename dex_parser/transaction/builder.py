"""
Instruction-tree builder: raw getTransaction payloads to a flat instruction arena.

Resolves account keys (static keys plus address-lookup-table loaded
addresses), flattens top-level and inner (CPI) instructions into one
parent-linked pre-order list, and indexes pre/post token balances.
Handles "json" and "jsonParsed" encodings of legacy and v0 transactions.
Pure transform; the only error raised is MalformedTransactionError.
"""

from __future__ import annotations

import struct
from collections import defaultdict
from typing import Any

from dex_parser.core.constants import (
    SYSTEM_PROGRAM_ID,
    SYSTEM_TRANSFER_DISCRIMINATOR,
    TOKEN_IX_BURN,
    TOKEN_IX_BURN_CHECKED,
    TOKEN_IX_MINT_TO,
    TOKEN_IX_MINT_TO_CHECKED,
    TOKEN_IX_TRANSFER,
    TOKEN_IX_TRANSFER_CHECKED,
)
from dex_parser.core.exceptions import MalformedTransactionError
from dex_parser.dex_logging import get_logger
from dex_parser.transaction.models import (
    BalanceSnapshot,
    CanonicalInstruction,
    InstructionTree,
    TokenAccountBalance,
)
from dex_parser.utils.address import decode_instruction_data

logger = get_logger(__name__)


def _unwrap(raw: dict[str, Any]) -> dict[str, Any]:
    """Strip JSON-RPC envelopes ({"result": ...} / {"value": ...})."""
    obj = raw
    if isinstance(obj, dict) and "result" in obj and "transaction" not in obj:
        obj = obj["result"]
    if isinstance(obj, dict) and "value" in obj and "transaction" not in obj:
        obj = obj["value"]
    if not isinstance(obj, dict):
        raise MalformedTransactionError("transaction payload is not an object")
    return obj


def _get_message_and_meta(raw: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return (transaction.message, meta) from a getTransaction-style result."""
    tx_obj = raw.get("transaction")
    if not isinstance(tx_obj, dict):
        raise MalformedTransactionError("missing transaction object (binary encodings are not supported)")
    message = tx_obj.get("message")
    if not isinstance(message, dict):
        raise MalformedTransactionError("missing transaction message")
    meta = raw.get("meta")
    if not isinstance(meta, dict):
        meta = {}
    return message, meta


def _expected_lookup_count(message: dict[str, Any]) -> int:
    total = 0
    for lookup in message.get("addressTableLookups") or []:
        total += len(lookup.get("writableIndexes") or [])
        total += len(lookup.get("readonlyIndexes") or [])
    return total


def _get_account_keys(message: dict[str, Any], meta: dict[str, Any]) -> list[str]:
    """
    Resolve accountKeys to a list of base58 strings (handles json vs jsonParsed).

    "json": static keys, then meta.loadedAddresses (writable, then readonly).
    "jsonParsed": accountKeys already lists lookup-table keys ({"source": "lookupTable"}).
    """
    keys = message.get("accountKeys")
    if not keys:
        raise MalformedTransactionError("message has no account keys")
    expected = _expected_lookup_count(message)

    if isinstance(keys[0], dict):
        out = [k.get("pubkey", "") for k in keys if isinstance(k, dict)]
        if expected:
            from_tables = sum(1 for k in keys if isinstance(k, dict) and k.get("source") == "lookupTable")
            if from_tables != expected:
                raise MalformedTransactionError(
                    f"address lookup tables declare {expected} keys, {from_tables} resolved"
                )
        return out

    out = [str(k) for k in keys]
    loaded = meta.get("loadedAddresses") or {}
    loaded_keys: list[str] = []
    for role in ("writable", "readonly"):
        loaded_keys.extend(str(addr) for addr in loaded.get(role) or [])
    if len(loaded_keys) != expected:
        raise MalformedTransactionError(
            f"address lookup tables declare {expected} keys, {len(loaded_keys)} loaded"
        )
    return out + loaded_keys


def _get_signers(message: dict[str, Any], account_keys: list[str]) -> tuple[str, ...]:
    keys = message.get("accountKeys") or []
    if keys and isinstance(keys[0], dict):
        return tuple(k.get("pubkey", "") for k in keys if isinstance(k, dict) and k.get("signer"))
    header = message.get("header") or {}
    num_sig = int(header.get("numRequiredSignatures", 1))
    return tuple(account_keys[:num_sig])


def _key_at(account_keys: list[str], idx: Any) -> str:
    try:
        i = int(idx)
    except (TypeError, ValueError) as e:
        raise MalformedTransactionError(f"invalid account index {idx!r}") from e
    if not 0 <= i < len(account_keys):
        raise MalformedTransactionError(f"account index {i} out of range ({len(account_keys)} keys)")
    return account_keys[i]


def _u64(value: Any) -> bytes:
    return struct.pack("<Q", int(value))


def _token_amount(info: dict[str, Any]) -> tuple[int, int | None]:
    token_amount = info.get("tokenAmount") or {}
    amount = info.get("amount", token_amount.get("amount", 0))
    decimals = token_amount.get("decimals", info.get("decimals"))
    return int(amount), (int(decimals) if decimals is not None else None)


def _encode_parsed(program_id: str, parsed: Any) -> tuple[tuple[str, ...], bytes]:
    """
    Re-encode a jsonParsed transfer-family instruction into its binary layout.

    Returns (accounts, data) in the program's own account order so downstream
    code sees one canonical form. Anything else yields ((), b"").
    """
    if not isinstance(parsed, dict):
        return (), b""
    ix_type = parsed.get("type")
    info = parsed.get("info") or {}
    authority = info.get("authority") or info.get("multisigAuthority") or info.get("mintAuthority") or ""

    if program_id == SYSTEM_PROGRAM_ID:
        if ix_type == "transfer":
            data = struct.pack("<I", SYSTEM_TRANSFER_DISCRIMINATOR) + _u64(info.get("lamports", 0))
            return (info.get("source", ""), info.get("destination", "")), data
        return (), b""

    amount, decimals = _token_amount(info)
    if ix_type == "transfer":
        return (
            (info.get("source", ""), info.get("destination", ""), authority),
            bytes([TOKEN_IX_TRANSFER]) + _u64(amount),
        )
    if ix_type == "transferChecked":
        return (
            (info.get("source", ""), info.get("mint", ""), info.get("destination", ""), authority),
            bytes([TOKEN_IX_TRANSFER_CHECKED]) + _u64(amount) + bytes([decimals or 0]),
        )
    if ix_type == "mintTo":
        return (
            (info.get("mint", ""), info.get("account", ""), authority),
            bytes([TOKEN_IX_MINT_TO]) + _u64(amount),
        )
    if ix_type == "mintToChecked":
        return (
            (info.get("mint", ""), info.get("account", ""), authority),
            bytes([TOKEN_IX_MINT_TO_CHECKED]) + _u64(amount) + bytes([decimals or 0]),
        )
    if ix_type == "burn":
        return (
            (info.get("account", ""), info.get("mint", ""), authority),
            bytes([TOKEN_IX_BURN]) + _u64(amount),
        )
    if ix_type == "burnChecked":
        return (
            (info.get("account", ""), info.get("mint", ""), authority),
            bytes([TOKEN_IX_BURN_CHECKED]) + _u64(amount) + bytes([decimals or 0]),
        )
    return (), b""


def _resolve_instruction(
    account_keys: list[str],
    instruction: dict[str, Any],
) -> tuple[str, tuple[str, ...], bytes]:
    """Resolve (program_id, accounts, data) for one raw instruction in either encoding."""
    if "programIdIndex" in instruction:
        program_id = _key_at(account_keys, instruction["programIdIndex"])
        accounts = tuple(_key_at(account_keys, i) for i in instruction.get("accounts") or [])
    else:
        program_id = instruction.get("programId")
        if not program_id:
            raise MalformedTransactionError("instruction has neither programIdIndex nor programId")
        if "parsed" in instruction:
            accounts, data = _encode_parsed(program_id, instruction["parsed"])
            return program_id, accounts, data
        accounts = tuple(str(a) for a in instruction.get("accounts") or [])
    try:
        data = decode_instruction_data(instruction.get("data"))
    except ValueError as e:
        # Undecodable payload: keep the node so ordering holds; decoders will reject the layout.
        logger.debug("instruction_data_undecodable", program_id=program_id, error=str(e))
        data = b""
    return program_id, accounts, data


def _index_token_balances(
    account_keys: list[str],
    meta: dict[str, Any],
) -> tuple[dict[str, TokenAccountBalance], dict[tuple[str | None, str], BalanceSnapshot], dict[str, int]]:
    """Merge pre/post token balances into per-account, per-(owner, mint) and per-mint indexes."""
    merged: dict[str, dict[str, Any]] = {}
    for phase, entries in (("pre", meta.get("preTokenBalances")), ("post", meta.get("postTokenBalances"))):
        for entry in entries or []:
            account = _key_at(account_keys, entry.get("accountIndex"))
            ui = entry.get("uiTokenAmount") or {}
            slot = merged.setdefault(
                account,
                {"owner": entry.get("owner"), "mint": entry.get("mint", ""), "decimals": 0, "pre": 0, "post": 0},
            )
            slot["owner"] = slot["owner"] or entry.get("owner")
            slot["decimals"] = int(ui.get("decimals", slot["decimals"]) or 0)
            slot[phase] = int(ui.get("amount") or 0)

    token_accounts: dict[str, TokenAccountBalance] = {}
    by_owner: defaultdict[tuple[str | None, str], list[TokenAccountBalance]] = defaultdict(list)
    mint_decimals: dict[str, int] = {}
    for account, slot in merged.items():
        bal = TokenAccountBalance(
            account=account,
            owner=slot["owner"],
            mint=slot["mint"],
            decimals=slot["decimals"],
            pre_raw=slot["pre"],
            post_raw=slot["post"],
        )
        token_accounts[account] = bal
        by_owner[(bal.owner, bal.mint)].append(bal)
        mint_decimals.setdefault(bal.mint, bal.decimals)

    balances = {
        key: BalanceSnapshot(
            owner=key[0],
            mint=key[1],
            pre_raw=sum(b.pre_raw for b in group),
            post_raw=sum(b.post_raw for b in group),
            decimals=group[0].decimals,
        )
        for key, group in by_owner.items()
    }
    return token_accounts, balances, mint_decimals


def _compute_subtree_ends(parents: list[int | None]) -> tuple[int, ...]:
    ends = [i + 1 for i in range(len(parents))]
    for pos in range(len(parents) - 1, -1, -1):
        parent = parents[pos]
        if parent is not None and ends[pos] > ends[parent]:
            ends[parent] = ends[pos]
    return tuple(ends)


def peek_outcome(raw: dict[str, Any]) -> tuple[bool, int | None]:
    """Return (failed, fee_lamports) from meta without resolving any account keys."""
    meta = _unwrap(raw).get("meta")
    if not isinstance(meta, dict):
        return False, None
    fee = meta.get("fee")
    return meta.get("err") is not None, (int(fee) if fee is not None else None)


def build_instruction_tree(raw: dict[str, Any]) -> InstructionTree:
    """
    Build the instruction arena and balance indexes for one transaction.

    Raises MalformedTransactionError when account keys cannot be resolved
    (missing message, index out of range, lookup-table keys not loaded).
    """
    obj = _unwrap(raw)
    message, meta = _get_message_and_meta(obj)
    account_keys = _get_account_keys(message, meta)

    tx_obj = obj.get("transaction") or {}
    signatures = tx_obj.get("signatures") or []
    signature = signatures[0] if signatures else None
    slot = obj.get("slot")
    block_time = obj.get("blockTime")
    if block_time is not None and not isinstance(block_time, int):
        try:
            block_time = int(block_time)
        except (TypeError, ValueError):
            block_time = None
    fee = meta.get("fee")

    inner_by_outer: dict[int, list[dict[str, Any]]] = {}
    for block in meta.get("innerInstructions") or []:
        inner_by_outer.setdefault(int(block.get("index", -1)), []).extend(block.get("instructions") or [])

    nodes: list[CanonicalInstruction] = []
    parents: list[int | None] = []
    for outer_index, ix in enumerate(message.get("instructions") or []):
        program_id, accounts, data = _resolve_instruction(account_keys, ix)
        top = len(nodes)
        nodes.append(CanonicalInstruction(
            position=top,
            program_id=program_id,
            accounts=accounts,
            data=data,
            parent=None,
            depth=0,
            outer_index=outer_index,
        ))
        parents.append(None)

        # (stack height, position) of the current CPI chain; top-level runs at height 1
        stack: list[tuple[int, int]] = [(1, top)]
        for inner_index, inner in enumerate(inner_by_outer.get(outer_index, [])):
            program_id, accounts, data = _resolve_instruction(account_keys, inner)
            height = inner.get("stackHeight")
            if height is None:
                parent = top
            else:
                height = int(height)
                while len(stack) > 1 and stack[-1][0] >= height:
                    stack.pop()
                parent = stack[-1][1]
            pos = len(nodes)
            nodes.append(CanonicalInstruction(
                position=pos,
                program_id=program_id,
                accounts=accounts,
                data=data,
                parent=parent,
                depth=nodes[parent].depth + 1,
                outer_index=outer_index,
                inner_index=inner_index,
            ))
            parents.append(parent)
            if height is not None:
                stack.append((height, pos))

    token_accounts, balances, mint_decimals = _index_token_balances(account_keys, meta)

    tree = InstructionTree(
        signature=signature,
        slot=int(slot) if slot is not None else None,
        block_time=block_time,
        failed=meta.get("err") is not None,
        fee=int(fee) if fee is not None else None,
        account_keys=tuple(account_keys),
        signers=_get_signers(message, account_keys),
        instructions=tuple(nodes),
        subtree_ends=_compute_subtree_ends(parents),
        token_accounts=token_accounts,
        balances=balances,
        mint_decimals=mint_decimals,
    )
    logger.debug(
        "instruction_tree_built",
        signature=signature,
        instruction_count=len(nodes),
        account_count=len(account_keys),
        token_account_count=len(token_accounts),
    )
    return tree
