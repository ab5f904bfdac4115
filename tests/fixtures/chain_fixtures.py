"""Builders for pools, reserves and raw account buffers.

Account buffers are assembled field by field in the on-chain byte order,
so tests read like the layouts they exercise:

- Metaplex metadata: key | update_authority | mint | name | symbol | uri
- Token-2022 mint: base mint | [padding | account type] | TLV entries
- CP-swap PoolState / AmmConfig: discriminator | packed fields
"""

import struct
from typing import Optional, Sequence

from solders.pubkey import Pubkey

from cpswap_client.chain.accounts import AccountInfo
from cpswap_client.chain.pool import AMM_CONFIG_DISCRIMINATOR, POOL_STATE_DISCRIMINATOR
from cpswap_client.core.curve import ReserveSnapshot
from cpswap_client.core.intent import SwapPool
from cpswap_client.metadata.decoder import (
    BASE_MINT_LEN,
    EXTENSION_METADATA_POINTER,
    EXTENSION_TOKEN_METADATA,
    MINT_PADDING_LEN,
    MPL_TOKEN_METADATA_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)

PROGRAM_ID = Pubkey.from_string("DRaycpLY18LhpbydsBWbVJtxpNv9oXPgjRSfpF2bWpYb")
WSOL = Pubkey.from_string("So11111111111111111111111111111111111111112")


def key(seed: int) -> Pubkey:
    """Deterministic, distinct test address."""
    return Pubkey.from_bytes(bytes([seed]) * 32)


def reserves(balance_0: Optional[int], balance_1: Optional[int], decimals_0: int = 0, decimals_1: int = 0):
    return (
        ReserveSnapshot(balance=balance_0, decimals=decimals_0),
        ReserveSnapshot(balance=balance_1, decimals=decimals_1),
    )


def make_pool(
    mint_0: Pubkey = None,
    mint_1: Pubkey = None,
    trade_fee_rate: int = 3000,
    token_programs: Sequence[Pubkey] = (TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID),
) -> SwapPool:
    return SwapPool(
        address=key(200),
        program_id=PROGRAM_ID,
        amm_config=key(201),
        observation=key(202),
        mints=(mint_0 or key(10), mint_1 or key(11)),
        vaults=(key(20), key(21)),
        token_programs=tuple(token_programs),
        trade_fee_rate=trade_fee_rate,
    )


# ============================================================================
# Metadata buffers
# ============================================================================


def borsh_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def metaplex_metadata(mint: Pubkey, name: str, symbol: str, uri: str = "https://example.invalid/m.json") -> bytes:
    return (
        b"\x04"
        + bytes(key(99))
        + bytes(mint)
        + borsh_string(name)
        + borsh_string(symbol)
        + borsh_string(uri)
    )


def token_metadata_value(
    mint: Pubkey,
    name: str,
    symbol: str,
    uri: str = "https://example.invalid/t.json",
    additional: Sequence[tuple[str, str]] = (),
    authority: Pubkey = key(98),
) -> bytes:
    value = bytes(authority) + bytes(mint) + borsh_string(name) + borsh_string(symbol) + borsh_string(uri)
    value += struct.pack("<I", len(additional))
    for k, v in additional:
        value += borsh_string(k) + borsh_string(v)
    return value


def metadata_pointer_value(address: Optional[Pubkey]) -> bytes:
    return bytes(key(97)) + (bytes(address) if address is not None else bytes(32))


def tlv(entry_type: int, value: bytes) -> bytes:
    return struct.pack("<HH", entry_type, len(value)) + value


def token_metadata_tlv(mint: Pubkey, name: str, symbol: str, **kwargs) -> bytes:
    return tlv(EXTENSION_TOKEN_METADATA, token_metadata_value(mint, name, symbol, **kwargs))


def metadata_pointer_tlv(address: Optional[Pubkey]) -> bytes:
    return tlv(EXTENSION_METADATA_POINTER, metadata_pointer_value(address))


def token2022_mint(*entries: bytes, padded: bool = True) -> bytes:
    """Token-2022 mint account: base mint, optional padding, type marker, TLVs."""
    base = b"\x01" + bytes(BASE_MINT_LEN - 1)
    padding = bytes(MINT_PADDING_LEN) if padded else b""
    return base + padding + b"\x01" + b"".join(entries)


# ============================================================================
# CP-swap accounts
# ============================================================================


def pool_state_bytes(
    mints: Sequence[Pubkey] = (key(10), key(11)),
    vaults: Sequence[Pubkey] = (key(20), key(21)),
    decimals: Sequence[int] = (9, 6),
    amm_config: Pubkey = key(201),
    observation: Pubkey = key(202),
    token_programs: Sequence[Pubkey] = (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID),
    lp_supply: int = 1_000_000,
    open_time: int = 1_700_000_000,
) -> bytes:
    keys = [
        amm_config,
        key(203),  # pool creator
        vaults[0],
        vaults[1],
        key(204),  # lp mint
        mints[0],
        mints[1],
        token_programs[0],
        token_programs[1],
        observation,
    ]
    data = POOL_STATE_DISCRIMINATOR + b"".join(bytes(k) for k in keys)
    data += bytes([255, 0, 9, decimals[0], decimals[1]])
    data += struct.pack("<6Q", lp_supply, 0, 0, 0, 0, open_time)
    return data + bytes(64)  # reserved tail


def amm_config_bytes(trade_fee_rate: int = 2500, index: int = 0) -> bytes:
    data = AMM_CONFIG_DISCRIMINATOR
    data += struct.pack("<BBH", 254, 0, index)
    data += struct.pack("<4Q", trade_fee_rate, 120_000, 40_000, 150_000_000)
    data += bytes(key(205)) + bytes(key(206))
    return data


class FakeLedger:
    """Dict-backed account reader recording every fetched address."""

    def __init__(self, accounts: Optional[dict] = None):
        self.accounts: dict[Pubkey, AccountInfo] = dict(accounts or {})
        self.fetched: list[Pubkey] = []

    def put(self, address: Pubkey, owner: Pubkey, data: bytes) -> None:
        self.accounts[address] = AccountInfo(owner=owner, data=data)

    def __call__(self, address: Pubkey) -> Optional[AccountInfo]:
        self.fetched.append(address)
        return self.accounts.get(address)


__all__ = [
    "MPL_TOKEN_METADATA_PROGRAM_ID",
    "PROGRAM_ID",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "WSOL",
    "FakeLedger",
    "amm_config_bytes",
    "borsh_string",
    "key",
    "make_pool",
    "metadata_pointer_tlv",
    "metadata_pointer_value",
    "metaplex_metadata",
    "pool_state_bytes",
    "reserves",
    "tlv",
    "token2022_mint",
    "token_metadata_tlv",
    "token_metadata_value",
]
