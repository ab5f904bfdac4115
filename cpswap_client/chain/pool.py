"""CP-swap pool state and AMM config account decoding.

Both are Anchor accounts: an 8-byte discriminator, sha256("account:<Name>")[:8],
followed by the packed fields.

PoolState layout (offsets include the discriminator):
    offset   8: amm_config (Pubkey)
    offset  40: pool_creator (Pubkey)
    offset  72: token_0_vault (Pubkey)
    offset 104: token_1_vault (Pubkey)
    offset 136: lp_mint (Pubkey)
    offset 168: token_0_mint (Pubkey)
    offset 200: token_1_mint (Pubkey)
    offset 232: token_0_program (Pubkey)
    offset 264: token_1_program (Pubkey)
    offset 296: observation_key (Pubkey)
    offset 328: auth_bump, status, lp_mint_decimals, mint_0_decimals, mint_1_decimals (u8)
    offset 333: lp_supply, protocol_fees_token_0/1, fund_fees_token_0/1, open_time (u64)

AmmConfig layout:
    offset   8: bump (u8), disable_create_pool (bool)
    offset  10: index (u16)
    offset  12: trade_fee_rate, protocol_fee_rate, fund_fee_rate, create_pool_fee (u64)
    offset  44: protocol_owner (Pubkey)
    offset  76: fund_owner (Pubkey)
"""

import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey

from cpswap_client.chain.instructions import anchor_discriminator
from cpswap_client.core.errors import AccountDecodeError
from cpswap_client.core.intent import SwapPool

POOL_STATE_DISCRIMINATOR = anchor_discriminator("account", "PoolState")
AMM_CONFIG_DISCRIMINATOR = anchor_discriminator("account", "AmmConfig")

_POOL_STATE_MIN_LEN = 333 + 6 * 8
_AMM_CONFIG_MIN_LEN = 108


def _read_pubkey(data: bytes, offset: int) -> Pubkey:
    return Pubkey.from_bytes(data[offset:offset + 32])


def _check_account(data: bytes, discriminator: bytes, min_len: int, name: str) -> None:
    if len(data) < min_len:
        raise AccountDecodeError(f"{name} account too short: {len(data)} bytes, need {min_len}")
    if data[:8] != discriminator:
        raise AccountDecodeError(
            f"account is not a CP-swap {name} (discriminator {data[:8].hex()})"
        )


@dataclass(frozen=True)
class PoolState:
    """Decoded CP-swap pool account."""
    amm_config: Pubkey
    pool_creator: Pubkey
    token_0_vault: Pubkey
    token_1_vault: Pubkey
    lp_mint: Pubkey
    token_0_mint: Pubkey
    token_1_mint: Pubkey
    token_0_program: Pubkey
    token_1_program: Pubkey
    observation_key: Pubkey
    status: int
    mint_0_decimals: int
    mint_1_decimals: int
    lp_supply: int
    open_time: int

    @classmethod
    def decode(cls, data: bytes) -> "PoolState":
        _check_account(data, POOL_STATE_DISCRIMINATOR, _POOL_STATE_MIN_LEN, "PoolState")
        keys = [_read_pubkey(data, 8 + 32 * i) for i in range(10)]
        _auth_bump, status, _lp_decimals, mint_0_decimals, mint_1_decimals = data[328:333]
        lp_supply, _pf0, _pf1, _ff0, _ff1, open_time = struct.unpack_from("<6Q", data, 333)
        return cls(
            *keys,
            status=status,
            mint_0_decimals=mint_0_decimals,
            mint_1_decimals=mint_1_decimals,
            lp_supply=lp_supply,
            open_time=open_time,
        )

    @property
    def mints(self) -> tuple[Pubkey, Pubkey]:
        return self.token_0_mint, self.token_1_mint

    @property
    def vaults(self) -> tuple[Pubkey, Pubkey]:
        return self.token_0_vault, self.token_1_vault

    def to_swap_pool(self, address: Pubkey, program_id: Pubkey, config: "AmmConfig") -> SwapPool:
        return SwapPool(
            address=address,
            program_id=program_id,
            amm_config=self.amm_config,
            observation=self.observation_key,
            mints=self.mints,
            vaults=self.vaults,
            token_programs=(self.token_0_program, self.token_1_program),
            trade_fee_rate=config.trade_fee_rate,
        )


@dataclass(frozen=True)
class AmmConfig:
    """Decoded CP-swap AMM config account (source of the trade fee rate)."""
    bump: int
    disable_create_pool: bool
    index: int
    trade_fee_rate: int
    protocol_fee_rate: int
    fund_fee_rate: int
    create_pool_fee: int
    protocol_owner: Pubkey
    fund_owner: Pubkey

    @classmethod
    def decode(cls, data: bytes) -> "AmmConfig":
        _check_account(data, AMM_CONFIG_DISCRIMINATOR, _AMM_CONFIG_MIN_LEN, "AmmConfig")
        bump, disable_create_pool, index = struct.unpack_from("<BBH", data, 8)
        trade_fee_rate, protocol_fee_rate, fund_fee_rate, create_pool_fee = struct.unpack_from(
            "<4Q", data, 12
        )
        return cls(
            bump=bump,
            disable_create_pool=bool(disable_create_pool),
            index=index,
            trade_fee_rate=trade_fee_rate,
            protocol_fee_rate=protocol_fee_rate,
            fund_fee_rate=fund_fee_rate,
            create_pool_fee=create_pool_fee,
            protocol_owner=_read_pubkey(data, 44),
            fund_owner=_read_pubkey(data, 76),
        )
