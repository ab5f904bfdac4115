"""CP-swap program instruction encoding.

Instruction data is the 8-byte Anchor discriminator followed by the u64
arguments in little-endian order. Account order follows the program's
`Swap` accounts struct.
"""

import hashlib
import struct

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from cpswap_client.core.amounts import require_u64

AUTHORITY_SEED = b"vault_and_lp_mint_auth_seed"


def anchor_discriminator(namespace: str, name: str) -> bytes:
    """First 8 bytes of sha256("<namespace>:<name>")."""
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:8]


SWAP_BASE_INPUT_DISCRIMINATOR = anchor_discriminator("global", "swap_base_input")
SWAP_BASE_OUTPUT_DISCRIMINATOR = anchor_discriminator("global", "swap_base_output")


def find_authority(program_id: Pubkey) -> Pubkey:
    """Vault and LP mint authority PDA of the CP-swap program."""
    authority, _bump = Pubkey.find_program_address([AUTHORITY_SEED], program_id)
    return authority


def _swap_accounts(
    *,
    payer: Pubkey,
    authority: Pubkey,
    amm_config: Pubkey,
    pool_state: Pubkey,
    input_account: Pubkey,
    output_account: Pubkey,
    input_vault: Pubkey,
    output_vault: Pubkey,
    input_token_program: Pubkey,
    output_token_program: Pubkey,
    input_mint: Pubkey,
    output_mint: Pubkey,
    observation_state: Pubkey,
) -> list[AccountMeta]:
    return [
        AccountMeta(pubkey=payer, is_signer=True, is_writable=False),
        AccountMeta(pubkey=authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=amm_config, is_signer=False, is_writable=False),
        AccountMeta(pubkey=pool_state, is_signer=False, is_writable=True),
        AccountMeta(pubkey=input_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=output_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=input_vault, is_signer=False, is_writable=True),
        AccountMeta(pubkey=output_vault, is_signer=False, is_writable=True),
        AccountMeta(pubkey=input_token_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=output_token_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=input_mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=output_mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=observation_state, is_signer=False, is_writable=True),
    ]


def swap_base_input(
    *,
    program_id: Pubkey,
    amount_in: int,
    minimum_amount_out: int,
    **accounts: Pubkey,
) -> Instruction:
    """Exact-input swap: spend `amount_in`, receive at least `minimum_amount_out`."""
    data = SWAP_BASE_INPUT_DISCRIMINATOR + struct.pack(
        "<QQ",
        require_u64(amount_in, "amount in"),
        require_u64(minimum_amount_out, "minimum amount out"),
    )
    return Instruction(program_id, data, _swap_accounts(**accounts))


def swap_base_output(
    *,
    program_id: Pubkey,
    max_amount_in: int,
    amount_out: int,
    **accounts: Pubkey,
) -> Instruction:
    """Exact-output swap: receive `amount_out`, spend at most `max_amount_in`."""
    data = SWAP_BASE_OUTPUT_DISCRIMINATOR + struct.pack(
        "<QQ",
        require_u64(max_amount_in, "maximum amount in"),
        require_u64(amount_out, "amount out"),
    )
    return Instruction(program_id, data, _swap_accounts(**accounts))
