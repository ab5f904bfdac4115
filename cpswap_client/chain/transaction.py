"""Swap transaction assembly, submission and result inspection."""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed, Finalized
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from spl.token.instructions import (
    CloseAccountParams,
    SyncNativeParams,
    close_account,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    sync_native,
)

from cpswap_client.chain.accounts import RpcLedger
from cpswap_client.chain.instructions import find_authority
from cpswap_client.config import ClientSettings
from cpswap_client.core.amounts import require_u64
from cpswap_client.core.intent import ResolvedIntent

logger = logging.getLogger(__name__)

WSOL_MINT = Pubkey.from_string("So11111111111111111111111111111111111111112")


def is_native_sol(mint: Pubkey) -> bool:
    return mint == WSOL_MINT


def load_keypair(path: Path) -> Keypair:
    """Load a solana-keygen JSON keypair file (64 byte integers)."""
    secret = json.loads(Path(path).expanduser().read_text())
    return Keypair.from_bytes(bytes(secret))


def ensure_token_account(
    ledger: RpcLedger,
    payer: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey,
) -> tuple[Pubkey, list[Instruction]]:
    """Return the owner's associated token account and, if missing, its create instruction."""
    ata = get_associated_token_address(owner, mint, token_program)
    if ledger.fetch_account(ata) is not None:
        return ata, []
    logger.info("associated token account %s missing, creating it", ata)
    return ata, [create_idempotent_associated_token_account(payer, owner, mint, token_program)]


def wrap_native_if_needed(
    ledger: RpcLedger,
    owner: Pubkey,
    ata: Pubkey,
    mint: Pubkey,
    token_program: Pubkey,
    required: Optional[int],
) -> list[Instruction]:
    """Top up a wrapped-SOL account to `required` lamports (transfer + sync)."""
    if not required or required <= 0 or not is_native_sol(mint):
        return []
    deficit = require_u64(required, "required native amount")
    if ledger.fetch_account(ata) is not None:
        existing = ledger.fetch_token_balance(ata).balance or 0
        deficit -= existing
        if deficit <= 0:
            return []
    logger.info("wrapping %d lamports into %s", deficit, ata)
    return [
        transfer(TransferParams(from_pubkey=owner, to_pubkey=ata, lamports=deficit)),
        sync_native(SyncNativeParams(program_id=token_program, account=ata)),
    ]


@dataclass
class PreparedSwap:
    """Instructions for one swap, plus the accounts the summary needs."""
    instructions: list[Instruction]
    input_account: Pubkey
    output_account: Pubkey


def prepare_swap(
    ledger: RpcLedger,
    intent: ResolvedIntent,
    payer: Pubkey,
    settings: ClientSettings,
) -> PreparedSwap:
    """Assemble compute budget, account setup, wrapping, the swap and cleanup."""
    input_account, input_setup = ensure_token_account(
        ledger, payer, payer, intent.token_in.mint, intent.token_in.program
    )
    output_account, output_setup = ensure_token_account(
        ledger, payer, payer, intent.token_out.mint, intent.token_out.program
    )
    wrap = wrap_native_if_needed(
        ledger,
        payer,
        input_account,
        intent.token_in.mint,
        intent.token_in.program,
        intent.required_input_amount(),
    )
    swap_ix = intent.build_swap_instruction(
        payer,
        find_authority(intent.pool.program_id),
        input_account,
        output_account,
    )

    instructions = [
        set_compute_unit_limit(settings.compute_unit_limit),
        set_compute_unit_price(settings.compute_unit_price),
        *input_setup,
        *output_setup,
        *wrap,
        swap_ix,
    ]
    # Only a wrapped-SOL input account created by this transaction is
    # closed; closing the output account would burn what was just received.
    if is_native_sol(intent.token_in.mint) and input_setup:
        instructions.append(
            close_account(
                CloseAccountParams(
                    program_id=intent.token_in.program,
                    account=input_account,
                    dest=payer,
                    owner=payer,
                )
            )
        )
    return PreparedSwap(
        instructions=instructions,
        input_account=input_account,
        output_account=output_account,
    )


def sign_and_send(client: Client, payer: Keypair, instructions: Sequence[Instruction]) -> Signature:
    blockhash = client.get_latest_blockhash(commitment=Finalized).value.blockhash
    message = Message.new_with_blockhash(list(instructions), payer.pubkey(), blockhash)
    tx = Transaction([payer], message, blockhash)
    signature = client.send_transaction(tx).value
    logger.info("sent transaction %s", signature)
    return signature


def wait_for_transaction(
    client: Client,
    signature: Signature,
    timeout_s: float,
    poll_interval_s: float = 2.0,
) -> tuple[str, Optional[Any]]:
    """Poll until the transaction is visible at `confirmed`, or time out.

    Returns:
        (status, transaction) where status is "failed", "confirmed",
        "finalized" or "pending" and transaction is the RPC payload or None
    """
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        resp = client.get_transaction(
            signature,
            encoding="json",
            commitment=Confirmed,
            max_supported_transaction_version=0,
        )
        if resp.value is not None:
            meta = resp.value.transaction.meta
            if meta is not None and meta.err is not None:
                return "failed", resp.value
            statuses = client.get_signature_statuses([signature]).value
            status = statuses[0] if statuses else None
            if status is not None and status.confirmation_status is not None:
                return str(status.confirmation_status).split(".")[-1].lower(), resp.value
            return "confirmed", resp.value
        time.sleep(poll_interval_s)
    logger.warning("transaction %s not confirmed within %.0fs", signature, timeout_s)
    return "pending", None


def _balance_for(balances: Optional[Sequence[Any]], index: int, mint: Pubkey) -> Optional[tuple[int, int]]:
    for balance in balances or []:
        if balance.account_index == index and balance.mint == mint:
            return int(balance.ui_token_amount.amount), balance.ui_token_amount.decimals
    return None


def token_delta(
    account_keys: Sequence[Pubkey],
    pre_balances: Optional[Sequence[Any]],
    post_balances: Optional[Sequence[Any]],
    account: Pubkey,
    mint: Pubkey,
) -> Optional[tuple[int, int]]:
    """Change of a token account's balance across a transaction.

    A missing pre- or post-balance counts as zero (the account was created
    or closed by the transaction).

    Returns:
        (post - pre, decimals), or None if the account never appears
    """
    try:
        index = list(account_keys).index(account)
    except ValueError:
        return None
    pre = _balance_for(pre_balances, index, mint)
    post = _balance_for(post_balances, index, mint)
    if pre is None and post is None:
        return None
    decimals = (post or pre)[1]
    return (post[0] if post else 0) - (pre[0] if pre else 0), decimals


@dataclass
class SwapResult:
    signature: Signature
    status: str
    fee_lamports: int
    paid: Optional[tuple[int, int]]      # (amount, decimals) into the input vault
    received: Optional[tuple[int, int]]  # (amount, decimals) out of the output vault


def inspect_result(
    signature: Signature,
    status: str,
    transaction: Optional[Any],
    intent: ResolvedIntent,
) -> SwapResult:
    """Read the fee and vault deltas out of a confirmed transaction."""
    if transaction is None or transaction.transaction.meta is None:
        return SwapResult(signature=signature, status=status, fee_lamports=0, paid=None, received=None)
    meta = transaction.transaction.meta
    account_keys = transaction.transaction.transaction.message.account_keys
    paid = token_delta(
        account_keys, meta.pre_token_balances, meta.post_token_balances,
        intent.token_in.vault, intent.token_in.mint,
    )
    received = token_delta(
        account_keys, meta.pre_token_balances, meta.post_token_balances,
        intent.token_out.vault, intent.token_out.mint,
    )
    return SwapResult(
        signature=signature,
        status=status,
        fee_lamports=meta.fee,
        paid=(abs(paid[0]), paid[1]) if paid else None,
        received=(abs(received[0]), received[1]) if received else None,
    )
