"""Command-line interface for quoting and executing CP-swap trades."""

import argparse
import logging
import sys
from fractions import Fraction
from pathlib import Path
from typing import Callable, Optional, Sequence

from dotenv import load_dotenv
from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solders.pubkey import Pubkey

from cpswap_client.chain.accounts import RpcLedger
from cpswap_client.chain.pool import AmmConfig, PoolState
from cpswap_client.chain.transaction import (
    inspect_result,
    load_keypair,
    prepare_swap,
    sign_and_send,
    wait_for_transaction,
)
from cpswap_client.config import CLIENT_SETTINGS, resolve_network, resolve_rpc_url
from cpswap_client.core.curve import ReserveSnapshot
from cpswap_client.core.errors import (
    ConfigurationError,
    MissingSymbolMapping,
    SwapClientError,
)
from cpswap_client.core.intent import ResolvedIntent, SwapPool, resolve_intent
from cpswap_client.core.slippage import slippage_ratio
from cpswap_client.metadata.directory import SymbolDirectory, build_symbol_directory
from cpswap_client.report import render_report, render_summary

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]
# Returns fresh snapshots for both pool vaults, in pool order.
ReserveSource = Callable[[], Sequence[Optional[ReserveSnapshot]]]


def ask_yes_no(question: str, prompt: Prompt = input) -> bool:
    answer = prompt(f"{question} [y/N] ").strip().lower()
    return answer in ("y", "yes")


def load_pool(ledger: RpcLedger, address: Pubkey, program_id: Pubkey) -> SwapPool:
    """Fetch and decode the pool account and its AMM config."""
    account = ledger.require_account(address, "pool")
    if account.owner != program_id:
        raise ConfigurationError(
            f"pool {address} is owned by {account.owner}, not the CP-swap program {program_id}"
        )
    state = PoolState.decode(account.data)
    config = AmmConfig.decode(ledger.require_account(state.amm_config, "amm config").data)
    logger.info("loaded pool %s (trade fee rate %d)", address, config.trade_fee_rate)
    return state.to_swap_pool(address, program_id, config)


def resolve_with_mapping(
    line: str,
    pool: SwapPool,
    fetch_reserves: ReserveSource,
    directory: SymbolDirectory,
    slippage: Fraction,
    prompt: Prompt = input,
) -> Optional[ResolvedIntent]:
    """Resolve an intent, offering to map an unknown symbol once.

    Reserves are fetched again for every attempt, the retry included.

    Returns:
        The resolved intent, or None if the user declined the mapping
    """
    try:
        return resolve_intent(line, pool, fetch_reserves(), directory, slippage)
    except MissingSymbolMapping as missing:
        question = f"Token {missing.symbol} not found. Map it to mint {missing.mint_display}?"
        if not ask_yes_no(question, prompt):
            return None
        directory.map_symbol(missing.symbol, Pubkey.from_string(missing.candidate_mint))
    return resolve_intent(line, pool, fetch_reserves(), directory, slippage)


def prompt_for_intent(
    pool: SwapPool,
    fetch_reserves: ReserveSource,
    directory: SymbolDirectory,
    slippage: Fraction,
    prompt: Prompt = input,
) -> Optional[ResolvedIntent]:
    """Ask for intent lines until one resolves; None on end of input."""
    print(f"Available tokens: {', '.join(directory.symbols())}")
    while True:
        try:
            line = prompt("intent (e.g. 'pay 1 SOL')> ")
        except EOFError:
            return None
        if not line.strip():
            continue
        try:
            intent = resolve_with_mapping(line, pool, fetch_reserves, directory, slippage, prompt)
        except SwapClientError as exc:
            print(f"Error: {exc}")
            continue
        if intent is not None:
            return intent


class Session:
    """Ledger, pool and symbols, loaded once per invocation.

    Reserves are not: `fetch_reserves` reads both vaults again on every
    call and keeps the latest snapshot for the report.
    """

    def __init__(self, args: argparse.Namespace):
        network = resolve_network(args.network)
        self.network = network
        self.client = Client(resolve_rpc_url(network, args.rpc))
        self.ledger = RpcLedger(self.client)
        self.slippage_pct = args.slippage if args.slippage is not None else CLIENT_SETTINGS.slippage_pct
        self.slippage = slippage_ratio(self.slippage_pct)
        try:
            self.pool_address = Pubkey.from_string(args.pool)
        except ValueError:
            raise ConfigurationError(f"invalid pool address: {args.pool}") from None
        self.pool = load_pool(self.ledger, self.pool_address, network.program_id)
        self.directory = build_symbol_directory(self.pool.mints, self.ledger.fetch_account)
        self.reserves = self.fetch_reserves()

    def fetch_reserves(self) -> Sequence[Optional[ReserveSnapshot]]:
        self.reserves = self.ledger.fetch_reserves(self.pool.vaults)
        return self.reserves

    def report(self, intent: Optional[ResolvedIntent] = None, failure: Optional[str] = None) -> str:
        return render_report(
            self.pool_address,
            self.pool,
            self.reserves,
            self.directory,
            self.slippage_pct,
            intent=intent,
            failure=failure,
        )


def quote_command(args: argparse.Namespace) -> int:
    """Resolve an intent against live reserves and print the report."""
    session = Session(args)
    try:
        intent = resolve_with_mapping(
            args.intent, session.pool, session.fetch_reserves, session.directory, session.slippage
        )
    except SwapClientError as exc:
        print(session.report(failure=str(exc)))
        return 1
    if intent is None:
        print(session.report(failure="symbol mapping declined"))
        return 1
    print(session.report(intent=intent))
    return 0


def swap_command(args: argparse.Namespace) -> int:
    """Resolve, confirm, sign and submit a swap, then print the summary."""
    hotwallet = Path(args.hotwallet)
    if not hotwallet.exists():
        print(f"Error: Keypair file not found: {hotwallet}")
        return 1
    payer = load_keypair(hotwallet)

    session = Session(args)
    if args.intent:
        try:
            intent = resolve_with_mapping(
                args.intent, session.pool, session.fetch_reserves, session.directory, session.slippage
            )
        except SwapClientError as exc:
            print(session.report(failure=str(exc)))
            return 1
    else:
        print(session.report())
        intent = prompt_for_intent(session.pool, session.fetch_reserves, session.directory, session.slippage)
    if intent is None:
        print("No intent resolved, nothing to do.")
        return 1

    print(session.report(intent=intent))
    if not args.yes and not ask_yes_no("Submit this swap?"):
        print("Aborted.")
        return 1

    prepared = prepare_swap(session.ledger, intent, payer.pubkey(), CLIENT_SETTINGS)
    print(f"Submitting {len(prepared.instructions)} instructions...")
    signature = sign_and_send(session.client, payer, prepared.instructions)
    print(f"Sent {signature}, waiting for confirmation...")
    status, transaction = wait_for_transaction(
        session.client, signature, CLIENT_SETTINGS.confirm_timeout_s
    )
    result = inspect_result(signature, status, transaction, intent)
    print(render_summary(result, intent, session.directory))
    return 0 if status in ("confirmed", "finalized") else 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--pool", required=True, help="CP-swap pool account address")
    parser.add_argument(
        "--network",
        default="devnet",
        help="Network the pool lives on: devnet or mainnet (default: devnet)",
    )
    parser.add_argument("--rpc", help="RPC endpoint (default: $CPSWAP_RPC_URL or the network's public RPC)")
    parser.add_argument(
        "--slippage",
        type=float,
        help=f"Slippage tolerance in percent (default: {CLIENT_SETTINGS.slippage_pct})",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amm-swap",
        description="Quote and execute swaps on constant product pools",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Quote command
    quote_parser = subparsers.add_parser("quote", help="Quote an intent without trading")
    _add_common_arguments(quote_parser)
    quote_parser.add_argument("--intent", required=True, help="Intent, e.g. 'pay 1 SOL' or 'buy 50 USDC'")
    quote_parser.set_defaults(func=quote_command)

    # Swap command
    swap_parser = subparsers.add_parser("swap", help="Execute a swap")
    _add_common_arguments(swap_parser)
    swap_parser.add_argument("--hotwallet", required=True, help="Path to a solana-keygen JSON keypair")
    swap_parser.add_argument("--intent", help="Intent; prompted for when omitted")
    swap_parser.add_argument("-y", "--yes", action="store_true", help="Submit without confirmation")
    swap_parser.set_defaults(func=swap_command)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except (SwapClientError, SolanaRpcException) as exc:
        logger.debug("command failed", exc_info=True)
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
