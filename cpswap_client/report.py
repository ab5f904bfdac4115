"""Plain-text rendering of the pool report and the post-trade summary."""

from typing import Optional, Sequence

from solders.pubkey import Pubkey

from cpswap_client.chain.transaction import SwapResult
from cpswap_client.core.curve import ReserveSnapshot
from cpswap_client.core.formatting import format_fee_rate, format_percent, to_display_string
from cpswap_client.core.intent import ResolvedIntent, SwapKind, SwapPool
from cpswap_client.metadata.directory import SymbolDirectory

LAMPORTS_DECIMALS = 9


def _leg_amount(amount: Optional[int], decimals: int) -> str:
    return to_display_string(amount, decimals, decimals)


def describe_intent(intent: ResolvedIntent, directory: SymbolDirectory) -> str:
    """One-line description of what the counter leg will do.

    Sell intents report the expected receipt and its floor, buy intents
    the expected payment and its ceiling.
    """
    counter = intent.counter_leg()
    symbol = directory.symbol_for(counter.mint)
    quote = _leg_amount(intent.amounts.quote_amount, counter.decimals)
    if intent.swap_kind is SwapKind.BASE_INPUT:
        bound = _leg_amount(intent.amounts.min_amount_out, counter.decimals)
        return f"receiving {quote} {symbol} (min {bound})"
    bound = _leg_amount(intent.amounts.max_amount_in, counter.decimals)
    return f"paying {quote} {symbol} (max {bound})"


def render_table(rows: Sequence[Sequence[str]]) -> str:
    """Left-aligned columns separated by " | ", header underlined."""
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    lines = []
    for n, row in enumerate(rows):
        lines.append(" | ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())
        if n == 0:
            lines.append("-+-".join("-" * width for width in widths))
    return "\n".join(lines)


def render_report(
    pool_address: Pubkey,
    pool: SwapPool,
    reserves: Sequence[Optional[ReserveSnapshot]],
    directory: SymbolDirectory,
    slippage_pct: float,
    intent: Optional[ResolvedIntent] = None,
    failure: Optional[str] = None,
) -> str:
    """Render the pool legs and the resolved intent (or why it failed)."""
    legs = [directory.symbol_for(mint) for mint in pool.mints]
    balances = [r.display() if r is not None else "n/a" for r in reserves]
    decimals = [str(r.decimals) if r is not None else "n/a" for r in reserves]

    if intent is not None:
        intent_cell = f"{intent}: {describe_intent(intent, directory)}"
    elif failure:
        intent_cell = f"failed: {failure}"
    else:
        intent_cell = "-"

    rows = [
        ["Symbol", *legs],
        ["Mint", *(str(mint) for mint in pool.mints)],
        ["Balances", *balances],
        ["Decimals", *decimals],
    ]
    lines = [
        f"Pool {pool_address}",
        render_table(rows),
        f"Trade fee: {format_fee_rate(pool.trade_fee_rate)}",
        f"Slippage: {format_percent(slippage_pct)}",
        f"Intent: {intent_cell}",
    ]
    return "\n".join(lines)


def render_summary(result: SwapResult, intent: ResolvedIntent, directory: SymbolDirectory) -> str:
    lines = [
        f"Signature: {result.signature}",
        f"Status: {result.status}",
        f"Network fee: {_leg_amount(result.fee_lamports, LAMPORTS_DECIMALS)} SOL",
    ]
    if result.paid is not None:
        amount, decimals = result.paid
        lines.append(f"Paid: {_leg_amount(amount, decimals)} {directory.symbol_for(intent.token_in.mint)}")
    if result.received is not None:
        amount, decimals = result.received
        lines.append(
            f"Received: {_leg_amount(amount, decimals)} {directory.symbol_for(intent.token_out.mint)}"
        )
    return "\n".join(lines)
