"""Intent parsing and resolution into a transaction-ready swap.

An intent is a three-word line, "<verb> <amount> <symbol>":

    pay 1 SOL     -> give exactly 1 SOL, receive at least the slippage floor
    buy 50 USDC   -> receive exactly 50 USDC, pay at most the slippage ceiling

The amount is always expressed in the token the user named, whichever
side of the swap that token ends up on.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from fractions import Fraction
from typing import TYPE_CHECKING, Optional, Sequence

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from cpswap_client.chain.instructions import swap_base_input, swap_base_output
from cpswap_client.core.amounts import to_base_units
from cpswap_client.core.curve import ConstantProduct, ReserveSnapshot
from cpswap_client.core.errors import (
    IncompleteReserveData,
    MalformedIntent,
    UnknownSymbol,
    UnknownVerb,
)
from cpswap_client.core.slippage import apply_ceil, apply_floor

if TYPE_CHECKING:
    from cpswap_client.metadata.directory import SymbolDirectory


class SwapDirection(Enum):
    """Side of the intent from the user's perspective, re: the named token."""
    BUY = "buy"    # user names the amount they receive
    SELL = "sell"  # user names the amount they give


class SwapKind(Enum):
    """Which CP-swap instruction the intent resolves to."""
    BASE_INPUT = "swap_base_input"    # exact input, bounded output
    BASE_OUTPUT = "swap_base_output"  # exact output, bounded input


VERB_DIRECTIONS = {
    "pay": SwapDirection.SELL,
    "sell": SwapDirection.SELL,
    "swap": SwapDirection.SELL,
    "buy": SwapDirection.BUY,
    "get": SwapDirection.BUY,
}


@dataclass(frozen=True)
class IntentInstruction:
    """A parsed intent line."""
    verb: str
    amount: str
    direction: SwapDirection
    target_symbol: str

    def __str__(self) -> str:
        if not self.target_symbol:
            return f"{self.verb} {self.amount}"
        return f"{self.verb} {self.amount} {self.target_symbol}"


@dataclass(frozen=True)
class SwapLeg:
    """One side of the swap (input or output)."""
    mint: Pubkey
    vault: Pubkey
    program: Pubkey
    decimals: int


@dataclass(frozen=True)
class SwapPool:
    """The pool record an intent is resolved against.

    Legs are indexed 0 and 1 in the pool's own order.
    """
    address: Pubkey
    program_id: Pubkey
    amm_config: Pubkey
    observation: Pubkey
    mints: tuple[Pubkey, Pubkey]
    vaults: tuple[Pubkey, Pubkey]
    token_programs: tuple[Pubkey, Pubkey]
    trade_fee_rate: int

    def leg(self, index: int, decimals: int) -> SwapLeg:
        return SwapLeg(
            mint=self.mints[index],
            vault=self.vaults[index],
            program=self.token_programs[index],
            decimals=decimals,
        )

    def leg_index(self, mint: Pubkey) -> Optional[int]:
        for index, leg_mint in enumerate(self.mints):
            if leg_mint == mint:
                return index
        return None


@dataclass
class SwapAmounts:
    """Amounts produced while resolving an intent, in base units."""
    known_amount: int                    # amount the user typed, in the token they named
    quote_amount: int                    # counter amount from the curve, before slippage
    min_amount_out: Optional[int] = None  # BASE_INPUT only
    max_amount_in: Optional[int] = None   # BASE_OUTPUT only


@dataclass
class ResolvedIntent:
    """A fully computed swap, ready to be turned into an instruction."""
    instruction: IntentInstruction
    swap_kind: SwapKind
    amounts: SwapAmounts
    token_in: SwapLeg
    token_out: SwapLeg
    pool: SwapPool = field(repr=False)

    def __str__(self) -> str:
        return str(self.instruction)

    def required_input_amount(self) -> Optional[int]:
        """Amount the payer's input account must hold before the swap."""
        if self.swap_kind is SwapKind.BASE_INPUT:
            return self.amounts.known_amount
        if self.swap_kind is SwapKind.BASE_OUTPUT:
            return self.amounts.max_amount_in
        return None

    def counter_leg(self) -> SwapLeg:
        """The leg the user did not name."""
        if self.swap_kind is SwapKind.BASE_INPUT:
            return self.token_out
        return self.token_in

    def build_swap_instruction(
        self,
        payer: Pubkey,
        authority: Pubkey,
        input_account: Pubkey,
        output_account: Pubkey,
    ) -> Instruction:
        """Materialize the CP-swap instruction matching `swap_kind`."""
        common = dict(
            program_id=self.pool.program_id,
            payer=payer,
            authority=authority,
            amm_config=self.pool.amm_config,
            pool_state=self.pool.address,
            input_account=input_account,
            output_account=output_account,
            input_vault=self.token_in.vault,
            output_vault=self.token_out.vault,
            input_token_program=self.token_in.program,
            output_token_program=self.token_out.program,
            input_mint=self.token_in.mint,
            output_mint=self.token_out.mint,
            observation_state=self.pool.observation,
        )
        if self.swap_kind is SwapKind.BASE_INPUT:
            return swap_base_input(
                amount_in=self.amounts.known_amount,
                minimum_amount_out=self.amounts.min_amount_out,
                **common,
            )
        return swap_base_output(
            max_amount_in=self.amounts.max_amount_in,
            amount_out=self.amounts.known_amount,
            **common,
        )


def parse_intent(line: str) -> IntentInstruction:
    """Parse "<verb> <amount> <symbol>" into an IntentInstruction.

    Raises:
        MalformedIntent: The line does not have exactly three words
        UnknownVerb: The verb is not one of pay/sell/swap/buy/get
    """
    parts = line.split()
    if len(parts) != 3:
        raise MalformedIntent(
            f"intent must be '<verb> <amount> <token-symbol>', got {len(parts)} word(s)"
        )
    verb, amount, symbol = parts
    verb = verb.lower()
    direction = VERB_DIRECTIONS.get(verb)
    if direction is None:
        raise UnknownVerb(verb)
    return IntentInstruction(
        verb=verb,
        amount=amount,
        direction=direction,
        target_symbol=symbol.upper(),
    )


def _require_reserves(
    reserves: Sequence[Optional[ReserveSnapshot]],
) -> tuple[ReserveSnapshot, ReserveSnapshot]:
    if len(reserves) != 2:
        raise IncompleteReserveData(f"expected reserves for 2 pool legs, got {len(reserves)}")
    for index, reserve in enumerate(reserves):
        if reserve is None or reserve.balance is None:
            raise IncompleteReserveData(f"missing balance information for token index {index}")
    return reserves[0], reserves[1]


def resolve(
    instruction: IntentInstruction,
    pool: SwapPool,
    reserves: Sequence[Optional[ReserveSnapshot]],
    target_mint: Pubkey,
    slippage: Optional[Fraction] = None,
) -> ResolvedIntent:
    """Resolve a parsed intent against one pool and fresh reserves.

    Leg assignment:
        SELL, target is leg 0 -> in = leg 0, out = leg 1
        SELL, target is leg 1 -> in = leg 1, out = leg 0
        BUY,  target is leg 0 -> in = leg 1, out = leg 0
        BUY,  target is leg 1 -> in = leg 0, out = leg 1

    Args:
        instruction: Parsed intent
        pool: Pool record (mints, vaults, programs, fee rate)
        reserves: Snapshots for leg 0 and leg 1, in pool order
        target_mint: Mint of the token the user named
        slippage: Slippage ratio in [0, 1)

    Returns:
        ResolvedIntent with exactly one of min_amount_out / max_amount_in set
    """
    balances = _require_reserves(reserves)

    target = pool.leg_index(target_mint)
    if target is None:
        raise UnknownSymbol(instruction.target_symbol)
    counter = 1 - target

    # The user always speaks in the token they named.
    known_amount = to_base_units(instruction.amount, balances[target].decimals)
    curve = ConstantProduct(trade_fee_rate=pool.trade_fee_rate)

    if instruction.direction is SwapDirection.SELL:
        token_in, token_out = target, counter
        curve = replace(curve, token_in_reserve=balances[token_in], token_out_reserve=balances[token_out])
        quote = curve.quote_out(known_amount)
        amounts = SwapAmounts(
            known_amount=known_amount,
            quote_amount=quote,
            min_amount_out=apply_floor(quote, slippage),
        )
        swap_kind = SwapKind.BASE_INPUT
    elif instruction.direction is SwapDirection.BUY:
        token_in, token_out = counter, target
        curve = replace(curve, token_in_reserve=balances[token_in], token_out_reserve=balances[token_out])
        quote = curve.quote_in(known_amount)
        amounts = SwapAmounts(
            known_amount=known_amount,
            quote_amount=quote,
            max_amount_in=apply_ceil(quote, slippage),
        )
        swap_kind = SwapKind.BASE_OUTPUT
    else:
        raise AssertionError(f"unreachable swap direction {instruction.direction!r} for verb {instruction.verb}")

    return ResolvedIntent(
        instruction=instruction,
        swap_kind=swap_kind,
        amounts=amounts,
        token_in=pool.leg(token_in, balances[token_in].decimals),
        token_out=pool.leg(token_out, balances[token_out].decimals),
        pool=pool,
    )


def resolve_intent(
    line: str,
    pool: SwapPool,
    reserves: Sequence[Optional[ReserveSnapshot]],
    directory: "SymbolDirectory",
    slippage: Optional[Fraction] = None,
) -> ResolvedIntent:
    """Parse an intent line and resolve it through the symbol directory.

    Raises:
        MissingSymbolMapping: The symbol is unknown and exactly one pool
            mint has no metadata; confirm with the user, call
            `directory.map_symbol` and resolve again.
    """
    instruction = parse_intent(line)
    target_mint = directory.mint_for(instruction.target_symbol)
    if pool.leg_index(target_mint) is None:
        raise UnknownSymbol(instruction.target_symbol, directory.symbols())
    instruction = replace(instruction, target_symbol=directory.symbol_for(target_mint))
    return resolve(instruction, pool, reserves, target_mint, slippage)
