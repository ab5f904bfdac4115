"""Constant product (x * y = k) quoting engine with a ppm trade fee."""

from dataclasses import dataclass
from typing import Optional

from cpswap_client.core.errors import (
    InvalidFeeRate,
    InvalidQuoteInput,
    LiquidityExceeded,
    NonPositiveResult,
)
from cpswap_client.core.formatting import FEE_RATE_DENOMINATOR, to_display_string


@dataclass(frozen=True)
class ReserveSnapshot:
    """Balance of one pool vault at a point in time, in base units."""
    balance: Optional[int]
    decimals: int

    def __post_init__(self) -> None:
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"decimals must be in [0, 255], got {self.decimals}")
        if self.balance is not None and self.balance < 0:
            raise ValueError(f"balance must be >= 0, got {self.balance}")

    def display(self, precision: Optional[int] = None) -> str:
        if self.balance is None:
            return "n/a"
        return to_display_string(
            self.balance, self.decimals, self.decimals if precision is None else precision
        )


@dataclass(frozen=True)
class ConstantProduct:
    """Constant product curve for one quote.

    The reserves are labelled per call by the intent resolver: the same
    two pool snapshots are swapped around for buy vs sell. K is never
    stored, it is recomputed from the reserves on every quote.

    Uses the fee-on-input model of the CP-swap program:
    - Given input: net_in = amount_in * (1e6 - fee) / 1e6, floored once
    - Given output: gross_in = ceil(net_in * 1e6 / (1e6 - fee))
    """
    token_in_reserve: Optional[ReserveSnapshot] = None
    token_out_reserve: Optional[ReserveSnapshot] = None
    trade_fee_rate: int = 0  # parts per million

    def _trade_fee_numerator(self) -> int:
        if self.trade_fee_rate < 0 or self.trade_fee_rate >= FEE_RATE_DENOMINATOR:
            raise InvalidFeeRate(self.trade_fee_rate)
        return FEE_RATE_DENOMINATOR - self.trade_fee_rate

    def amount_after_trade_fee(self, amount: int) -> int:
        """Net amount that reaches the reserves once the fee is taken (floor)."""
        numerator = self._trade_fee_numerator()
        net = amount * numerator // FEE_RATE_DENOMINATOR
        if net <= 0:
            raise NonPositiveResult("amount becomes zero after applying trade fee")
        return net

    def amount_before_trade_fee(self, net: int) -> int:
        """Gross amount whose post-fee value is at least `net` (ceiling)."""
        numerator = self._trade_fee_numerator()
        if net <= 0:
            raise NonPositiveResult("amount must be greater than zero when removing trade fee")
        gross, remainder = divmod(net * FEE_RATE_DENOMINATOR, numerator)
        if remainder > 0:
            gross += 1
        return gross

    def _reserves(self, amount: Optional[int], label: str, direction: str) -> tuple[int, int]:
        if amount is None or amount <= 0:
            raise InvalidQuoteInput(f"{label} must be greater than zero")
        if self.token_in_reserve is None or self.token_out_reserve is None:
            raise InvalidQuoteInput(f"pool reserves unavailable for quote {direction}")
        reserve_in = self.token_in_reserve.balance
        reserve_out = self.token_out_reserve.balance
        if reserve_in is None or reserve_out is None:
            raise InvalidQuoteInput(f"pool balances unavailable for quote {direction}")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InvalidQuoteInput(f"pool reserves must be greater than zero for quote {direction}")
        self._trade_fee_numerator()
        return reserve_in, reserve_out

    def _display_out(self, amount: int) -> str:
        decimals = self.token_out_reserve.decimals
        return to_display_string(amount, decimals, decimals)

    def quote_out(self, amount_in: int) -> int:
        """Quote how much TokenOut the pool pays for `amount_in` of TokenIn.

        (X + dX) * (Y - dY) = X * Y  =>  dY = Y - X * Y / (X + dX)
        where dX is the input after the trade fee.

        Args:
            amount_in: Amount of TokenIn the trader gives, in base units

        Returns:
            Amount of TokenOut the trader receives, in base units

        Raises:
            InvalidQuoteInput: Non-positive amount or missing/empty reserves
            InvalidFeeRate: Fee rate outside [0, 1_000_000)
            NonPositiveResult: The trade would pay out nothing
            LiquidityExceeded: The trade would drain the out reserve
        """
        reserve_in, reserve_out = self._reserves(amount_in, "amount in", "out")
        net_amount_in = self.amount_after_trade_fee(amount_in)

        k = reserve_in * reserve_out
        new_reserve_out = k // (reserve_in + net_amount_in)
        amount_out = reserve_out - new_reserve_out

        if amount_out <= 0:
            raise NonPositiveResult("trade would not yield a positive output amount")
        if amount_out >= reserve_out:
            raise LiquidityExceeded(
                f"requested output would exceed available {self._display_out(reserve_out)} liquidity"
            )
        return amount_out

    def quote_in(self, amount_out: int) -> int:
        """Quote how much TokenIn the trader must pay to receive `amount_out`.

        (X + dX) * (Y - dY) = X * Y  =>  dX = X * Y / (Y - dY) - X
        then the fee is added back on top of dX, rounding up.

        Args:
            amount_out: Amount of TokenOut the trader wants, in base units

        Returns:
            Gross amount of TokenIn the trader pays, in base units

        Raises:
            InvalidQuoteInput: Non-positive amount or missing/empty reserves
            InvalidFeeRate: Fee rate outside [0, 1_000_000)
            LiquidityExceeded: The request meets or exceeds the out reserve
            NonPositiveResult: The trade would not require any input
        """
        reserve_in, reserve_out = self._reserves(amount_out, "amount out", "in")

        # Checked up front: reserve_out - amount_out is the divisor below.
        if amount_out >= reserve_out:
            raise LiquidityExceeded(
                f"requested {self._display_out(amount_out)} exceeds available "
                f"{self._display_out(reserve_out)} liquidity"
            )

        k = reserve_in * reserve_out
        new_reserve_in = k // (reserve_out - amount_out)
        net_amount_in = new_reserve_in - reserve_in
        if net_amount_in <= 0:
            raise NonPositiveResult("trade would not require a positive input amount")

        return self.amount_before_trade_fee(net_amount_in)
