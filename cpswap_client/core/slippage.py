"""Slippage bounds derived from a quoted amount."""

from fractions import Fraction
from typing import Optional, Union

from cpswap_client.core.errors import InvalidSlippage


def slippage_ratio(percent: Union[float, int, str]) -> Fraction:
    """Convert a slippage percentage into an exact ratio in [0, 1).

    The percentage goes through its decimal text form, so 0.5 becomes
    exactly 1/200 rather than the nearest binary float.
    """
    try:
        ratio = Fraction(str(percent)) / 100
    except (ValueError, ZeroDivisionError):
        raise InvalidSlippage(f"slippage percent {percent!r} is not a number") from None
    if ratio < 0:
        raise InvalidSlippage("slippage percent must be >= 0")
    if ratio >= 1:
        raise InvalidSlippage("slippage percent must be less than 100")
    return ratio


def apply_floor(amount: int, ratio: Optional[Fraction]) -> int:
    """Worst acceptable receipt: amount * (1 - ratio), rounded down."""
    if not ratio:
        return amount
    factor = 1 - ratio
    if factor <= 0:
        raise InvalidSlippage("slippage factor must be positive")
    return amount * factor.numerator // factor.denominator


def apply_ceil(amount: int, ratio: Optional[Fraction]) -> int:
    """Worst acceptable payment: amount * (1 + ratio), rounded up."""
    if not ratio:
        return amount
    factor = 1 + ratio
    bound, remainder = divmod(amount * factor.numerator, factor.denominator)
    if remainder > 0:
        bound += 1
    return bound
