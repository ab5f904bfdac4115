"""Exact conversion between human decimal amounts and integer base units."""

from decimal import Decimal, InvalidOperation
from fractions import Fraction

from cpswap_client.core.errors import (
    AmountOutOfRange,
    InvalidAmount,
    NonPositiveAmount,
    PrecisionExceeded,
)
from cpswap_client.core.formatting import scale, to_display_string

__all__ = ["U64_MAX", "scale", "to_base_units", "to_display_string", "require_u64"]

U64_MAX = 2 ** 64 - 1


def _parse_decimal(literal: str) -> Fraction:
    try:
        value = Decimal(literal.strip())
    except InvalidOperation:
        raise InvalidAmount(literal) from None
    if not value.is_finite():
        raise InvalidAmount(literal)
    # Fraction(Decimal) is exact; Decimal arithmetic would round at the
    # context precision for long amounts.
    return Fraction(value)


def to_base_units(literal: str, decimals: int) -> int:
    """Convert a decimal string into integer base units.

    No rounding happens here: the scaled value must be an exact integer.

    Args:
        literal: Decimal amount as typed by the user (e.g. "1.5")
        decimals: Decimal count of the token the amount is expressed in

    Returns:
        Amount in base units

    Raises:
        InvalidAmount: The literal is not a finite decimal number
        NonPositiveAmount: The amount is zero or negative
        PrecisionExceeded: More fractional digits than `decimals` allows
    """
    value = _parse_decimal(literal)
    if value <= 0:
        raise NonPositiveAmount(literal)
    scaled = value * scale(decimals)
    if scaled.denominator != 1:
        raise PrecisionExceeded(literal, decimals)
    return scaled.numerator


def require_u64(amount: int, what: str) -> int:
    """Ensure an amount fits the program's unsigned 64-bit arguments."""
    if amount < 0 or amount > U64_MAX:
        raise AmountOutOfRange(f"{what} {amount} exceeds the u64 range required by the program")
    return amount
