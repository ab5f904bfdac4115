"""Display helpers for amounts, rates and addresses.

These sit at the presentation boundary: absent values render as "0" or
"n/a" instead of failing. Nothing in the quoting path calls them.
"""

from fractions import Fraction
from typing import Optional

FEE_RATE_DENOMINATOR = 1_000_000

_ELLIPSIS = "…"
_ADDRESS_HEAD = 6
_ADDRESS_TAIL = 6


def scale(decimals: int) -> int:
    """Return 10**decimals, the number of base units in one whole token."""
    return 10 ** decimals


def _round_half_away(value: Fraction) -> int:
    """Round a rational to the nearest integer, halves away from zero."""
    magnitude = abs(value)
    rounded = (2 * magnitude.numerator + magnitude.denominator) // (2 * magnitude.denominator)
    return -rounded if value < 0 else rounded


def format_rational(value: Fraction, precision: int) -> str:
    """Render a rational with exactly `precision` fractional digits."""
    if precision < 0:
        raise ValueError(f"precision must be >= 0, got {precision}")
    scaled = _round_half_away(value * scale(precision))
    sign = "-" if scaled < 0 else ""
    digits = str(abs(scaled))
    if precision == 0:
        return f"{sign}{digits}"
    digits = digits.rjust(precision + 1, "0")
    return f"{sign}{digits[:-precision]}.{digits[-precision:]}"


def to_display_string(amount: Optional[int], decimals: int, precision: int) -> str:
    """Convert base units to a human decimal string.

    Args:
        amount: Integer amount in base units, or None
        decimals: Token decimal count
        precision: Number of fractional digits to render

    Returns:
        The formatted amount, or "0" when the amount is absent
    """
    if amount is None:
        return "0"
    return format_rational(Fraction(amount, scale(decimals)), precision)


def _trim_trailing_zeros(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def format_fee_rate(ppm: int) -> str:
    """Render a parts-per-million fee rate as a percentage (2500 -> "0.25%")."""
    percent = Fraction(ppm, FEE_RATE_DENOMINATOR) * 100
    return f"{_trim_trailing_zeros(format_rational(percent, 6))}%"


def format_percent(percent: float) -> str:
    return f"{_trim_trailing_zeros(f'{percent:.6f}')}%"


def truncate_address(address: object) -> str:
    """Shorten a base58 address to head…tail for display."""
    text = str(address)
    if len(text) <= _ADDRESS_HEAD + _ADDRESS_TAIL:
        return text
    return f"{text[:_ADDRESS_HEAD]}{_ELLIPSIS}{text[-_ADDRESS_TAIL:]}"
