"""Exception taxonomy for quoting, intent resolution and metadata decoding."""

from typing import Optional

from cpswap_client.core.formatting import truncate_address


class SwapClientError(Exception):
    """Base exception for the swap client."""
    pass


# Validation errors: rejected caller input, never retried.


class ValidationError(SwapClientError):
    """Raised when caller input is rejected before touching the chain."""
    pass


class InvalidAmount(ValidationError):
    """Raised when an amount literal is not a decimal number."""

    def __init__(self, literal: str):
        super().__init__(f"the amount provided is an invalid decimal number: {literal!r}")
        self.literal = literal


class NonPositiveAmount(ValidationError):
    """Raised when an amount literal is zero or negative."""

    def __init__(self, literal: str):
        super().__init__("amount must be greater than zero")
        self.literal = literal


class PrecisionExceeded(ValidationError):
    """Raised when an amount has more fractional digits than the token allows."""

    def __init__(self, literal: str, decimals: int):
        super().__init__(f"amount {literal} exceeds decimal precision of {decimals}")
        self.literal = literal
        self.decimals = decimals


class AmountOutOfRange(ValidationError):
    """Raised when an amount does not fit the program's u64 argument."""
    pass


class InvalidSlippage(ValidationError):
    pass


class InvalidFeeRate(ValidationError):
    def __init__(self, fee_rate: int):
        super().__init__(f"trade fee rate {fee_rate} is invalid")
        self.fee_rate = fee_rate


class MalformedIntent(ValidationError):
    pass


class UnknownVerb(ValidationError):
    def __init__(self, verb: str):
        super().__init__(f"unknown verb {verb!r}, expected one of pay, sell, swap, buy, get")
        self.verb = verb


class UnknownSymbol(ValidationError):
    """Raised when a symbol maps to neither leg of the pool."""

    def __init__(self, symbol: str, available: Optional[list[str]] = None):
        message = f"unknown token symbol {symbol}"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message)
        self.symbol = symbol
        self.available = available or []


# Curve-boundary errors: the trade is infeasible against current reserves.


class CurveError(SwapClientError):
    """Raised when a quote cannot be computed against the given reserves."""
    pass


class InvalidQuoteInput(CurveError):
    pass


class NonPositiveResult(CurveError):
    pass


class LiquidityExceeded(CurveError):
    pass


class IncompleteReserveData(CurveError):
    pass


# Format errors: callers degrade to "no symbol available".


class MetadataFormatError(SwapClientError):
    """Raised when token metadata cannot be decoded from account bytes."""
    pass


class TruncatedMetadata(MetadataFormatError):
    pass


class TruncatedTLV(MetadataFormatError):
    pass


class UnrecognizedAccountLayout(MetadataFormatError):
    pass


class MintMismatch(MetadataFormatError):
    pass


class MetadataNotFound(MetadataFormatError):
    """Raised when an extension region holds neither metadata nor a pointer."""
    pass


class UnsupportedTokenProgram(MetadataFormatError):
    pass


# Remote ledger errors.


class ChainError(SwapClientError):
    pass


class AccountNotFound(ChainError):
    def __init__(self, address: str, what: str = "account"):
        super().__init__(f"{what} {address} not found")
        self.address = address


class AccountDecodeError(ChainError):
    pass


class ConfigurationError(SwapClientError):
    pass


class MissingSymbolMapping(SwapClientError):
    """Signals that a symbol is unknown but exactly one pool mint lacks metadata.

    Not a failure: the caller asks the user to confirm the mapping, applies
    it to the symbol directory and resolves the intent again.
    """

    def __init__(self, symbol: str, candidate_mint: str):
        super().__init__(
            f"unknown token symbol {symbol}; map to mint {truncate_address(candidate_mint)}?"
        )
        self.symbol = symbol
        self.candidate_mint = candidate_mint

    @property
    def mint_display(self) -> str:
        return truncate_address(self.candidate_mint)
