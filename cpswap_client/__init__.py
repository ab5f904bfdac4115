"""Trading client for constant product (CP-swap) pools."""

from cpswap_client.core.curve import ConstantProduct, ReserveSnapshot
from cpswap_client.core.errors import SwapClientError
from cpswap_client.core.intent import ResolvedIntent, parse_intent, resolve

__all__ = [
    "ConstantProduct",
    "ReserveSnapshot",
    "ResolvedIntent",
    "SwapClientError",
    "parse_intent",
    "resolve",
]
