"""Core quoting components: amounts, curve, slippage and intents."""

from cpswap_client.core.amounts import to_base_units, to_display_string
from cpswap_client.core.curve import ConstantProduct, ReserveSnapshot
from cpswap_client.core.slippage import apply_ceil, apply_floor, slippage_ratio
from cpswap_client.core.intent import (
    IntentInstruction,
    ResolvedIntent,
    SwapDirection,
    SwapKind,
    parse_intent,
    resolve,
    resolve_intent,
)

__all__ = [
    "to_base_units",
    "to_display_string",
    "ConstantProduct",
    "ReserveSnapshot",
    "apply_ceil",
    "apply_floor",
    "slippage_ratio",
    "IntentInstruction",
    "ResolvedIntent",
    "SwapDirection",
    "SwapKind",
    "parse_intent",
    "resolve",
    "resolve_intent",
]
