"""Token metadata decoding and the per-pool symbol directory."""

from cpswap_client.metadata.decoder import Token, fetch_token_metadata
from cpswap_client.metadata.directory import SymbolDirectory, build_symbol_directory, normalize_symbol

__all__ = [
    "Token",
    "fetch_token_metadata",
    "SymbolDirectory",
    "build_symbol_directory",
    "normalize_symbol",
]
