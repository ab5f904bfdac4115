"""Per-pool symbol directory: mint <-> symbol with an unresolved set."""

import logging
from typing import Iterable, Optional

from solana.exceptions import SolanaRpcException
from solders.pubkey import Pubkey

from cpswap_client.chain.accounts import AccountFetcher
from cpswap_client.core.errors import (
    ChainError,
    MetadataFormatError,
    MissingSymbolMapping,
    UnknownSymbol,
)
from cpswap_client.core.formatting import truncate_address
from cpswap_client.metadata.decoder import fetch_token_metadata

logger = logging.getLogger(__name__)

_FALLBACK_SYMBOL_LEN = 4


def normalize_symbol(raw: str) -> str:
    """Uppercase a symbol and drop NULs and all spaces/tabs."""
    symbol = raw.strip().strip("\x00")
    symbol = symbol.replace(" ", "").replace("\t", "")
    return symbol.upper()


class SymbolDirectory:
    """Bidirectional mint/symbol mapping for the two mints of one pool.

    Mints whose metadata could not be resolved carry a fallback symbol
    (the start of their address) and stay in the unresolved set until the
    user confirms a mapping through `map_symbol`.
    """

    def __init__(self) -> None:
        self._mint_to_symbol: dict[Pubkey, str] = {}
        self._symbol_to_mint: dict[str, Pubkey] = {}
        self._unresolved: set[Pubkey] = set()

    def add(self, mint: Pubkey, symbol: str, resolved: bool = True) -> None:
        self._mint_to_symbol[mint] = symbol
        self._symbol_to_mint[symbol] = mint
        if resolved:
            self._unresolved.discard(mint)
        else:
            self._unresolved.add(mint)

    def map_symbol(self, symbol: str, mint: Pubkey) -> None:
        """Record a user-confirmed mapping and mark the mint resolved."""
        self.add(mint, normalize_symbol(symbol), resolved=True)

    def maybe_symbol(self, mint: Pubkey) -> Optional[str]:
        return self._mint_to_symbol.get(mint)

    def symbol_for(self, mint: Pubkey) -> str:
        """Display symbol for a mint, falling back to its truncated address."""
        symbol = self._mint_to_symbol.get(mint)
        return symbol if symbol else truncate_address(mint)

    def maybe_mint(self, symbol: str) -> Optional[Pubkey]:
        return self._symbol_to_mint.get(normalize_symbol(symbol))

    def mint_for(self, symbol: str) -> Pubkey:
        """Look up the mint a symbol refers to.

        Raises:
            MissingSymbolMapping: Unknown symbol, but exactly one mint is
                unresolved and could be what the user meant
            UnknownSymbol: Unknown symbol otherwise
        """
        key = normalize_symbol(symbol)
        if not key:
            raise UnknownSymbol(symbol, self.symbols())
        mint = self._symbol_to_mint.get(key)
        if mint is not None:
            return mint
        candidate = self.unresolved_candidate()
        if candidate is not None:
            raise MissingSymbolMapping(key, str(candidate))
        raise UnknownSymbol(symbol, self.symbols())

    def unresolved_candidate(self) -> Optional[Pubkey]:
        # With both mints unresolved, guessing which one the user meant is
        # how mistakes happen; they must type the fallback symbol instead.
        if len(self._unresolved) == 1:
            return next(iter(self._unresolved))
        return None

    def is_unresolved(self, mint: Pubkey) -> bool:
        return mint in self._unresolved

    def symbols(self) -> list[str]:
        return sorted(self._symbol_to_mint)


def build_symbol_directory(mints: Iterable[Pubkey], fetch_account: AccountFetcher) -> SymbolDirectory:
    """Decode metadata for each mint; failures fall back to address symbols."""
    directory = SymbolDirectory()
    for mint in mints:
        symbol = ""
        try:
            symbol = normalize_symbol(fetch_token_metadata(mint, fetch_account).symbol)
        except (MetadataFormatError, ChainError, SolanaRpcException) as exc:
            logger.warning("failed to fetch metadata for mint %s: %s", truncate_address(mint), exc)
        if symbol:
            directory.add(mint, symbol)
        else:
            directory.add(mint, normalize_symbol(str(mint)[:_FALLBACK_SYMBOL_LEN]), resolved=False)
    return directory
