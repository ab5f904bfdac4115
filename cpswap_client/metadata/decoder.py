"""Token name/symbol decoding from on-chain account bytes.

Two unrelated encodings carry a token's descriptive metadata:

1) Metaplex metadata account (legacy token program), at a PDA derived
   from the mint:
   +----------------------+----------------------+------------------------+
   | key (1)              | update_authority (32)| mint (32)              |
   +----------------------+----------------------+------------------------+
   | name (borsh string)  | symbol (borsh string)| uri (borsh string) ... |
   +----------------------+----------------------+------------------------+

2) Token-2022 mint extensions, TLV entries after the 82-byte mint record.
   There is no discriminator between the two shapes, so both are tried:
   a) padded:   mint (82) | zero padding (83) | account type = 1 | TLV...
   b) unpadded: mint (82) | account type = 1 | TLV...

   TLV entry: type u16 | length u16 | value[length]; type 0 ends the region.
   type 19 TokenMetadata:   update_authority (32) | mint (32) | name | symbol
                            | uri | u32 count | count x (key, value) strings
   type 18 MetadataPointer: authority (32) | metadata_address (32)

A metadata pointer is followed exactly one hop. The pointed-to account is
never searched for a further pointer, so a token pointing at itself, or at
a chain of redirects, costs at most one extra fetch.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from cpswap_client.chain.accounts import AccountFetcher
from cpswap_client.core.errors import (
    AccountNotFound,
    MetadataNotFound,
    MintMismatch,
    TruncatedMetadata,
    TruncatedTLV,
    UnrecognizedAccountLayout,
    UnsupportedTokenProgram,
)
from cpswap_client.metadata.reader import BinaryReader, trim_meta

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
MPL_TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

BASE_MINT_LEN = 82
BASE_ACCOUNT_LEN = 165
MINT_PADDING_LEN = BASE_ACCOUNT_LEN - BASE_MINT_LEN
ACCOUNT_TYPE_MINT = 1
EXTENSION_UNINITIALIZED = 0
EXTENSION_METADATA_POINTER = 18
EXTENSION_TOKEN_METADATA = 19

_METAPLEX_PREFIX_LEN = 1 + 32 + 32


@dataclass(frozen=True)
class Token:
    """Descriptive metadata of a token."""
    name: str
    symbol: str


def decode_metaplex_metadata(data: bytes) -> Token:
    """Decode name and symbol from a Metaplex metadata account."""
    reader = BinaryReader(data)
    if reader.take(_METAPLEX_PREFIX_LEN) is None:
        raise TruncatedMetadata("metadata account shorter than key, update authority and mint")
    name = reader.borsh_string()
    if name is None:
        raise TruncatedMetadata("failed parsing token name")
    symbol = reader.borsh_string()
    if symbol is None:
        raise TruncatedMetadata("failed parsing token symbol")
    return Token(name=trim_meta(name), symbol=trim_meta(symbol))


def token2022_tlv_region(data: bytes) -> bytes:
    """Locate the extension TLV region of a Token-2022 mint account.

    The padded shape is tried first: an unpadded region whose first TLV
    byte happens to be 1 would otherwise be misread.
    """
    if len(data) <= BASE_MINT_LEN:
        raise UnrecognizedAccountLayout("mint carries no Token-2022 extension bytes")
    rest = data[BASE_MINT_LEN:]

    if len(rest) >= MINT_PADDING_LEN + 1:
        padding = rest[:MINT_PADDING_LEN]
        if not any(padding) and rest[MINT_PADDING_LEN] == ACCOUNT_TYPE_MINT:
            return rest[MINT_PADDING_LEN + 1:]

    if rest[0] == ACCOUNT_TYPE_MINT:
        return rest[1:]
    raise UnrecognizedAccountLayout("token2022 mint missing account type marker")


def decode_metadata_pointer(value: bytes) -> Optional[Pubkey]:
    """Return the pointer's metadata address, or None when unset."""
    if len(value) < 64:
        return None
    address = value[32:64]
    if not any(address):
        return None
    return Pubkey.from_bytes(address)


def decode_token_metadata_entry(value: bytes, mint: Pubkey) -> Token:
    """Decode a TokenMetadata (type 19) payload for `mint`."""
    reader = BinaryReader(value)
    if reader.take(32) is None:
        raise TruncatedMetadata("invalid token metadata: update authority missing")
    mint_bytes = reader.take(32)
    if mint_bytes is None:
        raise TruncatedMetadata("invalid token metadata: mint missing")
    if mint_bytes != bytes(mint):
        raise MintMismatch(f"token metadata belongs to {Pubkey.from_bytes(mint_bytes)}, not {mint}")

    fields = {}
    for field_name in ("name", "symbol", "uri"):
        text = reader.borsh_string()
        if text is None:
            raise TruncatedMetadata(f"invalid token metadata: {field_name} missing")
        fields[field_name] = text

    count = reader.u32()
    if count is None:
        raise TruncatedMetadata("invalid token metadata: additional metadata length missing")
    # Additional pairs are only validated, not kept.
    for _ in range(count):
        if reader.borsh_string() is None:
            raise TruncatedMetadata("invalid token metadata: additional metadata key missing")
        if reader.borsh_string() is None:
            raise TruncatedMetadata("invalid token metadata: additional metadata value missing")

    return Token(name=trim_meta(fields["name"]), symbol=trim_meta(fields["symbol"]))


def scan_tlv_entries(region: bytes, mint: Pubkey) -> tuple[Optional[Token], Optional[Pubkey]]:
    """Walk TLV entries looking for TokenMetadata or a MetadataPointer.

    Returns:
        (token, None) when a TokenMetadata entry is found,
        (None, pointer) when only a MetadataPointer is found

    Raises:
        TruncatedTLV: An entry header or value runs past the region
        MetadataNotFound: Neither entry type is present
    """
    reader = BinaryReader(region)
    pointer: Optional[Pubkey] = None

    while reader.remaining > 0:
        if reader.remaining < 4:
            raise TruncatedTLV(f"malformed token2022 TLV: truncated header ({reader.remaining} bytes remain)")
        entry_type = reader.u16()
        if entry_type == EXTENSION_UNINITIALIZED:
            break
        length = reader.u16()
        value = reader.take(length)
        if value is None:
            raise TruncatedTLV(
                f"malformed token2022 TLV: length {length} exceeds remaining {reader.remaining}"
            )

        if entry_type == EXTENSION_TOKEN_METADATA:
            return decode_token_metadata_entry(value, mint), None
        if entry_type == EXTENSION_METADATA_POINTER:
            pointer = decode_metadata_pointer(value) or pointer

    if pointer is not None:
        return None, pointer
    raise MetadataNotFound("no Token-2022 TokenMetadata found")


def _decode_pointed_account(data: bytes, mint: Pubkey) -> Token:
    # The pointed-to account holds either a bare TLV region or a bare
    # TokenMetadata payload. Only a missing metadata entry falls back to
    # the bare decode; malformed TLV propagates. Any pointer found here
    # is ignored.
    try:
        token, _ignored_pointer = scan_tlv_entries(data, mint)
    except MetadataNotFound:
        token = None
    if token is not None:
        return token
    return decode_token_metadata_entry(data, mint)


def fetch_via_pointer(pointer: Pubkey, mint: Pubkey, fetch_account: AccountFetcher) -> Token:
    logger.debug("following metadata pointer %s for mint %s", pointer, mint)
    account = fetch_account(pointer)
    if account is None or not account.data:
        raise AccountNotFound(str(pointer), "metadata pointer account")
    return _decode_pointed_account(account.data, mint)


def decode_token2022_metadata(data: bytes, mint: Pubkey, fetch_account: AccountFetcher) -> Token:
    """Decode a Token-2022 mint's metadata, following one pointer hop if needed."""
    region = token2022_tlv_region(data)
    token, pointer = scan_tlv_entries(region, mint)
    if token is not None:
        return token
    return fetch_via_pointer(pointer, mint, fetch_account)


def metaplex_metadata_address(mint: Pubkey) -> Pubkey:
    address, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(MPL_TOKEN_METADATA_PROGRAM_ID), bytes(mint)],
        MPL_TOKEN_METADATA_PROGRAM_ID,
    )
    return address


def fetch_metaplex_metadata(mint: Pubkey, fetch_account: AccountFetcher) -> Token:
    address = metaplex_metadata_address(mint)
    account = fetch_account(address)
    if account is None or not account.data:
        raise AccountNotFound(str(address), "metadata account")
    if account.owner != MPL_TOKEN_METADATA_PROGRAM_ID:
        raise UnsupportedTokenProgram(
            f"metadata account {address} not owned by mpl-token-metadata (owner={account.owner})"
        )
    return decode_metaplex_metadata(account.data)


def fetch_token_metadata(mint: Pubkey, fetch_account: AccountFetcher) -> Token:
    """Fetch and decode a mint's name and symbol.

    Routes on the mint account's owner: Token-2022 mints carry metadata in
    their own extensions, legacy token mints in a Metaplex account.

    Raises:
        AccountNotFound: The mint (or metadata/pointer account) is missing
        UnsupportedTokenProgram: The mint is owned by another program
        MetadataFormatError: Any decoding failure
    """
    account = fetch_account(mint)
    if account is None or not account.data:
        raise AccountNotFound(str(mint), "mint")
    if account.owner == TOKEN_2022_PROGRAM_ID:
        return decode_token2022_metadata(account.data, mint, fetch_account)
    if account.owner == TOKEN_PROGRAM_ID:
        return fetch_metaplex_metadata(mint, fetch_account)
    raise UnsupportedTokenProgram(f"mint {mint} is owned by unsupported program {account.owner}")
