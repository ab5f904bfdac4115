"""Tests for token metadata decoding (Metaplex and Token-2022 layouts)."""

import struct

import pytest
from solders.pubkey import Pubkey

from cpswap_client.core.errors import (
    AccountNotFound,
    MetadataFormatError,
    MetadataNotFound,
    MintMismatch,
    TruncatedMetadata,
    TruncatedTLV,
    UnrecognizedAccountLayout,
    UnsupportedTokenProgram,
)
from cpswap_client.metadata.decoder import (
    Token,
    decode_metaplex_metadata,
    decode_token2022_metadata,
    decode_token_metadata_entry,
    fetch_token_metadata,
    metaplex_metadata_address,
    scan_tlv_entries,
    token2022_tlv_region,
)
from cpswap_client.metadata.reader import BinaryReader, trim_meta
from tests.fixtures.chain_fixtures import (
    MPL_TOKEN_METADATA_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    WSOL,
    FakeLedger,
    borsh_string,
    key,
    metadata_pointer_tlv,
    metaplex_metadata,
    tlv,
    token2022_mint,
    token_metadata_tlv,
    token_metadata_value,
)


class TestBinaryReader:
    def test_borsh_string(self):
        reader = BinaryReader(borsh_string("abc") + b"rest")
        assert reader.borsh_string() == "abc"
        assert reader.remaining == 4

    def test_short_string_leaves_offset(self):
        reader = BinaryReader(struct.pack("<I", 10) + b"abc")
        assert reader.borsh_string() is None
        assert reader.offset == 0

    def test_short_reads(self):
        reader = BinaryReader(b"\x01")
        assert reader.u16() is None
        assert reader.u32() is None
        assert reader.take(2) is None
        assert reader.take(1) == b"\x01"

    def test_trim_meta(self):
        assert trim_meta("  WSOL\x00\x00\x00") == "WSOL"


class TestLayoutA:
    """Metaplex metadata accounts."""

    def test_decode(self):
        data = metaplex_metadata(key(10), "USD Coin", "USDC")
        assert decode_metaplex_metadata(data) == Token(name="USD Coin", symbol="USDC")

    def test_decoding_is_deterministic(self):
        data = metaplex_metadata(key(10), "USD Coin", "USDC")
        assert decode_metaplex_metadata(data) == decode_metaplex_metadata(data)

    def test_nul_padded_fields(self):
        data = metaplex_metadata(key(10), "USD Coin" + "\x00" * 24, "USDC" + "\x00" * 6)
        token = decode_metaplex_metadata(data)
        assert token.name == "USD Coin"
        assert token.symbol == "USDC"

    def test_truncated_prefix(self):
        with pytest.raises(TruncatedMetadata):
            decode_metaplex_metadata(bytes(40))

    def test_truncated_symbol(self):
        data = metaplex_metadata(key(10), "USD Coin", "USDC")
        cut = 65 + len(borsh_string("USD Coin")) + 6
        with pytest.raises(TruncatedMetadata, match="symbol"):
            decode_metaplex_metadata(data[:cut])

    def test_invalid_utf8_is_replaced(self):
        data = bytes(65) + struct.pack("<I", 2) + b"\xff\xfe" + borsh_string("X")
        token = decode_metaplex_metadata(data)
        assert token.symbol == "X"
        assert "�" in token.name


class TestLayoutB:
    """Token-2022 extension TLV entries."""

    def test_padded_wrapped_sol(self):
        """Padded mint with TokenMetadata decodes name and symbol."""
        data = token2022_mint(token_metadata_tlv(WSOL, "Wrapped SOL", "WSOL"), padded=True)
        assert data[82:165] == bytes(83)
        assert data[165] == 1
        token = decode_token2022_metadata(data, WSOL, FakeLedger())
        assert token == Token(name="Wrapped SOL", symbol="WSOL")

    def test_unpadded(self):
        data = token2022_mint(token_metadata_tlv(key(10), "Bonk", "BONK"), padded=False)
        assert decode_token2022_metadata(data, key(10), FakeLedger()).symbol == "BONK"

    def test_skips_other_extensions(self):
        data = token2022_mint(
            tlv(1, bytes(8)),  # transfer fee config or similar
            metadata_pointer_tlv(key(10)),
            token_metadata_tlv(key(10), "Bonk", "BONK"),
        )
        assert decode_token2022_metadata(data, key(10), FakeLedger()).symbol == "BONK"

    def test_additional_metadata_pairs(self):
        entry = token_metadata_tlv(key(10), "Bonk", "BONK", additional=[("site", "x"), ("k", "v")])
        assert decode_token2022_metadata(token2022_mint(entry), key(10), FakeLedger()).name == "Bonk"

    def test_truncated_additional_metadata(self):
        value = token_metadata_value(key(10), "Bonk", "BONK", additional=[("site", "x")])
        with pytest.raises(TruncatedMetadata, match="additional"):
            decode_token_metadata_entry(value[:-3], key(10))

    def test_mint_mismatch(self):
        data = token2022_mint(token_metadata_tlv(key(11), "Other", "OTH"))
        with pytest.raises(MintMismatch):
            decode_token2022_metadata(data, key(10), FakeLedger())

    def test_no_extensions(self):
        with pytest.raises(UnrecognizedAccountLayout):
            token2022_tlv_region(bytes(82))

    def test_missing_account_type(self):
        data = bytes(82) + b"\x02" + bytes(10)
        with pytest.raises(UnrecognizedAccountLayout):
            token2022_tlv_region(data)

    def test_tlv_length_overrun(self):
        region = struct.pack("<HH", 19, 500) + bytes(10)
        with pytest.raises(TruncatedTLV):
            scan_tlv_entries(region, key(10))

    def test_tlv_truncated_header(self):
        with pytest.raises(TruncatedTLV):
            scan_tlv_entries(b"\x13", key(10))

    @pytest.mark.parametrize("tail", [b"\x00\x00", b"\x00\x00\x00", b"\x13\x00\x05"])
    def test_short_trailing_header(self, tail):
        """Fewer than four trailing bytes are a truncated header, even when zero."""
        region = metadata_pointer_tlv(key(60)) + tail
        with pytest.raises(TruncatedTLV):
            scan_tlv_entries(region, key(10))

    def test_uninitialized_entry_ends_region(self):
        region = struct.pack("<H", 0) + token_metadata_tlv(key(10), "Bonk", "BONK")
        with pytest.raises(MetadataNotFound):
            scan_tlv_entries(region, key(10))

    def test_empty_pointer_is_ignored(self):
        data = token2022_mint(metadata_pointer_tlv(None))
        with pytest.raises(MetadataNotFound):
            decode_token2022_metadata(data, key(10), FakeLedger())

    def test_format_errors_share_a_base(self):
        with pytest.raises(MetadataFormatError):
            token2022_tlv_region(b"")


class TestMetadataPointer:
    """Pointer entries are followed exactly one hop."""

    def test_follows_pointer_to_tlv_account(self):
        mint, target = key(10), key(60)
        ledger = FakeLedger()
        ledger.put(target, TOKEN_2022_PROGRAM_ID, token_metadata_tlv(mint, "Pointed", "PTD"))
        data = token2022_mint(metadata_pointer_tlv(target))
        assert decode_token2022_metadata(data, mint, ledger).symbol == "PTD"
        assert ledger.fetched == [target]

    def test_follows_pointer_to_bare_payload(self):
        """A zero update authority reads as an empty TLV region, then decodes bare."""
        mint, target = key(10), key(60)
        ledger = FakeLedger()
        ledger.put(target, key(70), token_metadata_value(mint, "Bare", "BARE", authority=Pubkey.default()))
        data = token2022_mint(metadata_pointer_tlv(target))
        assert decode_token2022_metadata(data, mint, ledger).symbol == "BARE"

    def test_malformed_pointed_account_is_not_decoded_bare(self):
        """A TLV overrun in the pointed account propagates instead of falling back."""
        mint, target = key(10), key(60)
        ledger = FakeLedger()
        # authority bytes 0x62 read as entry type 0x6262 with an overrunning length
        ledger.put(target, key(70), token_metadata_value(mint, "Bare", "BARE", authority=key(98)))
        data = token2022_mint(metadata_pointer_tlv(target))
        with pytest.raises(TruncatedTLV):
            decode_token2022_metadata(data, mint, ledger)

    def test_second_pointer_is_not_followed(self):
        """A pointer found in the pointed account never triggers another fetch."""
        mint, first, second = key(10), key(60), key(61)
        ledger = FakeLedger()
        ledger.put(first, TOKEN_2022_PROGRAM_ID, metadata_pointer_tlv(second))
        ledger.put(second, TOKEN_2022_PROGRAM_ID, token_metadata_tlv(mint, "Far", "FAR"))
        data = token2022_mint(metadata_pointer_tlv(first))
        with pytest.raises(MetadataFormatError):
            decode_token2022_metadata(data, mint, ledger)
        assert ledger.fetched == [first]

    def test_self_pointer_costs_one_fetch(self):
        mint = key(10)
        data = token2022_mint(metadata_pointer_tlv(mint))
        ledger = FakeLedger()
        ledger.put(mint, TOKEN_2022_PROGRAM_ID, data)
        with pytest.raises(MetadataFormatError):
            decode_token2022_metadata(data, mint, ledger)
        assert ledger.fetched == [mint]

    def test_missing_pointed_account(self):
        data = token2022_mint(metadata_pointer_tlv(key(60)))
        with pytest.raises(AccountNotFound):
            decode_token2022_metadata(data, key(10), FakeLedger())


class TestFetchTokenMetadata:
    """Dispatch on the mint's owning program."""

    def test_legacy_mint_uses_metaplex(self):
        mint = key(10)
        ledger = FakeLedger()
        ledger.put(mint, TOKEN_PROGRAM_ID, bytes(82))
        ledger.put(metaplex_metadata_address(mint), MPL_TOKEN_METADATA_PROGRAM_ID,
                   metaplex_metadata(mint, "USD Coin", "USDC"))
        assert fetch_token_metadata(mint, ledger).symbol == "USDC"

    def test_token2022_mint_uses_extensions(self):
        ledger = FakeLedger()
        ledger.put(WSOL, TOKEN_2022_PROGRAM_ID, token2022_mint(token_metadata_tlv(WSOL, "Wrapped SOL", "WSOL")))
        assert fetch_token_metadata(WSOL, ledger) == Token(name="Wrapped SOL", symbol="WSOL")

    def test_missing_mint(self):
        with pytest.raises(AccountNotFound):
            fetch_token_metadata(key(10), FakeLedger())

    def test_missing_metaplex_account(self):
        mint = key(10)
        ledger = FakeLedger()
        ledger.put(mint, TOKEN_PROGRAM_ID, bytes(82))
        with pytest.raises(AccountNotFound):
            fetch_token_metadata(mint, ledger)

    def test_metaplex_account_wrong_owner(self):
        mint = key(10)
        ledger = FakeLedger()
        ledger.put(mint, TOKEN_PROGRAM_ID, bytes(82))
        ledger.put(metaplex_metadata_address(mint), key(70), metaplex_metadata(mint, "Fake", "FAKE"))
        with pytest.raises(UnsupportedTokenProgram):
            fetch_token_metadata(mint, ledger)

    def test_unsupported_owner(self):
        ledger = FakeLedger()
        ledger.put(key(10), key(70), bytes(82))
        with pytest.raises(UnsupportedTokenProgram):
            fetch_token_metadata(key(10), ledger)
