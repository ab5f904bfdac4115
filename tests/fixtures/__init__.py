"""Test fixtures for the swap client."""

from tests.fixtures.chain_fixtures import (
    FakeLedger,
    key,
    make_pool,
    reserves,
)

__all__ = [
    "FakeLedger",
    "key",
    "make_pool",
    "reserves",
]
