"""Pytest configuration and shared fixtures for the swap client tests.

This module provides:
- Pytest markers for test categorization
- Shared pools, reserves and symbol directories
- An in-memory account reader standing in for the RPC node
"""

import pytest

from cpswap_client.metadata.directory import SymbolDirectory
from tests.fixtures.chain_fixtures import FakeLedger, key, make_pool, reserves


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "curve: Constant product quoting and slippage tests")
    config.addinivalue_line("markers", "metadata: Token metadata decoding and symbol directory tests")
    config.addinivalue_line("markers", "intent: Intent parsing and resolution tests")
    config.addinivalue_line("markers", "chain: Account decoding and instruction encoding tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on the module they live in."""
    module_markers = {
        "test_amounts": "curve",
        "test_constant_product": "curve",
        "test_slippage": "curve",
        "test_metadata_decoder": "metadata",
        "test_symbol_directory": "metadata",
        "test_intent": "intent",
        "test_pool_state": "chain",
        "test_swap_instruction": "chain",
        "test_transaction": "chain",
        "test_report": "intent",
        "test_cli": "intent",
    }
    for item in items:
        marker = module_markers.get(item.module.__name__.rsplit(".", 1)[-1])
        if marker:
            item.add_marker(getattr(pytest.mark, marker))


# ============================================================================
# Shared Fixtures
# ============================================================================


@pytest.fixture
def sol_mint():
    return key(10)


@pytest.fixture
def usdc_mint():
    return key(11)


@pytest.fixture
def pool(sol_mint, usdc_mint):
    """SOL/USDC pool at a 0.3% trade fee."""
    return make_pool(sol_mint, usdc_mint, trade_fee_rate=3000)


@pytest.fixture
def small_reserves():
    """Reserves (1000, 2000) with zero decimals on both legs."""
    return reserves(1000, 2000)


@pytest.fixture
def directory(sol_mint, usdc_mint):
    d = SymbolDirectory()
    d.add(sol_mint, "SOL")
    d.add(usdc_mint, "USDC")
    return d


@pytest.fixture
def ledger():
    return FakeLedger()
