"""Network table and client defaults."""

import os
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from cpswap_client.core.errors import ConfigurationError

RPC_URL_ENV = "CPSWAP_RPC_URL"


@dataclass(frozen=True)
class NetworkSettings:
    name: str
    program_id: Pubkey  # CP-swap (CPMM) program
    rpc_url: str


@dataclass(frozen=True)
class ClientSettings:
    slippage_pct: float
    compute_unit_limit: int
    compute_unit_price: int  # micro-lamports per compute unit
    confirm_timeout_s: float


NETWORKS = {
    "devnet": NetworkSettings(
        name="devnet",
        program_id=Pubkey.from_string("DRaycpLY18LhpbydsBWbVJtxpNv9oXPgjRSfpF2bWpYb"),
        rpc_url="https://api.devnet.solana.com",
    ),
    "mainnet": NetworkSettings(
        name="mainnet",
        program_id=Pubkey.from_string("CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C"),
        rpc_url="https://api.mainnet-beta.solana.com",
    ),
}


CLIENT_SETTINGS = ClientSettings(
    slippage_pct=0.5,
    compute_unit_limit=200_000,
    compute_unit_price=5_000,
    confirm_timeout_s=120.0,
)


def resolve_network(name: str) -> NetworkSettings:
    network = NETWORKS.get(name.strip().lower())
    if network is None:
        raise ConfigurationError(
            f"unknown network {name!r}, expected one of [{', '.join(sorted(NETWORKS))}]"
        )
    return network


def resolve_rpc_url(network: NetworkSettings, override: Optional[str] = None) -> str:
    """Resolve the RPC endpoint: explicit flag, then environment, then network default."""
    if override:
        return override
    return os.environ.get(RPC_URL_ENV) or network.rpc_url
