"""Remote ledger reads: raw accounts and pool vault reserves."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment, Processed
from solders.pubkey import Pubkey

from cpswap_client.core.curve import ReserveSnapshot
from cpswap_client.core.errors import AccountNotFound, IncompleteReserveData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountInfo:
    """Owner program and raw data of an on-chain account."""
    owner: Pubkey
    data: bytes


# Returns None when the account does not exist.
AccountFetcher = Callable[[Pubkey], Optional[AccountInfo]]


class RpcLedger:
    """Thin synchronous wrapper over the JSON-RPC client."""

    def __init__(self, client: Client, commitment: Commitment = Processed):
        self.client = client
        self.commitment = commitment

    def fetch_account(self, address: Pubkey) -> Optional[AccountInfo]:
        logger.debug("getAccountInfo %s", address)
        resp = self.client.get_account_info(address, commitment=self.commitment, encoding="base64")
        if resp.value is None:
            return None
        return AccountInfo(owner=resp.value.owner, data=bytes(resp.value.data))

    def require_account(self, address: Pubkey, what: str = "account") -> AccountInfo:
        info = self.fetch_account(address)
        if info is None or not info.data:
            raise AccountNotFound(str(address), what)
        return info

    def fetch_token_balance(self, token_account: Pubkey) -> ReserveSnapshot:
        logger.debug("getTokenAccountBalance %s", token_account)
        resp = self.client.get_token_account_balance(token_account, commitment=self.commitment)
        return ReserveSnapshot(balance=int(resp.value.amount), decimals=resp.value.decimals)

    def fetch_reserves(self, vaults: Sequence[Pubkey]) -> tuple[ReserveSnapshot, ReserveSnapshot]:
        """Read both vault balances concurrently.

        All or nothing: if either read fails the whole fetch fails, so no
        caller ever quotes against half-fresh reserves.
        """
        if len(vaults) != 2:
            raise ValueError(f"expected 2 vaults, got {len(vaults)}")
        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(self.fetch_token_balance, vault) for vault in vaults]
            try:
                first, second = (future.result() for future in futures)
            except Exception as exc:
                logger.warning("fetching pool reserves failed: %s", exc)
                raise IncompleteReserveData(f"fetching pool reserves failed: {exc}") from exc
        return first, second
