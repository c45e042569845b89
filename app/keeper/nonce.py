"""
Per-account nonce sequencing for keeper transactions.
"""

import threading
from typing import Callable, Dict, TypeVar

from web3 import Web3

from .logging_config import setup_logger

logger = setup_logger()

T = TypeVar("T")


class NonceSequencer:
    """
    Hands out consecutive nonces per account without a ledger round trip per transaction.

    The first request for an account reads its pending transaction count; later requests
    are served from the cache. Issuance for one account is serialized, while the
    operations that consume the nonces may run concurrently.
    """

    def __init__(self, w3: Web3):
        self.w3 = w3
        self._next: Dict[str, int] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, account: str) -> threading.Lock:
        with self._registry_lock:
            if account not in self._locks:
                self._locks[account] = threading.Lock()
            return self._locks[account]

    def _fetch(self, account: str) -> int:
        return self.w3.eth.get_transaction_count(account, "pending")

    def get_next(self, account: str) -> int:
        """
        Issue the next nonce for ``account``.

        Args:
            account: Checksummed account address.

        Returns:
            int: The nonce to use for the next transaction.
        """
        with self._lock_for(account):
            if account not in self._next:
                self._next[account] = self._fetch(account)
                logger.debug("NonceSequencer: fetched pending nonce %s for %s", self._next[account], account)
            nonce = self._next[account]
            self._next[account] = nonce + 1
            return nonce

    def reset(self, account: str) -> int:
        """
        Discard the cached value and refetch the pending count from the ledger.

        The cache entry is dropped before the fetch, so if the ledger read fails the next
        ``get_next`` fetches again instead of issuing a stale nonce.
        """
        with self._lock_for(account):
            self._next.pop(account, None)
            self._next[account] = self._fetch(account)
            logger.info("NonceSequencer: reset nonce for %s to %s", account, self._next[account])
            return self._next[account]

    def run_sequenced(self, account: str, operation: Callable[[int], T]) -> T:
        """
        Run ``operation`` with a freshly issued nonce.

        On any failure the account is reset and the original exception is re-raised.
        Nothing is retried.
        """
        nonce = self.get_next(account)
        try:
            return operation(nonce)
        except Exception:
            logger.warning("NonceSequencer: operation with nonce %s failed for %s, resetting", nonce, account)
            try:
                self.reset(account)
            except Exception as reset_error:
                logger.error("NonceSequencer: reset failed for %s: %s", account, reset_error, exc_info=True)
            raise

    def clear(self) -> None:
        """Forget every cached nonce. Account locks are kept so in-flight holders stay serialized."""
        with self._registry_lock:
            self._next.clear()
