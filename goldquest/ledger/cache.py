"""
Transaction Read Cache

A per-account mirror of the authoritative transaction store, kept
for fast reads.

DESIGN DECISION: The cache is never a source of truth.
- Writes always hit the authoritative store first
- An account entry is either loaded (a complete copy) or absent
- A stale entry is treated as absent and reloaded on the next read

Entries that were never loaded are left alone on write. The next read
loads them from the authoritative store, which already holds the write.
"""

from typing import Iterable, Optional

from goldquest.logging_config import get_logger
from goldquest.models import Transaction
from goldquest.services.storage import TransactionStorageInterface


logger = get_logger(__name__)


class TransactionCache:
    """In-process read cache keyed by account ID, then transaction ID."""

    def __init__(self):
        self._entries: dict[str, dict[str, Transaction]] = {}
        self._stale: set[str] = set()

    def is_loaded(self, account_id: str) -> bool:
        """True if the account has a usable (loaded, not stale) entry."""
        return account_id in self._entries and account_id not in self._stale

    def is_stale(self, account_id: str) -> bool:
        return account_id in self._stale

    def get(self, account_id: str) -> Optional[list[Transaction]]:
        """
        Cached transactions for an account, in store order.

        Returns None on a miss or a stale entry.
        """
        if not self.is_loaded(account_id):
            return None
        return [tx.model_copy(deep=True) for tx in self._entries[account_id].values()]

    def find(self, transaction_id: str, account_id: str) -> Optional[Transaction]:
        entry = self._entries.get(account_id, {})
        found = entry.get(transaction_id)
        return found.model_copy(deep=True) if found else None

    def load(self, account_id: str, transactions: Iterable[Transaction]) -> None:
        """Replace the account's entry with a fresh copy."""
        self._entries[account_id] = {
            tx.id: tx.model_copy(deep=True) for tx in transactions
        }
        self._stale.discard(account_id)

    def upsert(self, transaction: Transaction) -> bool:
        """
        Update a transaction in place, inserting it if the entry lacks it.

        Returns:
            True if the loaded entry now holds the transaction,
            False if the account was never loaded
        """
        entry = self._entries.get(transaction.account_id)
        if entry is None:
            return False
        if transaction.id not in entry:
            logger.info(
                "cache_entry_inserted",
                transaction_id=transaction.id,
                account_id=transaction.account_id,
            )
        entry[transaction.id] = transaction.model_copy(deep=True)
        return True

    def remove(self, transaction_id: str, account_id: str) -> bool:
        """Drop a transaction from an account's entry. Returns True if it was there."""
        entry = self._entries.get(account_id)
        if entry is None or transaction_id not in entry:
            return False
        del entry[transaction_id]
        return True

    def mark_stale(self, account_id: str) -> None:
        """Flag an entry as out of step with the authoritative store."""
        self._stale.add(account_id)

    def invalidate(self, account_id: Optional[str] = None) -> None:
        """Forget one account's entry, or every entry."""
        if account_id is None:
            self._entries.clear()
            self._stale.clear()
        else:
            self._entries.pop(account_id, None)
            self._stale.discard(account_id)

    async def rebuild(
        self,
        account_id: str,
        store: TransactionStorageInterface,
    ) -> list[Transaction]:
        """Reload an account's entry from the authoritative store."""
        transactions = await store.list_transactions(account_id)
        self.load(account_id, transactions)
        logger.info(
            "cache_rebuilt",
            account_id=account_id,
            transaction_count=len(transactions),
        )
        return transactions
