"""
In-Memory Storage Implementation

Used by the test suite and for local runs without Google credentials.
Records are copied on the way in and on the way out, so callers can
never mutate stored state by holding on to a returned object.
"""

from typing import Iterable, Optional

from goldquest.models import Account, Transaction
from goldquest.services.storage.interface import (
    AccountStorageInterface,
    DuplicateError,
    NotFoundError,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """
    Transactions kept in per-account dicts.

    Insertion order is preserved, which gives the "store order"
    the reconciliation engine relies on.
    """

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self._records: dict[str, dict[str, Transaction]] = {}
        for transaction in transactions or []:
            self._records.setdefault(transaction.account_id, {})[transaction.id] = (
                transaction.model_copy(deep=True)
            )

    def _find(self, transaction_id: str) -> Optional[Transaction]:
        for records in self._records.values():
            if transaction_id in records:
                return records[transaction_id]
        return None

    async def save_transaction(self, transaction: Transaction) -> bool:
        if self._find(transaction.id) is not None:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._records.setdefault(transaction.account_id, {})[transaction.id] = (
            transaction.model_copy(deep=True)
        )
        return True

    async def get_transaction(
        self,
        transaction_id: str,
        account_id: Optional[str] = None,
    ) -> Optional[Transaction]:
        if account_id is None:
            found = self._find(transaction_id)
        else:
            found = self._records.get(account_id, {}).get(transaction_id)
        return found.model_copy(deep=True) if found else None

    async def list_transactions(self, account_id: str) -> list[Transaction]:
        return [
            transaction.model_copy(deep=True)
            for transaction in self._records.get(account_id, {}).values()
        ]

    async def replace_transaction(self, transaction: Transaction) -> bool:
        existing = self._find(transaction.id)
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction.id}")

        if existing.account_id != transaction.account_id:
            del self._records[existing.account_id][transaction.id]
            self._records.setdefault(transaction.account_id, {})[transaction.id] = (
                transaction.model_copy(deep=True)
            )
        else:
            self._records[transaction.account_id][transaction.id] = (
                transaction.model_copy(deep=True)
            )
        return True

    async def delete_transaction(self, transaction_id: str, account_id: str) -> bool:
        records = self._records.get(account_id, {})
        if transaction_id not in records:
            return False
        del records[transaction_id]
        return True

    def all_transactions(self) -> list[Transaction]:
        """Every stored transaction across accounts (test helper)."""
        return [
            transaction.model_copy(deep=True)
            for records in self._records.values()
            for transaction in records.values()
        ]


class InMemoryAccountStorage(AccountStorageInterface):
    """Accounts kept in a dict keyed by ID."""

    def __init__(self, accounts: Optional[Iterable[Account]] = None):
        self._accounts: dict[str, Account] = {}
        for account in accounts or []:
            self._accounts[account.id] = account.model_copy(deep=True)

    async def add_account(self, account: Account) -> bool:
        """Create an account (account-management side, not used by the ledger)."""
        if account.id in self._accounts:
            raise DuplicateError(f"Account already exists: {account.id}")
        self._accounts[account.id] = account.model_copy(deep=True)
        return True

    async def list_accounts(self) -> list[Account]:
        return [account.model_copy(deep=True) for account in self._accounts.values()]

    async def update_account(self, account: Account) -> bool:
        if account.id not in self._accounts:
            raise NotFoundError(f"Account not found: {account.id}")
        self._accounts[account.id] = account.model_copy(deep=True)
        return True
