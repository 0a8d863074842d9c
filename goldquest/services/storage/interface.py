"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the ledger decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the ledger needs. Neither store offers
multi-record transactions; the ledger sequences its writes instead.
"""

from abc import ABC, abstractmethod
from typing import Optional

from goldquest.models import Account, Transaction


class TransactionStorageInterface(ABC):
    """
    Abstract interface for the authoritative transaction store.

    Records are grouped per account and keyed by transaction ID.
    """

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        """
        Persist a new transaction.

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If a transaction with this ID already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        transaction_id: str,
        account_id: Optional[str] = None,
    ) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Args:
            transaction_id: The transaction's unique identifier
            account_id: Restrict the lookup to this account.
                        If None, every account is searched.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_transactions(self, account_id: str) -> list[Transaction]:
        """
        List every transaction of one account, in store order.
        """
        pass

    @abstractmethod
    async def replace_transaction(self, transaction: Transaction) -> bool:
        """
        Replace every field of an existing transaction.

        The record may move to another account if `account_id` changed.

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str, account_id: str) -> bool:
        """
        Delete a transaction.

        Returns:
            True if a record was removed, False if there was nothing to remove
        """
        pass


class AccountStorageInterface(ABC):
    """
    Abstract interface for the account store.

    Account management creates and deletes accounts. The ledger only
    lists them and replaces a record to write a new balance.
    """

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    async def update_account(self, account: Account) -> bool:
        """
        Replace an account record.

        Raises:
            NotFoundError: If the account doesn't exist
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
