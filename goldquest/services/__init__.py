"""Services package."""

from goldquest.services.storage import (
    AccountStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAccountStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAccountStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    "AccountStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAccountStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAccountStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "StorageError",
    "TransactionStorageInterface",
]
