"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend serves
tests and local runs. Both satisfy the same interfaces.
"""

from goldquest.services.storage.interface import (
    AccountStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from goldquest.services.storage.memory import (
    InMemoryAccountStorage,
    InMemoryTransactionStorage,
)
from goldquest.services.storage.google_sheets import (
    GoogleSheetsAccountStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAccountStorage",
    "InMemoryTransactionStorage",
    # Google Sheets implementation
    "GoogleSheetsAccountStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
]
