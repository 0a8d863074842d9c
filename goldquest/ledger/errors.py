"""
Ledger Errors

Every failure of a ledger operation reaches the caller as a single
LedgerOperationError carrying a human-readable message. The underlying
storage or currency error is chained as `__cause__`.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerOperationError(LedgerError):
    """A create/update/delete could not be completed."""

    def __init__(
        self,
        operation: str,
        message: str,
        transaction_id: Optional[str] = None,
    ):
        self.operation = operation
        self.transaction_id = transaction_id
        super().__init__(message)
