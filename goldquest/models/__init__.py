"""
Data Models Package

This package contains all Pydantic models used by the GoldQuest ledger.
All data flowing through the ledger must conform to these schemas.
"""

from goldquest.models.account import Account, AccountCategory
from goldquest.models.transaction import (
    UNCATEGORIZED,
    NewTransaction,
    OriginalImportData,
    Transaction,
    TransferPair,
    TransferReconciliation,
    new_transaction_id,
    utc_now,
)

__all__ = [
    # Account models
    "Account",
    "AccountCategory",
    # Transaction models
    "NewTransaction",
    "OriginalImportData",
    "Transaction",
    "TransferPair",
    "TransferReconciliation",
    # Helpers
    "UNCATEGORIZED",
    "new_transaction_id",
    "utc_now",
]
