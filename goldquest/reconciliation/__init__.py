"""Transfer pairing over the flat transaction list."""

from goldquest.reconciliation.transfers import (
    TransferReconciler,
    find_transfer_pairs,
    is_matching_leg,
)

__all__ = [
    "TransferReconciler",
    "find_transfer_pairs",
    "is_matching_leg",
]
