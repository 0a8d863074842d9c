"""Transaction ledger: balance maintenance, read cache and transfers."""

from goldquest.ledger.balance import (
    BalanceDirection,
    BalanceEffectResult,
    BalanceEffectStatus,
    BalanceUpdater,
    compute_effect,
    round_balance,
)
from goldquest.ledger.cache import TransactionCache
from goldquest.ledger.errors import LedgerError, LedgerOperationError
from goldquest.ledger.service import BalanceCheck, LedgerResult, TransactionLedger

__all__ = [
    "BalanceCheck",
    "BalanceDirection",
    "BalanceEffectResult",
    "BalanceEffectStatus",
    "BalanceUpdater",
    "LedgerError",
    "LedgerOperationError",
    "LedgerResult",
    "TransactionCache",
    "TransactionLedger",
    "compute_effect",
    "round_balance",
]
