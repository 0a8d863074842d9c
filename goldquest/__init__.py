"""
GoldQuest Ledger - Source Package

The transaction ledger behind the GoldQuest personal finance tracker.
It keeps account balances consistent with the transactions recorded
against them and rebuilds transfers from their two stored legs.

DESIGN PRINCIPLES:
1. The ledger is the only writer of transactions and balances
2. The authoritative store is written before any cache
3. No silent corrections (unsupported currencies fail loudly)
4. Transfers are derived on read, never stored
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "GoldQuest Team"
