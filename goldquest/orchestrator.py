"""
Main Orchestrator for GoldQuest Ledger

This module ties together all the components and defines the
flows a host application (UI, CLI, importer) drives:
1. Open account (create account -> record opening balance)
2. Transactions (create / update / delete through the ledger)
3. Transfers (create / edit / delete, list reconciled pairs)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Transactions are only mutated through the ledger
- Transfers are only listed through the reconciliation engine
- Storage is optional; without Google Sheets everything runs in memory

This is the "glue" that wires one set of stores, one converter and
one cache into every component.
"""

import datetime as dt
from typing import Optional, Union

from goldquest.config import get_settings, validate_all_settings
from goldquest.currency import CurrencyConverter
from goldquest.ledger import LedgerResult, TransactionLedger
from goldquest.logging_config import configure_logging, get_logger
from goldquest.models import Account, TransferReconciliation
from goldquest.reconciliation import TransferReconciler
from goldquest.services.storage import (
    GoogleSheetsAccountStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAccountStorage,
    InMemoryTransactionStorage,
)


logger = get_logger(__name__)

AccountStore = Union[InMemoryAccountStorage, GoogleSheetsAccountStorage]


class LedgerApp:
    """
    Application-level flows on top of the ledger.

    Flow (open account):
    1. Create the account with its starting balance already set
    2. Record an "Opening Balance" transaction that does not move it

    Flow (list transfers):
    1. Read every account's transactions (store order)
    2. Pair the legs (memoized while nothing changes)
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        account_storage: AccountStore,
        reconciler: Optional[TransferReconciler] = None,
    ):
        self._ledger = ledger
        self._accounts = account_storage
        self._reconciler = reconciler or TransferReconciler(settings=ledger.settings)

    @property
    def ledger(self) -> TransactionLedger:
        return self._ledger

    @property
    def reconciler(self) -> TransferReconciler:
        return self._reconciler

    async def open_account(
        self,
        account: Account,
        opening_date: Optional[dt.date] = None,
    ) -> tuple[Account, Optional[LedgerResult]]:
        """
        Create an account and record its opening balance.

        Returns:
            (account, opening_balance_result). The result is None when
            the account starts at zero.
        """
        await self._accounts.add_account(account)
        logger.info(
            "account_opened",
            account_id=account.id,
            currency=account.currency,
            balance=str(account.balance),
        )
        result = await self._ledger.record_opening_balance(
            account, account.balance, opening_date
        )
        return account, result

    async def list_transfers(
        self,
        account_ids: Optional[list[str]] = None,
    ) -> TransferReconciliation:
        """Reconciled transfer pairs across the given (default: all) accounts."""
        transactions = await self._ledger.get_all_transactions(account_ids)
        return self._reconciler.reconcile(transactions)


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerApp, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run fully in memory.

    Returns:
        (app, sheets_client)
    """
    configure_logging()

    sheets_client = None
    account_storage: AccountStore
    transaction_storage: Union[InMemoryTransactionStorage, GoogleSheetsTransactionStorage]

    if use_storage:
        status = validate_all_settings()
        if status["google_sheets"]:
            sheets_client = GoogleSheetsClient()
            account_storage = GoogleSheetsAccountStorage(sheets_client)
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
        else:
            # Storage not configured - continue in memory
            logger.warning(
                "storage_not_configured",
                error=status.get("google_sheets_error"),
            )
            use_storage = False

    if not use_storage:
        account_storage = InMemoryAccountStorage()
        transaction_storage = InMemoryTransactionStorage()

    settings = get_settings().ledger
    ledger = TransactionLedger(
        account_storage=account_storage,
        transaction_storage=transaction_storage,
        converter=CurrencyConverter(),
        settings=settings,
    )

    app = LedgerApp(ledger, account_storage)
    return app, sheets_client
