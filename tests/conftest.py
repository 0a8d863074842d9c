"""
Shared fixtures for the GoldQuest test suite.

Everything runs against the in-memory stores; no Google Sheets calls.
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from goldquest.config import LedgerSettings
from goldquest.currency import CurrencyConverter
from goldquest.ledger import TransactionLedger
from goldquest.models import Account
from goldquest.orchestrator import LedgerApp
from goldquest.services.storage import (
    InMemoryAccountStorage,
    InMemoryTransactionStorage,
)


@pytest.fixture
def ledger_settings():
    """Default ledger settings, independent of the environment."""
    return LedgerSettings(
        default_category="Uncategorized",
        transfer_category="Transfer",
        opening_balance_category="Opening Balance",
        transfer_description_prefix="Transfer",
        strict_transfer_descriptions=False,
        balance_decimal_places=2,
    )


@pytest.fixture
def converter():
    """Static BRL-based rate table."""
    return CurrencyConverter(
        {"BRL": "1", "USD": "5.00", "EUR": "5.40", "GBP": "6.20"},
        base_currency="BRL",
    )


@pytest.fixture
def account_storage():
    return InMemoryAccountStorage([
        Account(id="acc-checking", name="Checking", currency="USD"),
        Account(id="acc-savings", name="Savings", currency="USD"),
        Account(id="acc-nubank", name="Nubank", currency="BRL"),
        Account(id="acc-wise", name="Wise EUR", currency="EUR"),
    ])


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def ledger(account_storage, transaction_storage, converter, ledger_settings):
    return TransactionLedger(
        account_storage=account_storage,
        transaction_storage=transaction_storage,
        converter=converter,
        settings=ledger_settings,
    )


@pytest.fixture
def balance_of(account_storage):
    """Read an account's stored balance."""
    async def _balance_of(account_id: str) -> Decimal:
        for account in await account_storage.list_accounts():
            if account.id == account_id:
                return account.balance
        raise KeyError(account_id)
    return _balance_of


@pytest_asyncio.fixture
async def app(ledger, account_storage):
    """LedgerApp with one extra account opened at 100 BRL."""
    app = LedgerApp(ledger, account_storage)
    await app.open_account(
        Account(id="acc-wallet", name="Wallet", currency="BRL", balance=Decimal("100"))
    )
    return app
