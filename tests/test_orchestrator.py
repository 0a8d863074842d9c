"""
Tests for application wiring and account flows.
"""

from decimal import Decimal

import pytest

from goldquest.models import Account
from goldquest.orchestrator import LedgerApp, create_app_components
from goldquest.services.storage import DuplicateError


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_in_memory_components(self):
        """Test wiring without external storage."""
        app, sheets_client = create_app_components(use_storage=False)

        assert isinstance(app, LedgerApp)
        assert sheets_client is None

    def test_unconfigured_storage_falls_back_to_memory(self, monkeypatch):
        """Test that missing Google Sheets settings do not break startup."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        app, sheets_client = create_app_components(use_storage=True)

        assert sheets_client is None
        assert isinstance(app, LedgerApp)

    @pytest.mark.asyncio
    async def test_end_to_end_in_memory(self):
        """Test opening accounts and transferring between them."""
        app, _ = create_app_components(use_storage=False)
        await app.open_account(Account(id="acc-a", name="A", currency="BRL", balance=Decimal("10")))
        await app.open_account(Account(id="acc-b", name="B", currency="BRL"))

        await app.ledger.create_transfer("acc-a", "acc-b", Decimal("4"), "BRL", "2024-05-01")

        assert len((await app.list_transfers()).pairs) == 1
        assert (await app.ledger.check_balance("acc-a")).actual == Decimal("6.00")
        assert (await app.ledger.check_balance("acc-b")).in_sync


class TestOpenAccount:
    """Tests for LedgerApp.open_account."""

    @pytest.mark.asyncio
    async def test_zero_balance_records_nothing(self, ledger, account_storage):
        """Test that an account opened at zero has no opening transaction."""
        app = LedgerApp(ledger, account_storage)

        account, result = await app.open_account(Account(id="acc-new", currency="USD"))

        assert result is None
        assert await app.ledger.get_transactions(account.id) == []

    @pytest.mark.asyncio
    async def test_duplicate_account_rejected(self, ledger, account_storage):
        """Test that an existing account ID cannot be opened again."""
        app = LedgerApp(ledger, account_storage)

        with pytest.raises(DuplicateError):
            await app.open_account(Account(id="acc-checking", currency="USD"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
