"""
Tests for GoldQuest Ledger

Test strategy:
1. Unit tests for individual components (models, converter, cache)
2. Integration tests for flows (ledger over in-memory stores)
3. No real API calls in tests (Google Sheets is mocked)
"""

import pytest
from datetime import date
from decimal import Decimal

from goldquest.models import (
    Account,
    AccountCategory,
    NewTransaction,
    OriginalImportData,
    Transaction,
    TransferPair,
    TransferReconciliation,
)


class TestTransactionModels:
    """Tests for transaction Pydantic models."""

    def test_new_transaction_creation(self):
        """Test NewTransaction model creation."""
        tx = NewTransaction(
            account_id="acc-1",
            date=date(2024, 1, 1),
            amount=Decimal("-20"),
            currency="usd",
            description="  Supermarket  ",
        )
        assert tx.currency == "USD"
        assert tx.description == "Supermarket"
        assert tx.category == "Uncategorized"
        assert tx.tags == []

    def test_description_keeps_inner_whitespace(self):
        """Test that only surrounding whitespace is stripped from the description."""
        tx = NewTransaction(
            account_id="acc-1",
            date=date(2024, 1, 1),
            amount=Decimal("-4"),
            currency="BRL",
            description="\tCoffee  with  Ana \n",
        )
        assert tx.description == "Coffee  with  Ana"

    def test_date_parsed_from_string(self):
        """Test that ISO date strings are accepted."""
        tx = NewTransaction(account_id="acc-1", date="2024-02-01", amount=1, currency="BRL")
        assert tx.date == date(2024, 2, 1)

    def test_zero_amount_rejected(self):
        """Test that a zero amount is rejected."""
        with pytest.raises(ValueError, match="cannot be zero"):
            NewTransaction(account_id="acc-1", date=date(2024, 1, 1), amount=0, currency="USD")

    def test_empty_account_rejected(self):
        """Test that an account ID is required."""
        with pytest.raises(ValueError):
            NewTransaction(account_id="", date=date(2024, 1, 1), amount=1, currency="USD")

    def test_tags_are_normalized(self):
        """Test that tags are stripped and de-duplicated in order."""
        tx = NewTransaction(
            account_id="acc-1",
            date=date(2024, 1, 1),
            amount=Decimal("5"),
            currency="USD",
            tags=[" food ", "trip", "food", ""],
        )
        assert tx.tags == ["food", "trip"]

    def test_has_category_ignores_case(self):
        """Test case-insensitive category comparison."""
        tx = NewTransaction(
            account_id="acc-1",
            date=date(2024, 1, 1),
            amount=Decimal("5"),
            currency="USD",
            category="TRANSFER",
        )
        assert tx.has_category("Transfer")
        assert not tx.has_category("Groceries")

    def test_transaction_gets_id_and_timestamps(self):
        """Test Transaction defaults."""
        tx = Transaction(account_id="acc-1", date=date(2024, 1, 1), amount=1, currency="USD")
        assert tx.id.startswith("tx-")
        assert tx.created_at.tzinfo is not None

    def test_original_import_data(self):
        """Test import metadata normalization."""
        data = OriginalImportData(foreign_amount=Decimal("12.5"), foreign_currency=" gbp ")
        assert data.foreign_currency == "GBP"


class TestTransferModels:
    """Tests for derived transfer models."""

    def _leg(self, tx_id, account_id, amount):
        return Transaction(
            id=tx_id,
            account_id=account_id,
            date=date(2024, 2, 1),
            amount=Decimal(amount),
            currency="USD",
            category="Transfer",
        )

    def test_transfer_pair_properties(self):
        """Test TransferPair derived values."""
        pair = TransferPair(
            from_leg=self._leg("tx-1", "A", "-50"),
            to_leg=self._leg("tx-2", "B", "50"),
        )
        assert pair.amount == Decimal("50")
        assert pair.date == date(2024, 2, 1)
        assert pair.currency == "USD"
        assert pair.transaction_ids == ("tx-1", "tx-2")

    def test_reconciliation_paired_ids(self):
        """Test TransferReconciliation.paired_ids."""
        pair = TransferPair(
            from_leg=self._leg("tx-1", "A", "-50"),
            to_leg=self._leg("tx-2", "B", "50"),
        )
        result = TransferReconciliation(pairs=[pair], unpaired=[self._leg("tx-3", "C", "-1")])
        assert result.paired_ids == {"tx-1", "tx-2"}


class TestAccountModel:
    """Tests for the Account model."""

    def test_account_defaults(self):
        """Test Account defaults and currency normalization."""
        account = Account(id="acc-1", currency="eur")
        assert account.currency == "EUR"
        assert account.balance == Decimal("0")
        assert account.category == AccountCategory.ASSET
        assert account.is_active

    def test_category_values(self):
        """Test that reporting categories have expected values."""
        assert AccountCategory.ASSET.value == "asset"
        assert AccountCategory.CRYPTO.value == "crypto"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
