"""
Tests for balance rounding, effect computation and the read cache.
"""

from datetime import date
from decimal import Decimal

import pytest

from goldquest.ledger import TransactionCache, compute_effect, round_balance
from goldquest.models import Account, Transaction
from goldquest.services.storage import InMemoryTransactionStorage


def tx(tx_id="tx-1", account_id="acc-1", amount="10", currency="USD"):
    return Transaction(
        id=tx_id,
        account_id=account_id,
        date=date(2024, 1, 1),
        amount=Decimal(amount),
        currency=currency,
    )


class TestRounding:
    """Tests for round_balance."""

    def test_half_up(self):
        """Test that halves round away from zero."""
        assert round_balance(Decimal("2.675")) == Decimal("2.68")
        assert round_balance(Decimal("-2.675")) == Decimal("-2.68")
        assert round_balance(Decimal("0.004")) == Decimal("0.00")

    def test_configurable_places(self):
        """Test rounding to a different number of places."""
        assert round_balance(Decimal("1.23456789"), places=4) == Decimal("1.2346")
        assert round_balance(Decimal("9.5"), places=0) == Decimal("10")


class TestComputeEffect:
    """Tests for compute_effect."""

    def test_same_currency(self, converter):
        """Test that the effect is the amount itself."""
        account = Account(id="acc-1", currency="USD")
        assert compute_effect(tx(amount="-20"), account, converter) == Decimal("-20")

    def test_converted_effect_is_not_rounded(self, converter):
        """Test that conversion keeps full precision."""
        account = Account(id="acc-1", currency="EUR")
        effect = compute_effect(tx(amount="10"), account, converter)
        assert round_balance(effect, places=6) == Decimal("9.259259")


class TestTransactionCache:
    """Tests for TransactionCache."""

    def test_miss_until_loaded(self):
        """Test that an unloaded account is a miss and upsert skips it."""
        cache = TransactionCache()
        assert cache.get("acc-1") is None
        assert cache.upsert(tx()) is False
        assert cache.get("acc-1") is None

    def test_upsert_and_remove(self):
        """Test in-place update, insert and removal."""
        cache = TransactionCache()
        cache.load("acc-1", [tx("tx-1")])

        assert cache.upsert(tx("tx-1", amount="12"))
        assert cache.upsert(tx("tx-2"))
        assert [t.amount for t in cache.get("acc-1")] == [Decimal("12"), Decimal("10")]

        assert cache.remove("tx-1", "acc-1")
        assert not cache.remove("tx-1", "acc-1")
        assert [t.id for t in cache.get("acc-1")] == ["tx-2"]

    def test_returned_records_are_copies(self):
        """Test that callers cannot mutate cached state."""
        cache = TransactionCache()
        cache.load("acc-1", [tx()])
        cache.get("acc-1")[0].description = "changed"
        assert cache.get("acc-1")[0].description == ""

    def test_stale_entry_is_a_miss(self):
        """Test mark_stale and invalidate."""
        cache = TransactionCache()
        cache.load("acc-1", [tx()])
        cache.mark_stale("acc-1")

        assert cache.is_stale("acc-1")
        assert cache.get("acc-1") is None

        cache.invalidate()
        assert not cache.is_stale("acc-1")
        assert not cache.is_loaded("acc-1")

    @pytest.mark.asyncio
    async def test_rebuild_from_store(self):
        """Test reloading an entry from the authoritative store."""
        store = InMemoryTransactionStorage([tx("tx-1"), tx("tx-2", account_id="acc-2")])
        cache = TransactionCache()
        cache.load("acc-1", [])
        cache.mark_stale("acc-1")

        rebuilt = await cache.rebuild("acc-1", store)

        assert [t.id for t in rebuilt] == ["tx-1"]
        assert [t.id for t in cache.get("acc-1")] == ["tx-1"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
