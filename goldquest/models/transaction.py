"""
Transaction Models for GoldQuest Ledger

These models define the schemas for everything the ledger reads and writes.
They are designed to:
1. Keep money as Decimal end to end (no float drift)
2. Normalize codes, categories and tags at the boundary
3. Be serializable for the authoritative store and the read cache

DESIGN DECISION: There is no Transfer model that gets persisted.
A transfer is two ordinary transactions; TransferPair only exists as
the output of the reconciliation engine.
"""

import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


UNCATEGORIZED = "Uncategorized"


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def new_transaction_id() -> str:
    """Generate an opaque, unique transaction ID."""
    return f"tx-{uuid4().hex}"


# =============================================================================
# IMPORT METADATA
# =============================================================================

class OriginalImportData(BaseModel):
    """
    Amount and currency exactly as they appeared in an imported statement.

    Kept for display only. NEVER used in balance math.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    foreign_amount: Decimal
    foreign_currency: str = Field(..., min_length=2, max_length=10)

    @field_validator('foreign_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


# =============================================================================
# CORE TRANSACTION MODELS
# =============================================================================

class NewTransaction(BaseModel):
    """
    Input for creating a transaction.

    Everything a caller may set. Identity and timestamps are
    assigned by the ledger.
    Text fields, description included, are stripped of surrounding
    whitespace.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    account_id: str = Field(
        ...,
        min_length=1,
        description="Account the transaction belongs to"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: negative is an outflow, positive an inflow"
    )
    currency: str = Field(
        ...,
        min_length=2,
        max_length=10,
        description="Currency the amount is denominated in"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    category: str = Field(
        default=UNCATEGORIZED,
        max_length=100,
        description="Category name (not an enforced reference)"
    )
    tags: list[str] = Field(default_factory=list)
    subscription_id: Optional[str] = Field(
        default=None,
        description="Recurring subscription this payment belongs to (informational)"
    )
    original_import_data: Optional[OriginalImportData] = None

    @field_validator('amount')
    @classmethod
    def reject_zero_amount(cls, v: Decimal) -> Decimal:
        """A zero amount has no effect and is never a meaningful transaction."""
        if v == 0:
            raise ValueError("Transaction amount cannot be zero")
        return v

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator('tags')
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Tags are a set: strip, drop blanks and duplicates."""
        seen: dict[str, None] = {}
        for tag in v:
            tag = tag.strip()
            if tag:
                seen.setdefault(tag, None)
        return list(seen)

    def has_category(self, name: str) -> bool:
        """Case-insensitive category comparison."""
        return self.category.strip().lower() == name.strip().lower()


class Transaction(NewTransaction):
    """
    A transaction as persisted by the ledger.

    `id` never changes after creation. `created_at` is preserved
    across updates; `updated_at` is restamped on every write.
    """

    id: str = Field(
        default_factory=new_transaction_id,
        min_length=1,
        description="Unique transaction ID"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# DERIVED TRANSFER MODELS
# =============================================================================

class TransferPair(BaseModel):
    """
    Two transactions that together represent one transfer.

    Computed on every read by the reconciliation engine. Never persisted.
    """

    from_leg: Transaction = Field(
        ...,
        description="Outgoing leg (negative amount)"
    )
    to_leg: Transaction = Field(
        ...,
        description="Incoming leg (positive amount)"
    )

    @property
    def amount(self) -> Decimal:
        """Transferred value as a positive number."""
        return abs(self.from_leg.amount)

    @property
    def date(self) -> dt.date:
        return self.from_leg.date

    @property
    def currency(self) -> str:
        return self.from_leg.currency

    @property
    def transaction_ids(self) -> tuple[str, str]:
        return self.from_leg.id, self.to_leg.id


class TransferReconciliation(BaseModel):
    """Result of pairing transfer legs."""

    pairs: list[TransferPair] = Field(default_factory=list)
    unpaired: list[Transaction] = Field(
        default_factory=list,
        description="Transfer-categorized transactions left without a partner"
    )

    @property
    def paired_ids(self) -> set[str]:
        ids: set[str] = set()
        for pair in self.pairs:
            ids.update(pair.transaction_ids)
        return ids
