"""
Account Model

Accounts are created and edited by account management, which lives outside
the ledger. The ledger reads them and owns exactly one field: `balance`.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountCategory(str, Enum):
    """Reporting group for an account."""
    ASSET = "asset"
    CRYPTO = "crypto"


class Account(BaseModel):
    """
    A financial account with a running balance in its own currency.

    CRITICAL: Once transactions exist against an account, only the
    ledger may write `balance`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique account ID"
    )
    name: str = Field(
        default="Unnamed Account",
        max_length=200,
        description="Display name"
    )
    currency: str = Field(
        ...,
        min_length=2,
        max_length=10,
        description="Currency the balance is denominated in"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Running balance in the account currency"
    )
    category: AccountCategory = Field(
        default=AccountCategory.ASSET,
        description="Reporting group"
    )
    type: str = Field(
        default="checking",
        description="Account type (checking, savings, credit card, wallet, ...)"
    )
    is_active: bool = True
    include_in_net_worth: bool = True

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        return v.upper()
