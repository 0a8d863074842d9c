"""
Balance Effect

The signed, currency-converted amount a transaction contributes to its
account's balance, and the read-modify-write that applies or reverses it.

Rules:
- Same currency: the effect is the amount itself
- Different currency: the effect is convert(amount, tx currency -> account currency)
- Apply adds the effect, reverse subtracts it
- The stored balance is rounded once per write (ROUND_HALF_UP)

CRITICAL: Reversal always starts from the persisted amount/currency of
the record being reversed, never from a previously converted value, so
conversion error cannot compound.

KNOWN LIMITATION: read account -> compute -> write account is not atomic.
Two interleaved writers can lose an update; a crash between the steps
leaves the balance out of step with the transactions.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from goldquest.currency import CurrencyConverter
from goldquest.logging_config import get_logger
from goldquest.models import Account, Transaction
from goldquest.services.storage import AccountStorageInterface


logger = get_logger(__name__)


class BalanceDirection(str, Enum):
    """Whether an effect is added to or removed from the balance."""
    APPLY = "apply"
    REVERSE = "reverse"


class BalanceEffectStatus(str, Enum):
    """Outcome of one balance effect step."""
    APPLIED = "applied"
    SKIPPED_OPENING_BALANCE = "skipped_opening_balance"
    ACCOUNT_NOT_FOUND = "account_not_found"


class BalanceEffectResult(BaseModel):
    """
    Typed result of applying or reversing one transaction's effect.

    A missing account is reported here (ACCOUNT_NOT_FOUND) instead of
    raising, so callers and tests can see the skipped step.
    """

    transaction_id: str
    account_id: str
    direction: BalanceDirection
    status: BalanceEffectStatus
    effect: Optional[Decimal] = Field(
        default=None,
        description="Signed effect in the account currency (before rounding)"
    )
    balance_before: Optional[Decimal] = None
    balance_after: Optional[Decimal] = None
    message: Optional[str] = None

    @property
    def was_skipped(self) -> bool:
        return self.status != BalanceEffectStatus.APPLIED


def round_balance(value: Decimal, places: int = 2) -> Decimal:
    """Round a balance to a fixed number of decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def compute_effect(
    transaction: Transaction,
    account: Account,
    converter: CurrencyConverter,
) -> Decimal:
    """
    Effect of a transaction in its account's currency.

    Raises:
        UnsupportedCurrencyError: If the currencies differ and one has no rate
    """
    if transaction.currency == account.currency:
        return transaction.amount
    return converter.convert(transaction.amount, transaction.currency, account.currency)


class BalanceUpdater:
    """
    Applies and reverses balance effects against the account store.

    Args:
        accounts: Account store (only list/update are used)
        converter: Currency conversion function
        opening_balance_category: Records in this category never move a balance
        decimal_places: Rounding applied to every stored balance
    """

    def __init__(
        self,
        accounts: AccountStorageInterface,
        converter: CurrencyConverter,
        opening_balance_category: str = "Opening Balance",
        decimal_places: int = 2,
    ):
        self._accounts = accounts
        self._converter = converter
        self._opening_balance_category = opening_balance_category
        self._decimal_places = decimal_places

    def is_opening_balance(self, transaction: Transaction) -> bool:
        return transaction.has_category(self._opening_balance_category)

    async def find_account(self, account_id: str) -> Optional[Account]:
        for account in await self._accounts.list_accounts():
            if account.id == account_id:
                return account
        return None

    async def check(self, transaction: Transaction) -> None:
        """
        Make sure the effect of `transaction` can be computed.

        Called before any write so an unsupported currency fails the
        operation while nothing has been persisted yet.

        Raises:
            UnsupportedCurrencyError: If conversion is impossible
        """
        if self.is_opening_balance(transaction):
            return
        account = await self.find_account(transaction.account_id)
        if account is not None:
            compute_effect(transaction, account, self._converter)

    async def apply(self, transaction: Transaction) -> BalanceEffectResult:
        """Add the transaction's effect to its account balance."""
        return await self._adjust(transaction, BalanceDirection.APPLY)

    async def reverse(self, transaction: Transaction) -> BalanceEffectResult:
        """Remove the transaction's effect from its account balance."""
        return await self._adjust(transaction, BalanceDirection.REVERSE)

    async def _adjust(
        self,
        transaction: Transaction,
        direction: BalanceDirection,
    ) -> BalanceEffectResult:
        if self.is_opening_balance(transaction):
            return BalanceEffectResult(
                transaction_id=transaction.id,
                account_id=transaction.account_id,
                direction=direction,
                status=BalanceEffectStatus.SKIPPED_OPENING_BALANCE,
            )

        account = await self.find_account(transaction.account_id)
        if account is None:
            message = (
                f"Account {transaction.account_id} not found; "
                f"balance not adjusted for transaction {transaction.id}"
            )
            logger.warning(
                "balance_effect_skipped",
                reason="account_not_found",
                direction=direction.value,
                transaction_id=transaction.id,
                account_id=transaction.account_id,
            )
            return BalanceEffectResult(
                transaction_id=transaction.id,
                account_id=transaction.account_id,
                direction=direction,
                status=BalanceEffectStatus.ACCOUNT_NOT_FOUND,
                message=message,
            )

        effect = compute_effect(transaction, account, self._converter)
        signed = effect if direction == BalanceDirection.APPLY else -effect
        new_balance = round_balance(account.balance + signed, self._decimal_places)

        await self._accounts.update_account(
            account.model_copy(update={"balance": new_balance})
        )

        logger.info(
            "balance_adjusted",
            direction=direction.value,
            transaction_id=transaction.id,
            account_id=account.id,
            amount=str(transaction.amount),
            transaction_currency=transaction.currency,
            account_currency=account.currency,
            effect=str(effect),
            balance_before=str(account.balance),
            balance_after=str(new_balance),
        )

        return BalanceEffectResult(
            transaction_id=transaction.id,
            account_id=account.id,
            direction=direction,
            status=BalanceEffectStatus.APPLIED,
            effect=signed,
            balance_before=account.balance,
            balance_after=new_balance,
        )
