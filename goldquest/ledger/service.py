"""
Transaction Ledger

The single entry point for creating, updating and deleting transactions.
Every mutation keeps three things in step:
1. The authoritative transaction store
2. The owning account's balance
3. The per-account read cache

DESIGN DECISION: Writes are sequenced, not transactional.
- create:  persist -> apply effect -> cache
- update:  reverse old effect -> persist new record -> apply new effect -> cache
- delete:  reverse effect -> remove record -> cache

Neither store supports multi-record transactions. When a later step
fails, the earlier balance step is undone (compensated) before the error
is raised, so the persisted records match the effects that were applied.

CRITICAL: The authoritative store is always written before the cache.
- Store write fails -> LedgerOperationError, cache untouched
- Cache write fails -> `cache_desync` logged, entry marked stale,
  result reports cache_synced=False. Nothing is raised.

TRADEOFFS:
- No locking. Interleaved operations on the same account can lose a
  balance update (read-modify-write on the account record).
- No cancellation rollback. A task cancelled between steps leaves the
  stores out of step; check_balance() detects it, nothing repairs it.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from goldquest.config import LedgerSettings, get_settings
from goldquest.currency import CurrencyConverter, CurrencyError
from goldquest.ledger.balance import (
    BalanceEffectResult,
    BalanceEffectStatus,
    BalanceUpdater,
    compute_effect,
    round_balance,
)
from goldquest.ledger.cache import TransactionCache
from goldquest.ledger.errors import LedgerOperationError
from goldquest.logging_config import get_logger
from goldquest.models import (
    Account,
    NewTransaction,
    Transaction,
    TransferPair,
    utc_now,
)
from goldquest.services.storage import (
    AccountStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


logger = get_logger(__name__)


# =============================================================================
# RESULT MODELS
# =============================================================================

class LedgerResult(BaseModel):
    """Outcome of one ledger mutation."""

    transaction: Optional[Transaction] = Field(
        default=None,
        description="The record as persisted (None when already deleted)"
    )
    effects: list[BalanceEffectResult] = Field(default_factory=list)
    already_deleted: bool = Field(
        default=False,
        description="Delete found nothing to remove"
    )
    cache_synced: bool = Field(
        default=True,
        description="False if the read cache could not be updated"
    )

    @property
    def warnings(self) -> list[str]:
        """Messages for balance steps skipped because the account is missing."""
        return [
            effect.message
            for effect in self.effects
            if effect.status == BalanceEffectStatus.ACCOUNT_NOT_FOUND and effect.message
        ]


class BalanceCheck(BaseModel):
    """Stored balance compared with the sum of the account's transactions."""

    account_id: str
    currency: str
    expected: Decimal
    actual: Decimal
    transaction_count: int
    in_sync: bool

    @property
    def difference(self) -> Decimal:
        return self.actual - self.expected


# =============================================================================
# LEDGER
# =============================================================================

class TransactionLedger:
    """
    Creates, updates and deletes transactions while maintaining balances.

    Args:
        account_storage: Account store (list_accounts / update_account)
        transaction_storage: Authoritative transaction store
        converter: Currency conversion (defaults to the configured rate table)
        cache: Read cache (a fresh one if not given)
        settings: Ledger settings (defaults to get_settings().ledger)
    """

    def __init__(
        self,
        account_storage: AccountStorageInterface,
        transaction_storage: TransactionStorageInterface,
        converter: Optional[CurrencyConverter] = None,
        cache: Optional[TransactionCache] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._accounts = account_storage
        self._transactions = transaction_storage
        self._converter = converter or CurrencyConverter()
        self._cache = cache if cache is not None else TransactionCache()
        self._balances = BalanceUpdater(
            account_storage,
            self._converter,
            opening_balance_category=self._settings.opening_balance_category,
            decimal_places=self._settings.balance_decimal_places,
        )

    @property
    def cache(self) -> TransactionCache:
        return self._cache

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    def _normalize_category(self, category: str) -> str:
        return category.strip() or self._settings.default_category

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, data: NewTransaction) -> LedgerResult:
        """
        Record a new transaction and apply its balance effect.

        A missing account does not fail the call: the record is saved and
        the result carries an ACCOUNT_NOT_FOUND effect.

        Raises:
            LedgerOperationError: Store write failed or currency unsupported
        """
        now = utc_now()
        fields = data.model_dump(exclude={"id", "created_at", "updated_at"})
        fields["category"] = self._normalize_category(data.category)
        transaction = Transaction(**fields, created_at=now, updated_at=now)

        try:
            await self._balances.check(transaction)
            await self._transactions.save_transaction(transaction)
        except (StorageError, CurrencyError) as e:
            raise self._operation_error("create", transaction.id, e) from e

        try:
            effect = await self._balances.apply(transaction)
        except StorageError as e:
            await self._compensate(
                "create", transaction.id,
                self._transactions.delete_transaction,
                transaction.id, transaction.account_id,
            )
            raise self._operation_error("create", transaction.id, e) from e

        synced = self._sync_cache("upsert", transaction.account_id, self._cache.upsert, transaction)

        logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            account_id=transaction.account_id,
            amount=str(transaction.amount),
            currency=transaction.currency,
            category=transaction.category,
            balance_status=effect.status.value,
        )

        return LedgerResult(transaction=transaction, effects=[effect], cache_synced=synced)

    async def update(self, transaction: Transaction) -> LedgerResult:
        """
        Replace a transaction: reverse the old effect, apply the new one.

        The old effect is computed from the persisted record (never the
        cache), against the persisted account. Reverse-then-apply runs
        even when amount and currency did not change.

        Raises:
            LedgerOperationError: Record not found, store write failed
                                  or currency unsupported
        """
        try:
            persisted = await self._transactions.get_transaction(transaction.id)
            if persisted is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
        except StorageError as e:
            raise self._operation_error("update", transaction.id, e) from e

        fields = transaction.model_dump()
        fields.update(
            category=self._normalize_category(transaction.category),
            created_at=persisted.created_at,
            updated_at=utc_now(),
        )
        updated = Transaction(**fields)

        try:
            await self._balances.check(persisted)
            await self._balances.check(updated)
            reversed_effect = await self._balances.reverse(persisted)
        except (StorageError, CurrencyError) as e:
            raise self._operation_error("update", transaction.id, e) from e

        try:
            await self._transactions.replace_transaction(updated)
        except StorageError as e:
            await self._undo_reverse(reversed_effect, persisted)
            raise self._operation_error("update", transaction.id, e) from e

        try:
            applied_effect = await self._balances.apply(updated)
        except StorageError as e:
            await self._compensate(
                "update", persisted.id,
                self._transactions.replace_transaction, persisted,
            )
            await self._undo_reverse(reversed_effect, persisted)
            raise self._operation_error("update", transaction.id, e) from e

        synced = True
        if persisted.account_id != updated.account_id:
            synced = self._sync_cache(
                "remove", persisted.account_id,
                self._cache.remove, persisted.id, persisted.account_id,
            )
        synced = self._sync_cache(
            "upsert", updated.account_id, self._cache.upsert, updated
        ) and synced

        logger.info(
            "transaction_updated",
            transaction_id=updated.id,
            account_id=updated.account_id,
            previous_account_id=persisted.account_id,
            previous_amount=str(persisted.amount),
            amount=str(updated.amount),
            currency=updated.currency,
        )

        return LedgerResult(
            transaction=updated,
            effects=[reversed_effect, applied_effect],
            cache_synced=synced,
        )

    async def delete(self, transaction_id: str, account_id: str) -> LedgerResult:
        """
        Delete a transaction and reverse its balance effect.

        Idempotent: deleting something that is not there returns
        already_deleted=True and changes nothing.

        Raises:
            LedgerOperationError: Store write failed or currency unsupported
        """
        try:
            persisted = await self._transactions.get_transaction(transaction_id, account_id)
        except StorageError as e:
            raise self._operation_error("delete", transaction_id, e) from e

        if persisted is None:
            logger.info(
                "transaction_already_deleted",
                transaction_id=transaction_id,
                account_id=account_id,
            )
            synced = self._sync_cache(
                "remove", account_id, self._cache.remove, transaction_id, account_id
            )
            return LedgerResult(already_deleted=True, cache_synced=synced)

        try:
            await self._balances.check(persisted)
            reversed_effect = await self._balances.reverse(persisted)
        except (StorageError, CurrencyError) as e:
            raise self._operation_error("delete", transaction_id, e) from e

        try:
            removed = await self._transactions.delete_transaction(transaction_id, account_id)
        except StorageError as e:
            await self._undo_reverse(reversed_effect, persisted)
            raise self._operation_error("delete", transaction_id, e) from e

        if not removed:
            # Removed by someone else between the read and the delete
            await self._undo_reverse(reversed_effect, persisted)
            logger.info(
                "transaction_already_deleted",
                transaction_id=transaction_id,
                account_id=account_id,
            )
            return LedgerResult(already_deleted=True)

        synced = self._sync_cache(
            "remove", account_id, self._cache.remove, transaction_id, account_id
        )

        logger.info(
            "transaction_deleted",
            transaction_id=transaction_id,
            account_id=account_id,
            amount=str(persisted.amount),
            currency=persisted.currency,
        )

        return LedgerResult(
            transaction=persisted,
            effects=[reversed_effect],
            cache_synced=synced,
        )

    # -------------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------------

    async def create_transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Decimal,
        currency: str,
        date: dt.date,
        description: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> TransferPair:
        """
        Record a transfer as two legs: outgoing first, then incoming.

        If the incoming leg fails, the outgoing leg is deleted again.

        Raises:
            ValueError: Same account on both sides, or zero amount
            LedgerOperationError: Either leg could not be recorded
        """
        if from_account_id == to_account_id:
            raise ValueError("Cannot transfer to the same account")

        value = abs(Decimal(amount))
        if value == 0:
            raise ValueError("Transfer amount cannot be zero")

        if not description or not description.strip():
            description = await self._default_transfer_description(
                from_account_id, to_account_id
            )

        leg_fields = dict(
            date=date,
            currency=currency,
            description=description,
            category=self._settings.transfer_category,
            tags=tags or [],
        )

        outgoing = await self.create(
            NewTransaction(account_id=from_account_id, amount=-value, **leg_fields)
        )
        try:
            incoming = await self.create(
                NewTransaction(account_id=to_account_id, amount=value, **leg_fields)
            )
        except LedgerOperationError:
            await self._compensate(
                "create_transfer", outgoing.transaction.id,
                self.delete, outgoing.transaction.id, from_account_id,
            )
            raise

        logger.info(
            "transfer_created",
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=str(value),
            currency=outgoing.transaction.currency,
            transaction_ids=[outgoing.transaction.id, incoming.transaction.id],
        )

        return TransferPair(from_leg=outgoing.transaction, to_leg=incoming.transaction)

    async def delete_transfer(self, pair: TransferPair) -> list[LedgerResult]:
        """Delete both legs of a transfer."""
        results = [
            await self.delete(pair.from_leg.id, pair.from_leg.account_id),
            await self.delete(pair.to_leg.id, pair.to_leg.account_id),
        ]
        logger.info("transfer_deleted", transaction_ids=list(pair.transaction_ids))
        return results

    async def edit_transfer(
        self,
        pair: TransferPair,
        *,
        amount: Optional[Decimal] = None,
        date: Optional[dt.date] = None,
        description: Optional[str] = None,
        tags: Optional[list[str]] = None,
        currency: Optional[str] = None,
        from_account_id: Optional[str] = None,
        to_account_id: Optional[str] = None,
    ) -> TransferPair:
        """
        Edit a transfer by deleting both legs and recording two new ones.

        One leg is never patched in place: a half-edited transfer would
        stop pairing. Fields that are not given keep their current value,
        except a generated description, which follows a change of account.
        """
        old_from, old_to = pair.from_leg.account_id, pair.to_leg.account_id
        from_account_id = from_account_id or old_from
        to_account_id = to_account_id or old_to
        if from_account_id == to_account_id:
            raise ValueError("Cannot transfer to the same account")

        if description is None:
            description = pair.from_leg.description
            if (from_account_id, to_account_id) != (old_from, old_to):
                generated = await self._default_transfer_description(old_from, old_to)
                if description == generated:
                    description = None

        await self.delete_transfer(pair)

        return await self.create_transfer(
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=pair.amount if amount is None else amount,
            currency=currency or pair.currency,
            date=date or pair.date,
            description=description,
            tags=list(pair.from_leg.tags) if tags is None else tags,
        )

    async def _default_transfer_description(
        self,
        from_account_id: str,
        to_account_id: str,
    ) -> str:
        try:
            names = {account.id: account.name for account in await self._accounts.list_accounts()}
        except StorageError as e:
            raise self._operation_error("create_transfer", None, e) from e
        prefix = self._settings.transfer_description_prefix
        from_name = names.get(from_account_id, "Unknown")
        to_name = names.get(to_account_id, "Unknown")
        return f"{prefix} from {from_name} to {to_name}"

    # -------------------------------------------------------------------------
    # Opening balance
    # -------------------------------------------------------------------------

    async def record_opening_balance(
        self,
        account: Account,
        amount: Decimal,
        date: Optional[dt.date] = None,
    ) -> Optional[LedgerResult]:
        """
        Record the balance an account was created with.

        The account already holds this balance, so the record is kept in
        the opening-balance category and never moves it. A zero amount
        records nothing.
        """
        if Decimal(amount) == 0:
            return None

        return await self.create(
            NewTransaction(
                account_id=account.id,
                date=date or dt.date.today(),
                amount=amount,
                currency=account.currency,
                description=self._settings.opening_balance_category,
                category=self._settings.opening_balance_category,
            )
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def rebuild_cache(self, account_id: str) -> list[Transaction]:
        """Reload one account's cache entry from the authoritative store."""
        try:
            return await self._cache.rebuild(account_id, self._transactions)
        except StorageError as e:
            raise self._operation_error("rebuild_cache", None, e) from e

    async def _read_account(self, account_id: str) -> list[Transaction]:
        cached = self._cache.get(account_id)
        if cached is not None:
            return cached
        return await self.rebuild_cache(account_id)

    async def get_transactions(
        self,
        account_id: str,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """Transactions of one account, newest first."""
        transactions = sorted(
            await self._read_account(account_id),
            key=lambda tx: tx.date,
            reverse=True,
        )
        if limit is not None:
            return transactions[:limit]
        return transactions

    async def get_all_transactions(
        self,
        account_ids: Optional[list[str]] = None,
    ) -> list[Transaction]:
        """
        Transactions of several accounts, in store order.

        This is the input the transfer reconciliation engine expects.
        Defaults to every account in the account store.
        """
        if account_ids is None:
            try:
                account_ids = [account.id for account in await self._accounts.list_accounts()]
            except StorageError as e:
                raise self._operation_error("read", None, e) from e

        transactions: list[Transaction] = []
        for account_id in account_ids:
            transactions.extend(await self._read_account(account_id))
        return transactions

    async def check_balance(self, account_id: str) -> BalanceCheck:
        """
        Compare an account's stored balance with its transactions.

        Starts from the opening-balance records and adds the effect of
        every other transaction, converted into the account currency.
        Read-only: a mismatch is reported, never repaired.
        """
        try:
            account = await self._balances.find_account(account_id)
            if account is None:
                raise NotFoundError(f"Account not found: {account_id}")
            transactions = await self._transactions.list_transactions(account_id)
        except StorageError as e:
            raise self._operation_error("check_balance", None, e) from e

        places = self._settings.balance_decimal_places
        total = Decimal("0")
        converted = 0
        try:
            for transaction in transactions:
                total += compute_effect(transaction, account, self._converter)
                if transaction.currency != account.currency:
                    converted += 1
        except CurrencyError as e:
            raise self._operation_error("check_balance", None, e) from e

        expected = round_balance(total, places)
        # Each stored write rounds once; converted amounts can drift by half a unit each
        tolerance = Decimal(1).scaleb(-places) / 2 * max(converted, 1)
        in_sync = abs(account.balance - expected) <= tolerance

        if not in_sync:
            logger.warning(
                "balance_out_of_sync",
                account_id=account_id,
                expected=str(expected),
                actual=str(account.balance),
            )

        return BalanceCheck(
            account_id=account_id,
            currency=account.currency,
            expected=expected,
            actual=account.balance,
            transaction_count=len(transactions),
            in_sync=in_sync,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _operation_error(
        self,
        operation: str,
        transaction_id: Optional[str],
        error: Exception,
    ) -> LedgerOperationError:
        logger.error(
            "ledger_operation_failed",
            operation=operation,
            transaction_id=transaction_id,
            error=str(error),
            error_type=type(error).__name__,
        )
        subject = f"transaction {transaction_id}" if transaction_id else "ledger"
        return LedgerOperationError(
            operation,
            f"Could not {operation} {subject}: {error}",
            transaction_id=transaction_id,
        )

    def _sync_cache(
        self,
        action: str,
        account_id: str,
        func: Callable[..., Any],
        *args: Any,
    ) -> bool:
        """Run a cache write; on failure log, mark the entry stale and report False."""
        try:
            func(*args)
        except Exception as e:
            logger.error(
                "cache_desync",
                action=action,
                account_id=account_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._cache.mark_stale(account_id)
            return False
        return True

    async def _compensate(
        self,
        operation: str,
        transaction_id: Optional[str],
        func: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> None:
        """Undo an earlier step after a failure. Logs instead of raising."""
        try:
            await func(*args)
        except Exception as e:
            logger.error(
                "ledger_compensation_failed",
                operation=operation,
                transaction_id=transaction_id,
                step=getattr(func, "__name__", repr(func)),
                error=str(e),
            )
        else:
            logger.warning(
                "ledger_step_compensated",
                operation=operation,
                transaction_id=transaction_id,
                step=getattr(func, "__name__", repr(func)),
            )

    async def _undo_reverse(
        self,
        reversed_effect: BalanceEffectResult,
        transaction: Transaction,
    ) -> None:
        if reversed_effect.status == BalanceEffectStatus.APPLIED:
            await self._compensate(
                "reapply", transaction.id, self._balances.apply, transaction
            )
