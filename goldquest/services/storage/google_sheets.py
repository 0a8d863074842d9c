"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the authoritative store because:
1. Users can view their transactions directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the ledger handles this with careful ordering)
- Limited query capabilities (we filter in Python)

gspread is synchronous; every sheet call runs in a worker thread so the
event loop is free while a request is in flight.
"""

import asyncio
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    AsyncRetrying,
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from goldquest.config import get_settings
from goldquest.logging_config import get_logger
from goldquest.models import (
    Account,
    AccountCategory,
    OriginalImportData,
    Transaction,
)
from goldquest.services.storage.interface import (
    AccountStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


logger = get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "account_id",
    "date",
    "amount",
    "currency",
    "description",
    "category",
    "tags_json",
    "subscription_id",
    "original_import_json",
    "created_at",
    "updated_at",
]

# Column mappings for Accounts sheet
ACCOUNT_COLUMNS = [
    "id",
    "name",
    "currency",
    "balance",
    "category",
    "type",
    "is_active",
    "include_in_net_worth",
]

# Writes are retried, but never when the failure is a definite answer
write_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
    reraise=True,
)


def write_attempts(wait) -> AsyncRetrying:
    """Retry loop for writes that must know whether an earlier attempt ran."""
    return AsyncRetrying(
        stop=stop_after_attempt(3),
        wait=wait,
        retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
        reraise=True,
    )


def _column_letter(count: int) -> str:
    """Spreadsheet column letter for a 1-based column number."""
    letters = ""
    while count:
        count, remainder = divmod(count - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=5000,
        )

    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the Accounts worksheet."""
        return self._get_or_create_sheet(
            self._settings.accounts_sheet_name,
            ACCOUNT_COLUMNS,
            rows=200,
        )

    async def run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking gspread call off the event loop."""
        return await asyncio.to_thread(func, *args, **kwargs)


def _safe_getter(row: list) -> Callable[[int], str]:
    """Build an accessor that tolerates short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of the authoritative transaction store.

    Transactions are stored as rows with one transaction per row.
    Tags and import data are JSON-serialized.
    """

    # Pause between write attempts
    retry_wait = wait_exponential(multiplier=1, min=2, max=10)

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        import_data = transaction.original_import_data
        return [
            transaction.id,
            transaction.account_id,
            transaction.date.isoformat(),
            str(transaction.amount),
            transaction.currency,
            transaction.description,
            transaction.category,
            json.dumps(transaction.tags),
            transaction.subscription_id or "",
            json.dumps(import_data.model_dump(mode="json")) if import_data else "",
            transaction.created_at.isoformat(),
            transaction.updated_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        safe_get = _safe_getter(row)

        import_json = safe_get(9)
        import_data = (
            OriginalImportData(**json.loads(import_json)) if import_json else None
        )

        return Transaction(
            id=safe_get(0),
            account_id=safe_get(1),
            date=date.fromisoformat(safe_get(2)),
            amount=Decimal(safe_get(3)),
            currency=safe_get(4),
            description=safe_get(5),
            category=safe_get(6),
            tags=json.loads(safe_get(7, "[]")),
            subscription_id=safe_get(8) or None,
            original_import_data=import_data,
            created_at=datetime.fromisoformat(safe_get(10)),
            updated_at=datetime.fromisoformat(safe_get(11)),
        )

    async def _all_rows(self) -> tuple[gspread.Worksheet, list[list]]:
        sheet = await self._client.run(self._client.get_transactions_sheet)
        rows = await self._client.run(sheet.get_all_values)
        return sheet, rows

    def _find_row(self, rows: list[list], transaction_id: str) -> Optional[int]:
        """1-based sheet row index of a transaction (row 1 is the header)."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == transaction_id:
                return idx
        return None

    def _row_matches(self, row: list, transaction: Transaction) -> bool:
        try:
            return self._row_to_transaction(row) == transaction
        except (ValueError, ArithmeticError):
            return False

    async def save_transaction(self, transaction: Transaction) -> bool:
        """
        Append a transaction to the sheet.

        A retry that finds this exact row already present means an earlier
        attempt landed before its response was lost, so it counts as saved.
        """
        attempted = False
        async for attempt in write_attempts(self.retry_wait):
            with attempt:
                try:
                    sheet, rows = await self._all_rows()
                    idx = self._find_row(rows, transaction.id)
                    if idx is not None:
                        if attempted and self._row_matches(rows[idx - 1], transaction):
                            logger.info(
                                "save_landed_on_earlier_attempt", transaction_id=transaction.id
                            )
                            return True
                        raise DuplicateError(f"Transaction already exists: {transaction.id}")
                    attempted = True
                    row = self._transaction_to_row(transaction)
                    await self._client.run(sheet.append_row, row, value_input_option="RAW")
                    return True
                except DuplicateError:
                    raise
                except Exception as e:
                    raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction(
        self,
        transaction_id: str,
        account_id: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Retrieve a transaction by its ID."""
        try:
            _, rows = await self._all_rows()
            idx = self._find_row(rows, transaction_id)
            if idx is None:
                return None
            transaction = self._row_to_transaction(rows[idx - 1])
            if account_id is not None and transaction.account_id != account_id:
                return None
            return transaction
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

    async def list_transactions(self, account_id: str) -> list[Transaction]:
        """List the transactions of one account in sheet order."""
        try:
            _, rows = await self._all_rows()

            transactions = []
            for row in rows[1:]:
                if not row or not row[0]:  # Skip empty rows
                    continue
                if len(row) < 2 or row[1] != account_id:
                    continue
                try:
                    transactions.append(self._row_to_transaction(row))
                except Exception as e:
                    logger.warning("malformed_transaction_row", row_id=row[0], error=str(e))
            return transactions
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    @write_retry
    async def replace_transaction(self, transaction: Transaction) -> bool:
        """Overwrite the row holding this transaction."""
        try:
            sheet, rows = await self._all_rows()
            idx = self._find_row(rows, transaction.id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")

            last_column = _column_letter(len(TRANSACTION_COLUMNS))
            await self._client.run(
                sheet.update,
                range_name=f"A{idx}:{last_column}{idx}",
                values=[self._transaction_to_row(transaction)],
                value_input_option="RAW",
            )
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: str, account_id: str) -> bool:
        """
        Delete a transaction row.

        Returns False only when the row was absent before this call wrote
        anything; a row gone after our own timed-out attempt was removed by us.
        """
        attempted = False
        async for attempt in write_attempts(self.retry_wait):
            with attempt:
                try:
                    sheet, rows = await self._all_rows()
                    for idx, row in enumerate(rows[1:], start=2):
                        if row and row[0] == transaction_id and row[1:2] == [account_id]:
                            attempted = True
                            await self._client.run(sheet.delete_rows, idx)
                            return True
                    if attempted:
                        logger.info(
                            "delete_landed_on_earlier_attempt", transaction_id=transaction_id
                        )
                    return attempted
                except Exception as e:
                    raise StorageError(f"Failed to delete transaction: {e}")


class GoogleSheetsAccountStorage(AccountStorageInterface):
    """
    Google Sheets implementation of the account store.

    Account management owns the rows; the ledger rewrites balances.
    """

    retry_wait = wait_exponential(multiplier=1, min=2, max=10)

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _account_to_row(self, account: Account) -> list:
        """Convert an Account to a spreadsheet row."""
        return [
            account.id,
            account.name,
            account.currency,
            str(account.balance),
            account.category.value,
            account.type,
            str(account.is_active),
            str(account.include_in_net_worth),
        ]

    def _row_to_account(self, row: list) -> Account:
        """Convert a spreadsheet row to an Account."""
        safe_get = _safe_getter(row)
        return Account(
            id=safe_get(0),
            name=safe_get(1, "Unnamed Account"),
            currency=safe_get(2, "USD"),
            balance=Decimal(safe_get(3, "0")),
            category=AccountCategory(safe_get(4, AccountCategory.ASSET.value)),
            type=safe_get(5, "checking"),
            is_active=safe_get(6, "True").lower() == "true",
            include_in_net_worth=safe_get(7, "True").lower() == "true",
        )

    async def list_accounts(self) -> list[Account]:
        """List all accounts in the sheet."""
        try:
            sheet = await self._client.run(self._client.get_accounts_sheet)
            rows = await self._client.run(sheet.get_all_values)

            accounts = []
            for row in rows[1:]:
                if not row or not row[0]:
                    continue
                try:
                    accounts.append(self._row_to_account(row))
                except Exception as e:
                    logger.warning("malformed_account_row", row_id=row[0], error=str(e))
            return accounts
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")

    async def add_account(self, account: Account) -> bool:
        """Append a new account row (account-management side)."""
        attempted = False
        async for attempt in write_attempts(self.retry_wait):
            with attempt:
                try:
                    sheet = await self._client.run(self._client.get_accounts_sheet)
                    rows = await self._client.run(sheet.get_all_values)
                    existing = [row for row in rows[1:] if row and row[0] == account.id]
                    if existing:
                        # Our own earlier attempt landed before its response was lost
                        if attempted and self._row_to_account(existing[0]) == account:
                            return True
                        raise DuplicateError(f"Account already exists: {account.id}")
                    attempted = True
                    await self._client.run(
                        sheet.append_row, self._account_to_row(account), value_input_option="RAW"
                    )
                    return True
                except DuplicateError:
                    raise
                except Exception as e:
                    raise StorageError(f"Failed to add account: {e}")

    @write_retry
    async def update_account(self, account: Account) -> bool:
        """Overwrite the row holding this account."""
        try:
            sheet = await self._client.run(self._client.get_accounts_sheet)
            rows = await self._client.run(sheet.get_all_values)

            for idx, row in enumerate(rows[1:], start=2):
                if row and row[0] == account.id:
                    last_column = _column_letter(len(ACCOUNT_COLUMNS))
                    await self._client.run(
                        sheet.update,
                        range_name=f"A{idx}:{last_column}{idx}",
                        values=[self._account_to_row(account)],
                        value_input_option="RAW",
                    )
                    return True

            raise NotFoundError(f"Account not found: {account.id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update account: {e}")
