"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the remote document store because:
1. Users can look at (and back up) their own data directly in Sheets
2. No database setup required
3. One spreadsheet holds every user; a user_id column scopes each row

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions; every write is a single row operation
- Filtering happens in Python after reading the whole sheet

The implementation follows the abstract interface, so the app can swap
between this and the local JSON store without touching business logic.
"""

from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finvue.config import GoogleSheetsSettings, get_settings
from finvue.models.audit import AUDIT_COLUMNS, AuditEvent
from finvue.models.finance import BankAccount, Transaction
from finvue.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for the Accounts sheet
ACCOUNT_COLUMNS = [
    "id",
    "user_id",
    "name",
    "type",
    "balance",
    "currency",
    "color",
]

# Column mappings for the Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "account_id",
    "category_id",
    "amount",
    "type",
    "date",
    "note",
]

_write_retry = retry(
    retry=retry_if_not_exception_type(DuplicateError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @_write_retry
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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
            return sheet


class GoogleSheetsFinanceStorage(FinanceStorageInterface):
    """
    Google Sheets implementation of account and transaction storage.

    One row per record; the user_id column (second) scopes every query.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _accounts_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.accounts_sheet_name, ACCOUNT_COLUMNS
        )

    def _transactions_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )

    @staticmethod
    def _account_to_row(user_id: str, account: BankAccount) -> list:
        return [
            account.id,
            user_id,
            account.name,
            account.type,
            str(account.balance),
            account.currency,
            account.color,
        ]

    @staticmethod
    def _row_to_account(row: list) -> BankAccount:
        values = dict(zip(ACCOUNT_COLUMNS, row))
        values.pop("user_id", None)
        return BankAccount(**{k: v for k, v in values.items() if v != ""})

    @staticmethod
    def _transaction_to_row(user_id: str, transaction: Transaction) -> list:
        return [
            transaction.id,
            user_id,
            transaction.account_id,
            transaction.category_id,
            str(transaction.amount),
            transaction.type.value,
            transaction.date,
            transaction.note,
        ]

    @staticmethod
    def _row_to_transaction(row: list) -> Transaction:
        values = dict(zip(TRANSACTION_COLUMNS, row))
        values.pop("user_id", None)
        values.setdefault("note", "")
        return Transaction(**values)

    @staticmethod
    def _user_rows(sheet: gspread.Worksheet, user_id: str) -> list[tuple[int, list]]:
        """(sheet row number, row) for every row owned by the user."""
        all_rows = sheet.get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is header
            if len(row) > 1 and row[0] and row[1] == user_id
        ]

    async def get_accounts(self, user_id: str) -> list[BankAccount]:
        try:
            rows = self._user_rows(self._accounts_sheet(), user_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")

        accounts = []
        for _, row in rows:
            try:
                accounts.append(self._row_to_account(row))
            except ValidationError:
                logger.warning("skipping_malformed_account_row", row_id=row[0])
        return accounts

    @_write_retry
    async def save_account(self, user_id: str, account: BankAccount) -> BankAccount:
        try:
            sheet = self._accounts_sheet()
            new_row = self._account_to_row(user_id, account)
            for idx, row in self._user_rows(sheet, user_id):
                if row[0] == account.id:
                    sheet.update(range_name=f"A{idx}", values=[new_row])
                    return account
            sheet.append_row(new_row, value_input_option="RAW")
            return account
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save account: {e}")

    async def delete_account(self, user_id: str, account_id: str) -> bool:
        try:
            sheet = self._accounts_sheet()
            for idx, row in self._user_rows(sheet, user_id):
                if row[0] == account_id:
                    sheet.delete_rows(idx)
                    return True
            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete account: {e}")

    async def get_transactions(self, user_id: str) -> list[Transaction]:
        try:
            rows = self._user_rows(self._transactions_sheet(), user_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        transactions = []
        for _, row in rows:
            try:
                transactions.append(self._row_to_transaction(row))
            except ValidationError:
                logger.warning("skipping_malformed_transaction_row", row_id=row[0])
        return transactions

    @_write_retry
    async def add_transaction(self, user_id: str, transaction: Transaction) -> Transaction:
        try:
            sheet = self._transactions_sheet()
            if any(row[0] == transaction.id for _, row in self._user_rows(sheet, user_id)):
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            sheet.append_row(
                self._transaction_to_row(user_id, transaction),
                value_input_option="RAW",
            )
            return transaction
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to add transaction: {e}")

    async def delete_transaction(self, user_id: str, transaction_id: str) -> bool:
        try:
            sheet = self._transactions_sheet()
            for idx, row in self._user_rows(sheet, user_id):
                if row[0] == transaction_id:
                    sheet.delete_rows(idx)
                    return True
            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            all_rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(AuditEvent.from_sheets_row(row))
                except (ValueError, ValidationError):
                    continue

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
