"""
Google Sheets Storage Implementation

Google Sheets is the persistent backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No multi-row transactions (the transfer saga compensates instead)
- Limited query capabilities (we filter in Python)

Each entity lives in its own worksheet, one row per record, with a
header row naming the columns. The implementation follows the abstract
interface, so we can swap to PostgreSQL/SQLite later without changing
business logic.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledgerbook.config import GoogleSheetsSettings, get_settings
from ledgerbook.log import get_logger
from ledgerbook.models.ledger import (
    AccountLedger,
    BankAccount,
    BankAccountType,
    Category,
    Transaction,
    TransactionType,
    User,
)
from ledgerbook.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)


logger = get_logger(__name__)

T = TypeVar("T")


USER_COLUMNS = ["id", "name", "email"]

ACCOUNT_COLUMNS = [
    "id",
    "user_id",
    "name",
    "initial_balance",
    "type",
    "color",
    "bank_account_key",
    "created_at",
]

CATEGORY_COLUMNS = ["id", "user_id", "name", "icon", "type"]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "bank_account_id",
    "category_id",
    "name",
    "value",
    "date",
    "type",
    "is_transfer",
    "payment_id",
    "receipt_key",
    "created_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

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
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_users_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.users_sheet_name, USER_COLUMNS)

    def get_accounts_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.accounts_sheet_name, ACCOUNT_COLUMNS)

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.categories_sheet_name, CATEGORY_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
        )


def _safe_getter(row: list) -> Callable[[int], str]:
    """Index into a row, treating short rows as empty cells."""
    def safe_get(index: int) -> str:
        try:
            return row[index] or ""
        except IndexError:
            return ""
    return safe_get


def user_to_row(user: User) -> list:
    return [str(user.id), user.name, user.email]


def row_to_user(row: list) -> User:
    get = _safe_getter(row)
    return User(id=UUID(get(0)), name=get(1), email=get(2))


def account_to_row(account: BankAccount) -> list:
    return [
        str(account.id),
        str(account.user_id),
        account.name,
        str(account.initial_balance),
        account.type.value,
        account.color,
        account.bank_account_key or "",
        account.created_at.isoformat(),
    ]


def row_to_account(row: list) -> BankAccount:
    get = _safe_getter(row)
    return BankAccount(
        id=UUID(get(0)),
        user_id=UUID(get(1)),
        name=get(2),
        initial_balance=Decimal(get(3)),
        type=BankAccountType(get(4)),
        color=get(5),
        bank_account_key=get(6) or None,
        created_at=datetime.fromisoformat(get(7)),
    )


def category_to_row(category: Category) -> list:
    return [
        str(category.id),
        str(category.user_id),
        category.name,
        category.icon,
        category.type.value,
    ]


def row_to_category(row: list) -> Category:
    get = _safe_getter(row)
    return Category(
        id=UUID(get(0)),
        user_id=UUID(get(1)),
        name=get(2),
        icon=get(3),
        type=TransactionType(get(4)),
    )


def transaction_to_row(tx: Transaction) -> list:
    return [
        str(tx.id),
        str(tx.user_id),
        str(tx.bank_account_id),
        str(tx.category_id) if tx.category_id else "",
        tx.name,
        str(tx.value),
        tx.date.isoformat(),
        tx.type.value,
        str(tx.is_transfer),
        tx.payment_id or "",
        tx.receipt_key or "",
        tx.created_at.isoformat(),
    ]


def row_to_transaction(row: list) -> Transaction:
    get = _safe_getter(row)
    return Transaction(
        id=UUID(get(0)),
        user_id=UUID(get(1)),
        bank_account_id=UUID(get(2)),
        category_id=UUID(get(3)) if get(3) else None,
        name=get(4),
        value=Decimal(get(5)),
        date=datetime.fromisoformat(get(6)),
        type=TransactionType(get(7)),
        is_transfer=get(8).lower() == "true",
        payment_id=get(9) or None,
        receipt_key=get(10) or None,
        created_at=datetime.fromisoformat(get(11)),
    )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Records are stored as rows, one worksheet per entity.
    Decimals are written as strings so no precision is lost to Sheets'
    floating point number format.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -- generic row helpers -------------------------------------------------

    def _read_all(
        self,
        sheet: gspread.Worksheet,
        parse: Callable[[list], T],
    ) -> list[T]:
        """
        Parse every data row, skipping empty and malformed ones.

        Only for listings and lookups; ledger reads use _ledger_transactions.
        """
        records = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:
                continue
            try:
                records.append(parse(row))
            except Exception as e:
                logger.warning("sheets_row_skipped", sheet=sheet.title, row_id=row[0], error=str(e))
        return records

    @staticmethod
    def _find_row_index(sheet: gspread.Worksheet, record_id: UUID) -> Optional[int]:
        """1-based sheet row index of a record, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == str(record_id):
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, sheet: gspread.Worksheet, values: list) -> None:
        sheet.append_row(values, value_input_option="RAW")

    @staticmethod
    def _overwrite_row(sheet: gspread.Worksheet, index: int, values: list) -> None:
        for col_idx, value in enumerate(values, start=1):
            sheet.update_cell(index, col_idx, value)

    # -- users ---------------------------------------------------------------

    async def create_user(self, user: User) -> User:
        try:
            sheet = self._client.get_users_sheet()
            if self._find_row_index(sheet, user.id):
                raise DuplicateError(f"User already exists: {user.id}")
            self._append(sheet, user_to_row(user))
            return user
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save user: {e}")

    async def get_user(self, user_id: UUID) -> Optional[User]:
        try:
            users = self._read_all(self._client.get_users_sheet(), row_to_user)
        except Exception as e:
            raise StorageError(f"Failed to get user: {e}")
        return next((u for u in users if u.id == user_id), None)

    # -- bank accounts -------------------------------------------------------

    def _all_accounts(self) -> list[BankAccount]:
        try:
            return self._read_all(self._client.get_accounts_sheet(), row_to_account)
        except Exception as e:
            raise StorageError(f"Failed to read bank accounts: {e}")

    def _all_transactions(self) -> list[Transaction]:
        try:
            return self._read_all(self._client.get_transactions_sheet(), row_to_transaction)
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")

    def _ledger_transactions(self, account_ids: list[UUID]) -> dict[UUID, list[Transaction]]:
        """
        Transactions booked against the given accounts, grouped and date-ordered.

        Balances are derived from these rows, so a row of one of these
        accounts that cannot be parsed fails the read instead of being
        skipped.
        """
        by_account: dict[UUID, list[Transaction]] = {a: [] for a in account_ids}
        wanted = {str(a) for a in account_ids}
        try:
            rows = self._client.get_transactions_sheet().get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")

        for row in rows:
            if len(row) < 3 or row[2] not in wanted:
                continue
            try:
                tx = row_to_transaction(row)
            except Exception as e:
                logger.error("sheets_ledger_row_unreadable", bank_account_id=row[2], row_id=row[0], error=str(e))
                raise StorageError(
                    f"Unreadable transaction row {row[0] or '(no id)'} on bank account {row[2]}: {e}"
                )
            by_account[tx.bank_account_id].append(tx)

        for transactions in by_account.values():
            transactions.sort(key=lambda t: t.date)
        return by_account

    async def create_account(self, account: BankAccount) -> BankAccount:
        for existing in self._all_accounts():
            if existing.id == account.id:
                raise DuplicateError(f"Bank account already exists: {account.id}")
            if account.bank_account_key and existing.bank_account_key == account.bank_account_key:
                raise DuplicateError(f"Bank account key already in use: {account.bank_account_key}")
        try:
            sheet = self._client.get_accounts_sheet()
            self._append(sheet, account_to_row(account))
            return account
        except Exception as e:
            raise StorageError(f"Failed to save bank account: {e}")

    async def get_account(
        self,
        account_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[BankAccount]:
        for account in self._all_accounts():
            if account.id == account_id and (user_id is None or account.user_id == user_id):
                return account
        return None

    async def get_account_ledger(
        self,
        account_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[AccountLedger]:
        account = await self.get_account(account_id, user_id)
        if account is None:
            return None
        transactions = self._ledger_transactions([account_id])[account_id]
        return AccountLedger(account=account, transactions=transactions)

    async def list_account_ledgers(self, user_id: UUID) -> list[AccountLedger]:
        accounts = [a for a in self._all_accounts() if a.user_id == user_id]
        if not accounts:
            return []

        by_account = self._ledger_transactions([a.id for a in accounts])

        accounts.sort(key=lambda a: a.created_at)
        return [
            AccountLedger(account=account, transactions=by_account[account.id])
            for account in accounts
        ]

    async def find_account_by_key(self, bank_account_key: str) -> Optional[BankAccount]:
        for account in self._all_accounts():
            if account.bank_account_key == bank_account_key:
                return account
        return None

    async def update_account(self, account: BankAccount) -> BankAccount:
        try:
            sheet = self._client.get_accounts_sheet()
            index = self._find_row_index(sheet, account.id)
            if index is None:
                raise NotFoundError(f"Bank account not found: {account.id}")
            self._overwrite_row(sheet, index, account_to_row(account))
            return account
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update bank account: {e}")

    async def delete_account(self, account_id: UUID) -> bool:
        try:
            sheet = self._client.get_accounts_sheet()
            index = self._find_row_index(sheet, account_id)
            if index is None:
                return False

            # Cascade first so a failure never leaves orphaned ledger rows
            tx_sheet = self._client.get_transactions_sheet()
            rows = tx_sheet.get_all_values()
            # Delete bottom-up so earlier indices stay valid
            for idx in range(len(rows), 1, -1):
                row = rows[idx - 1]
                if len(row) > 2 and row[2] == str(account_id):
                    tx_sheet.delete_rows(idx)

            sheet.delete_rows(index)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete bank account: {e}")

    # -- categories ----------------------------------------------------------

    async def create_category(self, category: Category) -> Category:
        try:
            sheet = self._client.get_categories_sheet()
            self._append(sheet, category_to_row(category))
            return category
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def get_category(
        self,
        category_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[Category]:
        for category in await self._all_categories():
            if category.id == category_id and (user_id is None or category.user_id == user_id):
                return category
        return None

    async def list_categories(self, user_id: UUID) -> list[Category]:
        return [c for c in await self._all_categories() if c.user_id == user_id]

    async def _all_categories(self) -> list[Category]:
        try:
            return self._read_all(self._client.get_categories_sheet(), row_to_category)
        except Exception as e:
            raise StorageError(f"Failed to read categories: {e}")

    # -- transactions --------------------------------------------------------

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            self._append(sheet, transaction_to_row(transaction))
            return transaction
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        for tx in self._all_transactions():
            if tx.id == transaction_id and (user_id is None or tx.user_id == user_id):
                return tx
        return None

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            index = self._find_row_index(sheet, transaction.id)
            if index is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            self._overwrite_row(sheet, index, transaction_to_row(transaction))
            return transaction
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            index = self._find_row_index(sheet, transaction_id)
            if index is None:
                return False
            sheet.delete_rows(index)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def list_transactions(
        self,
        user_id: UUID,
        bank_account_id: Optional[UUID] = None,
        type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Transaction]:
        rows = []
        for tx in self._all_transactions():
            if tx.user_id != user_id:
                continue
            if bank_account_id and tx.bank_account_id != bank_account_id:
                continue
            if type and tx.type != type:
                continue
            if date_from and tx.date < date_from:
                continue
            if date_before and tx.date >= date_before:
                continue
            rows.append(tx)

        rows.sort(key=lambda t: t.date)
        return rows

    async def find_transaction_by_receipt_key(
        self,
        receipt_key: str,
        user_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        for tx in self._all_transactions():
            if tx.receipt_key == receipt_key and (user_id is None or tx.user_id == user_id):
                return tx
        return None
