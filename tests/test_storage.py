"""
Tests for ledger storage backends

The Google Sheets backend runs against an in-process worksheet stand-in,
so no Google API is ever reached.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from ledgerbook.config import Settings
from ledgerbook.errors import ConfigurationError
from ledgerbook.models.ledger import (
    BankAccount,
    BankAccountType,
    Transaction,
    TransactionType,
    User,
)
from ledgerbook.orchestrator import create_app_components
from ledgerbook.services.receipts import CloudinaryReceiptStorage, InMemoryReceiptStorage
from ledgerbook.services.storage import (
    DuplicateError,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    NotFoundError,
    StorageError,
)
from ledgerbook.services.storage.google_sheets import (
    ACCOUNT_COLUMNS,
    CATEGORY_COLUMNS,
    TRANSACTION_COLUMNS,
    USER_COLUMNS,
    row_to_transaction,
    transaction_to_row,
)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage backend."""

    def __init__(self, title: str, columns: list[str]):
        self.title = title
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.users = FakeWorksheet("Users", USER_COLUMNS)
        self.accounts = FakeWorksheet("BankAccounts", ACCOUNT_COLUMNS)
        self.categories = FakeWorksheet("Categories", CATEGORY_COLUMNS)
        self.transactions = FakeWorksheet("Transactions", TRANSACTION_COLUMNS)

    def get_users_sheet(self):
        return self.users

    def get_accounts_sheet(self):
        return self.accounts

    def get_categories_sheet(self):
        return self.categories

    def get_transactions_sheet(self):
        return self.transactions


def _account(user_id, key="1A2B3C"):
    return BankAccount(
        user_id=user_id,
        name="Checking",
        initial_balance=Decimal("100.10"),
        type=BankAccountType.CHECKING,
        color="#7950F2",
        bank_account_key=key,
    )


def _transaction(user_id, account_id, day, kind=TransactionType.EXPENSE):
    return Transaction(
        user_id=user_id,
        bank_account_id=account_id,
        name="Row",
        value=Decimal("0.10"),
        date=datetime(2024, 1, day, tzinfo=timezone.utc),
        type=kind,
    )


@pytest.fixture(params=["memory", "sheets"])
def backend(request):
    if request.param == "memory":
        return InMemoryLedgerStorage()
    return GoogleSheetsLedgerStorage(FakeSheetsClient())


class TestLedgerStorageContract:
    """Behaviour every backend must share."""

    @pytest.mark.asyncio
    async def test_account_scoping(self, backend):
        """Test that a scoped read hides other users' accounts."""
        alice = await backend.create_user(User(name="Alice", email="a@example.com"))
        bob = await backend.create_user(User(name="Bob", email="b@example.com"))
        account = await backend.create_account(_account(alice.id))

        assert (await backend.get_account(account.id, alice.id)).id == account.id
        assert await backend.get_account(account.id, bob.id) is None
        assert (await backend.get_account(account.id)).user_id == alice.id

    @pytest.mark.asyncio
    async def test_duplicate_key_rejected(self, backend):
        """Test that account keys are unique."""
        alice = await backend.create_user(User(name="Alice", email="a@example.com"))
        await backend.create_account(_account(alice.id))

        with pytest.raises(DuplicateError):
            await backend.create_account(_account(alice.id))

    @pytest.mark.asyncio
    async def test_ledger_and_date_window(self, backend):
        """Test ledger reads and the half-open date filter."""
        alice = await backend.create_user(User(name="Alice", email="a@example.com"))
        account = await backend.create_account(_account(alice.id))
        for day in (3, 1, 2):
            await backend.create_transaction(_transaction(alice.id, account.id, day))

        ledger = await backend.get_account_ledger(account.id, alice.id)
        window = await backend.list_transactions(
            alice.id,
            date_from=datetime(2024, 1, 1, tzinfo=timezone.utc),
            date_before=datetime(2024, 1, 3, tzinfo=timezone.utc),
        )

        assert len(ledger.transactions) == 3
        assert [t.date.day for t in window] == [1, 2]

    @pytest.mark.asyncio
    async def test_delete_account_cascades(self, backend):
        """Test that an account's transactions go with it."""
        alice = await backend.create_user(User(name="Alice", email="a@example.com"))
        keep = await backend.create_account(_account(alice.id, key="9Z9Z9Z"))
        drop = await backend.create_account(_account(alice.id))
        kept_tx = await backend.create_transaction(_transaction(alice.id, keep.id, 5))
        for day in (1, 2):
            await backend.create_transaction(_transaction(alice.id, drop.id, day))

        assert await backend.delete_account(drop.id) is True

        remaining = await backend.list_transactions(alice.id)
        assert [t.id for t in remaining] == [kept_tx.id]
        assert await backend.delete_account(drop.id) is False

    @pytest.mark.asyncio
    async def test_update_missing_transaction(self, backend):
        """Test that updating an unknown row raises NotFound."""
        alice = await backend.create_user(User(name="Alice", email="a@example.com"))
        account = await backend.create_account(_account(alice.id))

        with pytest.raises(NotFoundError):
            await backend.update_transaction(_transaction(alice.id, account.id, 1))

    @pytest.mark.asyncio
    async def test_receipt_lookup(self, backend):
        """Test that receipts are found only through their owner's transaction."""
        alice = await backend.create_user(User(name="Alice", email="a@example.com"))
        bob = await backend.create_user(User(name="Bob", email="b@example.com"))
        account = await backend.create_account(_account(alice.id))
        tx = _transaction(alice.id, account.id, 1).model_copy(update={"receipt_key": "transfer-uploads/r.pdf"})
        await backend.create_transaction(tx)

        assert (await backend.find_transaction_by_receipt_key("transfer-uploads/r.pdf", alice.id)).id == tx.id
        assert await backend.find_transaction_by_receipt_key("transfer-uploads/r.pdf", bob.id) is None


class TestInMemoryIsolation:
    """Tests for copy-on-read."""

    @pytest.mark.asyncio
    async def test_callers_cannot_mutate_store(self):
        """Test that changing a returned model leaves the stored row intact."""
        storage = InMemoryLedgerStorage()
        alice = await storage.create_user(User(name="Alice", email="a@example.com"))
        account = await storage.create_account(_account(alice.id))

        fetched = await storage.get_account(account.id)
        fetched.name = "Tampered"

        assert (await storage.get_account(account.id)).name == "Checking"


class TestSheetRows:
    """Tests for the sheet row format."""

    def test_transaction_row_keeps_decimal_and_optional_fields(self):
        """Test that money survives as text and blank cells read back as None."""
        tx = Transaction(
            user_id=uuid4(),
            bank_account_id=uuid4(),
            name="Transfer",
            value=Decimal("1234.05"),
            date=datetime(2024, 1, 15, tzinfo=timezone.utc),
            type=TransactionType.INCOME,
            is_transfer=True,
            payment_id="pay-1",
        )
        row = transaction_to_row(tx)

        assert row[5] == "1234.05"
        assert row[3] == ""

        parsed = row_to_transaction(row)
        assert parsed.value == Decimal("1234.05")
        assert parsed.category_id is None
        assert parsed.receipt_key is None
        assert parsed.is_transfer is True


class TestSheetsLedgerReads:
    """Tests for reads that feed balances."""

    @pytest.mark.asyncio
    async def test_corrupt_value_fails_ledger_read(self):
        """Test that a hand-edited value cell fails the ledger instead of vanishing from it."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        alice = await storage.create_user(User(name="Alice", email="a@example.com"))
        account = await storage.create_account(_account(alice.id))
        await storage.create_transaction(_transaction(alice.id, account.id, 1))
        client.transactions.rows[1][5] = "ten euros"

        with pytest.raises(StorageError, match="Unreadable transaction row"):
            await storage.get_account_ledger(account.id, alice.id)
        with pytest.raises(StorageError):
            await storage.list_account_ledgers(alice.id)

    @pytest.mark.asyncio
    async def test_corrupt_row_elsewhere_does_not_block_ledger(self):
        """Test that a broken row on another account leaves this ledger readable."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        alice = await storage.create_user(User(name="Alice", email="a@example.com"))
        account = await storage.create_account(_account(alice.id))
        other = await storage.create_account(_account(alice.id, key="9Z9Z9Z"))
        await storage.create_transaction(_transaction(alice.id, account.id, 1))
        await storage.create_transaction(_transaction(alice.id, other.id, 2))
        client.transactions.rows[2][5] = "n/a"

        ledger = await storage.get_account_ledger(account.id, alice.id)

        assert [t.value for t in ledger.transactions] == [Decimal("0.10")]

    @pytest.mark.asyncio
    async def test_listing_still_skips_corrupt_rows(self):
        """Test that display listings skip a broken row."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        alice = await storage.create_user(User(name="Alice", email="a@example.com"))
        account = await storage.create_account(_account(alice.id))
        kept = await storage.create_transaction(_transaction(alice.id, account.id, 1))
        await storage.create_transaction(_transaction(alice.id, account.id, 2))
        client.transactions.rows[2][5] = "n/a"

        listed = await storage.list_transactions(alice.id)

        assert [t.id for t in listed] == [kept.id]


class TestCreateAppComponents:
    """Tests for the component factory."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        for var in [
            "STORAGE_BACKEND",
            "RECEIPT_BACKEND",
            "GOOGLE_SHEETS_CREDENTIALS_PATH",
            "GOOGLE_SHEETS_SPREADSHEET_ID",
            "CLOUDINARY_CLOUD_NAME",
            "CLOUDINARY_API_KEY",
            "CLOUDINARY_API_SECRET",
        ]:
            monkeypatch.delenv(var, raising=False)
        # Settings read .env from the working directory
        monkeypatch.chdir(tmp_path)

    def test_defaults_to_memory(self):
        """Test that the default configuration runs fully in memory."""
        components = create_app_components(Settings())

        assert isinstance(components.storage, InMemoryLedgerStorage)
        assert isinstance(components.receipt_storage, InMemoryReceiptStorage)

    def test_selected_but_unconfigured_sheets_raises(self, monkeypatch):
        """Test that selecting Google Sheets without its settings is an error."""
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")

        with pytest.raises(ConfigurationError, match="Google Sheets is not configured"):
            create_app_components(Settings())

    def test_selected_but_unconfigured_cloudinary_raises(self, monkeypatch):
        """Test that selecting Cloudinary without credentials is an error."""
        monkeypatch.setenv("RECEIPT_BACKEND", "cloudinary")

        with pytest.raises(ConfigurationError, match="Cloudinary is not configured"):
            create_app_components(Settings())

    def test_backend_credentials_read_from_dotenv(self, tmp_path):
        """Test that every settings section reads the .env file, not only the backend switch."""
        (tmp_path / ".env").write_text(
            "RECEIPT_BACKEND=cloudinary\n"
            "CLOUDINARY_CLOUD_NAME=demo\n"
            "CLOUDINARY_API_KEY=key\n"
            "CLOUDINARY_API_SECRET=secret\n"
            "RECEIPT_LINK_TTL_SECONDS=30\n",
            encoding="utf-8",
        )

        settings = Settings()
        components = create_app_components(settings)

        assert isinstance(components.receipt_storage, CloudinaryReceiptStorage)
        assert settings.cloudinary.cloud_name == "demo"
        assert settings.receipts.link_ttl_seconds == 30
