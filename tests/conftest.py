"""
Shared fixtures.

Everything runs against the in-memory backends; no test talks to
Google Sheets or Cloudinary.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from ledgerbook.config import AppSettings, ReceiptSettings
from ledgerbook.models.ledger import (
    BankAccount,
    BankAccountType,
    Category,
    Transaction,
    TransactionType,
    User,
)
from ledgerbook.orchestrator import ReceiptFlow, TransferOrchestrator
from ledgerbook.services.receipts import InMemoryReceiptStorage, ReceiptGenerator
from ledgerbook.services.storage import InMemoryLedgerStorage


JAN_15 = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def app_settings():
    return AppSettings(_env_file=None)


@pytest.fixture
def receipt_settings():
    return ReceiptSettings()


@pytest.fixture
def receipt_storage(receipt_settings):
    return InMemoryReceiptStorage(receipt_settings)


@pytest.fixture
def generator(receipt_settings):
    return ReceiptGenerator(receipt_settings)


@pytest.fixture
def orchestrator(storage, receipt_storage, generator, app_settings):
    return TransferOrchestrator(storage, receipt_storage, generator, settings=app_settings)


@pytest.fixture
def receipt_flow(storage, receipt_storage, receipt_settings):
    return ReceiptFlow(storage, receipt_storage, settings=receipt_settings)


@pytest_asyncio.fixture
async def user(storage):
    return await storage.create_user(User(name="Alice", email="alice@example.com"))


@pytest_asyncio.fixture
async def other_user(storage):
    return await storage.create_user(User(name="Bob", email="bob@example.com"))


@pytest_asyncio.fixture
async def category(storage, user):
    return await storage.create_category(
        Category(user_id=user.id, name="Groceries", icon="cart", type=TransactionType.EXPENSE)
    )


@pytest_asyncio.fixture
async def account(storage, user):
    """Alice's checking account: 100 initial, +50 income, -20 expense = 130."""
    account = await storage.create_account(BankAccount(
        user_id=user.id,
        name="Checking",
        initial_balance=Decimal("100.00"),
        type=BankAccountType.CHECKING,
        color="#7950F2",
        bank_account_key="1A2B3C",
    ))
    for value, kind in [("50.00", TransactionType.INCOME), ("20.00", TransactionType.EXPENSE)]:
        await storage.create_transaction(Transaction(
            user_id=user.id,
            bank_account_id=account.id,
            name=f"{kind.value.lower()} seed",
            value=Decimal(value),
            date=JAN_15,
            type=kind,
        ))
    return account


@pytest_asyncio.fixture
async def savings(storage, user):
    return await storage.create_account(BankAccount(
        user_id=user.id,
        name="Savings",
        initial_balance=Decimal("0.00"),
        type=BankAccountType.INVESTMENT,
        color="#12B886",
        bank_account_key="4D5E6F",
    ))


@pytest_asyncio.fixture
async def foreign_account(storage, other_user):
    return await storage.create_account(BankAccount(
        user_id=other_user.id,
        name="Bob's wallet",
        initial_balance=Decimal("10.00"),
        type=BankAccountType.CASH,
        color="#FA5252",
        bank_account_key="7G8H9J",
    ))
