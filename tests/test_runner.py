"""
Tests for the shared background event loop

Streamlit calls the services from one thread per session; these tests
drive the services the same way.
"""

import asyncio
import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ledgerbook.errors import InsufficientFundsError, NotFoundError
from ledgerbook.ledger import compute_balance
from ledgerbook.models.ledger import BankAccount, BankAccountType, TransferRequest, User
from ledgerbook.orchestrator import TransferOrchestrator
from ledgerbook.runner import BackgroundLoop
from ledgerbook.services.storage import InMemoryLedgerStorage


class SlowLedgerStorage(InMemoryLedgerStorage):
    """Store whose ledger reads take a while, so two transfers overlap."""

    async def get_account_ledger(self, account_id, user_id=None):
        await asyncio.sleep(0.05)
        return await super().get_account_ledger(account_id, user_id)


@pytest.fixture
def background_loop():
    background = BackgroundLoop(name="ledgerbook-test-loop")
    yield background
    background.stop()


class TestBackgroundLoop:
    """Tests for running coroutines from synchronous code."""

    def test_returns_result(self, background_loop):
        """Test that the coroutine's value is handed back."""
        async def answer():
            return 42

        assert background_loop.run(answer()) == 42

    def test_propagates_exceptions(self, background_loop):
        """Test that service errors reach the caller unchanged."""
        async def missing():
            raise NotFoundError("Bank account not found.")

        with pytest.raises(NotFoundError, match="Bank account not found."):
            background_loop.run(missing())

    def test_restarts_after_stop(self, background_loop):
        """Test that a stopped loop starts again on the next call."""
        async def one():
            return 1

        background_loop.run(one())
        background_loop.stop()

        assert background_loop.run(one()) == 1


class TestTransfersFromSeveralThreads:
    """Tests for concurrent transfers submitted from different threads."""

    def test_second_transfer_is_serialized_not_stuck(self, background_loop, receipt_storage, generator, app_settings):
        """Test that two threads moving 100 from 130 both return, exactly one succeeding."""
        storage = SlowLedgerStorage()
        user = background_loop.run(storage.create_user(User(name="Alice", email="alice@example.com")))
        source = background_loop.run(storage.create_account(BankAccount(
            user_id=user.id, name="A", initial_balance=Decimal("130.00"),
            type=BankAccountType.CHECKING, color="#000000",
        )))
        target = background_loop.run(storage.create_account(BankAccount(
            user_id=user.id, name="B", initial_balance=Decimal("0.00"),
            type=BankAccountType.CHECKING, color="#FFFFFF",
        )))
        orchestrator = TransferOrchestrator(storage, receipt_storage, generator, settings=app_settings)
        request = TransferRequest(
            from_bank_account_id=source.id,
            to_bank_account_id=target.id,
            name="Rent share",
            amount=Decimal("100.00"),
            date=datetime(2024, 1, 20, tzinfo=timezone.utc),
        )

        outcomes = []

        def session():
            try:
                outcomes.append(background_loop.run(orchestrator.transfer(user.id, request), timeout=5))
            except Exception as e:
                outcomes.append(e)

        threads = [threading.Thread(target=session) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert not any(thread.is_alive() for thread in threads)
        assert len(outcomes) == 2
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientFundsError)

        ledger = background_loop.run(storage.get_account_ledger(source.id))
        assert compute_balance(ledger.account.initial_balance, ledger.transactions) == Decimal("30.00")
