"""Tests for derived account balances."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from ledgerbook.ledger import compute_balance, ledger_with_balance
from ledgerbook.models.ledger import Transaction, TransactionType


def _tx(value: str, kind: TransactionType) -> Transaction:
    return Transaction(
        user_id=uuid4(),
        bank_account_id=uuid4(),
        name="row",
        value=Decimal(value),
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        type=kind,
    )


class TestComputeBalance:
    """Tests for compute_balance."""

    def test_income_minus_expense(self):
        """Test 100 + 50 - 20 = 130."""
        rows = [_tx("50.00", TransactionType.INCOME), _tx("20.00", TransactionType.EXPENSE)]
        assert compute_balance(Decimal("100.00"), rows) == Decimal("130.00")

    def test_empty_ledger_is_initial_balance(self):
        """Test that no transactions leaves the initial balance."""
        assert compute_balance(Decimal("-12.34"), []) == Decimal("-12.34")

    def test_order_does_not_matter(self):
        """Test that reordering transactions gives the same balance."""
        rows = [
            _tx("0.10", TransactionType.INCOME),
            _tx("0.20", TransactionType.INCOME),
            _tx("0.30", TransactionType.EXPENSE),
            _tx("9.99", TransactionType.EXPENSE),
        ]
        assert compute_balance(Decimal("10"), rows) == compute_balance(Decimal("10"), rows[::-1])
        assert compute_balance(Decimal("10"), rows) == Decimal("0.01")


class TestLedgerWithBalance:
    """Tests for the balance annotation on stored ledgers."""

    @pytest.mark.asyncio
    async def test_annotates_account(self, storage, account):
        """Test that the seeded account reads back at 130."""
        ledger = await storage.get_account_ledger(account.id)
        annotated = ledger_with_balance(ledger)

        assert annotated.id == account.id
        assert annotated.current_balance == Decimal("130.00")
        assert annotated.initial_balance == Decimal("100.00")
