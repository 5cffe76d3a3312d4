"""
Account Ledger Reader

An account's balance is never stored. It is derived on every read:

    current_balance = initial_balance + sum(INCOME) - sum(EXPENSE)

Decimal arithmetic only, so sums never drift.
"""

from decimal import Decimal
from typing import Iterable

from ledgerbook.models.ledger import (
    AccountLedger,
    BankAccountWithBalance,
    Transaction,
)


def compute_balance(
    initial_balance: Decimal,
    transactions: Iterable[Transaction],
) -> Decimal:
    """
    Derive the current balance of an account.

    Order of the transactions does not matter. An empty ledger
    yields the initial balance.
    """
    return initial_balance + sum(
        (tx.signed_value for tx in transactions),
        Decimal("0"),
    )


def ledger_with_balance(ledger: AccountLedger) -> BankAccountWithBalance:
    """Annotate a ledger's account with its derived balance."""
    return BankAccountWithBalance(
        **ledger.account.model_dump(),
        current_balance=compute_balance(
            ledger.account.initial_balance,
            ledger.transactions,
        ),
    )
