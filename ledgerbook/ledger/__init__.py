"""Ledger services package."""

from ledgerbook.ledger.accounts import BankAccountService, generate_bank_account_key
from ledgerbook.ledger.balance import compute_balance, ledger_with_balance
from ledgerbook.ledger.categories import CategoryService
from ledgerbook.ledger.transactions import TransactionService
from ledgerbook.ledger.users import UserService

__all__ = [
    "BankAccountService",
    "CategoryService",
    "TransactionService",
    "UserService",
    "compute_balance",
    "generate_bank_account_key",
    "ledger_with_balance",
]
