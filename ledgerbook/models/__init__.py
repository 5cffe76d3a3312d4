"""
Data Models Package

This package contains all Pydantic models used in Ledgerbook.
All data flowing through the system must conform to these schemas.
"""

from ledgerbook.models.ledger import (
    AccountLedger,
    BankAccount,
    BankAccountCreate,
    BankAccountLookup,
    BankAccountType,
    BankAccountUpdate,
    BankAccountWithBalance,
    Category,
    CategoryCreate,
    CategorySummary,
    EntityKind,
    ReceiptLink,
    Transaction,
    TransactionCreate,
    TransactionFilters,
    TransactionType,
    TransactionUpdate,
    TransactionWithCategory,
    TransferRequest,
    TransferResult,
    User,
    UserProfile,
)

__all__ = [
    "AccountLedger",
    "BankAccount",
    "BankAccountCreate",
    "BankAccountLookup",
    "BankAccountType",
    "BankAccountUpdate",
    "BankAccountWithBalance",
    "Category",
    "CategoryCreate",
    "CategorySummary",
    "EntityKind",
    "ReceiptLink",
    "Transaction",
    "TransactionCreate",
    "TransactionFilters",
    "TransactionType",
    "TransactionUpdate",
    "TransactionWithCategory",
    "TransferRequest",
    "TransferResult",
    "User",
    "UserProfile",
]
