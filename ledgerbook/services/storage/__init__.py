"""
Storage Services Package

Provides the abstract ledger storage interface and its implementations:
Google Sheets for persistence and an in-memory store for tests and
local runs.
"""

from ledgerbook.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from ledgerbook.services.storage.memory import InMemoryLedgerStorage
from ledgerbook.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interface
    "LedgerStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryLedgerStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
