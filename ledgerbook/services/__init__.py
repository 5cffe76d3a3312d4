"""Services package."""

from ledgerbook.services.receipts import (
    CloudinaryReceiptStorage,
    InMemoryReceiptStorage,
    ReceiptGenerator,
    ReceiptStorageError,
    ReceiptStorageInterface,
    ReceiptValidationError,
)
from ledgerbook.services.storage import (
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Receipt services
    "CloudinaryReceiptStorage",
    "InMemoryReceiptStorage",
    "ReceiptGenerator",
    "ReceiptStorageError",
    "ReceiptStorageInterface",
    "ReceiptValidationError",
    # Storage services
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
