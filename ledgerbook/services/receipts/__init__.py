"""Receipt rendering and object storage package."""

from ledgerbook.services.receipts.interface import (
    ReceiptStorageError,
    ReceiptStorageInterface,
    ReceiptValidationError,
    generate_receipt_key,
)
from ledgerbook.services.receipts.generator import ReceiptGenerator
from ledgerbook.services.receipts.memory import InMemoryReceiptStorage
from ledgerbook.services.receipts.cloudinary_storage import CloudinaryReceiptStorage

__all__ = [
    "CloudinaryReceiptStorage",
    "InMemoryReceiptStorage",
    "ReceiptGenerator",
    "ReceiptStorageError",
    "ReceiptStorageInterface",
    "ReceiptValidationError",
    "generate_receipt_key",
]
