"""
Receipt Object Storage Interface

Receipts are opaque binary documents kept outside the ledger store.
The ledger only keeps the storage key on the transaction that owns
the receipt; everything else goes through this interface.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from ledgerbook.errors import InvalidOperationError, UpstreamError


class ReceiptValidationError(InvalidOperationError):
    """Upload request is missing its content."""
    pass


class ReceiptStorageError(UpstreamError):
    """The object storage call failed."""
    pass


def generate_receipt_key(
    logical_name: str,
    now: datetime,
    unique_id: UUID,
    folder: str = "transfer-uploads",
) -> str:
    """
    Build a collision-free storage key for a receipt.

    Format: {folder}/{epoch_millis}-{unique_hex}-{logical_name}
    """
    millis = int(now.timestamp() * 1000)
    safe_name = logical_name.strip().replace("/", "_").replace(" ", "_")
    return f"{folder}/{millis}-{unique_id.hex}-{safe_name}"


def ensure_uploadable(content: Optional[bytes], is_transfer: bool) -> bytes:
    """Reject uploads that have nothing to store."""
    if not content:
        if is_transfer:
            raise ReceiptValidationError("Transfer receipts require document content.")
        raise ReceiptValidationError("Nothing to upload: content is empty.")
    return content


class ReceiptStorageInterface(ABC):
    """Abstract interface for receipt object storage."""

    @abstractmethod
    async def upload(
        self,
        logical_name: str,
        content: Optional[bytes] = None,
        is_transfer: bool = False,
    ) -> str:
        """
        Store a document under a freshly generated key.

        Args:
            logical_name: Human-meaningful file name (e.g. receipt-<payment_id>.pdf)
            content: Document bytes
            is_transfer: Whether this is a transfer receipt

        Returns:
            The storage key

        Raises:
            ReceiptValidationError: If there is no content to store
            ReceiptStorageError: If the upload fails
        """
        pass

    @abstractmethod
    async def get_signed_url(
        self,
        receipt_key: str,
        expires_at: Optional[datetime] = None,
    ) -> str:
        """
        Issue a time-limited retrieval link.

        Callers are responsible for checking ownership first.
        """
        pass

    @abstractmethod
    async def delete(self, receipt_key: str) -> bool:
        """Remove a stored document. Returns False if it did not exist."""
        pass
