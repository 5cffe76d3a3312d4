"""In-memory receipt storage, for tests and local runs without Cloudinary."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote
from uuid import uuid4

from ledgerbook.config import ReceiptSettings, get_settings
from ledgerbook.log import get_logger
from ledgerbook.services.receipts.interface import (
    ReceiptStorageError,
    ReceiptStorageInterface,
    ensure_uploadable,
    generate_receipt_key,
)


logger = get_logger(__name__)


class InMemoryReceiptStorage(ReceiptStorageInterface):
    """Keeps receipts in a dict and hands out memory:// links."""

    def __init__(self, settings: Optional[ReceiptSettings] = None):
        self._settings = settings or get_settings().receipts
        self.objects: dict[str, bytes] = {}

    async def upload(
        self,
        logical_name: str,
        content: Optional[bytes] = None,
        is_transfer: bool = False,
    ) -> str:
        content = ensure_uploadable(content, is_transfer)
        key = generate_receipt_key(
            logical_name,
            now=datetime.now(timezone.utc),
            unique_id=uuid4(),
            folder=self._settings.folder,
        )
        self.objects[key] = content
        logger.info("receipt_uploaded", receipt_key=key, size=len(content), backend="memory")
        return key

    async def get_signed_url(
        self,
        receipt_key: str,
        expires_at: Optional[datetime] = None,
    ) -> str:
        if receipt_key not in self.objects:
            raise ReceiptStorageError(f"Receipt object missing: {receipt_key}")
        expires_at = expires_at or (
            datetime.now(timezone.utc) + timedelta(seconds=self._settings.link_ttl_seconds)
        )
        return f"memory://{quote(receipt_key)}?expires={int(expires_at.timestamp())}"

    async def delete(self, receipt_key: str) -> bool:
        return self.objects.pop(receipt_key, None) is not None
