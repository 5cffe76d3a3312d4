"""
Receipt Storage using Cloudinary

Cloudinary serves as the object store for transfer receipts because:
1. It stores arbitrary "raw" files, not just images
2. Private delivery type keeps receipts unreachable without a signature
3. Signed download URLs carry their own expiry
4. Free tier sufficient for personal use

This service handles:
1. Uploading receipt PDFs as private raw resources
2. Issuing short-lived signed download links
3. Deleting receipts when a transfer is rolled back

CRITICAL: This service never checks ownership. Callers must validate that
the requesting user owns a transaction referencing the key BEFORE asking
for a link.
"""

from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Optional
from uuid import uuid4

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils
from tenacity import retry, stop_after_attempt, wait_exponential

from ledgerbook.config import CloudinarySettings, ReceiptSettings, get_settings
from ledgerbook.log import get_logger
from ledgerbook.services.receipts.interface import (
    ReceiptStorageError,
    ReceiptStorageInterface,
    ensure_uploadable,
    generate_receipt_key,
)


logger = get_logger(__name__)

RESOURCE_TYPE = "raw"
DELIVERY_TYPE = "private"


class CloudinaryReceiptStorage(ReceiptStorageInterface):
    """
    Receipt object storage backed by Cloudinary.

    Flow:
    1. Validate there is something to upload
    2. Generate a unique key under the receipts folder
    3. Upload as a private raw resource (retried)
    4. Return the key for the ledger to keep
    """

    def __init__(
        self,
        settings: Optional[CloudinarySettings] = None,
        receipt_settings: Optional[ReceiptSettings] = None,
    ):
        self._settings = settings or get_settings().cloudinary
        self._receipt_settings = receipt_settings or get_settings().receipts
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _put_object(self, key: str, content: bytes) -> dict:
        return cloudinary.uploader.upload(
            BytesIO(content),
            public_id=key,
            resource_type=RESOURCE_TYPE,
            type=DELIVERY_TYPE,
            overwrite=False,
        )

    async def upload(
        self,
        logical_name: str,
        content: Optional[bytes] = None,
        is_transfer: bool = False,
    ) -> str:
        """
        Upload a receipt and return its storage key.

        Raises:
            ReceiptValidationError: If there is no content
            ReceiptStorageError: If Cloudinary rejects the upload
        """
        content = ensure_uploadable(content, is_transfer)
        self._configure()

        key = generate_receipt_key(
            logical_name,
            now=datetime.now(timezone.utc),
            unique_id=uuid4(),
            folder=self._receipt_settings.folder,
        )

        try:
            result = self._put_object(key, content)
        except cloudinary.exceptions.Error as e:
            raise ReceiptStorageError(f"Cloudinary error: {e}")
        except Exception as e:
            raise ReceiptStorageError(f"Failed to upload receipt: {e}")

        stored_key = result.get("public_id") or key
        logger.info("receipt_uploaded", receipt_key=stored_key, size=len(content), backend="cloudinary")
        return stored_key

    async def get_signed_url(
        self,
        receipt_key: str,
        expires_at: Optional[datetime] = None,
    ) -> str:
        """
        Build a signed download URL that stops working at expires_at.

        Defaults to now + RECEIPT_LINK_TTL_SECONDS (60 s).
        """
        self._configure()
        expires_at = expires_at or (
            datetime.now(timezone.utc)
            + timedelta(seconds=self._receipt_settings.link_ttl_seconds)
        )

        try:
            # Raw resources keep their extension in the public id, so no format
            return cloudinary.utils.private_download_url(
                receipt_key,
                "",
                resource_type=RESOURCE_TYPE,
                type=DELIVERY_TYPE,
                expires_at=int(expires_at.timestamp()),
            )
        except cloudinary.exceptions.Error as e:
            raise ReceiptStorageError(f"Cloudinary error: {e}")

    async def delete(self, receipt_key: str) -> bool:
        """Destroy a stored receipt."""
        self._configure()
        try:
            result = cloudinary.uploader.destroy(
                receipt_key,
                resource_type=RESOURCE_TYPE,
                type=DELIVERY_TYPE,
                invalidate=True,
            )
        except cloudinary.exceptions.Error as e:
            raise ReceiptStorageError(f"Cloudinary error: {e}")

        deleted = result.get("result") == "ok"
        logger.info("receipt_deleted", receipt_key=receipt_key, deleted=deleted)
        return deleted
