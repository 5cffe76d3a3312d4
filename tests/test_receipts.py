"""
Tests for receipt rendering, storage and retrieval

Cloudinary is never called: the SDK functions are monkeypatched.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import cloudinary.uploader
import cloudinary.utils
import pytest

from ledgerbook.config import CloudinarySettings, ReceiptSettings
from ledgerbook.errors import NotFoundError
from ledgerbook.models.ledger import TransferRequest
from ledgerbook.services.receipts import (
    CloudinaryReceiptStorage,
    ReceiptGenerator,
    ReceiptValidationError,
    generate_receipt_key,
)


FIXED_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
FIXED_ID = UUID("12345678123456781234567812345678")


class TestReceiptKey:
    """Tests for storage key generation."""

    def test_format(self):
        """Test folder, epoch millis, unique hex and name."""
        key = generate_receipt_key("receipt-p1.pdf", FIXED_NOW, FIXED_ID)
        assert key == f"transfer-uploads/1705320000000-{FIXED_ID.hex}-receipt-p1.pdf"

    def test_name_cannot_escape_folder(self):
        """Test that slashes and spaces in the name are flattened."""
        key = generate_receipt_key("../my receipt.pdf", FIXED_NOW, FIXED_ID, folder="r")
        assert key.count("/") == 1
        assert key.endswith("-.._my_receipt.pdf")


class TestInMemoryReceiptStorage:
    """Tests for the in-memory receipt store."""

    @pytest.mark.asyncio
    async def test_transfer_upload_requires_content(self, receipt_storage):
        """Test that a transfer receipt without content is refused."""
        with pytest.raises(ReceiptValidationError):
            await receipt_storage.upload("receipt.pdf", content=None, is_transfer=True)
        with pytest.raises(ReceiptValidationError):
            await receipt_storage.upload("receipt.pdf", content=b"")
        assert receipt_storage.objects == {}

    @pytest.mark.asyncio
    async def test_upload_and_link(self, receipt_storage):
        """Test that an uploaded receipt gets an expiring link."""
        key = await receipt_storage.upload("receipt.pdf", content=b"%PDF-1.4", is_transfer=True)
        url = await receipt_storage.get_signed_url(key, expires_at=FIXED_NOW)

        assert key.startswith("transfer-uploads/")
        assert url.startswith("memory://")
        assert url.endswith("?expires=1705320000")

    @pytest.mark.asyncio
    async def test_delete(self, receipt_storage):
        """Test that delete reports whether something was removed."""
        key = await receipt_storage.upload("receipt.pdf", content=b"x")
        assert await receipt_storage.delete(key) is True
        assert await receipt_storage.delete(key) is False


class TestReceiptGenerator:
    """Tests for PDF rendering."""

    def test_layout_lines(self, generator):
        """Test field order, two-decimal amount and localized date."""
        lines = generator.layout_lines(
            name="Rent share",
            amount=Decimal("50"),
            date=FIXED_NOW,
            from_account_id="acc-1",
            to_account_id="acc-2",
            payment_id="pay-1",
        )

        assert lines == [
            ("Name", "Rent share"),
            ("Amount", "50.00"),
            ("Date", "15/01/2024"),
            ("From account", "acc-1"),
            ("To account", "acc-2"),
            ("Payment ID", "pay-1"),
        ]

    def test_date_format_is_configurable(self):
        """Test that the printed date follows the configured format."""
        generator = ReceiptGenerator(ReceiptSettings(date_format="%Y-%m-%d"))
        lines = dict(generator.layout_lines("n", Decimal("1"), FIXED_NOW, "a", "b", "p"))
        assert lines["Date"] == "2024-01-15"

    def test_render_is_pdf(self, generator):
        """Test that render returns a PDF document."""
        pdf = generator.render("Rent share", Decimal("50.00"), FIXED_NOW, "a", "b", "pay-1", generated_at=FIXED_NOW)
        assert pdf.startswith(b"%PDF")

    def test_render_is_deterministic(self, generator):
        """Test that identical inputs give identical bytes."""
        args = ("Rent share", Decimal("50.00"), FIXED_NOW, "a", "b", "pay-1")
        assert generator.render(*args, generated_at=FIXED_NOW) == generator.render(*args, generated_at=FIXED_NOW)


class TestCloudinaryReceiptStorage:
    """Tests for the Cloudinary backend with the SDK patched out."""

    @pytest.fixture
    def cloudinary_storage(self):
        return CloudinaryReceiptStorage(
            CloudinarySettings(cloud_name="demo", api_key="key", api_secret="secret"),
            ReceiptSettings(),
        )

    @pytest.mark.asyncio
    async def test_upload_private_raw(self, cloudinary_storage, monkeypatch):
        """Test that receipts are uploaded as private raw files under their key."""
        calls = []

        def fake_upload(file, **options):
            calls.append(options)
            return {"public_id": options["public_id"]}

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)

        key = await cloudinary_storage.upload("receipt-p1.pdf", content=b"%PDF", is_transfer=True)

        assert key.startswith("transfer-uploads/")
        assert key.endswith("-receipt-p1.pdf")
        assert calls[0]["public_id"] == key
        assert calls[0]["resource_type"] == "raw"
        assert calls[0]["type"] == "private"

    @pytest.mark.asyncio
    async def test_upload_rejects_empty_before_calling_sdk(self, cloudinary_storage, monkeypatch):
        """Test that validation happens before any network call."""
        def fail_upload(file, **options):
            raise AssertionError("SDK must not be called")

        monkeypatch.setattr(cloudinary.uploader, "upload", fail_upload)

        with pytest.raises(ReceiptValidationError):
            await cloudinary_storage.upload("receipt.pdf", content=None, is_transfer=True)

    @pytest.mark.asyncio
    async def test_signed_url_expires(self, cloudinary_storage, monkeypatch):
        """Test that the signed link carries the expiry timestamp."""
        seen = {}

        def fake_private_download_url(public_id, format, **options):
            seen.update(options, public_id=public_id)
            return f"https://api.cloudinary.com/v1_1/demo/raw/download?public_id={public_id}"

        monkeypatch.setattr(cloudinary.utils, "private_download_url", fake_private_download_url)

        url = await cloudinary_storage.get_signed_url("transfer-uploads/x.pdf", expires_at=FIXED_NOW)

        assert "transfer-uploads/x.pdf" in url
        assert seen["expires_at"] == 1705320000
        assert seen["type"] == "private"

    @pytest.mark.asyncio
    async def test_delete(self, cloudinary_storage, monkeypatch):
        """Test that destroy results are mapped to a boolean."""
        monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id, **options: {"result": "not found"})
        assert await cloudinary_storage.delete("transfer-uploads/x.pdf") is False


class TestReceiptFlow:
    """Tests for receipt retrieval."""

    @pytest.mark.asyncio
    async def test_owner_gets_link(self, orchestrator, receipt_flow, user, account, savings):
        """Test that the payer can fetch the receipt of their transfer."""
        result = await orchestrator.transfer(user.id, TransferRequest(
            from_bank_account_id=account.id,
            to_bank_account_id=savings.id,
            name="Rent share",
            amount=Decimal("50.00"),
            date=FIXED_NOW,
        ))

        link = await receipt_flow.get_receipt_link(user.id, result.receipt_key)

        assert link.receipt_key == result.receipt_key
        assert link.url.startswith("memory://")
        assert (link.expires_at - datetime.now(timezone.utc)).total_seconds() <= 60

    @pytest.mark.asyncio
    async def test_non_owner_gets_not_found(
        self, orchestrator, receipt_flow, user, other_user, account, foreign_account
    ):
        """Test that even the payee cannot fetch the payer's receipt."""
        result = await orchestrator.transfer(user.id, TransferRequest(
            from_bank_account_id=account.id,
            to_bank_account_id=foreign_account.id,
            name="Rent share",
            amount=Decimal("50.00"),
            date=FIXED_NOW,
        ))

        with pytest.raises(NotFoundError, match="Receipt not found."):
            await receipt_flow.get_receipt_link(other_user.id, result.receipt_key)

    @pytest.mark.asyncio
    async def test_missing_object_is_not_found(self, storage, receipt_storage, receipt_flow, user, account):
        """Test that a dangling key is reported as not found, not as an upstream error."""
        ledger = await storage.get_account_ledger(account.id)
        await storage.update_transaction(
            ledger.transactions[0].model_copy(update={"receipt_key": "transfer-uploads/gone.pdf"})
        )

        with pytest.raises(NotFoundError):
            await receipt_flow.get_receipt_link(user.id, "transfer-uploads/gone.pdf")
