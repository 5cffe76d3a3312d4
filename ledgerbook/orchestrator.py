"""
Main Orchestrator for Ledgerbook

This module ties together all the components and defines the
end-to-end flows for:
1. Transfer (check → render receipt → upload → book both legs)
2. Receipt retrieval (ownership check → signed link)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No transfer may leave its source account below zero
- No leg is booked before its receipt is stored
- No half-booked transfer survives a failure

Individual storage calls are not atomic with each other, so a failed
transfer is undone step by step (compensation) rather than rolled back.
"""

import asyncio
import weakref
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional
from uuid import UUID, uuid4

from pydantic import ValidationError

from ledgerbook.config import AppSettings, ReceiptSettings, Settings, get_settings
from ledgerbook.errors import (
    ConfigurationError,
    InsufficientFundsError,
    InvalidOperationError,
    NotFoundError,
)
from ledgerbook.ledger import (
    BankAccountService,
    CategoryService,
    TransactionService,
    UserService,
    compute_balance,
)
from ledgerbook.log import get_logger
from ledgerbook.models.ledger import (
    EntityKind,
    ReceiptLink,
    Transaction,
    TransactionType,
    TransferRequest,
    TransferResult,
)
from ledgerbook.services.receipts import (
    CloudinaryReceiptStorage,
    InMemoryReceiptStorage,
    ReceiptGenerator,
    ReceiptStorageError,
    ReceiptStorageInterface,
)
from ledgerbook.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)
from ledgerbook.validation import OwnershipChecker


logger = get_logger(__name__)

TRANSFER_COMPLETED_MESSAGE = "Transfer completed successfully"


class TransferOrchestrator:
    """
    Orchestrates a transfer between two bank accounts.

    Flow:
    1. Reject same-account transfers
    2. Lock the source account
    3. Load the caller's source ledger
    4. Check the derived balance covers the amount
    5. Load the destination ledger (any owner)
    6. Pick the payment id
    7. Render the receipt PDF
    8. Upload the receipt
    9. Book the EXPENSE leg on the source
    10. Book the INCOME leg on the destination
    11. On a failed booking, undo what was done and re-raise
    12. Return both legs

    The lock only serializes transfers within this process, and only
    for coroutines running on one event loop. Front ends that call in
    from several threads must submit every call to a shared loop
    (see ledgerbook.runner).
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        receipt_storage: ReceiptStorageInterface,
        receipt_generator: Optional[ReceiptGenerator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._receipt_storage = receipt_storage
        self._receipt_generator = receipt_generator or ReceiptGenerator()
        self._settings = settings or get_settings().app
        # Entries vanish once no transfer holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, account_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    async def transfer(self, user_id: UUID, request: TransferRequest) -> TransferResult:
        """
        Move money from one of the caller's accounts to another account.

        Raises:
            InvalidOperationError: Source and destination are the same account
            NotFoundError: Source not owned by the caller, or destination unknown
            InsufficientFundsError: Source balance is below the amount
            UpstreamError: Receipt upload or a booking failed (nothing is left booked)
        """
        if request.from_bank_account_id == request.to_bank_account_id:
            raise InvalidOperationError("Cannot transfer to the same bank account.")

        lock = self._lock_for(request.from_bank_account_id)
        async with lock:
            return await self._transfer_locked(user_id, request)

    async def _transfer_locked(self, user_id: UUID, request: TransferRequest) -> TransferResult:
        source = await self._storage.get_account_ledger(request.from_bank_account_id, user_id)
        if source is None:
            raise NotFoundError("Source bank account not found.")

        available = compute_balance(source.account.initial_balance, source.transactions)
        if request.amount > available:
            logger.info(
                "transfer_rejected_insufficient_funds",
                user_id=str(user_id),
                account_id=str(request.from_bank_account_id),
                available=str(available),
                requested=str(request.amount),
            )
            raise InsufficientFundsError(available, request.amount)

        destination = await self._storage.get_account_ledger(request.to_bank_account_id)
        if destination is None:
            raise NotFoundError("Destination bank account not found.")
        if not self._settings.allow_external_transfers and destination.account.user_id != user_id:
            raise NotFoundError("Destination bank account not found.")

        payment_id = request.payment_id or str(uuid4())

        receipt = self._receipt_generator.render(
            name=request.name,
            amount=request.amount,
            date=request.date,
            from_account_id=request.from_bank_account_id,
            to_account_id=request.to_bank_account_id,
            payment_id=payment_id,
        )
        receipt_key = await self._receipt_storage.upload(
            f"receipt-{payment_id}.pdf",
            content=receipt,
            is_transfer=request.is_transfer,
        )

        booked: list[Transaction] = []
        try:
            expense = await self._storage.create_transaction(Transaction(
                user_id=user_id,
                bank_account_id=request.from_bank_account_id,
                name=request.name,
                value=request.amount,
                date=request.date,
                type=TransactionType.EXPENSE,
                is_transfer=request.is_transfer,
                payment_id=payment_id,
                receipt_key=receipt_key,
            ))
            booked.append(expense)

            income = await self._storage.create_transaction(Transaction(
                user_id=destination.account.user_id,
                bank_account_id=request.to_bank_account_id,
                name=f"{self._settings.incoming_transfer_prefix}{request.name}",
                value=request.amount,
                date=request.date,
                type=TransactionType.INCOME,
                is_transfer=request.is_transfer,
                payment_id=payment_id,
            ))
            booked.append(income)
        except (Exception, asyncio.CancelledError) as e:
            await self._compensate(booked, receipt_key, payment_id, e)
            raise

        logger.info(
            "transfer_completed",
            user_id=str(user_id),
            payment_id=payment_id,
            from_account_id=str(request.from_bank_account_id),
            to_account_id=str(request.to_bank_account_id),
            amount=str(request.amount),
            receipt_key=receipt_key,
        )

        return TransferResult(
            message=TRANSFER_COMPLETED_MESSAGE,
            payment_id=payment_id,
            receipt_key=receipt_key,
            expense=expense,
            income=income,
        )

    async def _compensate(
        self,
        booked: list[Transaction],
        receipt_key: str,
        payment_id: str,
        cause: BaseException,
    ) -> None:
        """Undo booked legs (newest first) and the uploaded receipt."""
        for leg in reversed(booked):
            try:
                await self._storage.delete_transaction(leg.id)
            except Exception as e:
                logger.error(
                    "transfer_compensation_failed",
                    payment_id=payment_id,
                    transaction_id=str(leg.id),
                    error=str(e),
                )

        try:
            await self._receipt_storage.delete(receipt_key)
        except Exception as e:
            logger.error(
                "transfer_compensation_failed",
                payment_id=payment_id,
                receipt_key=receipt_key,
                error=str(e),
            )

        logger.warning(
            "transfer_compensated",
            payment_id=payment_id,
            legs_removed=len(booked),
            cause=str(cause),
        )


class ReceiptFlow:
    """
    Hands out signed links to stored receipts.

    A user may only see a receipt referenced by one of their own
    transactions; anything else looks exactly like a missing receipt.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        receipt_storage: ReceiptStorageInterface,
        ownership: Optional[OwnershipChecker] = None,
        settings: Optional[ReceiptSettings] = None,
    ):
        self._receipt_storage = receipt_storage
        self._ownership = ownership or OwnershipChecker(storage)
        self._settings = settings or get_settings().receipts

    async def get_receipt_link(self, user_id: UUID, receipt_key: str) -> ReceiptLink:
        await self._ownership.validate(user_id, EntityKind.RECEIPT, receipt_key)

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._settings.link_ttl_seconds)
        try:
            url = await self._receipt_storage.get_signed_url(receipt_key, expires_at=expires_at)
        except ReceiptStorageError as e:
            logger.warning("receipt_link_failed", receipt_key=receipt_key, error=str(e))
            raise NotFoundError("Receipt not found.") from e

        return ReceiptLink(receipt_key=receipt_key, url=url, expires_at=expires_at)


class AppComponents(NamedTuple):
    """Everything the front end needs, wired to one store."""

    storage: LedgerStorageInterface
    receipt_storage: ReceiptStorageInterface
    accounts: BankAccountService
    categories: CategoryService
    transactions: TransactionService
    users: UserService
    transfers: TransferOrchestrator
    receipts: ReceiptFlow


def _create_storage(settings: Settings) -> LedgerStorageInterface:
    if settings.app.storage_backend == "google_sheets":
        try:
            sheets_settings = settings.google_sheets
        except ValidationError as e:
            raise ConfigurationError(
                f"STORAGE_BACKEND=google_sheets but Google Sheets is not configured: {e}"
            ) from e
        return GoogleSheetsLedgerStorage(GoogleSheetsClient(sheets_settings))
    return InMemoryLedgerStorage()


def _create_receipt_storage(settings: Settings) -> ReceiptStorageInterface:
    receipt_settings = settings.receipts
    if settings.app.receipt_backend == "cloudinary":
        try:
            cloudinary_settings = settings.cloudinary
        except ValidationError as e:
            raise ConfigurationError(
                f"RECEIPT_BACKEND=cloudinary but Cloudinary is not configured: {e}"
            ) from e
        return CloudinaryReceiptStorage(cloudinary_settings, receipt_settings)
    return InMemoryReceiptStorage(receipt_settings)


def create_app_components(settings: Optional[Settings] = None) -> AppComponents:
    """
    Factory function to create all application components.

    Backends are picked from AppSettings and default to memory. A backend
    that is selected but not configured raises ConfigurationError rather
    than silently keeping data in memory.
    """
    settings = settings or get_settings()
    app_settings = settings.app

    storage = _create_storage(settings)
    receipt_storage = _create_receipt_storage(settings)
    ownership = OwnershipChecker(storage)

    return AppComponents(
        storage=storage,
        receipt_storage=receipt_storage,
        accounts=BankAccountService(storage, ownership, settings=app_settings),
        categories=CategoryService(storage),
        transactions=TransactionService(storage, ownership),
        users=UserService(storage),
        transfers=TransferOrchestrator(
            storage,
            receipt_storage,
            ReceiptGenerator(settings.receipts),
            settings=app_settings,
        ),
        receipts=ReceiptFlow(storage, receipt_storage, ownership, settings.receipts),
    )
