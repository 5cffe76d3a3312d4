"""
Transaction Management

Single income/expense rows booked by the user. Every foreign reference
in a payload (account, category) is ownership-checked, not only the
transaction id itself.
"""

from typing import Optional
from uuid import UUID

from ledgerbook.log import get_logger
from ledgerbook.models.ledger import (
    CategorySummary,
    EntityKind,
    Transaction,
    TransactionCreate,
    TransactionFilters,
    TransactionUpdate,
    TransactionWithCategory,
)
from ledgerbook.services.storage import LedgerStorageInterface
from ledgerbook.validation import OwnershipChecker


logger = get_logger(__name__)


class TransactionService:
    """Create, update, delete and list a user's transactions."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        ownership: Optional[OwnershipChecker] = None,
    ):
        self._storage = storage
        self._ownership = ownership or OwnershipChecker(storage)

    async def create(self, user_id: UUID, payload: TransactionCreate) -> Transaction:
        await self._ownership.validate_many(user_id, {
            EntityKind.BANK_ACCOUNT: payload.bank_account_id,
            EntityKind.CATEGORY: payload.category_id,
        })

        transaction = await self._storage.create_transaction(
            Transaction(user_id=user_id, **payload.model_dump())
        )
        logger.info(
            "transaction_created",
            user_id=str(user_id),
            transaction_id=str(transaction.id),
            type=transaction.type.value,
            value=str(transaction.value),
        )
        return transaction

    async def update(
        self,
        user_id: UUID,
        transaction_id: UUID,
        payload: TransactionUpdate,
    ) -> Transaction:
        """Overwrite only the fields present in the payload."""
        await self._ownership.validate_many(user_id, {
            EntityKind.TRANSACTION: transaction_id,
            EntityKind.BANK_ACCOUNT: payload.bank_account_id,
            EntityKind.CATEGORY: payload.category_id,
        })

        current = await self._storage.get_transaction(transaction_id, user_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        return await self._storage.update_transaction(current.model_copy(update=changes))

    async def remove(self, user_id: UUID, transaction_id: UUID) -> None:
        await self._ownership.validate(user_id, EntityKind.TRANSACTION, transaction_id)
        await self._storage.delete_transaction(transaction_id)
        logger.info("transaction_deleted", user_id=str(user_id), transaction_id=str(transaction_id))

    async def list_by_period(
        self,
        user_id: UUID,
        filters: TransactionFilters,
    ) -> list[TransactionWithCategory]:
        """
        The user's transactions dated within the filter's month.

        Each row carries its category's id, name and icon; transfer
        legs have no category.
        """
        date_from, date_before = filters.period()
        transactions = await self._storage.list_transactions(
            user_id,
            bank_account_id=filters.bank_account_id,
            type=filters.type,
            date_from=date_from,
            date_before=date_before,
        )

        categories = {
            c.id: CategorySummary(id=c.id, name=c.name, icon=c.icon)
            for c in await self._storage.list_categories(user_id)
        }

        return [
            TransactionWithCategory(
                **tx.model_dump(),
                category=categories.get(tx.category_id) if tx.category_id else None,
            )
            for tx in transactions
        ]
