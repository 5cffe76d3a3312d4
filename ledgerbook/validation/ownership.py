"""
Ownership Validation

Every operation that mutates or reveals an entity first checks that the
entity exists AND belongs to the requesting user. One checker covers every
entity kind; the lookup is picked from a dispatch table instead of one
validator class per entity.

This applies to every identifier in a request, not just the one in the
path: a transfer checks its source account, and a transaction edit checks
the new account and category it points at.

Absent and not-owned are indistinguishable to the caller: both raise
NotFoundError, so ids belonging to other users are never confirmed.
"""

import asyncio
from typing import Awaitable, Callable, Mapping, Optional, Union
from uuid import UUID

from ledgerbook.errors import NotFoundError
from ledgerbook.models.ledger import EntityKind
from ledgerbook.services.storage import LedgerStorageInterface


EntityId = Union[UUID, str]

NOT_FOUND_MESSAGES = {
    EntityKind.BANK_ACCOUNT: "Bank account not found.",
    EntityKind.CATEGORY: "Category not found.",
    EntityKind.TRANSACTION: "Transaction not found.",
    EntityKind.RECEIPT: "Receipt not found.",
}


class OwnershipChecker:
    """
    Confirms that an entity belongs to a user.

    Usage:
        await checker.validate(user_id, EntityKind.CATEGORY, category_id)
        await checker.validate_many(user_id, {
            EntityKind.BANK_ACCOUNT: payload.bank_account_id,
            EntityKind.CATEGORY: payload.category_id,
        })
    """

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage
        self._lookups: dict[EntityKind, Callable[[UUID, EntityId], Awaitable[object]]] = {
            EntityKind.BANK_ACCOUNT: lambda user_id, entity_id: storage.get_account(entity_id, user_id),
            EntityKind.CATEGORY: lambda user_id, entity_id: storage.get_category(entity_id, user_id),
            EntityKind.TRANSACTION: lambda user_id, entity_id: storage.get_transaction(entity_id, user_id),
            # A receipt is owned through the transaction that references it
            EntityKind.RECEIPT: lambda user_id, entity_id: storage.find_transaction_by_receipt_key(
                entity_id, user_id
            ),
        }

    async def validate(
        self,
        user_id: UUID,
        kind: EntityKind,
        entity_id: EntityId,
    ) -> None:
        """
        Raise NotFoundError unless the user owns the entity.

        Args:
            user_id: The requesting user
            kind: Which kind of entity entity_id refers to
            entity_id: UUID of the entity, or the storage key for receipts
        """
        entity = await self._lookups[kind](user_id, entity_id)
        if entity is None:
            raise NotFoundError(NOT_FOUND_MESSAGES[kind])

    async def validate_many(
        self,
        user_id: UUID,
        references: Mapping[EntityKind, Optional[EntityId]],
    ) -> None:
        """
        Validate several references at once; None values are skipped.

        All checks run concurrently, and the first failure is raised.
        """
        await asyncio.gather(*(
            self.validate(user_id, kind, entity_id)
            for kind, entity_id in references.items()
            if entity_id is not None
        ))
