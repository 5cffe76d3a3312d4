"""
Bank Account Management

Accounts are created with a short generated key (e.g. "4K7Q1Z") that
other users can type in to find an account to transfer into. Balances
are always derived from the ledger, never stored.
"""

import random
import string
from typing import Optional
from uuid import UUID

from ledgerbook.config import AppSettings, get_settings
from ledgerbook.errors import InvalidOperationError, NotFoundError
from ledgerbook.ledger.balance import ledger_with_balance
from ledgerbook.log import get_logger
from ledgerbook.models.ledger import (
    BankAccount,
    BankAccountCreate,
    BankAccountLookup,
    BankAccountUpdate,
    BankAccountWithBalance,
    EntityKind,
    UserProfile,
)
from ledgerbook.services.storage import DuplicateError, LedgerStorageInterface
from ledgerbook.validation import OwnershipChecker


logger = get_logger(__name__)

KEY_DIGITS = string.digits
KEY_LETTERS = string.ascii_uppercase


def generate_bank_account_key(rng: random.Random, pairs: int = 3) -> str:
    """
    Generate a short account key of alternating digits and letters.

    Pure given its random source: a seeded random.Random always
    yields the same key.
    """
    return "".join(
        rng.choice(KEY_DIGITS) + rng.choice(KEY_LETTERS)
        for _ in range(pairs)
    )


class BankAccountService:
    """Create, list, look up, update and delete bank accounts."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        ownership: Optional[OwnershipChecker] = None,
        rng: Optional[random.Random] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._ownership = ownership or OwnershipChecker(storage)
        self._rng = rng or random.SystemRandom()
        self._settings = settings or get_settings().app

    async def create(self, user_id: UUID, payload: BankAccountCreate) -> BankAccount:
        """
        Register a new account with a freshly generated key.

        Raises:
            InvalidOperationError: If no free key was found in the allotted attempts
        """
        for attempt in range(1, self._settings.bank_account_key_attempts + 1):
            key = generate_bank_account_key(self._rng)
            if await self._storage.find_account_by_key(key):
                logger.debug("bank_account_key_collision", attempt=attempt)
                continue

            account = BankAccount(
                user_id=user_id,
                bank_account_key=key,
                **payload.model_dump(),
            )
            try:
                created = await self._storage.create_account(account)
            except DuplicateError:
                continue

            logger.info(
                "bank_account_created",
                user_id=str(user_id),
                account_id=str(created.id),
                type=created.type.value,
            )
            return created

        raise InvalidOperationError("Could not allocate a unique bank account key.")

    async def list_by_user(self, user_id: UUID) -> list[BankAccountWithBalance]:
        """Every account of the user, each with its derived current balance."""
        ledgers = await self._storage.list_account_ledgers(user_id)
        return [ledger_with_balance(ledger) for ledger in ledgers]

    async def find_by_key(self, bank_account_key: str) -> BankAccountLookup:
        """
        Look up an account by key, together with its owner's name and email.

        Used by payers to confirm who they are about to transfer to.
        """
        account = await self._storage.find_account_by_key(bank_account_key.strip().upper())
        if account is None:
            raise NotFoundError("Bank account not found.")

        owner = await self._storage.get_user(account.user_id)
        if owner is None:
            raise NotFoundError("Bank account owner not found.")

        return BankAccountLookup(
            account=account,
            owner=UserProfile(name=owner.name, email=owner.email),
        )

    async def update(
        self,
        user_id: UUID,
        account_id: UUID,
        payload: BankAccountUpdate,
    ) -> BankAccount:
        await self._ownership.validate(user_id, EntityKind.BANK_ACCOUNT, account_id)

        account = await self._storage.get_account(account_id, user_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        return await self._storage.update_account(account.model_copy(update=changes))

    async def remove(self, user_id: UUID, account_id: UUID) -> None:
        """Delete an account and, with it, its transactions."""
        await self._ownership.validate(user_id, EntityKind.BANK_ACCOUNT, account_id)
        await self._storage.delete_account(account_id)
        logger.info("bank_account_deleted", user_id=str(user_id), account_id=str(account_id))
