"""
In-Memory Storage Implementation

Dict-backed implementation of the ledger storage interface. Used by the
test-suite and as the default backend for local runs.

Every read and write goes through a deep copy, so callers can never
mutate stored rows behind the store's back.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from ledgerbook.models.ledger import (
    AccountLedger,
    BankAccount,
    Category,
    Transaction,
    TransactionType,
    User,
)
from ledgerbook.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage that lives in process memory."""

    def __init__(self):
        self._users: dict[UUID, User] = {}
        self._accounts: dict[UUID, BankAccount] = {}
        self._categories: dict[UUID, Category] = {}
        self._transactions: dict[UUID, Transaction] = {}

    @staticmethod
    def _owned(entity, user_id: Optional[UUID]) -> bool:
        return user_id is None or entity.user_id == user_id

    # -- users ---------------------------------------------------------------

    async def create_user(self, user: User) -> User:
        if user.id in self._users:
            raise DuplicateError(f"User already exists: {user.id}")
        self._users[user.id] = user.model_copy(deep=True)
        return user.model_copy(deep=True)

    async def get_user(self, user_id: UUID) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    # -- bank accounts -------------------------------------------------------

    async def create_account(self, account: BankAccount) -> BankAccount:
        if account.id in self._accounts:
            raise DuplicateError(f"Bank account already exists: {account.id}")
        if account.bank_account_key and await self.find_account_by_key(account.bank_account_key):
            raise DuplicateError(f"Bank account key already in use: {account.bank_account_key}")
        self._accounts[account.id] = account.model_copy(deep=True)
        return account.model_copy(deep=True)

    async def get_account(
        self,
        account_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[BankAccount]:
        account = self._accounts.get(account_id)
        if account is None or not self._owned(account, user_id):
            return None
        return account.model_copy(deep=True)

    async def get_account_ledger(
        self,
        account_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[AccountLedger]:
        account = await self.get_account(account_id, user_id)
        if account is None:
            return None
        return AccountLedger(
            account=account,
            transactions=self._account_transactions(account_id),
        )

    async def list_account_ledgers(self, user_id: UUID) -> list[AccountLedger]:
        return [
            AccountLedger(
                account=account.model_copy(deep=True),
                transactions=self._account_transactions(account.id),
            )
            for account in sorted(self._accounts.values(), key=lambda a: a.created_at)
            if account.user_id == user_id
        ]

    async def find_account_by_key(self, bank_account_key: str) -> Optional[BankAccount]:
        for account in self._accounts.values():
            if account.bank_account_key == bank_account_key:
                return account.model_copy(deep=True)
        return None

    async def update_account(self, account: BankAccount) -> BankAccount:
        if account.id not in self._accounts:
            raise NotFoundError(f"Bank account not found: {account.id}")
        self._accounts[account.id] = account.model_copy(deep=True)
        return account.model_copy(deep=True)

    async def delete_account(self, account_id: UUID) -> bool:
        if self._accounts.pop(account_id, None) is None:
            return False
        # Cascade to the account's ledger rows
        for tx_id in [t.id for t in self._transactions.values() if t.bank_account_id == account_id]:
            del self._transactions[tx_id]
        return True

    def _account_transactions(self, account_id: UUID) -> list[Transaction]:
        rows = [t for t in self._transactions.values() if t.bank_account_id == account_id]
        rows.sort(key=lambda t: t.date)
        return [t.model_copy(deep=True) for t in rows]

    # -- categories ----------------------------------------------------------

    async def create_category(self, category: Category) -> Category:
        if category.id in self._categories:
            raise DuplicateError(f"Category already exists: {category.id}")
        self._categories[category.id] = category.model_copy(deep=True)
        return category.model_copy(deep=True)

    async def get_category(
        self,
        category_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[Category]:
        category = self._categories.get(category_id)
        if category is None or not self._owned(category, user_id):
            return None
        return category.model_copy(deep=True)

    async def list_categories(self, user_id: UUID) -> list[Category]:
        return [
            c.model_copy(deep=True)
            for c in self._categories.values()
            if c.user_id == user_id
        ]

    # -- transactions --------------------------------------------------------

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return transaction.model_copy(deep=True)

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        transaction = self._transactions.get(transaction_id)
        if transaction is None or not self._owned(transaction, user_id):
            return None
        return transaction.model_copy(deep=True)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id not in self._transactions:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return transaction.model_copy(deep=True)

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        return self._transactions.pop(transaction_id, None) is not None

    async def list_transactions(
        self,
        user_id: UUID,
        bank_account_id: Optional[UUID] = None,
        type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Transaction]:
        rows = []
        for tx in self._transactions.values():
            if tx.user_id != user_id:
                continue
            if bank_account_id and tx.bank_account_id != bank_account_id:
                continue
            if type and tx.type != type:
                continue
            if date_from and tx.date < date_from:
                continue
            if date_before and tx.date >= date_before:
                continue
            rows.append(tx.model_copy(deep=True))

        rows.sort(key=lambda t: t.date)
        return rows

    async def find_transaction_by_receipt_key(
        self,
        receipt_key: str,
        user_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        for tx in self._transactions.values():
            if tx.receipt_key == receipt_key and self._owned(tx, user_id):
                return tx.model_copy(deep=True)
        return None
