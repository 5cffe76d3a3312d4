"""
Abstract Storage Interface

The ledger services talk to storage only through this interface, which
lets us:
1. Swap Google Sheets for a relational database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally small - we're not building a full ORM.
Just the reads and writes the ledger needs. Lookups that take an
optional user_id are scoped to that owner when it is given.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from ledgerbook.errors import NotFoundError, UpstreamError
from ledgerbook.models.ledger import (
    AccountLedger,
    BankAccount,
    Category,
    Transaction,
    TransactionType,
    User,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, in-memory)
    must implement these methods.
    """

    # -- users ---------------------------------------------------------------

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """Persist a user (used for seeding and sign-up flows)."""
        pass

    @abstractmethod
    async def get_user(self, user_id: UUID) -> Optional[User]:
        """Retrieve a user by id, or None."""
        pass

    # -- bank accounts -------------------------------------------------------

    @abstractmethod
    async def create_account(self, account: BankAccount) -> BankAccount:
        """
        Save a new bank account.

        Raises:
            DuplicateError: If the id or bank_account_key is already taken
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_account(
        self,
        account_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[BankAccount]:
        """Retrieve an account by id, optionally scoped to its owner."""
        pass

    @abstractmethod
    async def get_account_ledger(
        self,
        account_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[AccountLedger]:
        """
        Retrieve an account together with all of its transactions.

        Args:
            account_id: The account's unique identifier
            user_id: If given, only return the account when this user owns it

        Returns:
            The ledger if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_account_ledgers(self, user_id: UUID) -> list[AccountLedger]:
        """List every account of a user with its transactions."""
        pass

    @abstractmethod
    async def find_account_by_key(self, bank_account_key: str) -> Optional[BankAccount]:
        """Find an account by its short key, regardless of owner."""
        pass

    @abstractmethod
    async def update_account(self, account: BankAccount) -> BankAccount:
        """
        Overwrite an existing account.

        Raises:
            NotFoundError: If the account doesn't exist
        """
        pass

    @abstractmethod
    async def delete_account(self, account_id: UUID) -> bool:
        """Delete an account and every transaction booked against it."""
        pass

    # -- categories ----------------------------------------------------------

    @abstractmethod
    async def create_category(self, category: Category) -> Category:
        """Save a new category."""
        pass

    @abstractmethod
    async def get_category(
        self,
        category_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[Category]:
        """Retrieve a category by id, optionally scoped to its owner."""
        pass

    @abstractmethod
    async def list_categories(self, user_id: UUID) -> list[Category]:
        """List a user's categories."""
        pass

    # -- transactions --------------------------------------------------------

    @abstractmethod
    async def create_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert one ledger row.

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """Retrieve a transaction by id, optionally scoped to its owner."""
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Overwrite an existing transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """Delete a transaction. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: UUID,
        bank_account_id: Optional[UUID] = None,
        type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions with optional filters.

        Args:
            user_id: Owner of the transactions
            bank_account_id: Only this account
            type: Only INCOME or only EXPENSE
            date_from: Inclusive lower bound on date
            date_before: Exclusive upper bound on date

        Returns:
            Matching transactions, oldest first
        """
        pass

    @abstractmethod
    async def find_transaction_by_receipt_key(
        self,
        receipt_key: str,
        user_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """Find a transaction referencing a stored receipt."""
        pass


class StorageError(UpstreamError):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
