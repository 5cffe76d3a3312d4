"""
Core Data Models for Ledgerbook

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

Money is always Decimal with at most two decimal places.
Datetimes are always timezone-aware UTC; naive input is read as UTC.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


Money = Annotated[Decimal, Field(decimal_places=2)]
PositiveMoney = Annotated[Decimal, Field(gt=0, decimal_places=2)]

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"
BANK_ACCOUNT_KEY_PATTERN = r"^[0-9A-Z]{2,12}$"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BankAccountType(str, Enum):
    """Kinds of bank account a user can register."""
    CHECKING = "CHECKING"
    INVESTMENT = "INVESTMENT"
    CASH = "CASH"


class TransactionType(str, Enum):
    """
    Direction of a transaction.

    INCOME adds to the account balance, EXPENSE subtracts from it.
    """
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class EntityKind(str, Enum):
    """Entities whose ownership can be checked."""
    BANK_ACCOUNT = "bank_account"
    CATEGORY = "category"
    TRANSACTION = "transaction"
    RECEIPT = "receipt"


# =============================================================================
# USERS
# =============================================================================

class User(BaseModel):
    """An account holder. Read-only for the ledger."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)


class UserProfile(BaseModel):
    """Public part of a user, safe to show to other users."""

    name: str
    email: str


# =============================================================================
# BANK ACCOUNTS
# =============================================================================

class BankAccountCreate(BaseModel):
    """Payload for registering a new bank account."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name of the account"
    )
    initial_balance: Money = Field(
        ...,
        description="Balance when the account was registered (may be negative)"
    )
    type: BankAccountType
    color: str = Field(
        ...,
        pattern=HEX_COLOR_PATTERN,
        description="Hex colour tag, e.g. #7950F2"
    )


class BankAccountUpdate(BaseModel):
    """Partial update of a bank account. Only supplied fields change."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    initial_balance: Optional[Money] = None
    type: Optional[BankAccountType] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)


class BankAccount(BankAccountCreate):
    """
    A stored bank account.

    The current balance is NOT a field: it is derived from the
    initial balance and the account's transactions on every read.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    bank_account_key: Optional[str] = Field(
        default=None,
        pattern=BANK_ACCOUNT_KEY_PATTERN,
        description="Short code other users can use to address transfers"
    )
    created_at: datetime = Field(default_factory=utcnow)


class BankAccountWithBalance(BankAccount):
    """A bank account annotated with its derived balance."""

    current_balance: Money


class BankAccountLookup(BaseModel):
    """Result of looking up an account by its key: the account and who owns it."""

    account: BankAccount
    owner: UserProfile


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryCreate(BaseModel):
    """Payload for creating a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=50)
    type: TransactionType


class Category(CategoryCreate):
    """A user-owned classification for transactions."""

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID


class CategorySummary(BaseModel):
    """What a transaction listing shows about its category."""

    id: UUID
    name: str
    icon: str


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionCreate(BaseModel):
    """Payload for recording a single income or expense."""
    model_config = ConfigDict(str_strip_whitespace=True)

    bank_account_id: UUID
    category_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    value: PositiveMoney
    date: datetime
    type: TransactionType

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class TransactionUpdate(BaseModel):
    """Partial update of a transaction. Only supplied fields are overwritten."""
    model_config = ConfigDict(str_strip_whitespace=True)

    bank_account_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    value: Optional[PositiveMoney] = None
    date: Optional[datetime] = None
    type: Optional[TransactionType] = None

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else v


class Transaction(BaseModel):
    """
    A stored ledger row.

    Transfer legs carry is_transfer=True and share a payment_id.
    Only the EXPENSE leg of a transfer references the receipt.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    bank_account_id: UUID
    category_id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=300)
    value: PositiveMoney
    date: datetime
    type: TransactionType
    is_transfer: bool = False
    payment_id: Optional[str] = Field(default=None, max_length=64)
    receipt_key: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator('date', 'created_at')
    @classmethod
    def normalize_datetimes(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def signed_value(self) -> Decimal:
        """Value as it affects the balance: positive for income, negative for expense."""
        return self.value if self.type == TransactionType.INCOME else -self.value


class TransactionWithCategory(Transaction):
    """A transaction as listed to its owner, with its category attached."""

    category: Optional[CategorySummary] = None


class TransactionFilters(BaseModel):
    """
    Month/year window plus optional narrowing for transaction listings.

    Months are calendar months, 1 = January through 12 = December.
    Zero-based month numbers (0 = January), as sent by JavaScript
    clients that pass a Date month straight through, are rejected
    rather than silently shifted by one.
    """

    month: int = Field(..., description="Calendar month, 1-12")
    year: int = Field(..., ge=1970, le=9998)
    bank_account_id: Optional[UUID] = None
    type: Optional[TransactionType] = None

    @field_validator('month')
    @classmethod
    def validate_month(cls, v: int) -> int:
        if not 1 <= v <= 12:
            raise ValueError(f"month must be 1-12 (1 = January), got {v}")
        return v

    def period(self) -> tuple[datetime, datetime]:
        """Half-open [start, end) UTC range covering the month."""
        start = datetime(self.year, self.month, 1, tzinfo=timezone.utc)
        if self.month == 12:
            end = datetime(self.year + 1, 1, 1, tzinfo=timezone.utc)
        else:
            end = datetime(self.year, self.month + 1, 1, tzinfo=timezone.utc)
        return start, end


class AccountLedger(BaseModel):
    """An account together with every transaction booked against it."""

    account: BankAccount
    transactions: list[Transaction] = Field(default_factory=list)


# =============================================================================
# TRANSFERS & RECEIPTS
# =============================================================================

class TransferRequest(BaseModel):
    """
    Move money between two accounts.

    payment_id is optional; when absent the orchestrator generates one.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    from_bank_account_id: UUID
    to_bank_account_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    amount: PositiveMoney
    date: datetime
    is_transfer: bool = True
    payment_id: Optional[str] = Field(default=None, min_length=1, max_length=64)

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class TransferResult(BaseModel):
    """Both legs of a completed transfer plus the confirmation payload."""

    message: str
    payment_id: str
    receipt_key: str
    expense: Transaction
    income: Transaction

    @model_validator(mode='after')
    def validate_legs(self) -> 'TransferResult':
        """The two legs must mirror each other."""
        if self.expense.payment_id != self.income.payment_id:
            raise ValueError("Transfer legs must share a payment id")
        if self.expense.value != self.income.value:
            raise ValueError("Transfer legs must have equal values")
        return self


class ReceiptLink(BaseModel):
    """A short-lived signed link to a stored receipt."""

    receipt_key: str
    url: str
    expires_at: datetime
