"""
Error Taxonomy

Every failure raised by the services is one of these.
Callers can catch LedgerError for "anything the ledger refused" or
the specific subclass to map it to a user-facing message.
"""

from decimal import Decimal


class LedgerError(Exception):
    """Base exception for all ledger operations."""
    pass


class NotFoundError(LedgerError):
    """Entity does not exist or is not owned by the caller."""
    pass


class InvalidOperationError(LedgerError):
    """The request is well-formed but not allowed (e.g. same-account transfer)."""
    pass


class InsufficientFundsError(LedgerError):
    """Source account balance is below the requested amount."""

    def __init__(self, available: Decimal, requested: Decimal):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds: balance {available:.2f}, requested {requested:.2f}."
        )


class UpstreamError(LedgerError):
    """A call to the store or to object storage failed."""
    pass


class ConfigurationError(LedgerError):
    """A selected backend is missing its settings."""
    pass
