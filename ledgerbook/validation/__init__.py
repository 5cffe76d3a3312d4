"""Ownership validation package."""

from ledgerbook.validation.ownership import OwnershipChecker

__all__ = ["OwnershipChecker"]
