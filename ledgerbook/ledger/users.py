"""User profile reads."""

from uuid import UUID

from ledgerbook.errors import NotFoundError
from ledgerbook.models.ledger import UserProfile
from ledgerbook.services.storage import LedgerStorageInterface


class UserService:
    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def get_me(self, user_id: UUID) -> UserProfile:
        """Name and email of the signed-in user."""
        user = await self._storage.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return UserProfile(name=user.name, email=user.email)
