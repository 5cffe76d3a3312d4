"""Category management."""

from uuid import UUID

from ledgerbook.log import get_logger
from ledgerbook.models.ledger import Category, CategoryCreate
from ledgerbook.services.storage import LedgerStorageInterface


logger = get_logger(__name__)


class CategoryService:
    """Create and list the categories a user classifies transactions with."""

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def create(self, user_id: UUID, payload: CategoryCreate) -> Category:
        category = await self._storage.create_category(
            Category(user_id=user_id, **payload.model_dump())
        )
        logger.info("category_created", user_id=str(user_id), category_id=str(category.id))
        return category

    async def list_by_user(self, user_id: UUID) -> list[Category]:
        categories = await self._storage.list_categories(user_id)
        return sorted(categories, key=lambda c: (c.type.value, c.name.lower()))
