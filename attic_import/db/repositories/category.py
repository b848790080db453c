"""Repository for categories and their attribute links."""

from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attic_import.db.models import CategoryAttributeModel, CategoryModel


class CategoryRepository:
    """Repository for category data access.

    Writes are flushed, never committed; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def get_by_plugin_id(self, plugin_id: str) -> CategoryModel | None:
        """Get the category managed by a plugin.

        Args:
            plugin_id: Plugin identifier

        Returns:
            CategoryModel if found, None otherwise
        """
        result = await self.session.execute(
            select(CategoryModel).where(CategoryModel.plugin_id == plugin_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        description: str | None = None,
        plugin_id: str | None = None,
    ) -> CategoryModel:
        """Create a category.

        Raises:
            IntegrityError: If another category already belongs to ``plugin_id``
        """
        category = CategoryModel(name=name, description=description, plugin_id=plugin_id)
        self.session.add(category)
        await self.session.flush()
        return category

    async def delete(self, category: CategoryModel) -> None:
        await self.session.delete(category)
        await self.session.flush()

    async def list_links(self, category_id: UUID) -> list[CategoryAttributeModel]:
        """List attribute links of a category ordered by sort order."""
        result = await self.session.execute(
            select(CategoryAttributeModel)
            .where(CategoryAttributeModel.category_id == category_id)
            .order_by(CategoryAttributeModel.sort_order)
        )
        return list(result.scalars().all())

    async def max_sort_order(self, category_id: UUID) -> int | None:
        """Highest sort order among the category's links, None when it has none."""
        result = await self.session.execute(
            select(func.max(CategoryAttributeModel.sort_order)).where(
                CategoryAttributeModel.category_id == category_id
            )
        )
        return result.scalar()

    async def add_link(
        self,
        category_id: UUID,
        attribute_id: UUID,
        required: bool,
        sort_order: int,
    ) -> CategoryAttributeModel:
        link = CategoryAttributeModel(
            category_id=category_id,
            attribute_id=attribute_id,
            required=required,
            sort_order=sort_order,
        )
        self.session.add(link)
        await self.session.flush()
        return link

    async def delete_links(self, category_id: UUID) -> int:
        """Delete every attribute link of a category.

        Returns:
            Number of links deleted
        """
        result = await self.session.execute(
            delete(CategoryAttributeModel).where(CategoryAttributeModel.category_id == category_id)
        )
        return result.rowcount or 0
