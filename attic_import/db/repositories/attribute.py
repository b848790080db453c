"""Repository for attribute definitions."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attic_import.db.models import AttributeModel, CategoryAttributeModel


class AttributeRepository:
    """Repository for attribute data access."""

    def __init__(self, session: AsyncSession):
        """Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def get_by_key(self, key: str) -> AttributeModel | None:
        """Get an attribute by its unique key.

        Args:
            key: Attribute key, e.g. "books.isbn"

        Returns:
            AttributeModel if found, None otherwise
        """
        result = await self.session.execute(select(AttributeModel).where(AttributeModel.key == key))
        return result.scalar_one_or_none()

    async def create(
        self,
        key: str,
        name: str,
        data_type: str,
        plugin_id: str | None = None,
    ) -> AttributeModel:
        """Create an attribute.

        Raises:
            IntegrityError: If the key already exists
        """
        attribute = AttributeModel(key=key, name=name, data_type=data_type, plugin_id=plugin_id)
        self.session.add(attribute)
        await self.session.flush()
        return attribute

    async def list_by_plugin(self, plugin_id: str) -> list[AttributeModel]:
        result = await self.session.execute(
            select(AttributeModel).where(AttributeModel.plugin_id == plugin_id).order_by(AttributeModel.key)
        )
        return list(result.scalars().all())

    async def count_links(self, attribute_id: UUID) -> int:
        """Number of categories the attribute is linked to."""
        result = await self.session.execute(
            select(func.count(CategoryAttributeModel.id)).where(
                CategoryAttributeModel.attribute_id == attribute_id
            )
        )
        return result.scalar() or 0

    async def delete(self, attribute: AttributeModel) -> None:
        await self.session.delete(attribute)
        await self.session.flush()
