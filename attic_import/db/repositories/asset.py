"""Repository for assets."""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attic_import.db.models import AssetModel


class AssetRepository:
    """Repository for asset data access."""

    def __init__(self, session: AsyncSession):
        """Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create(
        self,
        category_id: UUID,
        name: str,
        description: str | None = None,
        image_url: str | None = None,
        attributes: dict[str, Any] | None = None,
        quantity: int = 1,
        import_plugin_id: str | None = None,
        import_external_id: str | None = None,
    ) -> AssetModel:
        """Create an asset.

        Args:
            category_id: Category the asset belongs to
            name: Asset name
            description: Asset description
            image_url: Reference to the asset image
            attributes: Attribute values keyed by attribute key
            quantity: Number of items
            import_plugin_id: Plugin the asset was imported with
            import_external_id: Upstream identifier of the imported record

        Returns:
            Created AssetModel instance
        """
        asset = AssetModel(
            category_id=category_id,
            name=name,
            description=description,
            image_url=image_url,
            attributes=attributes or {},
            quantity=quantity,
            import_plugin_id=import_plugin_id,
            import_external_id=import_external_id,
        )
        self.session.add(asset)
        await self.session.flush()
        return asset

    async def get_by_id(self, asset_id: UUID) -> AssetModel | None:
        return await self.session.get(AssetModel, asset_id)

    async def count_by_category(self, category_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(AssetModel.id)).where(AssetModel.category_id == category_id)
        )
        return result.scalar() or 0

    async def list_by_import_source(self, plugin_id: str, external_id: str) -> list[AssetModel]:
        """List assets imported from one upstream record."""
        result = await self.session.execute(
            select(AssetModel)
            .where(
                AssetModel.import_plugin_id == plugin_id,
                AssetModel.import_external_id == external_id,
            )
            .order_by(AssetModel.created_at)
        )
        return list(result.scalars().all())
