"""Provisioning of plugin categories and attributes.

Enabling a plugin materializes its category, its namespaced attributes and the
links between them. The operation is idempotent and additive: it never drops,
renames or reorders anything that already exists. Disabling removes the
schema again, but only while no asset uses the category.

Callers serialize calls for the same plugin (see ``PluginRegistry.lock``);
the get-or-create steps additionally tolerate a concurrent writer in another
process by re-reading after a unique-constraint violation.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attic_import.db.models import AttributeModel, CategoryModel
from attic_import.db.repositories import (
    AssetRepository,
    AttributeRepository,
    CategoryRepository,
    PluginStateRepository,
)
from attic_import.observability.logging import get_logger
from attic_import.plugins.base import ImportPlugin, PluginAttribute
from attic_import.plugins.errors import ConflictError

logger = get_logger(__name__)


@dataclass
class ProvisionResult:
    """Outcome of enabling a plugin.

    Attributes:
        category_id: The plugin's category
        created: Whether the category was created by this call
        attributes_created: Number of attribute definitions created
        links_added: Number of category/attribute links added
    """
    category_id: UUID
    created: bool
    attributes_created: int = 0
    links_added: int = 0


@dataclass
class DisableResult:
    """Outcome of disabling a plugin.

    Attributes:
        removed: Whether the category and its attributes were removed
        asset_count: Assets found in the category
        category_id: The category that was looked at, if any
    """
    removed: bool
    asset_count: int
    category_id: UUID | None = None


class AttributeProvisioner:
    """Creates and removes the database schema backing a plugin.

    Args:
        session_factory: Factory producing database sessions
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def enable(self, plugin: ImportPlugin) -> ProvisionResult:
        """Ensure the plugin's category, attributes and links exist.

        Runs in a single transaction; on any error nothing is written.

        Args:
            plugin: Plugin to provision

        Returns:
            ProvisionResult with the category id

        Raises:
            ConflictError: If an attribute key exists with another data type
                or is owned by another plugin
        """
        async with self.session_factory() as session:
            async with session.begin():
                category, created = await self._get_or_create_category(session, plugin)
                attributes_created, links_added = await self._ensure_attributes(
                    session, plugin, category
                )
                await PluginStateRepository(session).set_enabled(plugin.id, True)
                category_id = category.id

        logger.info(
            "plugin_provisioned",
            plugin_id=plugin.id,
            category_id=str(category_id),
            category_created=created,
            attributes_created=attributes_created,
            links_added=links_added,
        )
        return ProvisionResult(
            category_id=category_id,
            created=created,
            attributes_created=attributes_created,
            links_added=links_added,
        )

    async def disable(self, plugin: ImportPlugin) -> DisableResult:
        """Mark the plugin disabled and remove its schema when unused.

        When the plugin's category holds no assets, its links, the category
        itself and every plugin-owned attribute left without links are
        deleted. Otherwise the schema is left untouched.

        Args:
            plugin: Plugin to disable

        Returns:
            DisableResult describing what happened
        """
        async with self.session_factory() as session:
            async with session.begin():
                categories = CategoryRepository(session)
                category = await categories.get_by_plugin_id(plugin.id)

                asset_count = 0
                removed = False
                category_id = category.id if category else None
                if category is not None:
                    asset_count = await AssetRepository(session).count_by_category(category.id)
                    if asset_count == 0:
                        await self._remove_schema(session, plugin, category)
                        removed = True

                await PluginStateRepository(session).set_enabled(plugin.id, False)

        if category_id is not None and not removed:
            logger.info(
                "plugin_schema_kept",
                plugin_id=plugin.id,
                category_id=str(category_id),
                asset_count=asset_count,
            )
        logger.info("plugin_deprovisioned", plugin_id=plugin.id, schema_removed=removed)
        return DisableResult(removed=removed, asset_count=asset_count, category_id=category_id)

    async def load_state(self, plugin_id: str) -> tuple[bool, UUID | None]:
        """Read a plugin's persisted state.

        Plugins that were never toggled are enabled.

        Args:
            plugin_id: Plugin identifier

        Returns:
            Tuple of (enabled, category id or None)
        """
        async with self.session_factory() as session:
            state = await PluginStateRepository(session).get(plugin_id)
            category = await CategoryRepository(session).get_by_plugin_id(plugin_id)
        enabled = True if state is None else bool(state.enabled)
        return enabled, category.id if category else None

    async def _get_or_create_category(
        self,
        session: AsyncSession,
        plugin: ImportPlugin,
    ) -> tuple[CategoryModel, bool]:
        categories = CategoryRepository(session)
        category = await categories.get_by_plugin_id(plugin.id)
        if category is not None:
            return category, False

        metadata = plugin.metadata
        try:
            async with session.begin_nested():
                category = await categories.create(
                    name=metadata.category_name,
                    description=metadata.category_description,
                    plugin_id=plugin.id,
                )
            return category, True
        except IntegrityError:
            # Created concurrently; use the winner's row
            category = await categories.get_by_plugin_id(plugin.id)
            if category is None:
                raise
            return category, False

    async def _get_or_create_attribute(
        self,
        session: AsyncSession,
        declared: PluginAttribute,
    ) -> tuple[AttributeModel, bool]:
        attributes = AttributeRepository(session)
        attribute = await attributes.get_by_key(declared.key)
        if attribute is not None:
            return attribute, False

        try:
            async with session.begin_nested():
                attribute = await attributes.create(
                    key=declared.key,
                    name=declared.name,
                    data_type=declared.data_type.value,
                    plugin_id=declared.plugin_id,
                )
            return attribute, True
        except IntegrityError:
            attribute = await attributes.get_by_key(declared.key)
            if attribute is None:
                raise
            return attribute, False

    async def _ensure_attributes(
        self,
        session: AsyncSession,
        plugin: ImportPlugin,
        category: CategoryModel,
    ) -> tuple[int, int]:
        categories = CategoryRepository(session)
        links = {link.attribute_id: link for link in await categories.list_links(category.id)}
        max_order = await categories.max_sort_order(category.id)
        next_order = 0 if max_order is None else max_order + 1

        attributes_created = 0
        links_added = 0
        for declared in plugin.attributes:
            attribute, created = await self._get_or_create_attribute(session, declared)
            if created:
                attributes_created += 1
            else:
                self._check_compatible(plugin, declared, attribute)

            link = links.get(attribute.id)
            if link is None:
                await categories.add_link(category.id, attribute.id, declared.required, next_order)
                next_order += 1
                links_added += 1
            elif link.required != declared.required:
                link.required = declared.required

        await session.flush()
        return attributes_created, links_added

    @staticmethod
    def _check_compatible(
        plugin: ImportPlugin,
        declared: PluginAttribute,
        existing: AttributeModel,
    ) -> None:
        context = {
            "plugin_id": plugin.id,
            "attribute_key": declared.key,
            "existing_data_type": existing.data_type,
            "declared_data_type": declared.data_type.value,
            "existing_plugin_id": existing.plugin_id,
        }
        if existing.data_type != declared.data_type.value:
            logger.warning("attribute_type_conflict", **context)
            raise ConflictError(
                f"Attribute '{declared.key}' already exists with data type '{existing.data_type}'",
                context,
            )
        if existing.plugin_id is not None and existing.plugin_id != plugin.id:
            logger.warning("attribute_owner_conflict", **context)
            raise ConflictError(
                f"Attribute '{declared.key}' is owned by plugin '{existing.plugin_id}'",
                context,
            )

    async def _remove_schema(
        self,
        session: AsyncSession,
        plugin: ImportPlugin,
        category: CategoryModel,
    ) -> None:
        categories = CategoryRepository(session)
        attributes = AttributeRepository(session)

        await categories.delete_links(category.id)
        await categories.delete(category)

        removed_keys = []
        for attribute in await attributes.list_by_plugin(plugin.id):
            if await attributes.count_links(attribute.id) == 0:
                removed_keys.append(attribute.key)
                await attributes.delete(attribute)

        logger.info(
            "plugin_schema_removed",
            plugin_id=plugin.id,
            category_id=str(category.id),
            attributes_removed=len(removed_keys),
        )
