"""Import orchestration.

The import service is the only entry point callers use: it validates input,
checks the plugin's enabled state, bounds every upstream call with a timeout,
provisions the plugin's schema on first use and turns fetched records into
assets with provenance.
"""

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attic_import.config import ImportSettings
from attic_import.db.models import AssetModel
from attic_import.db.repositories import AssetRepository
from attic_import.observability.logging import get_logger, request_context_scope
from attic_import.plugins.base import (
    AttributeValue,
    ImportPlugin,
    PluginAttribute,
    SearchField,
    SearchResult,
)
from attic_import.plugins.client import call_deadline
from attic_import.plugins.errors import (
    UPSTREAM_ERRORS,
    CoercionError,
    DisabledPluginError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from attic_import.plugins.registry import PluginRegistry
from attic_import.plugins.values import coerce_value
from attic_import.services.provisioner import AttributeProvisioner, DisableResult, ProvisionResult

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class PluginSummary:
    """Listing entry for one plugin.

    ``enabled`` is only true when the plugin is switched on and has the
    credentials it needs; ``disabled_reason`` says what is missing.
    """
    id: str
    name: str
    description: str
    category_name: str
    category_description: str
    enabled: bool
    requires_auth: bool = False
    disabled_reason: str | None = None
    category_id: UUID | None = None
    search_fields: list[SearchField] = field(default_factory=list)
    attributes: list[PluginAttribute] = field(default_factory=list)


class ImportService:
    """Entry point for searching external sources and importing assets.

    Example:
        >>> service = ImportService(get_registry(), get_session_factory())
        >>> results = await service.search("google_books", "isbn", "9780261103573")
        >>> asset = await service.import_item("google_books", results[0].external_id)

    Args:
        registry: Registry holding the plugins and their state
        session_factory: Factory producing database sessions; sessions must
            not expire objects on commit
        settings: Import settings (timeouts, search limits)
        provisioner: Schema provisioner; built from ``session_factory`` if omitted
    """

    def __init__(
        self,
        registry: PluginRegistry,
        session_factory: async_sessionmaker[AsyncSession],
        settings: ImportSettings | None = None,
        provisioner: AttributeProvisioner | None = None,
    ) -> None:
        self.registry = registry
        self.session_factory = session_factory
        self.settings = settings or ImportSettings()
        self.provisioner = provisioner or AttributeProvisioner(session_factory)

    async def list_plugins(self) -> list[PluginSummary]:
        """List every registered plugin with its current state, ordered by id."""
        summaries = []
        for plugin in self.registry.list_plugins():
            await self._ensure_state(plugin)
            summaries.append(self._summarize(plugin))
        return summaries

    async def get_plugin(self, plugin_id: str) -> PluginSummary:
        """Describe one plugin.

        Raises:
            NotFoundError: If the plugin is not registered
        """
        plugin = self._require(plugin_id)
        await self._ensure_state(plugin)
        return self._summarize(plugin)

    async def search(
        self,
        plugin_id: str,
        field: str,
        query: str,
        limit: int = 0,
    ) -> list[SearchResult]:
        """Search a plugin's external source.

        Args:
            plugin_id: Plugin identifier
            field: Search field key; empty means the plugin's first field
            query: Free-text query
            limit: Maximum results; non-positive means the default, values
                above the maximum are clamped

        Returns:
            Results in upstream order

        Raises:
            NotFoundError: If the plugin is not registered
            DisabledPluginError: If the plugin is disabled
            ValidationError: If the query is blank or the field is unknown
            UnauthorizedError: If the upstream credential is missing or rejected
            UnavailableError: If the upstream fails or the call times out
        """
        plugin = self._require(plugin_id)
        await self._require_enabled(plugin)

        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query must not be empty", {"plugin_id": plugin_id})
        field = self._resolve_field(plugin, field)
        limit = self._normalize_limit(limit)

        with request_context_scope(plugin_id=plugin_id, operation="search"):
            results = await self._call(plugin, plugin.search(field, query, limit))
            logger.info("plugin_search_completed", field=field, limit=limit, results=len(results))
        return results

    async def import_item(self, plugin_id: str, external_id: str) -> AssetModel:
        """Fetch a record from the external source and persist it as an asset.

        The plugin's category and attributes are provisioned on first use.
        Attribute values the plugin does not declare, or that cannot be
        coerced to the declared data type, are dropped.

        Args:
            plugin_id: Plugin identifier
            external_id: Upstream identifier from a search result

        Returns:
            The created asset

        Raises:
            NotFoundError: If the plugin is not registered or the record does not exist
            DisabledPluginError: If the plugin is disabled
            ValidationError: If the external id is blank
            ConflictError: If provisioning clashes with existing attributes
            UnauthorizedError: If the upstream credential is missing or rejected
            UnavailableError: If the upstream fails, times out or returns a nameless record
        """
        plugin = self._require(plugin_id)
        await self._require_enabled(plugin)

        external_id = (external_id or "").strip()
        if not external_id:
            raise ValidationError("External id must not be empty", {"plugin_id": plugin_id})

        with request_context_scope(plugin_id=plugin_id, external_id=external_id, operation="import"):
            await self._ensure_provisioned(plugin)

            data = await self._call(plugin, plugin.fetch(external_id))
            if not (data.name or "").strip():
                logger.warning("plugin_record_without_name")
                raise UnavailableError(
                    f"'{plugin_id}' returned a record without a name",
                    {"plugin_id": plugin_id, "external_id": external_id},
                )
            attributes = self._coerce_attributes(plugin, data.attributes)

            async with self.registry.lock(plugin_id):
                # Disable may have run while the fetch was in flight
                if not self.registry.is_enabled(plugin_id):
                    raise DisabledPluginError(f"Plugin '{plugin_id}' is disabled", {"plugin_id": plugin_id})
                category_id = self.registry.category_id(plugin_id)
                if category_id is None:
                    category_id = await self._provision(plugin)

                async with self.session_factory() as session:
                    async with session.begin():
                        asset = await AssetRepository(session).create(
                            category_id=category_id,
                            name=data.name.strip(),
                            description=data.description,
                            image_url=data.image_url,
                            attributes=attributes,
                            quantity=1,
                            import_plugin_id=plugin_id,
                            import_external_id=external_id,
                        )

            logger.info(
                "asset_imported",
                asset_id=str(asset.id),
                category_id=str(category_id),
                attributes=len(attributes),
            )
        return asset

    async def enable(self, plugin_id: str) -> ProvisionResult:
        """Enable a plugin and provision its schema.

        Raises:
            NotFoundError: If the plugin is not registered
            ConflictError: If provisioning clashes with existing attributes
        """
        plugin = self._require(plugin_id)
        async with self.registry.lock(plugin_id):
            result = await self.provisioner.enable(plugin)
            self.registry.mark_enabled(plugin_id, result.category_id)
        return result

    async def disable(self, plugin_id: str) -> DisableResult:
        """Disable a plugin, removing its schema when no asset uses it.

        Raises:
            NotFoundError: If the plugin is not registered
        """
        plugin = self._require(plugin_id)
        async with self.registry.lock(plugin_id):
            result = await self.provisioner.disable(plugin)
            self.registry.mark_disabled(plugin_id, None if result.removed else result.category_id)
        return result

    def _require(self, plugin_id: str) -> ImportPlugin:
        plugin = self.registry.get(plugin_id)
        if plugin is None:
            raise NotFoundError(f"Plugin '{plugin_id}' not found", {"plugin_id": plugin_id})
        return plugin

    async def _ensure_state(self, plugin: ImportPlugin) -> None:
        """Load the plugin's persisted state into the registry once."""
        if self.registry.is_loaded(plugin.id):
            return
        async with self.registry.lock(plugin.id):
            if self.registry.is_loaded(plugin.id):
                return
            enabled, category_id = await self.provisioner.load_state(plugin.id)
            self.registry.load_state(plugin.id, enabled, category_id)

    async def _require_enabled(self, plugin: ImportPlugin) -> None:
        await self._ensure_state(plugin)
        if not self.registry.is_enabled(plugin.id):
            raise DisabledPluginError(f"Plugin '{plugin.id}' is disabled", {"plugin_id": plugin.id})

    async def _ensure_provisioned(self, plugin: ImportPlugin) -> None:
        if self.registry.category_id(plugin.id) is not None and self.registry.is_enabled(plugin.id):
            return
        async with self.registry.lock(plugin.id):
            if not self.registry.is_enabled(plugin.id):
                raise DisabledPluginError(f"Plugin '{plugin.id}' is disabled", {"plugin_id": plugin.id})
            if self.registry.category_id(plugin.id) is None:
                await self._provision(plugin)

    async def _provision(self, plugin: ImportPlugin) -> UUID:
        """Provision under the plugin lock, which the caller holds."""
        result = await self.provisioner.enable(plugin)
        self.registry.mark_enabled(plugin.id, result.category_id)
        return result.category_id

    def _resolve_field(self, plugin: ImportPlugin, field: str) -> str:
        fields = plugin.search_fields
        if not field:
            return fields[0].key
        if field not in {f.key for f in fields}:
            raise ValidationError(
                f"Unknown search field '{field}' for plugin '{plugin.id}'",
                {"plugin_id": plugin.id, "field": field},
            )
        return field

    def _normalize_limit(self, limit: int | None) -> int:
        if not limit or limit <= 0:
            return self.settings.search_default_limit
        return min(limit, self.settings.search_max_limit)

    async def _call(self, plugin: ImportPlugin, call: Awaitable[T]) -> T:
        """Await an adapter call under the plugin's timeout.

        Time spent queued behind a rate-limited source does not count.
        """
        timeout = plugin.call_timeout or self.settings.http_timeout_seconds
        try:
            async with call_deadline(timeout):
                return await call
        except TimeoutError as e:
            logger.warning("plugin_call_timeout", timeout_seconds=timeout)
            raise UnavailableError(
                f"'{plugin.id}' did not answer within {timeout:g}s",
                {"plugin_id": plugin.id},
            ) from e
        except UPSTREAM_ERRORS as e:
            logger.warning("plugin_upstream_error", error=type(e).__name__, message=e.message)
            raise

    def _coerce_attributes(
        self,
        plugin: ImportPlugin,
        raw: dict[str, Any],
    ) -> dict[str, AttributeValue]:
        declared = plugin.attribute_types()
        attributes: dict[str, AttributeValue] = {}
        for key, value in (raw or {}).items():
            data_type = declared.get(key)
            if data_type is None:
                logger.warning("undeclared_attribute_dropped", attribute_key=key)
                continue
            if value is None:
                continue
            try:
                attributes[key] = coerce_value(data_type, value)
            except CoercionError as e:
                logger.warning(
                    "attribute_value_dropped",
                    attribute_key=key,
                    data_type=data_type.value,
                    reason=str(e),
                )
        return attributes

    def _summarize(self, plugin: ImportPlugin) -> PluginSummary:
        metadata = plugin.metadata
        return PluginSummary(
            id=metadata.id,
            name=metadata.name,
            description=metadata.description,
            category_name=metadata.category_name,
            category_description=metadata.category_description,
            enabled=self.registry.is_enabled(plugin.id) and plugin.disabled_reason is None,
            requires_auth=metadata.requires_auth,
            disabled_reason=plugin.disabled_reason,
            category_id=self.registry.category_id(plugin.id),
            search_fields=list(plugin.search_fields),
            attributes=list(plugin.attributes),
        )
