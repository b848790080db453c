"""Shared fixtures for the import plugin tests."""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from attic_import.config import ImportSettings
from attic_import.db.models import Base, build_engine
from attic_import.plugins.base import (
    DataType,
    ImportData,
    ImportPlugin,
    PluginAttribute,
    PluginMetadata,
    SearchField,
    SearchResult,
)
from attic_import.plugins.errors import NotFoundError
from attic_import.plugins.registry import PluginRegistry
from attic_import.services.import_service import ImportService


class StubBooksPlugin(ImportPlugin):
    """In-memory plugin recording every call it receives."""

    def __init__(
        self,
        plugin_id: str = "testbooks",
        namespace: str = "testbooks",
        attributes: list[PluginAttribute] | None = None,
    ) -> None:
        self._id = plugin_id
        self._namespace = namespace
        self._attributes = attributes if attributes is not None else [
            PluginAttribute(f"{namespace}.isbn", "ISBN", DataType.STRING, plugin_id),
            PluginAttribute(f"{namespace}.pages", "Pages", DataType.NUMBER, plugin_id),
            PluginAttribute(f"{namespace}.published", "Published", DataType.DATE, plugin_id),
        ]
        self.search_results: list[SearchResult] = []
        self.records: dict[str, ImportData] = {}
        self.delay: float = 0.0
        self.search_calls: list[tuple[str, str, int]] = []
        self.fetch_calls: list[str] = []

    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id=self._id,
            name="Test Books",
            description="Books from an in-memory catalogue",
            category_name="Test Books",
            category_description="Books imported in tests",
            namespace=self._namespace,
        )

    @property
    def attributes(self) -> list[PluginAttribute]:
        return self._attributes

    @property
    def search_fields(self) -> list[SearchField]:
        return [SearchField("title", "Title"), SearchField("isbn", "ISBN")]

    async def search(self, field: str, query: str, limit: int) -> list[SearchResult]:
        self.search_calls.append((field, query, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        return list(self.search_results)

    async def fetch(self, external_id: str) -> ImportData:
        self.fetch_calls.append(external_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if external_id not in self.records:
            raise NotFoundError("Item not found in external source", {"external_id": external_id})
        return self.records[external_id]


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with the full schema."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'attic.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def stub_plugin() -> StubBooksPlugin:
    plugin = StubBooksPlugin()
    plugin.search_results = [SearchResult(external_id="42", title="Dune")]
    plugin.records["42"] = ImportData(
        name="Dune",
        external_id="42",
        description="Desert planet",
        image_url="https://img.example.com/dune.jpg",
        attributes={"testbooks.isbn": "9780441013593", "testbooks.unknown": "x"},
    )
    return plugin


@pytest.fixture
def registry(stub_plugin) -> PluginRegistry:
    registry = PluginRegistry()
    registry.register(stub_plugin)
    return registry


@pytest.fixture
def import_settings() -> ImportSettings:
    return ImportSettings(http_timeout_seconds=1.0, search_default_limit=10, search_max_limit=20)


@pytest.fixture
def service(registry, session_factory, import_settings) -> ImportService:
    return ImportService(registry, session_factory, import_settings)


@pytest.fixture
def make_plugin():
    """Factory for additional stub plugins."""
    return StubBooksPlugin
