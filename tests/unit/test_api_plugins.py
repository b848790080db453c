"""Unit tests for the import plugin API routes."""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI

from attic_import.api.routes import plugins_router
from attic_import.plugins.errors import UnauthorizedError, UnavailableError


@pytest.fixture
def app(service) -> FastAPI:
    app = FastAPI()
    app.include_router(plugins_router, prefix="/api/v1")
    app.state.import_service = service
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ============================================================================
# Listing
# ============================================================================

@pytest.mark.unit
class TestListEndpoints:
    """Tests for plugin listing endpoints."""

    @pytest.mark.asyncio
    async def test_list_plugins(self, client):
        response = await client.get("/api/v1/plugins")

        assert response.status_code == 200
        plugins = response.json()["plugins"]
        assert [p["id"] for p in plugins] == ["testbooks"]
        assert plugins[0]["enabled"] is True
        assert plugins[0]["search_fields"][0] == {"key": "title", "label": "Title"}
        assert plugins[0]["attributes"][1]["data_type"] == "number"

    @pytest.mark.asyncio
    async def test_get_plugin(self, client):
        response = await client.get("/api/v1/plugins/testbooks")

        assert response.status_code == 200
        assert response.json()["category_name"] == "Test Books"

    @pytest.mark.asyncio
    async def test_get_unknown_plugin(self, client):
        response = await client.get("/api/v1/plugins/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == "Plugin 'nope' not found"

    @pytest.mark.asyncio
    async def test_service_not_initialized(self):
        app = FastAPI()
        app.include_router(plugins_router, prefix="/api/v1")
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/v1/plugins")

        assert response.status_code == 503


# ============================================================================
# Search
# ============================================================================

@pytest.mark.unit
class TestSearchEndpoint:
    """Tests for the search endpoint."""

    @pytest.mark.asyncio
    async def test_search(self, client, stub_plugin):
        response = await client.get("/api/v1/plugins/testbooks/search", params={"q": "dune", "field": "title"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["results"][0] == {
            "external_id": "42",
            "title": "Dune",
            "subtitle": None,
            "image_url": None,
        }
        assert stub_plugin.search_calls == [("title", "dune", 10)]

    @pytest.mark.asyncio
    async def test_blank_query(self, client, stub_plugin):
        response = await client.get("/api/v1/plugins/testbooks/search", params={"q": " "})

        assert response.status_code == 400
        assert stub_plugin.search_calls == []

    @pytest.mark.asyncio
    async def test_unknown_field(self, client):
        response = await client.get("/api/v1/plugins/testbooks/search", params={"q": "dune", "field": "x"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [UnauthorizedError, UnavailableError])
    async def test_upstream_failure_is_generic(self, client, stub_plugin, error):
        stub_plugin.search = AsyncMock(side_effect=error("token abc rejected", {"plugin_id": "testbooks"}))

        response = await client.get("/api/v1/plugins/testbooks/search", params={"q": "dune"})

        assert response.status_code == 503
        assert response.json()["detail"] == "External service unavailable"

    @pytest.mark.asyncio
    async def test_disabled_plugin(self, client):
        await client.post("/api/v1/plugins/testbooks/disable")

        response = await client.get("/api/v1/plugins/testbooks/search", params={"q": "dune"})

        assert response.status_code == 409


# ============================================================================
# Import / toggle
# ============================================================================

@pytest.mark.unit
class TestImportEndpoint:
    """Tests for import, enable and disable endpoints."""

    @pytest.mark.asyncio
    async def test_import(self, client):
        response = await client.post("/api/v1/plugins/testbooks/import", json={"external_id": "42"})

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Dune"
        assert body["quantity"] == 1
        assert body["attributes"] == {"testbooks.isbn": "9780441013593"}
        assert body["import_plugin_id"] == "testbooks"
        assert body["import_external_id"] == "42"

    @pytest.mark.asyncio
    async def test_import_unknown_record(self, client):
        response = await client.post("/api/v1/plugins/testbooks/import", json={"external_id": "404"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_import_requires_external_id(self, client):
        response = await client.post("/api/v1/plugins/testbooks/import", json={"external_id": ""})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_enable_and_disable(self, client):
        enabled = await client.post("/api/v1/plugins/testbooks/enable")
        assert enabled.status_code == 200
        assert enabled.json()["created"] is True

        disabled = await client.post("/api/v1/plugins/testbooks/disable")
        assert disabled.status_code == 200
        assert disabled.json() == {"removed": True, "asset_count": 0}

        listing = await client.get("/api/v1/plugins/testbooks")
        assert listing.json()["enabled"] is False
        assert listing.json()["category_id"] is None
