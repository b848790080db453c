"""Integration tests for the assembled application."""

import pytest
from fastapi.testclient import TestClient

from attic_import.config import (
    BGGSettings,
    DatabaseSettings,
    ObservabilitySettings,
    Settings,
    TMDBSettings,
)
from attic_import.main import create_app


@pytest.fixture
def client(tmp_path):
    """Create a test client backed by a throwaway SQLite database."""
    settings = Settings(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}", create_tables=True),
        tmdb=TMDBSettings(api_key=None),
        bgg=BGGSettings(api_key=None),
        observability=ObservabilitySettings(log_format="console", log_level="WARNING"),
    )
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.mark.integration
class TestApplication:
    """Tests for startup wiring and the plugin endpoints."""

    def test_builtin_plugins_listed(self, client):
        response = client.get("/api/v1/plugins")

        assert response.status_code == 200
        plugins = {p["id"]: p for p in response.json()["plugins"]}
        assert sorted(plugins) == ["bgg_boardgames", "google_books", "tmdb_movies", "tmdb_series"]
        assert plugins["tmdb_movies"]["disabled_reason"] == "Missing API key: ATTIC_TMDB_API_KEY"
        assert plugins["google_books"]["disabled_reason"] is None
        assert plugins["google_books"]["enabled"] is True
        assert not any(plugins[p]["enabled"] for p in ("tmdb_movies", "tmdb_series", "bgg_boardgames"))

    def test_missing_credential_reported_as_unavailable(self, client):
        response = client.get("/api/v1/plugins/tmdb_movies/search", params={"q": "dune"})

        assert response.status_code == 503
        assert response.json()["detail"] == "External service unavailable"

    def test_enable_then_disable(self, client):
        enabled = client.post("/api/v1/plugins/bgg_boardgames/enable")
        assert enabled.status_code == 200

        plugin = client.get("/api/v1/plugins/bgg_boardgames").json()
        assert plugin["category_id"] == enabled.json()["category_id"]

        disabled = client.post("/api/v1/plugins/bgg_boardgames/disable")
        assert disabled.json() == {"removed": True, "asset_count": 0}

    def test_request_id_header(self, client):
        response = client.get("/api/v1/plugins", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
