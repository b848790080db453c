"""Unit tests for the Google Books plugin."""

import httpx
import pytest

from attic_import.config import GoogleBooksSettings
from attic_import.plugins.errors import NotFoundError, UnavailableError
from attic_import.plugins.sources.google_books import GoogleBooksPlugin

VOLUME = {
    "id": "nggnmAEACAAJ",
    "volumeInfo": {
        "title": "Dune",
        "authors": ["Frank Herbert"],
        "publisher": "Ace",
        "publishedDate": "1990-09-01",
        "description": "Set on the desert planet Arrakis.",
        "industryIdentifiers": [
            {"type": "ISBN_10", "identifier": "0441172717"},
            {"type": "ISBN_13", "identifier": "9780441172719"},
        ],
        "pageCount": 535,
        "categories": ["Fiction", "Science Fiction"],
        "language": "en",
        "imageLinks": {
            "smallThumbnail": "http://books.google.com/small",
            "thumbnail": "http://books.google.com/thumb",
            "medium": "http://books.google.com/medium",
        },
    },
}


def make_plugin(handler, api_key=None) -> GoogleBooksPlugin:
    settings = GoogleBooksSettings(base_url="https://books.example.com/v1", api_key=api_key)
    return GoogleBooksPlugin(settings, transport=httpx.MockTransport(handler))


# ============================================================================
# Search
# ============================================================================

@pytest.mark.unit
class TestSearch:
    """Tests for volume search."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field,expected",
        [("title", "intitle:dune"), ("isbn", "isbn:dune"), ("author", "inauthor:dune")],
    )
    async def test_query_operator_per_field(self, field, expected):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"totalItems": 0})

        plugin = make_plugin(handler)
        assert await plugin.search(field, "dune", 5) == []

        params = seen[0].url.params
        assert seen[0].url.path == "/v1/volumes"
        assert params["q"] == expected
        assert params["maxResults"] == "5"
        assert params["printType"] == "books"
        assert "key" not in params
        await plugin.shutdown()

    @pytest.mark.asyncio
    async def test_api_key_sent_when_configured(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        plugin = make_plugin(handler, api_key="gb-key")
        await plugin.search("title", "dune", 5)

        assert seen[0].url.params["key"] == "gb-key"
        assert plugin.disabled_reason is None
        await plugin.shutdown()

    @pytest.mark.asyncio
    async def test_results_mapped(self):
        plugin = make_plugin(lambda request: httpx.Response(200, json={"items": [VOLUME]}))

        results = await plugin.search("title", "dune", 5)

        assert len(results) == 1
        result = results[0]
        assert result.external_id == "nggnmAEACAAJ"
        assert result.title == "Dune"
        assert result.subtitle == "Frank Herbert (1990)"
        assert result.image_url == "https://books.google.com/thumb"
        await plugin.shutdown()

    @pytest.mark.asyncio
    async def test_results_capped_at_limit(self):
        items = [{"id": str(i), "volumeInfo": {"title": f"Book {i}"}} for i in range(8)]
        plugin = make_plugin(lambda request: httpx.Response(200, json={"items": items}))

        results = await plugin.search("title", "book", 3)

        assert [r.external_id for r in results] == ["0", "1", "2"]
        assert results[0].subtitle is None
        assert results[0].image_url is None
        await plugin.shutdown()

    @pytest.mark.asyncio
    async def test_upstream_error(self):
        plugin = make_plugin(lambda request: httpx.Response(503))

        with pytest.raises(UnavailableError):
            await plugin.search("title", "dune", 5)
        await plugin.shutdown()


# ============================================================================
# Fetch
# ============================================================================

@pytest.mark.unit
class TestFetch:
    """Tests for fetching a single volume."""

    @pytest.mark.asyncio
    async def test_full_record(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=VOLUME)

        plugin = make_plugin(handler)
        data = await plugin.fetch("nggnmAEACAAJ")

        assert seen[0].url.path == "/v1/volumes/nggnmAEACAAJ"
        assert data.name == "Dune"
        assert data.external_id == "nggnmAEACAAJ"
        assert data.description == "Set on the desert planet Arrakis."
        assert data.image_url == "https://books.google.com/medium"
        assert data.attributes == {
            "books.isbn": "9780441172719",
            "books.author": "Frank Herbert",
            "books.publisher": "Ace",
            "books.published_date": "1990-09-01",
            "books.page_count": 535,
            "books.language": "en",
            "books.categories": "Fiction, Science Fiction",
        }
        await plugin.shutdown()

    @pytest.mark.asyncio
    async def test_isbn10_fallback_and_missing_fields(self):
        volume = {
            "id": "x1",
            "volumeInfo": {
                "title": "Old Book",
                "industryIdentifiers": [{"type": "ISBN_10", "identifier": "0441172717"}],
                "pageCount": 0,
            },
        }
        plugin = make_plugin(lambda request: httpx.Response(200, json=volume))

        data = await plugin.fetch("x1")

        assert data.attributes == {"books.isbn": "0441172717"}
        assert data.description is None
        assert data.image_url is None
        await plugin.shutdown()

    @pytest.mark.asyncio
    async def test_unknown_volume(self):
        plugin = make_plugin(lambda request: httpx.Response(404))

        with pytest.raises(NotFoundError):
            await plugin.fetch("missing")
        await plugin.shutdown()

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        plugin = make_plugin(lambda request: httpx.Response(200, json=["not", "a", "volume"]))

        with pytest.raises(UnavailableError):
            await plugin.fetch("x1")
        await plugin.shutdown()
