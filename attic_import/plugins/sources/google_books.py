"""Google Books import plugin.

Searches the public Google Books volumes API. The API answers without a key;
when ``ATTIC_GOOGLE_BOOKS_API_KEY`` is set it is sent as the ``key`` query
parameter to raise the quota.
"""

from typing import Any
from urllib.parse import quote

import httpx

from attic_import.config import GoogleBooksSettings
from attic_import.observability.logging import get_logger
from attic_import.plugins.base import (
    DataType,
    ImportData,
    ImportPlugin,
    PluginAttribute,
    PluginMetadata,
    SearchField,
    SearchResult,
)
from attic_import.plugins.client import ExternalClient, QueryKeyAuth
from attic_import.plugins.errors import UnavailableError

logger = get_logger(__name__)

PLUGIN_ID = "google_books"

# Search field -> Google query operator
_QUERY_PREFIXES = {
    "title": "intitle:",
    "isbn": "isbn:",
    "author": "inauthor:",
}

# Largest first
_IMAGE_SIZES = ("extraLarge", "large", "medium", "small", "thumbnail")


def _https(url: str) -> str:
    return url.replace("http://", "https://", 1)


class GoogleBooksPlugin(ImportPlugin):
    """Import books from the Google Books API.

    Example:
        >>> plugin = GoogleBooksPlugin(GoogleBooksSettings())
        >>> results = await plugin.search("isbn", "9780261103573", 5)
        >>> data = await plugin.fetch(results[0].external_id)
    """

    def __init__(
        self,
        settings: GoogleBooksSettings | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or GoogleBooksSettings()
        self._client = ExternalClient(
            PLUGIN_ID,
            settings.base_url,
            timeout=timeout,
            auth=QueryKeyAuth(settings.api_key),
            transport=transport,
        )

    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id=PLUGIN_ID,
            name="Google Books",
            description="Import books from Google Books API",
            category_name="Books",
            category_description="Books imported from Google Books",
            namespace="books",
        )

    @property
    def attributes(self) -> list[PluginAttribute]:
        return [
            PluginAttribute("books.isbn", "ISBN", DataType.STRING, PLUGIN_ID),
            PluginAttribute("books.author", "Author", DataType.STRING, PLUGIN_ID),
            PluginAttribute("books.publisher", "Publisher", DataType.STRING, PLUGIN_ID),
            PluginAttribute("books.published_date", "Published Date", DataType.STRING, PLUGIN_ID),
            PluginAttribute("books.page_count", "Page Count", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("books.language", "Language", DataType.STRING, PLUGIN_ID),
            PluginAttribute("books.categories", "Categories", DataType.STRING, PLUGIN_ID),
        ]

    @property
    def search_fields(self) -> list[SearchField]:
        return [
            SearchField("title", "Title"),
            SearchField("isbn", "ISBN"),
            SearchField("author", "Author"),
        ]

    async def search(self, field: str, query: str, limit: int) -> list[SearchResult]:
        prefix = _QUERY_PREFIXES.get(field, _QUERY_PREFIXES["title"])
        payload = await self._client.get_json(
            "/volumes",
            {"q": f"{prefix}{query}", "maxResults": limit, "printType": "books"},
        )
        if not isinstance(payload, dict):
            raise UnavailableError("Unexpected Google Books response", {"plugin_id": PLUGIN_ID})

        results = []
        for item in (payload.get("items") or [])[:limit]:
            info = item.get("volumeInfo") or {}
            results.append(
                SearchResult(
                    external_id=str(item.get("id", "")),
                    title=info.get("title") or "",
                    subtitle=self._subtitle(info),
                    image_url=self._thumbnail(info),
                )
            )
        return results

    async def fetch(self, external_id: str) -> ImportData:
        item = await self._client.get_json(f"/volumes/{quote(external_id, safe='')}")
        if not isinstance(item, dict):
            raise UnavailableError("Unexpected Google Books response", {"plugin_id": PLUGIN_ID})

        info = item.get("volumeInfo") or {}
        data = ImportData(
            name=info.get("title") or "",
            external_id=str(item.get("id") or external_id),
            description=info.get("description") or None,
            image_url=self._largest_image(info),
        )

        attributes: dict[str, Any] = {}
        isbn = self._isbn(info.get("industryIdentifiers") or [])
        if isbn:
            attributes["books.isbn"] = isbn
        if info.get("authors"):
            attributes["books.author"] = ", ".join(info["authors"])
        if info.get("publisher"):
            attributes["books.publisher"] = info["publisher"]
        if info.get("publishedDate"):
            attributes["books.published_date"] = info["publishedDate"]
        if isinstance(info.get("pageCount"), int) and info["pageCount"] > 0:
            attributes["books.page_count"] = info["pageCount"]
        if info.get("language"):
            attributes["books.language"] = info["language"]
        if info.get("categories"):
            attributes["books.categories"] = ", ".join(info["categories"])
        data.attributes = attributes

        logger.debug("google_books_fetched", external_id=external_id, attributes=len(attributes))
        return data

    async def shutdown(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _subtitle(info: dict[str, Any]) -> str | None:
        parts = []
        if info.get("authors"):
            parts.append(", ".join(info["authors"]))
        published = info.get("publishedDate")
        if published:
            parts.append(f"({published[:4]})")
        return " ".join(parts) or None

    @staticmethod
    def _thumbnail(info: dict[str, Any]) -> str | None:
        thumbnail = (info.get("imageLinks") or {}).get("thumbnail")
        return _https(thumbnail) if thumbnail else None

    @staticmethod
    def _largest_image(info: dict[str, Any]) -> str | None:
        links = info.get("imageLinks") or {}
        for size in _IMAGE_SIZES:
            if links.get(size):
                return _https(links[size])
        return None

    @staticmethod
    def _isbn(identifiers: list[dict[str, Any]]) -> str | None:
        """Prefer ISBN-13, fall back to ISBN-10."""
        by_type = {i.get("type"): i.get("identifier") for i in identifiers}
        return by_type.get("ISBN_13") or by_type.get("ISBN_10")
