"""The Movie Database (TMDB) import plugins.

Movies and TV series are two plugins with separate categories that share one
authenticated client. TMDB requires a read access token, sent as a bearer
token; without it both plugins report themselves as unusable.
"""

from typing import Any
from urllib.parse import quote

import httpx

from attic_import.config import TMDBSettings
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
from attic_import.plugins.client import BearerAuth, ExternalClient
from attic_import.plugins.errors import UnavailableError

logger = get_logger(__name__)

API_KEY_ENV_VAR = "ATTIC_TMDB_API_KEY"
SEARCH_POSTER_SIZE = "w185"
IMPORT_POSTER_SIZE = "w500"


class TMDBClient:
    """Authenticated TMDB API client shared by the movie and series plugins."""

    def __init__(
        self,
        settings: TMDBSettings,
        plugin_id: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.image_base_url = settings.image_base_url.rstrip("/")
        self.plugin_id = plugin_id
        self.http = ExternalClient(
            plugin_id,
            settings.base_url,
            timeout=timeout,
            auth=BearerAuth(settings.api_key),
            transport=transport,
        )

    @property
    def has_credential(self) -> bool:
        return self.http.has_credential

    async def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = await self.http.get_json(path, params)
        if not isinstance(payload, dict):
            raise UnavailableError("Unexpected TMDB response", {"plugin_id": self.plugin_id, "path": path})
        return payload

    def poster_url(self, path: str | None, size: str) -> str | None:
        if not path:
            return None
        return f"{self.image_base_url}/{size}{path}"

    async def aclose(self) -> None:
        await self.http.aclose()


def format_genres(genres: list[dict[str, Any]]) -> str:
    return ", ".join(g["name"] for g in genres if g.get("name"))


def build_subtitle(date_value: str | None, vote_average: float | None) -> str | None:
    """Render "(YYYY) ★ 7.5" from a release date and a vote average."""
    parts = []
    if date_value and len(date_value) >= 4:
        parts.append(f"({date_value[:4]})")
    if vote_average:
        parts.append(f"★ {vote_average:.1f}")
    return " ".join(parts) or None


class _TMDBPlugin(ImportPlugin):
    """Common plumbing for TMDB plugins."""

    plugin_id: str
    search_path: str
    title_key: str
    date_key: str

    def __init__(
        self,
        settings: TMDBSettings | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._tmdb = TMDBClient(settings or TMDBSettings(), self.plugin_id, timeout, transport)

    @property
    def disabled_reason(self) -> str | None:
        if self._tmdb.has_credential:
            return None
        return f"Missing API key: {API_KEY_ENV_VAR}"

    async def search(self, field: str, query: str, limit: int) -> list[SearchResult]:
        payload = await self._tmdb.get(self.search_path, {"query": query, "include_adult": "false"})

        results = []
        for item in (payload.get("results") or [])[:limit]:
            results.append(
                SearchResult(
                    external_id=str(item.get("id", "")),
                    title=item.get(self.title_key) or "",
                    subtitle=build_subtitle(item.get(self.date_key), item.get("vote_average")),
                    image_url=self._tmdb.poster_url(item.get("poster_path"), SEARCH_POSTER_SIZE),
                )
            )
        return results

    async def shutdown(self) -> None:
        await self._tmdb.aclose()

    @staticmethod
    def _positive(attributes: dict[str, Any], key: str, value: Any) -> None:
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            attributes[key] = value

    @staticmethod
    def _text(attributes: dict[str, Any], key: str, value: Any) -> None:
        if value:
            attributes[key] = value


class TMDBMoviesPlugin(_TMDBPlugin):
    """Import movies from The Movie Database."""

    plugin_id = "tmdb_movies"
    search_path = "/search/movie"
    title_key = "title"
    date_key = "release_date"

    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id=self.plugin_id,
            name="TMDB Movies",
            description="Import movies from The Movie Database (TMDB)",
            category_name="Movies",
            category_description="Movies imported from TMDB",
            namespace="movies",
            requires_auth=True,
        )

    @property
    def attributes(self) -> list[PluginAttribute]:
        pid = self.plugin_id
        return [
            PluginAttribute("movies.release_date", "Release Date", DataType.DATE, pid),
            PluginAttribute("movies.genres", "Genres", DataType.STRING, pid),
            PluginAttribute("movies.rating", "Rating", DataType.NUMBER, pid),
            PluginAttribute("movies.runtime", "Runtime (minutes)", DataType.NUMBER, pid),
            PluginAttribute("movies.language", "Original Language", DataType.STRING, pid),
            PluginAttribute("movies.status", "Status", DataType.STRING, pid),
            PluginAttribute("movies.tagline", "Tagline", DataType.STRING, pid),
            PluginAttribute("movies.budget", "Budget", DataType.NUMBER, pid),
            PluginAttribute("movies.revenue", "Revenue", DataType.NUMBER, pid),
        ]

    @property
    def search_fields(self) -> list[SearchField]:
        return [SearchField("title", "Title")]

    async def fetch(self, external_id: str) -> ImportData:
        movie = await self._tmdb.get(f"/movie/{quote(external_id, safe='')}")

        attributes: dict[str, Any] = {}
        self._text(attributes, "movies.release_date", movie.get("release_date"))
        if movie.get("genres"):
            attributes["movies.genres"] = format_genres(movie["genres"])
        self._positive(attributes, "movies.rating", movie.get("vote_average"))
        self._positive(attributes, "movies.runtime", movie.get("runtime"))
        self._text(attributes, "movies.language", movie.get("original_language"))
        self._text(attributes, "movies.status", movie.get("status"))
        self._text(attributes, "movies.tagline", movie.get("tagline"))
        self._positive(attributes, "movies.budget", movie.get("budget"))
        self._positive(attributes, "movies.revenue", movie.get("revenue"))

        return ImportData(
            name=movie.get("title") or "",
            external_id=external_id,
            description=movie.get("overview") or None,
            image_url=self._tmdb.poster_url(movie.get("poster_path"), IMPORT_POSTER_SIZE),
            attributes=attributes,
        )


class TMDBSeriesPlugin(_TMDBPlugin):
    """Import TV series from The Movie Database."""

    plugin_id = "tmdb_series"
    search_path = "/search/tv"
    title_key = "name"
    date_key = "first_air_date"

    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id=self.plugin_id,
            name="TMDB TV Series",
            description="Import TV series from The Movie Database (TMDB)",
            category_name="TV Series",
            category_description="TV series imported from TMDB",
            namespace="series",
            requires_auth=True,
        )

    @property
    def attributes(self) -> list[PluginAttribute]:
        pid = self.plugin_id
        return [
            PluginAttribute("series.first_air_date", "First Air Date", DataType.DATE, pid),
            PluginAttribute("series.last_air_date", "Last Air Date", DataType.DATE, pid),
            PluginAttribute("series.genres", "Genres", DataType.STRING, pid),
            PluginAttribute("series.rating", "Rating", DataType.NUMBER, pid),
            PluginAttribute("series.seasons", "Number of Seasons", DataType.NUMBER, pid),
            PluginAttribute("series.episodes", "Number of Episodes", DataType.NUMBER, pid),
            PluginAttribute("series.language", "Original Language", DataType.STRING, pid),
            PluginAttribute("series.status", "Status", DataType.STRING, pid),
        ]

    @property
    def search_fields(self) -> list[SearchField]:
        return [SearchField("name", "Title")]

    async def fetch(self, external_id: str) -> ImportData:
        series = await self._tmdb.get(f"/tv/{quote(external_id, safe='')}")

        attributes: dict[str, Any] = {}
        self._text(attributes, "series.first_air_date", series.get("first_air_date"))
        self._text(attributes, "series.last_air_date", series.get("last_air_date"))
        if series.get("genres"):
            attributes["series.genres"] = format_genres(series["genres"])
        self._positive(attributes, "series.rating", series.get("vote_average"))
        self._positive(attributes, "series.seasons", series.get("number_of_seasons"))
        self._positive(attributes, "series.episodes", series.get("number_of_episodes"))
        self._text(attributes, "series.language", series.get("original_language"))
        self._text(attributes, "series.status", series.get("status"))

        return ImportData(
            name=series.get("name") or "",
            external_id=external_id,
            description=series.get("overview") or None,
            image_url=self._tmdb.poster_url(series.get("poster_path"), IMPORT_POSTER_SIZE),
            attributes=attributes,
        )
