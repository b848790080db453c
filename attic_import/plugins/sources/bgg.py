"""BoardGameGeek import plugin.

Talks to the BGG XML API 2. BGG throttles aggressively, so every call goes
through a rate gate that keeps a minimum interval between two requests; a
search costs two calls (the search itself plus one batched ``thing`` call for
thumbnails).
"""

import html
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from attic_import.config import BGGSettings
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
from attic_import.plugins.client import BearerAuth, ExternalClient, RateGate
from attic_import.plugins.errors import ImportPluginError, NotFoundError, UnavailableError

logger = get_logger(__name__)

PLUGIN_ID = "bgg_boardgames"
API_KEY_ENV_VAR = "ATTIC_BGG_API_KEY"

# XML element -> attribute key, integer valued
_INT_FIELDS = {
    "yearpublished": "boardgames.year_published",
    "minplayers": "boardgames.min_players",
    "maxplayers": "boardgames.max_players",
    "playingtime": "boardgames.playing_time",
    "minplaytime": "boardgames.min_playtime",
    "maxplaytime": "boardgames.max_playtime",
    "minage": "boardgames.min_age",
}

# <link type="..."> -> attribute key
_LINK_FIELDS = {
    "boardgamedesigner": "boardgames.designers",
    "boardgamepublisher": "boardgames.publishers",
    "boardgamecategory": "boardgames.categories",
    "boardgamemechanic": "boardgames.mechanics",
}


def _value(element: ET.Element, tag: str) -> str | None:
    """Read the ``value`` attribute of a child element."""
    child = element.find(tag)
    if child is None:
        return None
    return child.get("value") or None


def _text(element: ET.Element, tag: str) -> str | None:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def clean_description(text: str) -> str:
    """Decode the HTML entities BGG leaves in descriptions (``&#10;`` is a newline)."""
    return html.unescape(text).strip()


class BGGPlugin(ImportPlugin):
    """Import board games from BoardGameGeek.

    Args:
        settings: BGG settings (credential, pacing, timeout)
        gate: Rate gate shared by every BGG call; one is created when omitted
        transport: Optional httpx transport
    """

    def __init__(
        self,
        settings: BGGSettings | None = None,
        gate: RateGate | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or BGGSettings()
        self.gate = gate or RateGate(self.settings.min_interval_seconds)
        self._client = ExternalClient(
            PLUGIN_ID,
            self.settings.base_url,
            timeout=self.settings.timeout_seconds,
            auth=BearerAuth(self.settings.api_key),
            gate=self.gate,
            transport=transport,
            accept="application/xml",
        )

    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id=PLUGIN_ID,
            name="BoardGameGeek",
            description="Import board games from BoardGameGeek",
            category_name="Board Games",
            category_description="Board games imported from BoardGameGeek",
            namespace="boardgames",
            requires_auth=True,
        )

    @property
    def attributes(self) -> list[PluginAttribute]:
        return [
            PluginAttribute("boardgames.year_published", "Year Published", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.min_players", "Min Players", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.max_players", "Max Players", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.playing_time", "Playing Time (min)", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.min_playtime", "Min Playtime (min)", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.max_playtime", "Max Playtime (min)", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.min_age", "Minimum Age", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.rating", "BGG Rating", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.weight", "Complexity/Weight", DataType.NUMBER, PLUGIN_ID),
            PluginAttribute("boardgames.designers", "Designers", DataType.STRING, PLUGIN_ID),
            PluginAttribute("boardgames.publishers", "Publishers", DataType.STRING, PLUGIN_ID),
            PluginAttribute("boardgames.categories", "Categories", DataType.STRING, PLUGIN_ID),
            PluginAttribute("boardgames.mechanics", "Mechanics", DataType.STRING, PLUGIN_ID),
        ]

    @property
    def search_fields(self) -> list[SearchField]:
        return [SearchField("name", "Name")]

    @property
    def disabled_reason(self) -> str | None:
        if self._client.has_credential:
            return None
        return f"Missing API key: {API_KEY_ENV_VAR}"

    @property
    def call_timeout(self) -> float:
        # Search issues two requests; gate waits are not counted
        return 2 * self.settings.timeout_seconds

    async def search(self, field: str, query: str, limit: int) -> list[SearchResult]:
        root = await self._get_xml("/search", {"query": query, "type": "boardgame"})
        items = root.findall("item")[:limit]
        if not items:
            return []

        ids = [item.get("id", "") for item in items]
        thumbnails = await self._fetch_thumbnails(ids)

        results = []
        for item in items:
            external_id = item.get("id", "")
            year = _value(item, "yearpublished")
            results.append(
                SearchResult(
                    external_id=external_id,
                    title=_value(item, "name") or "",
                    subtitle=f"({year})" if year else None,
                    image_url=thumbnails.get(external_id),
                )
            )
        return results

    async def fetch(self, external_id: str) -> ImportData:
        root = await self._get_xml("/thing", {"id": external_id, "stats": 1})
        item = root.find("item")
        if item is None:
            raise NotFoundError(
                "Board game not found",
                {"plugin_id": PLUGIN_ID, "external_id": external_id},
            )

        description = _text(item, "description")
        return ImportData(
            name=self._primary_name(item),
            external_id=external_id,
            description=clean_description(description) if description else None,
            image_url=_text(item, "image") or _text(item, "thumbnail"),
            attributes=self._attributes(item),
        )

    async def shutdown(self) -> None:
        await self._client.aclose()

    async def _get_xml(self, path: str, params: dict[str, Any]) -> ET.Element:
        response = await self._client.get(path, params)
        try:
            return ET.fromstring(response.content)
        except ET.ParseError as e:
            logger.warning("upstream_invalid_xml", plugin_id=PLUGIN_ID, path=path)
            raise UnavailableError(
                "BoardGameGeek returned an invalid response",
                {"plugin_id": PLUGIN_ID, "path": path},
            ) from e

    async def _fetch_thumbnails(self, ids: list[str]) -> dict[str, str]:
        """Fetch thumbnails for several games in one call.

        Thumbnails are decoration only, so a failed call yields no thumbnails
        instead of failing the search.
        """
        try:
            root = await self._get_xml("/thing", {"id": ",".join(ids)})
        except ImportPluginError as e:
            logger.warning("bgg_thumbnails_unavailable", error=e.message, count=len(ids))
            return {}

        thumbnails: dict[str, str] = {}
        for item in root.findall("item"):
            image = _text(item, "thumbnail") or _text(item, "image")
            if image:
                thumbnails[item.get("id", "")] = image
        return thumbnails

    @staticmethod
    def _primary_name(item: ET.Element) -> str:
        names = item.findall("name")
        for name in names:
            if name.get("type") == "primary" and name.get("value"):
                return name.get("value", "")
        return names[0].get("value", "") if names else ""

    @staticmethod
    def _attributes(item: ET.Element) -> dict[str, Any]:
        attributes: dict[str, Any] = {}

        for tag, key in _INT_FIELDS.items():
            raw = _value(item, tag)
            if raw is None:
                continue
            try:
                attributes[key] = int(raw)
            except ValueError:
                logger.debug("bgg_unparsable_value", key=key, value=raw)

        ratings = item.find("statistics/ratings")
        if ratings is not None:
            for tag, key in (("average", "boardgames.rating"), ("averageweight", "boardgames.weight")):
                raw = _value(ratings, tag)
                if raw is None:
                    continue
                try:
                    attributes[key] = float(raw)
                except ValueError:
                    logger.debug("bgg_unparsable_value", key=key, value=raw)

        for link_type, key in _LINK_FIELDS.items():
            values = [
                link.get("value", "")
                for link in item.findall("link")
                if link.get("type") == link_type and link.get("value")
            ]
            if values:
                attributes[key] = ", ".join(values)

        return attributes
