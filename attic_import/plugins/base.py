"""Import plugin base classes and interfaces.

This module defines the capability contract every import plugin implements
and the transient types plugins exchange with the import service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

#: Loosely-typed value carried from an external source into an import.
#: Dates travel as ISO ``YYYY-MM-DD`` strings.
AttributeValue = Union[str, int, float, bool]


class DataType(str, Enum):
    """Closed set of attribute data types."""
    STRING = "string"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"


@dataclass(frozen=True)
class PluginMetadata:
    """Static descriptor of an import plugin.

    Attributes:
        id: Unique plugin identifier (e.g., "google_books")
        name: Human-readable plugin name
        description: Brief description of the plugin
        category_name: Name of the category the plugin manages
        category_description: Description of that category
        namespace: Category slug every attribute key is prefixed with
        requires_auth: Whether the upstream source needs a credential
    """
    id: str
    name: str
    description: str
    category_name: str
    category_description: str
    namespace: str
    requires_auth: bool = False


@dataclass(frozen=True)
class PluginAttribute:
    """Attribute declared and owned by a plugin.

    Attributes:
        key: Namespaced key, e.g. "books.isbn"
        name: Display name, e.g. "ISBN"
        data_type: One of the closed set of data types
        required: Whether the category link marks the attribute required
        plugin_id: Owning plugin id
    """
    key: str
    name: str
    data_type: DataType
    plugin_id: str
    required: bool = False


@dataclass(frozen=True)
class SearchField:
    """A field a plugin can search on."""
    key: str
    label: str


@dataclass
class SearchResult:
    """One upstream match, enough to let a user pick what to import.

    Attributes:
        external_id: Upstream identifier passed back to ``fetch``
        title: Primary display title
        subtitle: Secondary info (authors, year, rating)
        image_url: Thumbnail URL if available
    """
    external_id: str
    title: str
    subtitle: Optional[str] = None
    image_url: Optional[str] = None


@dataclass
class ImportData:
    """Normalized record fetched from an external source.

    Attributes:
        name: Asset name
        external_id: Upstream identifier
        description: Asset description
        image_url: Largest available image URL
        attributes: Attribute values keyed by namespaced attribute key
    """
    name: str
    external_id: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)


class ImportPlugin(ABC):
    """Abstract base class for import plugins.

    One subclass exists per external source. ``attributes`` and
    ``search_fields`` must be pure and return the same values for the
    lifetime of the process.
    """

    @property
    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Return plugin metadata."""
        ...

    @property
    @abstractmethod
    def attributes(self) -> List[PluginAttribute]:
        """Return the attributes this plugin provides."""
        ...

    @property
    @abstractmethod
    def search_fields(self) -> List[SearchField]:
        """Return the fields this plugin can search on."""
        ...

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def disabled_reason(self) -> Optional[str]:
        """Reason the plugin cannot reach its source, if any.

        Returns:
            Human-readable reason, or None when the plugin is usable
        """
        return None

    @property
    def call_timeout(self) -> Optional[float]:
        """Upper bound in seconds for one search or fetch call.

        None means the service-wide default applies. Plugins that issue several
        requests per operation return a larger bound. Time spent waiting on a
        RateGate is not counted.
        """
        return None

    @abstractmethod
    async def search(self, field: str, query: str, limit: int) -> List[SearchResult]:
        """Search the external source.

        Args:
            field: Key of one of ``search_fields``
            query: Free-text query
            limit: Maximum number of results

        Returns:
            Matches in upstream order; an empty list when nothing matches

        Raises:
            UnauthorizedError: If the credential is missing or rejected
            UnavailableError: If the source cannot be reached or answers badly
        """
        ...

    @abstractmethod
    async def fetch(self, external_id: str) -> ImportData:
        """Fetch the full record for an external id.

        Args:
            external_id: Identifier taken from a ``SearchResult``

        Returns:
            ImportData mapped from the upstream record

        Raises:
            NotFoundError: If the source has no such record
            UnauthorizedError: If the credential is missing or rejected
            UnavailableError: If the source cannot be reached or answers badly
        """
        ...

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initialize the plugin with configuration.

        Called once when the application starts. Override to perform setup.
        """
        pass

    async def shutdown(self) -> None:
        """Release network resources held by the plugin."""
        pass

    def attribute_types(self) -> Dict[str, DataType]:
        """Map of declared attribute key to data type."""
        return {attr.key: attr.data_type for attr in self.attributes}
