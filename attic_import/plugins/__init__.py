"""Import plugin system for pulling catalogue data into the inventory."""

from attic_import.plugins.base import (
    AttributeValue,
    DataType,
    ImportData,
    ImportPlugin,
    PluginAttribute,
    PluginMetadata,
    SearchField,
    SearchResult,
)
from attic_import.plugins.registry import PluginRegistry, get_registry, reset_registry

__all__ = [
    "AttributeValue",
    "DataType",
    "ImportData",
    "ImportPlugin",
    "PluginAttribute",
    "PluginMetadata",
    "SearchField",
    "SearchResult",
    "PluginRegistry",
    "get_registry",
    "reset_registry",
]
