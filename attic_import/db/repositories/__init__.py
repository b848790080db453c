"""Database repositories for data access."""

from attic_import.db.repositories.asset import AssetRepository
from attic_import.db.repositories.attribute import AttributeRepository
from attic_import.db.repositories.category import CategoryRepository
from attic_import.db.repositories.plugin_state import PluginStateRepository

__all__ = [
    "AssetRepository",
    "AttributeRepository",
    "CategoryRepository",
    "PluginStateRepository",
]
