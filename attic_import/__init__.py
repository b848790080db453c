"""Attic Import Plugins.

Pluggable external-data adapters that turn books, movies, TV series and
board games from third-party catalogues into typed, provenance-tagged assets.
"""

__version__ = "1.0.0"
