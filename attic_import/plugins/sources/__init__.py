"""Source plugins package.

This package contains one import plugin per external catalogue.
"""

from attic_import.plugins.sources.bgg import BGGPlugin
from attic_import.plugins.sources.google_books import GoogleBooksPlugin
from attic_import.plugins.sources.tmdb import TMDBMoviesPlugin, TMDBSeriesPlugin

__all__ = [
    "BGGPlugin",
    "GoogleBooksPlugin",
    "TMDBMoviesPlugin",
    "TMDBSeriesPlugin",
]
