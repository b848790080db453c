"""Loading of the compiled-in import plugins.

Plugins are a closed set built into the service; there is no discovery from
entry points or files. The loader instantiates each adapter with its settings
section and registers it.
"""

import logging

import httpx

from attic_import.config import Settings, get_settings
from attic_import.plugins.base import ImportPlugin
from attic_import.plugins.client import RateLimiter
from attic_import.plugins.registry import PluginRegistry, get_registry
from attic_import.plugins.sources import (
    BGGPlugin,
    GoogleBooksPlugin,
    TMDBMoviesPlugin,
    TMDBSeriesPlugin,
)
from attic_import.plugins.sources.bgg import PLUGIN_ID as BGG_PLUGIN_ID

logger = logging.getLogger(__name__)


def builtin_plugins(
    settings: Settings,
    rate_limiter: RateLimiter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ImportPlugin]:
    """Instantiate the built-in plugins.

    Args:
        settings: Application settings
        rate_limiter: Owner of the per-plugin rate gates
        transport: Optional httpx transport shared by all plugins (tests)

    Returns:
        New plugin instances, not yet registered
    """
    rate_limiter = rate_limiter or RateLimiter()
    timeout = settings.imports.http_timeout_seconds

    return [
        GoogleBooksPlugin(settings.google_books, timeout=timeout, transport=transport),
        TMDBMoviesPlugin(settings.tmdb, timeout=timeout, transport=transport),
        TMDBSeriesPlugin(settings.tmdb, timeout=timeout, transport=transport),
        BGGPlugin(
            settings.bgg,
            gate=rate_limiter.gate(BGG_PLUGIN_ID, settings.bgg.min_interval_seconds),
            transport=transport,
        ),
    ]


def register_builtin_plugins(
    registry: PluginRegistry | None = None,
    settings: Settings | None = None,
    rate_limiter: RateLimiter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Register every built-in plugin.

    Args:
        registry: Registry to load plugins into. If None, uses the global registry.
        settings: Application settings. If None, uses the cached settings.
        rate_limiter: Owner of the per-plugin rate gates
        transport: Optional httpx transport shared by all plugins (tests)

    Returns:
        Number of plugins registered

    Raises:
        ValueError: If a plugin is already registered or declares a conflicting key
    """
    if registry is None:
        registry = get_registry()
    settings = settings or get_settings()

    count = 0
    for plugin in builtin_plugins(settings, rate_limiter, transport):
        registry.register(plugin)
        if plugin.disabled_reason:
            logger.warning(f"Plugin {plugin.id} is unusable: {plugin.disabled_reason}")
        count += 1

    logger.info(f"Loaded {count} built-in plugins")
    return count
