"""API route handlers."""

from attic_import.api.routes.plugins import router as plugins_router

__all__ = ["plugins_router"]
