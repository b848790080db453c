"""Repository for persisted plugin state."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attic_import.db.models import PluginStateModel, utcnow


class PluginStateRepository:
    """Repository for the per-plugin enabled flag."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, plugin_id: str) -> PluginStateModel | None:
        result = await self.session.execute(
            select(PluginStateModel).where(PluginStateModel.plugin_id == plugin_id)
        )
        return result.scalar_one_or_none()

    async def set_enabled(self, plugin_id: str, enabled: bool) -> PluginStateModel:
        """Insert or update the enabled flag of a plugin.

        Args:
            plugin_id: Plugin identifier
            enabled: New value of the flag

        Returns:
            The persisted state row
        """
        state = await self.get(plugin_id)
        if state is None:
            state = PluginStateModel(plugin_id=plugin_id, enabled=enabled)
            self.session.add(state)
        else:
            state.enabled = enabled
            state.updated_at = utcnow()
        await self.session.flush()
        return state
