"""
In-memory registry of every guild's live state.

Responsibilities:
- Hold one ``GuildState`` per guild, created on demand
- Schedule best-effort background persistence when a guild changed
- Reload a guild from storage, replacing its in-memory state
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Set

from kiracord.guild.guild_state import GuildState
from kiracord.i18n.translations import TranslationManager
from kiracord.services.guild_state_service import GuildStateService
from kiracord.util.logger import get_logger

logger = get_logger("guild_state_manager")


class GuildStateManager:
    """
    Owner of all ``GuildState`` objects.

    Persistence is coalesced per guild: while a save for a guild is queued or
    running, further change notifications only mark it dirty again and the
    running task saves once more before it finishes.
    """

    def __init__(
        self,
        service: GuildStateService,
        translations: Optional[TranslationManager] = None,
        default_language: str = "en",
    ) -> None:
        self.service = service
        self.translations = translations or service.translations
        self.default_language = default_language
        self.guilds: Dict[str, GuildState] = {}

        self._dirty: Set[str] = set()
        self._persist_tasks: Dict[str, asyncio.Task] = {}
        self._initialized = False

        logger.info("[GUILD STATE MANAGER] Guild state manager initialized")

    async def async_init(self, database_path: Path) -> None:
        """Open the database and load every stored guild."""
        if self._initialized:
            return
        await self.service.initialize(database_path)
        self.guilds = await self.service.load_all()
        self._initialized = True
        logger.info("[GUILD STATE MANAGER] Loaded %d guilds", len(self.guilds))

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def get_guild(self, guild_id: object) -> Optional[GuildState]:
        return self.guilds.get(str(guild_id))

    def ensure_guild(self, guild_id: object, name: str = "") -> GuildState:
        """Return the guild's state, creating (and scheduling a save of) a fresh one."""
        gid = str(guild_id)
        guild = self.guilds.get(gid)
        if guild is None:
            guild = GuildState.create(gid, name=name, language=self.default_language, translations=self.translations)
            self.guilds[gid] = guild
            logger.info("[GUILD STATE MANAGER] Created state for guild %s (%s)", gid, name)
            self.mark_dirty(gid)
        elif name and guild.name != name:
            guild.name = name
            self.mark_dirty(gid)
        return guild

    def list_guild_ids(self) -> List[str]:
        return list(self.guilds.keys())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def mark_dirty(self, guild_id: object) -> None:
        """Schedule a save of the guild's current state."""
        gid = str(guild_id)
        self._dirty.add(gid)
        if gid not in self._persist_tasks:
            self._trigger_persist(gid)

    def _trigger_persist(self, guild_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("[GUILD STATE MANAGER] Cannot persist guild %s: no running event loop", guild_id)
            return

        task = loop.create_task(self._persist_until_clean(guild_id))
        self._persist_tasks[guild_id] = task

        def _cleanup(completed: asyncio.Task) -> None:
            if self._persist_tasks.get(guild_id) is completed:
                del self._persist_tasks[guild_id]
            try:
                if not completed.result():
                    logger.error("[GUILD STATE MANAGER] Failed to persist guild %s", guild_id)
            except asyncio.CancelledError:
                logger.warning("[GUILD STATE MANAGER] Persist of guild %s was cancelled", guild_id)
            except Exception:
                logger.exception("[GUILD STATE MANAGER] Error while persisting guild %s", guild_id)

        task.add_done_callback(_cleanup)

    async def _persist_until_clean(self, guild_id: str) -> bool:
        ok = True
        while guild_id in self._dirty:
            self._dirty.discard(guild_id)
            guild = self.guilds.get(guild_id)
            if guild is None:
                logger.warning("[GUILD STATE MANAGER] Cannot persist guild %s: not in cache", guild_id)
                return False
            ok = await self.service.persist_guild(guild)
        return ok

    async def persist_guild(self, guild_id: object) -> bool:
        """Save the guild now and wait for the result."""
        guild = self.guilds.get(str(guild_id))
        if guild is None:
            return False
        return await self.service.persist_guild(guild)

    async def flush(self) -> None:
        """Wait until every scheduled save has finished."""
        while self._persist_tasks:
            await asyncio.gather(*list(self._persist_tasks.values()), return_exceptions=True)

    # ------------------------------------------------------------------
    # Reload / delete
    # ------------------------------------------------------------------

    async def reload_guild(self, guild_id: object) -> GuildState:
        """Replace the guild's in-memory state with what storage holds.

        Throttle windows, mute votes and quotes start empty afterwards.
        """
        gid = str(guild_id)
        guild = self.ensure_guild(gid)
        pending = self._persist_tasks.get(gid)
        if pending is not None:
            await asyncio.gather(pending, return_exceptions=True)

        fresh = await self.service.load_guild(gid)
        if fresh is None:
            logger.warning("[GUILD STATE MANAGER] Guild %s has nothing stored, only resetting caches", gid)
            guild.reset_transient()
        else:
            guild.replace_with(fresh)
        logger.info("[GUILD STATE MANAGER] Reloaded guild %s", gid)
        return guild

    async def delete_user(self, guild_id: object, user_id: object) -> bool:
        guild = self.guilds.get(str(guild_id))
        if guild is not None:
            guild.users.delete_user(user_id)
        return await self.service.delete_user(str(guild_id), str(user_id))

    async def shutdown(self) -> None:
        """Finish pending saves and close storage."""
        await self.flush()
        await self.service.close()
        logger.info("[GUILD STATE MANAGER] Guild state manager shutdown complete")
