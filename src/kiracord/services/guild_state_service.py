"""
GuildStateService: orchestrates guild persistence across the repositories.

- Load every guild at startup with one query per table (no joins)
- Persist one guild completely (settings + users + roles + channel configs)
  inside a single transaction, replacing the stored rows
- Per-guild locks so different guilds persist concurrently

The service never does SQL itself.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from kiracord.database.db_connection import ConnectionManager, db_connection
from kiracord.database.db_schema import SchemaManager
from kiracord.datatypes.guild_datatypes import ChannelConfig, Role, User
from kiracord.guild.guild_state import GuildState
from kiracord.i18n.translations import TranslationManager
from kiracord.repositories.entity_repo import ChannelConfigRepository, RoleRepository, UserRepository
from kiracord.repositories.guild_repo import GuildRepository
from kiracord.util.logger import get_logger

logger = get_logger("guild_state_service")


class GuildStateService:
    """Loads and stores ``GuildState`` aggregates."""

    def __init__(
        self,
        connection: ConnectionManager = db_connection,
        translations: Optional[TranslationManager] = None,
    ) -> None:
        self.connection = connection
        self.translations = translations or TranslationManager()
        self._guild_repo = GuildRepository()
        self._user_repo = UserRepository()
        self._role_repo = RoleRepository()
        self._channel_repo = ChannelConfigRepository()
        self._per_guild_locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, guild_id: str) -> asyncio.Lock:
        gid = str(guild_id)
        if gid not in self._per_guild_locks:
            self._per_guild_locks[gid] = asyncio.Lock()
        return self._per_guild_locks[gid]

    async def initialize(self, path: Path) -> None:
        """Open the database and create the schema."""
        await self.connection.open(path)
        async with self.connection.read() as conn:
            await SchemaManager.initialize_schema(conn)
        logger.info("[GUILD STATE SERVICE] Database initialized")

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load_all(self) -> Dict[str, GuildState]:
        async with self.connection.read() as conn:
            guild_records = await self._guild_repo.get_all(conn)
            if not guild_records:
                return {}

            guild_ids = list(guild_records.keys())
            users = await self._user_repo.get_for_guilds(conn, guild_ids)
            roles = await self._role_repo.get_for_guilds(conn, guild_ids)
            channels = await self._channel_repo.get_for_guilds(conn, guild_ids)

        result: Dict[str, GuildState] = {}
        for guild_id, record in guild_records.items():
            guild = self._build(record, users.get(guild_id, []), roles.get(guild_id, []), channels.get(guild_id, []))
            if guild is not None:
                result[guild_id] = guild

        logger.info("[GUILD STATE SERVICE] Loaded %d guilds from database", len(result))
        return result

    async def load_guild(self, guild_id: str) -> Optional[GuildState]:
        """Load one guild completely, or None if it was never stored."""
        async with self.connection.read() as conn:
            record = await self._guild_repo.get(conn, guild_id)
            if record is None:
                return None
            users = await self._user_repo.get_for_guild(conn, guild_id)
            roles = await self._role_repo.get_for_guild(conn, guild_id)
            channels = await self._channel_repo.get_for_guild(conn, guild_id)

        return self._build(record, users, roles, channels)

    def _build(
        self,
        record: Dict[str, Any],
        users: List[Dict[str, Any]],
        roles: List[Dict[str, Any]],
        channels: List[Dict[str, Any]],
    ) -> Optional[GuildState]:
        try:
            return GuildState.from_record(
                record,
                translations=self.translations,
                users=[User.from_record(entry) for entry in users],
                roles=[Role.from_record(entry) for entry in roles],
                channels=[ChannelConfig.from_record(entry) for entry in channels],
            )
        except (KeyError, TypeError, ValueError):
            logger.exception("[GUILD STATE SERVICE] Skipping unreadable guild %s", record.get("id"))
            return None

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def persist_guild(self, guild: GuildState) -> bool:
        """Replace everything stored for ``guild`` in one transaction."""
        guild_record = guild.to_record()
        user_records = [user.to_record() for user in guild.users]
        role_records = [role.to_record() for role in guild.roles]
        channel_records = [channel.to_record() for channel in guild.channels]

        async with self._lock_for(guild.id):
            try:
                async with self.connection.transaction() as conn:
                    await self._guild_repo.upsert(conn, guild.id, guild_record)
                    await self._user_repo.replace(conn, guild.id, user_records)
                    await self._role_repo.replace(conn, guild.id, role_records)
                    await self._channel_repo.replace(conn, guild.id, channel_records)

                logger.debug(
                    "[GUILD STATE SERVICE] Persisted guild %s (%d users, %d roles, %d channel configs)",
                    guild.id, len(user_records), len(role_records), len(channel_records),
                )
                return True
            except Exception:
                logger.exception("[GUILD STATE SERVICE] Failed to persist guild %s", guild.id)
                return False

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_user(self, guild_id: str, user_id: str) -> bool:
        try:
            async with self.connection.transaction() as conn:
                deleted = await self._user_repo.delete(conn, guild_id, user_id)
            return deleted
        except Exception:
            logger.exception("[GUILD STATE SERVICE] Failed to delete user %s of guild %s", user_id, guild_id)
            return False

    async def delete_guild(self, guild_id: str) -> bool:
        """Delete a guild and, via CASCADE, all of its entity rows."""
        try:
            async with self.connection.transaction() as conn:
                await self._guild_repo.delete(conn, guild_id)
            logger.info("[GUILD STATE SERVICE] Deleted all data for guild %s", guild_id)
            return True
        except Exception:
            logger.exception("[GUILD STATE SERVICE] Failed to delete guild %s", guild_id)
            return False

    async def close(self) -> None:
        await self.connection.close()
