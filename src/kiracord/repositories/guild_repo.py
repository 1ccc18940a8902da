"""
Repository for the guilds table.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import aiosqlite

from kiracord.util.logger import get_logger

logger = get_logger("guild_repo")


class GuildRepository:
    """CRUD for the guilds table; rows hold the guild settings record."""

    async def get_all(self, conn: aiosqlite.Connection) -> Dict[str, Dict[str, Any]]:
        async with conn.execute("SELECT guild_id, data FROM guilds") as cursor:
            rows = await cursor.fetchall()
        return {row[0]: _decode(row[0], row[1]) for row in rows}

    async def get(self, conn: aiosqlite.Connection, guild_id: str) -> Optional[Dict[str, Any]]:
        async with conn.execute("SELECT data FROM guilds WHERE guild_id = ?", (str(guild_id),)) as cursor:
            row = await cursor.fetchone()
        return _decode(str(guild_id), row[0]) if row else None

    async def upsert(self, conn: aiosqlite.Connection, guild_id: str, record: Dict[str, Any]) -> None:
        await conn.execute(
            """
            INSERT INTO guilds (guild_id, data) VALUES (?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                data = excluded.data,
                updated_at = CURRENT_TIMESTAMP
            """,
            (str(guild_id), json.dumps(record)),
        )

    async def delete(self, conn: aiosqlite.Connection, guild_id: str) -> None:
        await conn.execute("DELETE FROM guilds WHERE guild_id = ?", (str(guild_id),))


def _decode(guild_id: str, data: str) -> Dict[str, Any]:
    try:
        record = json.loads(data or "{}")
    except json.JSONDecodeError:
        logger.error("[GUILD REPO] Corrupt record for guild %s, using defaults", guild_id)
        record = {}
    if not isinstance(record, dict):
        logger.error("[GUILD REPO] Record for guild %s is not an object, using defaults", guild_id)
        record = {}
    record.setdefault("id", guild_id)
    return record
