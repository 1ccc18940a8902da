"""
Repositories for the per-guild entity tables (users, roles, channel configs).

All three tables share one shape: ``(guild_id, <entity key>, data)`` with the
entity's flat record as JSON in ``data``.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

import aiosqlite

from kiracord.util.logger import get_logger

logger = get_logger("entity_repo")

Record = Dict[str, Any]


class EntityRecordRepository:
    """CRUD for one entity table keyed by (guild_id, ``key_column``)."""

    table: str = ""
    key_column: str = ""

    def _row_values(self, guild_id: str, record: Record) -> tuple:
        return (str(guild_id), str(record["id"]), json.dumps(record))

    def _insert_sql(self) -> str:
        return f"INSERT INTO {self.table} (guild_id, {self.key_column}, data) VALUES (?, ?, ?)"

    async def get_for_guild(self, conn: aiosqlite.Connection, guild_id: str) -> List[Record]:
        async with conn.execute(
            f"SELECT {self.key_column}, data FROM {self.table} WHERE guild_id = ? ORDER BY rowid",
            (str(guild_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [record for record in (self._decode(row[0], row[1]) for row in rows) if record is not None]

    async def get_for_guilds(self, conn: aiosqlite.Connection, guild_ids: List[str]) -> Dict[str, List[Record]]:
        """Return the records of several guilds in one query."""
        if not guild_ids:
            return {}

        placeholders = ",".join("?" * len(guild_ids))
        async with conn.execute(
            f"SELECT guild_id, {self.key_column}, data FROM {self.table} WHERE guild_id IN ({placeholders}) ORDER BY rowid",
            [str(gid) for gid in guild_ids],
        ) as cursor:
            rows = await cursor.fetchall()

        result: Dict[str, List[Record]] = {str(gid): [] for gid in guild_ids}
        for guild_id, entity_id, data in rows:
            record = self._decode(entity_id, data)
            if record is not None:
                result.setdefault(guild_id, []).append(record)
        return result

    async def replace(self, conn: aiosqlite.Connection, guild_id: str, records: Iterable[Record]) -> None:
        """Replace every row of a guild with ``records``."""
        await conn.execute(f"DELETE FROM {self.table} WHERE guild_id = ?", (str(guild_id),))
        rows = [self._row_values(guild_id, record) for record in records]
        if rows:
            await conn.executemany(self._insert_sql(), rows)

    async def delete(self, conn: aiosqlite.Connection, guild_id: str, entity_id: str) -> bool:
        cursor = await conn.execute(
            f"DELETE FROM {self.table} WHERE guild_id = ? AND {self.key_column} = ?",
            (str(guild_id), str(entity_id)),
        )
        return cursor.rowcount > 0

    def _decode(self, entity_id: str, data: str) -> Record | None:
        try:
            record = json.loads(data)
        except json.JSONDecodeError:
            logger.error("[ENTITY REPO] Skipping corrupt row %s in %s", entity_id, self.table)
            return None
        if not isinstance(record, dict):
            logger.error("[ENTITY REPO] Skipping non-object row %s in %s", entity_id, self.table)
            return None
        record.setdefault("id", entity_id)
        return record


class UserRepository(EntityRecordRepository):
    table = "guild_users"
    key_column = "user_id"


class RoleRepository(EntityRecordRepository):
    table = "guild_roles"
    key_column = "role_id"


class ChannelConfigRepository(EntityRecordRepository):
    table = "channel_configs"
    key_column = "config_id"

    def _row_values(self, guild_id: str, record: Record) -> tuple:
        return (str(guild_id), str(record["id"]), str(record.get("channel_id", "")), json.dumps(record))

    def _insert_sql(self) -> str:
        return "INSERT INTO channel_configs (guild_id, config_id, channel_id, data) VALUES (?, ?, ?, ?)"
