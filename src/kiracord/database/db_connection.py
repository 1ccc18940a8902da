"""
The one aiosqlite connection Kiracord keeps open while the bot runs.

Guild state is read in bulk at startup and written back in small per-guild
transactions afterwards, so a single connection in WAL mode is enough.
Readers go straight to the connection. Writers queue on ``_write_sem`` so
two guild flushes never interleave statements inside one transaction.

    await db_connection.open(path)

    async with db_connection.read() as conn:
        rows = await conn.execute_fetchall("SELECT guild_id FROM guilds")

    async with db_connection.transaction() as conn:
        await conn.execute("DELETE FROM guilds WHERE guild_id = ?", (guild_id,))

    await db_connection.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from kiracord.util.logger import get_logger

logger = get_logger("database_connection")

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA wal_autocheckpoint = 1000",
)


class ConnectionManager:
    """Owns the connection and the lock serialising write transactions."""

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self._path: Path | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def path(self) -> Path | None:
        return self._path

    async def open(self, path: Path) -> None:
        """Connect to ``path``, creating its directory, and apply the pragmas."""
        if self.is_open:
            logger.warning("[DB] Already connected to %s, not reopening with %s", self._path, path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        for pragma in _PRAGMAS:
            await conn.execute(pragma)
        await conn.commit()

        self._conn = conn
        self._path = path
        logger.info("[DB] Connected to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL into the main file, then disconnect."""
        conn, self._conn = self._conn, None
        if conn is None:
            return

        try:
            await conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await conn.commit()
        except aiosqlite.Error:
            logger.exception("[DB] Could not checkpoint %s before closing", self._path)
        finally:
            await conn.close()
        logger.info("[DB] Disconnected from %s", self._path)

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("No database connection; open() must run before any query")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Exclusive write scope. Commits when the block finishes, rolls back if it raises."""
        async with self._write_sem:
            conn = self.connection
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self.connection


db_connection = ConnectionManager()
