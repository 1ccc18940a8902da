"""
Persistence tests against a temporary SQLite file.
"""

import json

import pytest

from kiracord.database.db_connection import ConnectionManager
from kiracord.datatypes.guild_datatypes import ChannelConfig, Role
from kiracord.services.guild_state_manager import GuildStateManager
from kiracord.services.guild_state_service import GuildStateService


def _service(translations):
    return GuildStateService(ConnectionManager(), translations)


def _populate(guild):
    user, _ = guild.ensure_user("2000", "alice")
    user.enabled_permissions.add("admin.*")
    user.disabled_permissions.add("admin.config")
    user.add_entry("note", author_id="9000")
    user.message_count = 4
    guild.roles.add_role(Role(id="10", enabled_permissions={"user.quote"}))
    guild.channels.add_config(ChannelConfig.create("3000", "https://example.com/rss"))
    guild.aliases.set("p", "ping")
    guild.moderation.add_pattern("/sp[a4]m/")
    guild.mute_role = "77"
    guild.quotes.append("transient")


@pytest.mark.asyncio
async def test_connection_requires_open():
    manager = ConnectionManager()
    assert not manager.is_open
    with pytest.raises(RuntimeError):
        manager.connection


@pytest.mark.asyncio
async def test_persist_and_load_round_trip(tmp_path, guild, translations):
    service = _service(translations)
    await service.initialize(tmp_path / "db" / "kiracord.db")
    try:
        _populate(guild)
        assert await service.persist_guild(guild)

        loaded = await service.load_all()
        assert list(loaded) == [guild.id]
        restored = loaded[guild.id]

        assert restored.to_record() == guild.to_record()
        user = restored.get_user("2000")
        assert user.to_record() == guild.get_user("2000").to_record()
        assert restored.roles.get_role("10").enabled_permissions == {"user.quote"}
        assert len(restored.channels) == 1
        assert restored.quotes == []
        assert restored.moderation.is_blacklisted("SP4M")

        single = await service.load_guild(guild.id)
        assert single.get_user("2000") is not None
        assert await service.load_guild("404") is None
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_persist_replaces_removed_entities(tmp_path, guild, translations):
    service = _service(translations)
    await service.initialize(tmp_path / "kiracord.db")
    try:
        _populate(guild)
        await service.persist_guild(guild)
        guild.users.delete_user("2000")
        await service.persist_guild(guild)

        restored = await service.load_guild(guild.id)
        assert restored.get_user("2000") is None
        assert len(restored.roles) == 1
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_delete_user_and_guild(tmp_path, guild, translations):
    service = _service(translations)
    await service.initialize(tmp_path / "kiracord.db")
    try:
        _populate(guild)
        await service.persist_guild(guild)

        assert await service.delete_user(guild.id, "2000")
        assert not await service.delete_user(guild.id, "2000")
        assert (await service.load_guild(guild.id)).get_user("2000") is None

        assert await service.delete_guild(guild.id)
        assert await service.load_all() == {}
        async with service.connection.read() as conn:
            async with conn.execute("SELECT COUNT(*) FROM guild_roles") as cursor:
                (count,) = await cursor.fetchone()
        assert count == 0
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_corrupt_rows_are_tolerated(tmp_path, guild, translations):
    service = _service(translations)
    await service.initialize(tmp_path / "kiracord.db")
    try:
        await service.persist_guild(guild)
        async with service.connection.transaction() as conn:
            await conn.execute("UPDATE guilds SET data = ? WHERE guild_id = ?", ("{not json", guild.id))
            await conn.execute(
                "INSERT INTO guild_users (guild_id, user_id, data) VALUES (?, ?, ?)",
                (guild.id, "55", json.dumps({"username": "bob"})),
            )
        loaded = await service.load_all()
        assert loaded[guild.id].id == guild.id
        assert loaded[guild.id].get_user("55").username == "bob"
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_manager_schedules_and_flushes_saves(tmp_path, translations):
    manager = GuildStateManager(_service(translations))
    await manager.async_init(tmp_path / "kiracord.db")
    try:
        guild = manager.ensure_guild("1000", "Test Guild")
        assert manager.ensure_guild("1000") is guild
        guild.ensure_user("2000", "alice")
        manager.mark_dirty("1000")
        manager.mark_dirty("1000")
        await manager.flush()

        stored = await manager.service.load_guild("1000")
        assert stored.name == "Test Guild"
        assert stored.get_user("2000") is not None
        assert manager.list_guild_ids() == ["1000"]
    finally:
        await manager.shutdown()
    assert not manager.service.connection.is_open


@pytest.mark.asyncio
async def test_manager_reload_replaces_state(tmp_path, translations):
    manager = GuildStateManager(_service(translations))
    await manager.async_init(tmp_path / "kiracord.db")
    try:
        guild = manager.ensure_guild("1000", "Test Guild")
        guild.aliases.set("p", "ping")
        await manager.flush()
        assert await manager.persist_guild("1000")

        guild.aliases.set("q", "quote")
        guild.quotes.append("gone after reload")
        guild.moderation.add_mute_vote("5", "1")

        reloaded = await manager.reload_guild("1000")

        assert reloaded is guild
        assert guild.aliases.resolve("p") == "ping"
        assert guild.aliases.resolve("q") is None
        assert guild.quotes == []
        assert guild.moderation.mute_vote_count("5") == 0
    finally:
        await manager.shutdown()


@pytest.mark.asyncio
async def test_manager_loads_existing_guilds(tmp_path, translations):
    path = tmp_path / "kiracord.db"
    first = GuildStateManager(_service(translations))
    await first.async_init(path)
    first.ensure_guild("1000", "Stored")
    await first.shutdown()

    second = GuildStateManager(_service(translations))
    await second.async_init(path)
    try:
        assert second.get_guild("1000").name == "Stored"
        assert await second.delete_user("1000", "404") is False
    finally:
        await second.shutdown()
