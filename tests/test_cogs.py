"""
Listener cogs driven with mocked Discord objects.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from kiracord.bot.cogs import events_listener, message_listener
from kiracord.commands.builtin import build_default_registry
from kiracord.commands.dispatcher import CommandDispatcher
from kiracord.datatypes.guild_datatypes import CHANNEL_TYPE_JOIN, ChannelConfig
from kiracord.engine.guild_engine import GuildEngine


@pytest.fixture
def bot():
    bot = MagicMock()
    bot.user = SimpleNamespace(id=1)
    bot.guilds = []
    return bot


@pytest.fixture
def manager(guild):
    manager = MagicMock()
    manager.ensure_guild.return_value = guild
    manager.get_guild.return_value = guild
    return manager


@pytest.fixture
def engine(config):
    return GuildEngine(CommandDispatcher(build_default_registry(), config), config)


def _message(content, author_id=2000, guild_present=True):
    channel = MagicMock()
    channel.id = 3000
    channel.send = AsyncMock()
    author = SimpleNamespace(id=author_id, name="alice", roles=[SimpleNamespace(id=10)], bot=False)
    return SimpleNamespace(
        id=5000,
        guild=SimpleNamespace(id=1000, name="Test Guild") if guild_present else None,
        channel=channel,
        author=author,
        content=content,
        jump_url="https://discord.com/channels/1000/3000/5000",
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_message_is_answered_and_guild_marked_dirty(bot, manager, engine, guild):
    cog = message_listener.MessageListenerCog(bot, manager, engine)
    message = _message("!ping")

    await cog.on_message(message)

    message.channel.send.assert_awaited_once_with("Pong!")
    manager.ensure_guild.assert_called_once_with(1000, "Test Guild")
    manager.mark_dirty.assert_called_once_with(guild.id)
    assert guild.get_user("2000").message_count == 1
    assert guild.roles.get_role("10") is not None


@pytest.mark.asyncio
async def test_direct_and_own_messages_are_ignored(bot, manager, engine):
    cog = message_listener.MessageListenerCog(bot, manager, engine)

    await cog.on_message(_message("!ping", guild_present=False))
    await cog.on_message(_message("!ping", author_id=1))

    manager.ensure_guild.assert_not_called()


@pytest.mark.asyncio
async def test_ready_registers_guild_roles(bot, manager, engine, guild):
    bot.guilds = [SimpleNamespace(id=1000, name="Test Guild", roles=[SimpleNamespace(id=10), SimpleNamespace(id=11)])]
    cog = events_listener.EventsListenerCog(bot, manager, engine)

    await cog.on_ready()

    assert len(guild.roles) == 2
    manager.mark_dirty.assert_called_once_with(guild.id)


@pytest.mark.asyncio
async def test_member_join_greets(bot, manager, engine, guild):
    channel = MagicMock()
    channel.send = AsyncMock()
    bot.get_channel.return_value = channel
    guild.channels.add_config(ChannelConfig.create("3001", type_tag=CHANNEL_TYPE_JOIN))
    cog = events_listener.EventsListenerCog(bot, manager, engine)
    member = SimpleNamespace(
        id=2000, name="alice", guild=SimpleNamespace(id=1000, name="Test Guild"),
        joined_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    await cog.on_member_join(member)

    bot.get_channel.assert_called_with(3001)
    channel.send.assert_awaited_once_with("Welcome <@2000>!")
    assert guild.get_user("2000").joined_server == "2024-01-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_member_update_tracks_names_and_roles(bot, manager, engine, guild):
    guild.ensure_user("2000", "alice")
    cog = events_listener.EventsListenerCog(bot, manager, engine)
    home = SimpleNamespace(id=1000)
    before = SimpleNamespace(id=2000, name="alice", roles=[], guild=home)
    after = SimpleNamespace(id=2000, name="alicia", roles=[SimpleNamespace(id=12)], guild=home)

    await cog.on_member_update(before, before)
    manager.mark_dirty.assert_not_called()

    await cog.on_member_update(before, after)
    assert guild.get_user("2000").username == "alicia"
    assert guild.roles.get_role("12") is not None
    manager.mark_dirty.assert_called_once_with(guild.id)


def test_setup_adds_cogs(bot, manager, engine):
    message_listener.setup(bot, manager, engine)
    events_listener.setup(bot, manager, engine)
    assert bot.add_cog.call_count == 2
