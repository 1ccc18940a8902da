"""
Tests for the per-message engine entry point.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from kiracord.commands.builtin import build_default_registry
from kiracord.commands.dispatcher import CommandDispatcher
from kiracord.datatypes.discord_datatypes import ChannelID, UserID
from kiracord.datatypes.guild_datatypes import CHANNEL_TYPE_JOIN, ChannelConfig
from kiracord.datatypes.message_datatypes import SideEffectType
from kiracord.engine.guild_engine import GuildEngine

from conftest import OPERATOR_ID


@pytest.fixture
def engine(config):
    dispatcher = CommandDispatcher(build_default_registry(), config, client=None)
    return GuildEngine(dispatcher, config)


@pytest.mark.asyncio
async def test_plain_message_only_does_bookkeeping(engine, guild, make_message):
    outcome = await engine.handle_message(guild, make_message("hello everyone", role_ids=[10]))

    assert outcome.state_changed
    assert outcome.is_empty
    user = guild.get_user("2000")
    assert user.message_count == 1
    assert user.last_message == "2024-05-01T12:30:15+00:00"
    assert guild.roles.get_role("10") is not None


@pytest.mark.asyncio
async def test_blacklisted_message_short_circuits(engine, guild, make_message):
    guild.moderation.add_pattern("ping")
    outcome = await engine.handle_message(guild, make_message("!ping"))

    assert outcome.reply is None
    kinds = [effect.kind for effect in outcome.side_effects]
    assert kinds == [SideEffectType.DELETE_MESSAGE, SideEffectType.AUDIT_LOG]
    assert guild.get_user("2000").blacklist_message_count == 1


@pytest.mark.asyncio
async def test_operators_and_bots_bypass_blacklist(engine, guild, make_message):
    guild.moderation.add_pattern("ping")

    outcome = await engine.handle_message(guild, make_message("!ping", author_id=OPERATOR_ID))
    assert outcome.reply.content == "Pong!"

    outcome = await engine.handle_message(guild, make_message("ping me", author_id=3333, is_bot=True))
    assert outcome.is_empty
    assert guild.get_user("3333").blacklist_message_count == 0


@pytest.mark.asyncio
async def test_prefixed_message_is_dispatched(engine, guild, make_message):
    outcome = await engine.handle_message(guild, make_message("!nope"))
    assert outcome.reply.content == "Command `nope` does not exist."
    assert outcome.state_changed


@pytest.mark.asyncio
async def test_autorespond(engine, guild, make_message):
    guild.autoresponds.add("good morning", "Morning!")
    outcome = await engine.handle_message(guild, make_message("Good morning!!"))
    assert outcome.reply.content == "Morning!"

    outcome = await engine.handle_message(guild, make_message("good mornin"))
    assert outcome.reply.content == "Morning!"

    outcome = await engine.handle_message(guild, make_message("completely different"))
    assert outcome.reply is None


@pytest.mark.asyncio
async def test_prefix_wins_over_autorespond(engine, guild, make_message):
    guild.autoresponds.add("!ping", "should not be used")
    outcome = await engine.handle_message(guild, make_message("!ping"))
    assert outcome.reply.content == "Pong!"


@pytest.mark.asyncio
async def test_unexpected_errors_yield_empty_outcome(engine, guild, make_message, monkeypatch):
    monkeypatch.setattr(guild.moderation, "enforce", MagicMock(side_effect=RuntimeError("boom")))
    outcome = await engine.handle_message(guild, make_message("hello"))
    assert outcome.is_empty
    assert not outcome.state_changed


def test_handle_join_greets_in_join_channels(engine, guild):
    guild.channels.add_config(ChannelConfig.create("3001", type_tag=CHANNEL_TYPE_JOIN))
    guild.channels.add_config(ChannelConfig.create("3002", "https://example.com/rss"))

    joined = datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
    outcome = engine.handle_join(guild, UserID(2000), "alice", joined)

    assert outcome.state_changed
    (greeting,) = outcome.side_effects
    assert greeting.kind is SideEffectType.SEND_MESSAGE
    assert greeting.channel_id == ChannelID(3001)
    assert greeting.content == "Welcome <@2000>!"
    assert guild.get_user("2000").joined_server == "2024-02-03T04:05:06+00:00"


def test_handle_join_without_join_channels(engine, guild):
    outcome = engine.handle_join(guild, UserID(2000), "alice")
    assert outcome.side_effects == []
    assert guild.get_user("2000") is not None
