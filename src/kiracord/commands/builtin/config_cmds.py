"""
Guild configuration.

    config feed add <channel> <feedURL>
    config feed list [channel]
    config feed color <feedID> <color>
    config feed title <feedID> <title>
    config feed delete <feedID>
    config join add|delete <channel>
    config language list|<code>
    config translation <key> delete|<value>
    config delu <user>
    config muterole <role>|clear
    config logchannel <channel>|clear
    config branch <name>

``reload`` drops the in-memory guild state and reads it back from storage.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import discord

from kiracord.commands.command_datatypes import InvocationContext, ParsedCommand
from kiracord.commands.builtin.helpers import code_list, parse_color, parse_snowflake, truncate
from kiracord.datatypes.guild_datatypes import CHANNEL_TYPE_FEED, CHANNEL_TYPE_JOIN, ChannelConfig
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome
from kiracord.util.logger import get_logger

if TYPE_CHECKING:
    from kiracord.services.guild_state_manager import GuildStateManager

logger = get_logger("config_cmds")

_FEED_ARITY = {"add": (4, 4), "list": (2, 3), "color": (4, 4), "title": (4, 4), "delete": (3, 3)}


class ConfigCommand:
    name = "config"
    permissions: List[str] = ["admin.config"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def validate_syntax(self, command: ParsedCommand) -> bool:
        if command.argc < 2:
            return False
        section = command.arg(0)
        if section == "feed":
            arity = _FEED_ARITY.get(command.arg(1))
            return arity is not None and arity[0] <= command.argc <= arity[1]
        if section == "join":
            return command.arg(1) in ("add", "delete") and command.argc == 3
        if section == "translation":
            return command.argc == 3
        if section in ("language", "delu", "muterole", "logchannel", "branch"):
            return command.argc == 2
        return False

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        handler = getattr(self, f"_{command.arg(0)}")
        return handler(config, guild, command, client)

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    @staticmethod
    def _check_channel(guild, value: str, client: Any) -> tuple[Optional[str], Optional[str]]:
        """Return (channel_id, error_key); the channel must exist and take text."""
        channel_id = parse_snowflake(value)
        if channel_id is None:
            return None, "command.config.channel_not_found"
        if client is None:
            return channel_id, None
        channel = client.get_channel(int(channel_id))
        if channel is None:
            return None, "command.config.channel_not_found"
        if not isinstance(channel, discord.TextChannel):
            return None, "command.config.not_text_channel"
        return channel_id, None

    @staticmethod
    def _format_feeds(configs: List[ChannelConfig]) -> str:
        return "\n".join(f"`{cc.id}` - {cc.feed_url} - {cc.title}" for cc in configs)

    def _feed(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        action = command.arg(1)

        if action == "list":
            return self._feed_list(guild, command, client)

        if action == "add":
            channel_id, error = self._check_channel(guild, command.arg(2), client)
            if error:
                return MessageOutcome.text(guild.translate(error))
            feed = ChannelConfig.create(channel_id, command.arg(3), type_tag=CHANNEL_TYPE_FEED)
            if not guild.channels.add_config(feed):
                return MessageOutcome.text(guild.translate("command.config.channel_exists", feed.id))
            logger.info("[CONFIG] Guild %s added feed %s on channel %s", guild.id, feed.id, channel_id)
            return MessageOutcome.text(guild.translate("command.config.channel_added", feed.id), state_changed=True)

        feed = guild.channels.get_config(command.arg(2))
        if feed is None:
            return MessageOutcome.text(guild.translate("command.config.feed_not_found", config.command_prefix))

        if action == "delete":
            guild.channels.delete_config(feed.id)
            return MessageOutcome.text(guild.translate("command.config.channel_deleted"), state_changed=True)

        if action == "color":
            color = parse_color(command.arg(3))
            if color is None:
                return MessageOutcome.text(guild.translate("command.config.invalid_color", command.arg(3)))
            feed.color = str(color)
            return MessageOutcome.text(guild.translate("command.config.feed_updated", feed.id), state_changed=True)

        feed.title = command.arg(3)
        return MessageOutcome.text(guild.translate("command.config.feed_updated", feed.id), state_changed=True)

    def _feed_list(self, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        if command.argc == 3:
            channel_id, error = self._check_channel(guild, command.arg(2), client)
            if error:
                return MessageOutcome.text(guild.translate(error))
            feeds = [cc for cc in guild.channels.by_channel(channel_id) if cc.type == CHANNEL_TYPE_FEED]
            if not feeds:
                return MessageOutcome.text(guild.translate("command.config.channel_not_found"))
            return MessageOutcome.text(truncate(
                guild.translate("command.config.list_for_channel", f"<#{channel_id}>", self._format_feeds(feeds))
            ))

        grouped: Dict[str, List[ChannelConfig]] = defaultdict(list)
        for cc in guild.channels.by_type(CHANNEL_TYPE_FEED):
            grouped[cc.channel_id].append(cc)
        if not grouped:
            return MessageOutcome.text(guild.translate("command.config.no_feeds"))
        sections = [
            guild.translate("command.config.list_for_channel", f"<#{channel_id}>", self._format_feeds(feeds))
            for channel_id, feeds in grouped.items()
        ]
        return MessageOutcome.text(truncate("\n\n".join(sections)))

    def _join(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        channel_id, error = self._check_channel(guild, command.arg(2), client)
        if error:
            return MessageOutcome.text(guild.translate(error))
        greeting = ChannelConfig.create(channel_id, type_tag=CHANNEL_TYPE_JOIN)

        if command.arg(1) == "add":
            if not guild.channels.add_config(greeting):
                return MessageOutcome.text(guild.translate("command.config.channel_exists", greeting.id))
            return MessageOutcome.text(guild.translate("command.config.channel_added", greeting.id), state_changed=True)

        if not guild.channels.delete_config(greeting.id):
            return MessageOutcome.text(guild.translate("command.config.channel_deleted.error"))
        return MessageOutcome.text(guild.translate("command.config.channel_deleted"), state_changed=True)

    # ------------------------------------------------------------------
    # Language and translations
    # ------------------------------------------------------------------

    def _language(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        code = command.arg(1).lower()
        if code == "list":
            lines = ["ISO-639-1 - Language Name", "-------------------------"]
            lines += [f"{lang:<9} - {guild.translations.language_name(lang)}" for lang in guild.translations.languages()]
            return MessageOutcome.text(code_list(lines))

        if not guild.translations.has_language(code):
            return MessageOutcome.text(guild.translate("command.config.language_not_found", code))
        guild.language = code
        logger.info("[CONFIG] Guild %s switched language to %s", guild.id, code)
        return MessageOutcome.text(guild.translate("command.config.language_changed", code), state_changed=True)

    def _translation(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        key, value = command.arg(1), command.arg(2)
        if value == "delete":
            if not guild.delete_translation(key):
                return MessageOutcome.text(guild.translate("command.config.translation_not_found", key))
            return MessageOutcome.text(guild.translate("command.config.translation_deleted", key), state_changed=True)
        guild.set_translation(key, value)
        return MessageOutcome.text(guild.translate("command.config.translation_set", key), state_changed=True)

    # ------------------------------------------------------------------
    # Members and roles
    # ------------------------------------------------------------------

    def _delu(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        user_id = parse_snowflake(command.arg(1))
        if user_id is None or guild.get_user(user_id) is None:
            return MessageOutcome.text(guild.translate("command.config.user_not_found", command.arg(1)))
        guild.users.delete_user(user_id)
        logger.info("[CONFIG] Guild %s deleted user %s", guild.id, user_id)
        return MessageOutcome.text(guild.translate("command.config.user_deleted", command.arg(1)), state_changed=True)

    def _muterole(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        if command.arg(1) == "clear":
            guild.mute_role = ""
            return MessageOutcome.text(guild.translate("command.config.muterole_cleared"), state_changed=True)
        role_id = parse_snowflake(command.arg(1))
        if role_id is None:
            return MessageOutcome.text(guild.translate("command.config.role_not_found", command.arg(1)))
        guild.mute_role = role_id
        guild.register_roles([role_id])
        return MessageOutcome.text(guild.translate("command.config.muterole_set", role_id), state_changed=True)

    def _logchannel(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        if command.arg(1) == "clear":
            guild.log_channel = ""
            return MessageOutcome.text(guild.translate("command.config.logchannel_cleared"), state_changed=True)
        channel_id, error = self._check_channel(guild, command.arg(1), client)
        if error:
            return MessageOutcome.text(guild.translate(error))
        guild.log_channel = channel_id
        return MessageOutcome.text(guild.translate("command.config.logchannel_set", channel_id), state_changed=True)

    def _branch(self, config, guild, command: ParsedCommand, client: Any) -> MessageOutcome:
        guild.reference_branch = command.arg(1)
        return MessageOutcome.text(guild.translate("command.config.branch_set", command.arg(1)), state_changed=True)


class ReloadCommand:
    name = "reload"
    permissions: List[str] = ["admin.reload"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def __init__(self, manager: "GuildStateManager") -> None:
        self.manager = manager

    def validate_syntax(self, command: ParsedCommand) -> bool:
        return command.argc == 0

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        await self.manager.reload_guild(guild.id)
        return MessageOutcome.text(guild.translate("command.reload.finished"))
