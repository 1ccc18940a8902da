"""
Per-message entry point of the governance core.

``GuildEngine.handle_message`` runs one inbound guild message through
bookkeeping, the blacklist gate, then either command dispatch (prefixed
messages) or autorespond matching. It never raises: an unexpected failure is
logged and answered with an empty outcome.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from kiracord.commands.dispatcher import CommandDispatcher
from kiracord.configuration.app_configuration import AppConfig
from kiracord.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from kiracord.datatypes.guild_datatypes import CHANNEL_TYPE_JOIN
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome, SideEffect
from kiracord.guild.guild_state import GuildState
from kiracord.util.logger import get_logger

logger = get_logger("guild_engine")


class GuildEngine:
    def __init__(self, dispatcher: CommandDispatcher, config: AppConfig) -> None:
        self.dispatcher = dispatcher
        self.config = config

    async def handle_message(self, guild: GuildState, message: InboundMessage) -> MessageOutcome:
        try:
            return await self._handle_message(guild, message)
        except Exception:
            logger.exception(
                "[ENGINE] Unhandled error for message %s on guild %s", message.message_id, guild.id
            )
            return MessageOutcome()

    async def _handle_message(self, guild: GuildState, message: InboundMessage) -> MessageOutcome:
        user = guild.handle_interaction(
            message.author_id, message.author_name, message.author_role_ids, is_message=True
        )
        guild.record_message_date(message.author_id, message.created_at)
        # Bookkeeping alone marks the guild dirty
        outcome = MessageOutcome(state_changed=True)

        operator = self.config.is_operator(message.author_id)
        if not message.author_is_bot and not operator:
            gated = guild.moderation.enforce(message, user, guild.mute_role_id, guild.translate)
            if gated is not None:
                return outcome.merge(gated)

        prefix = self.config.command_prefix
        if message.content.startswith(prefix):
            return outcome.merge(await self.dispatcher.dispatch(guild, message, prefix))

        if guild.autoresponds.has_match(message.content):
            response = guild.autoresponds.lookup(message.content)
            if response:
                logger.info("[AUTORESPOND] on %s in #%s: %s", guild.id, message.channel_id, message.content)
                return outcome.merge(MessageOutcome.text(response))

        return outcome

    def handle_join(
        self,
        guild: GuildState,
        user_id: UserID,
        username: str,
        joined_at: Optional[datetime] = None,
    ) -> MessageOutcome:
        """Record a new member and greet them in every ``join`` channel."""
        guild.record_join(user_id, username, joined_at)
        logger.info("[USER] %s joined guild %s", user_id, guild.id)

        greeting = guild.translate("message.std.joined", f"<@{user_id}>")
        effects: List[SideEffect] = [
            SideEffect.send_message(GuildID(guild.id), ChannelID(channel.channel_id), greeting)
            for channel in guild.channels.by_type(CHANNEL_TYPE_JOIN)
        ]
        return MessageOutcome(side_effects=effects, state_changed=True)
