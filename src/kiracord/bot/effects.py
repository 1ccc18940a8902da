"""
Applies engine outcomes against the Discord API.

Every platform call failing with a ``discord.DiscordException`` is wrapped in
``ExternalServiceFailure``, logged and dropped; one failed side effect never
stops the remaining ones.
"""

from __future__ import annotations

from typing import Any, Optional

import discord

from kiracord.datatypes.message_datatypes import MessageOutcome, SideEffect, SideEffectType
from kiracord.errors import ExternalServiceFailure
from kiracord.guild.guild_state import GuildState
from kiracord.util.logger import get_logger

logger = get_logger("effects")


class EffectApplier:
    """Sends replies and performs side-effect requests for one bot."""

    def __init__(self, bot: discord.Client) -> None:
        self.bot = bot

    async def apply(
        self,
        outcome: MessageOutcome,
        guild: GuildState,
        reply_channel: Optional[discord.abc.Messageable] = None,
    ) -> int:
        """Apply ``outcome``; returns the number of failed platform calls."""
        failures = 0

        if outcome.reply is not None and reply_channel is not None:
            try:
                await self._send(reply_channel, outcome.reply.content, outcome.reply.embed)
            except ExternalServiceFailure as exc:
                failures += 1
                logger.warning("[EFFECTS] Reply on guild %s failed: %s", guild.id, exc)

        for effect in outcome.side_effects:
            try:
                await self._apply_one(effect, guild)
            except ExternalServiceFailure as exc:
                failures += 1
                logger.warning("[EFFECTS] %s on guild %s failed: %s", effect.kind.value, guild.id, exc)

        return failures

    async def _apply_one(self, effect: SideEffect, guild: GuildState) -> None:
        if effect.kind is SideEffectType.DELETE_MESSAGE:
            channel = self._channel(effect.channel_id)
            if channel is None:
                raise ExternalServiceFailure(f"channel {effect.channel_id} not found")
            await self._call(channel.get_partial_message(int(effect.message_id)).delete(reason=effect.reason or None))

        elif effect.kind is SideEffectType.ADD_ROLE:
            await self._add_role(effect)

        elif effect.kind is SideEffectType.AUDIT_LOG:
            if not guild.log_channel:
                logger.debug("[EFFECTS] Guild %s has no log channel, audit embed dropped", guild.id)
                return
            channel = self._channel(guild.log_channel)
            if channel is None:
                raise ExternalServiceFailure(f"log channel {guild.log_channel} not found")
            await self._send(channel, "", effect.embed)

        elif effect.kind is SideEffectType.SEND_MESSAGE:
            channel = self._channel(effect.channel_id)
            if channel is None:
                raise ExternalServiceFailure(f"channel {effect.channel_id} not found")
            await self._send(channel, effect.content, effect.embed)

    async def _add_role(self, effect: SideEffect) -> None:
        discord_guild = self.bot.get_guild(int(effect.guild_id))
        if discord_guild is None:
            raise ExternalServiceFailure(f"guild {effect.guild_id} not found")
        role = discord_guild.get_role(int(effect.role_id))
        if role is None:
            raise ExternalServiceFailure(f"role {effect.role_id} not found")

        member = discord_guild.get_member(int(effect.user_id))
        if member is None:
            member = await self._call(discord_guild.fetch_member(int(effect.user_id)))
        await self._call(member.add_roles(role, reason=effect.reason or None))
        logger.info("[EFFECTS] Gave role %s to %s on guild %s", effect.role_id, effect.user_id, effect.guild_id)

    def _channel(self, channel_id: Any) -> Optional[Any]:
        if not channel_id:
            return None
        return self.bot.get_channel(int(channel_id))

    async def _send(self, channel: Any, content: str, embed: Optional[discord.Embed]) -> None:
        if embed is not None:
            await self._call(channel.send(content or None, embed=embed))
        elif content:
            await self._call(channel.send(content))

    @staticmethod
    async def _call(awaitable: Any) -> Any:
        try:
            return await awaitable
        except discord.DiscordException as exc:
            raise ExternalServiceFailure(str(exc)) from exc
