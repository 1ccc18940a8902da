"""Message listener Cog for Kiracord.

This cog has exactly ONE responsibility: hand every guild message to the
governance engine and carry out what the engine decided.
"""

import discord
from discord.ext import commands

from kiracord.bot.effects import EffectApplier
from kiracord.datatypes.message_datatypes import InboundMessage
from kiracord.engine.guild_engine import GuildEngine
from kiracord.services.guild_state_manager import GuildStateManager
from kiracord.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """
    Thin event listener between Discord and the engine.

    Parameters
    ----------
    bot:
        Discord bot instance.
    manager:
        Owner of every guild's state; schedules persistence.
    engine:
        Decides the reply and side effects of one message.
    """

    def __init__(self, bot: discord.Bot, manager: GuildStateManager, engine: GuildEngine) -> None:
        self.bot = bot
        self._manager = manager
        self._engine = engine
        self._effects = EffectApplier(bot)
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None:
            return
        if self.bot.user is not None and message.author.id == self.bot.user.id:
            return

        guild = self._manager.ensure_guild(message.guild.id, message.guild.name)
        outcome = await self._engine.handle_message(guild, InboundMessage.from_discord(message))

        await self._effects.apply(outcome, guild, reply_channel=message.channel)
        if outcome.state_changed:
            self._manager.mark_dirty(guild.id)


def setup(bot: discord.Bot, manager: GuildStateManager, engine: GuildEngine) -> None:
    """Register the MessageListenerCog with the bot."""
    bot.add_cog(MessageListenerCog(bot, manager, engine))
