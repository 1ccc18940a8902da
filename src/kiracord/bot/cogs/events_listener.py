"""Event listener Cog for Kiracord.

Handles guild lifecycle and membership events: registering guilds and roles,
greeting new members and keeping display names current.
"""

import discord
from discord.ext import commands

from kiracord.bot.effects import EffectApplier
from kiracord.datatypes.discord_datatypes import RoleID, UserID
from kiracord.engine.guild_engine import GuildEngine
from kiracord.services.guild_state_manager import GuildStateManager
from kiracord.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Keeps guild state in step with Discord events."""

    def __init__(self, bot: discord.Bot, manager: GuildStateManager, engine: GuildEngine) -> None:
        self.bot = bot
        self._manager = manager
        self._engine = engine
        self._effects = EffectApplier(bot)
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected, user info not yet available.")
            return

        for discord_guild in self.bot.guilds:
            self._register_guild(discord_guild)

        logger.info(
            "Bot connected as %s (ID: %s) on %d guilds",
            self.bot.user, self.bot.user.id, len(self.bot.guilds),
        )

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild) -> None:
        logger.info("[EVENTS LISTENER] Bot joined guild: %s (ID: %s)", guild.name, guild.id)
        self._register_guild(guild)

    # ------------------------------------------------------------------
    # Membership events
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member) -> None:
        guild = self._manager.ensure_guild(member.guild.id, member.guild.name)
        outcome = self._engine.handle_join(guild, UserID(member.id), member.name, member.joined_at)
        await self._effects.apply(outcome, guild)
        self._manager.mark_dirty(guild.id)

    @commands.Cog.listener(name="on_member_remove")
    async def on_member_remove(self, member: discord.Member) -> None:
        logger.info("[USER] %s left guild %s", member.id, member.guild.id)

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        guild = self._manager.get_guild(after.guild.id)
        if guild is None or guild.get_user(after.id) is None:
            return

        name_changed = before.name != after.name
        roles_before = {role.id for role in before.roles}
        new_roles = [RoleID(role.id) for role in after.roles if role.id not in roles_before]
        if not name_changed and not new_roles:
            return

        guild.handle_interaction(UserID(after.id), after.name, new_roles)
        self._manager.mark_dirty(guild.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _register_guild(self, discord_guild: discord.Guild) -> None:
        guild = self._manager.ensure_guild(discord_guild.id, discord_guild.name)
        created = guild.register_roles(RoleID(role.id) for role in discord_guild.roles)
        if created:
            self._manager.mark_dirty(guild.id)
        logger.debug("[EVENTS LISTENER] Registered guild %s with %d new roles", guild.id, created)


def setup(bot: discord.Bot, manager: GuildStateManager, engine: GuildEngine) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, manager, engine))
