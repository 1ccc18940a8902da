"""
Prefix command dispatch.

One dispatch walks a fixed sequence of states:

    parse name -> resolve alias -> look up -> deactivated? -> permission?
    -> syntax? -> frequency? -> invoke

Each failing state raises a ``DispatchError`` which is turned into exactly one
translated reply; the remaining states are skipped.
"""

from __future__ import annotations

from typing import Any, Optional, Set

from kiracord.commands.command_datatypes import Command, CommandRegistry, InvocationContext, ParsedCommand
from kiracord.configuration.app_configuration import AppConfig
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome
from kiracord.errors import (
    CommandDeactivated,
    CommandNotFound,
    CommandTooLong,
    DispatchError,
    InvalidSyntax,
    PermissionDenied,
)
from kiracord.guild.guild_state import GuildState
from kiracord.permissions.permission_set import OPERATOR_PERMISSION
from kiracord.util.logger import get_logger

logger = get_logger("dispatcher")

MAX_COMMAND_NAME_LENGTH = 1000


class CommandDispatcher:
    """Runs prefixed messages through the dispatch states.

    Parameters
    ----------
    registry:
        Commands available to every guild, keyed by canonical name.
    config:
        Application configuration (prefix, global operators).
    client:
        Opaque platform handle passed through to commands.
    """

    def __init__(self, registry: CommandRegistry, config: AppConfig, client: Any = None) -> None:
        self.registry = registry
        self.config = config
        self.client = client

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def resolve(self, guild: GuildState, parsed: ParsedCommand) -> Command:
        """Alias resolution and lookup, with one lowercase retry.

        The retry starts again from the invoked name, so an alias that points
        at another alias is never followed to its end.
        """
        name = guild.aliases.resolve(parsed.invoked_name) or parsed.invoked_name
        command = self.registry.get(name)

        if command is None:
            lowered = parsed.invoked_name.lower()
            name = guild.aliases.resolve(lowered) or lowered
            command = self.registry.get(name)

        parsed.name = name
        if command is None:
            raise CommandNotFound(name)
        return command

    def is_permitted(self, guild: GuildState, command: Command, message: InboundMessage, operator: bool) -> bool:
        if operator:
            return True

        permissions = list(command.permissions)
        user_permission = guild.user_has_permissions_or(message.author_id, permissions)
        role_permission = guild.any_role_has_permissions_or(message.author_role_ids, permissions)
        operator_only = bool(permissions) and permissions[0] == OPERATOR_PERMISSION

        return (user_permission or role_permission) and not operator_only

    def build_invocation_context(self, guild: GuildState, message: InboundMessage, operator: bool) -> InvocationContext:
        user, _ = guild.ensure_user(message.author_id, message.author_name)

        permissions: Set[str] = set(user.enabled_permissions)
        for role_id in message.author_role_ids:
            role = guild.roles.get_role(role_id)
            if role is not None:
                permissions |= role.enabled_permissions

        return InvocationContext(
            user=user,
            operator=operator,
            role_ids=list(message.author_role_ids),
            permissions=frozenset(permissions),
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def dispatch(self, guild: GuildState, message: InboundMessage, prefix: Optional[str] = None) -> MessageOutcome:
        prefix = prefix if prefix is not None else self.config.command_prefix
        try:
            return await self._dispatch(guild, message, prefix)
        except DispatchError as exc:
            logger.info(
                "[DISPATCH] %s on guild %s: %s %s",
                type(exc).__name__, guild.id, exc.translation_key, exc.reply_args,
            )
            return MessageOutcome.text(guild.translate(exc.translation_key, *exc.reply_args))

    async def _dispatch(self, guild: GuildState, message: InboundMessage, prefix: str) -> MessageOutcome:
        parsed = ParsedCommand.parse(message.content, prefix)
        if len(parsed.invoked_name) > MAX_COMMAND_NAME_LENGTH:
            raise CommandTooLong()
        if not parsed.invoked_name:
            return MessageOutcome()

        logger.info("[DISPATCH] [%s] [#%s] %s: %s", guild.id, message.channel_id, message.author_name, message.content)

        command = self.resolve(guild, parsed)

        if guild.is_command_deactivated(command.name):
            raise CommandDeactivated(command.name)

        operator = self.config.is_operator(message.author_id)
        if not self.is_permitted(guild, command, message, operator):
            raise PermissionDenied(command.name)

        if not command.validate_syntax(parsed):
            raise InvalidSyntax(prefix, parsed.name)

        if command.frequency_maximum is not None:
            guild.throttle.hit(
                command.name,
                command.frequency_maximum,
                command.frequency_minutes,
                operator=operator,
            )

        context = self.build_invocation_context(guild, message, operator)
        outcome = await command.run(self.config, message, guild, parsed, context, self.client)
        return outcome or MessageOutcome()

