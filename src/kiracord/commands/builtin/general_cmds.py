"""General-purpose commands available to every member."""

from __future__ import annotations

import random
from typing import Any, List, Optional

from kiracord.commands.command_datatypes import CommandRegistry, InvocationContext, ParsedCommand
from kiracord.commands.builtin.helpers import truncate
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome
from kiracord.util.logger import get_logger

logger = get_logger("general_cmds")


class PingCommand:
    name = "ping"
    permissions: List[str] = []
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def validate_syntax(self, command: ParsedCommand) -> bool:
        return True

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        return MessageOutcome.text(guild.translate("command.ping.pong"))


class HelpCommand:
    """``help`` lists the active commands, ``help <command>`` describes one."""

    name = "help"
    permissions: List[str] = []
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    def validate_syntax(self, command: ParsedCommand) -> bool:
        return command.argc <= 1

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        if command.argc == 0:
            names = [name for name in self.registry.names() if not guild.is_command_deactivated(name)]
            return MessageOutcome.text(guild.translate("command.help.list", config.command_prefix, ", ".join(names)))

        wanted = command.arg(0).lower()
        target = self.registry.get(guild.aliases.resolve(wanted) or wanted)
        if target is None:
            return MessageOutcome.text(guild.translate("command.not_found", wanted))

        aliases = ", ".join(guild.aliases.aliases_for(target.name)) or "-"
        permissions = ", ".join(target.permissions) or "-"
        return MessageOutcome.text(
            truncate(guild.translate("command.help.detail", target.name, aliases, permissions))
        )


class QuoteCommand:
    """Random pick from the guild's quote list; ``quote add <text>`` extends it.

    The list lives in memory only and is emptied by a reload.
    """

    name = "quote"
    permissions: List[str] = []
    frequency_maximum: Optional[int] = 3
    frequency_minutes: float = 1
    add_permission = "quote.add"

    def validate_syntax(self, command: ParsedCommand) -> bool:
        if command.argc == 0:
            return True
        return command.arg(0) == "add" and command.argc >= 2

    def may_add(self, guild, invoker: InvocationContext) -> bool:
        """Disabled entries on the user veto a wildcard grant."""
        if invoker.operator or invoker.user.can_permission(self.add_permission):
            return True
        return guild.any_role_has_permissions_or(invoker.role_ids, [self.add_permission])

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        if command.argc == 0:
            if not guild.quotes:
                return MessageOutcome.text(guild.translate("command.quote.empty"))
            return MessageOutcome.text(random.choice(guild.quotes))

        if not self.may_add(guild, invoker):
            return MessageOutcome.text(guild.translate("command.no_permission"))

        text = command.raw_arguments[len("add"):].strip()
        guild.quotes.append(text)
        logger.debug("[QUOTE] Guild %s now has %d quotes", guild.id, len(guild.quotes))
        return MessageOutcome.text(guild.translate("command.quote.added", len(guild.quotes)))
