"""
Alias management.

    alias list [command]
    alias add <alias> <command>
    alias remove <alias>
    alias clear <command>
"""

from __future__ import annotations

from typing import Any, List, Optional

from kiracord.commands.command_datatypes import CommandRegistry, InvocationContext, ParsedCommand
from kiracord.commands.builtin.helpers import code_list, truncate
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome
from kiracord.util.logger import get_logger

logger = get_logger("alias_cmds")

_ARITY = {"list": (1, 2), "add": (3, 3), "remove": (2, 2), "clear": (2, 2)}


class AliasCommand:
    name = "alias"
    permissions: List[str] = ["admin.alias"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    def validate_syntax(self, command: ParsedCommand) -> bool:
        arity = _ARITY.get(command.arg(0))
        return arity is not None and arity[0] <= command.argc <= arity[1]

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        action = command.arg(0)

        if action == "list":
            if command.argc == 2:
                pairs = [(alias, command.arg(1)) for alias in guild.aliases.aliases_for(command.arg(1))]
            else:
                pairs = guild.aliases.items()
            if not pairs:
                return MessageOutcome.text(guild.translate("command.alias.list_empty"))
            lines = [f"{alias} -> {target}" for alias, target in pairs]
            return MessageOutcome.text(truncate(guild.translate("command.alias.list", code_list(lines))))

        if action == "add":
            alias, target = command.arg(1), command.arg(2)
            if target not in self.registry:
                return MessageOutcome.text(guild.translate("command.alias.command_not_found", target))
            guild.aliases.set(alias, target)
            logger.info("[ALIAS] Guild %s: %s -> %s", guild.id, alias, target)
            return MessageOutcome.text(guild.translate("command.alias.added", alias, target), state_changed=True)

        if action == "remove":
            alias = command.arg(1)
            if not guild.aliases.remove(alias):
                return MessageOutcome.text(guild.translate("command.alias.not_found", alias))
            return MessageOutcome.text(guild.translate("command.alias.removed", alias), state_changed=True)

        target = command.arg(1)
        removed = guild.aliases.remove_aliases_for(target)
        return MessageOutcome.text(guild.translate("command.alias.cleared", removed, target), state_changed=removed > 0)
