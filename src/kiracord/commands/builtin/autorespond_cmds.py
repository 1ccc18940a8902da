"""
Autorespond management.

    autorespond list
    autorespond add <trigger> <response...>
    autorespond remove <trigger>

Multi-word triggers have to be quoted: ``autorespond add "good morning" Hi!``.
"""

from __future__ import annotations

from typing import Any, List, Optional

from kiracord.commands.command_datatypes import InvocationContext, ParsedCommand
from kiracord.commands.builtin.helpers import code_list, truncate
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome
from kiracord.util.logger import get_logger

logger = get_logger("autorespond_cmds")


class AutorespondCommand:
    name = "autorespond"
    permissions: List[str] = ["admin.autorespond"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def validate_syntax(self, command: ParsedCommand) -> bool:
        action = command.arg(0)
        if action == "list":
            return command.argc == 1
        if action == "add":
            return command.argc >= 3
        if action == "remove":
            return command.argc == 2
        return False

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        action = command.arg(0)

        if action == "list":
            items = guild.autoresponds.items()
            if not items:
                return MessageOutcome.text(guild.translate("command.autorespond.list_empty"))
            lines = [f"{trigger} -> {response}" for trigger, response in items]
            return MessageOutcome.text(truncate(guild.translate("command.autorespond.list", code_list(lines))))

        trigger = command.arg(1)
        if action == "add":
            response = " ".join(command.arguments[2:])
            try:
                key = guild.autoresponds.add(trigger, response)
            except ValueError:
                return MessageOutcome.text(guild.translate("command.autorespond.invalid_trigger", trigger))
            logger.info("[AUTORESPOND] Guild %s added trigger %r", guild.id, key)
            return MessageOutcome.text(guild.translate("command.autorespond.added", key), state_changed=True)

        if not guild.autoresponds.remove(trigger):
            return MessageOutcome.text(guild.translate("command.autorespond.not_found", trigger))
        return MessageOutcome.text(guild.translate("command.autorespond.removed", trigger), state_changed=True)
