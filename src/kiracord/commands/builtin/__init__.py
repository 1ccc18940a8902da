"""
Built-in commands.

``build_default_registry`` assembles every built-in command into one registry;
commands needing collaborators (the guild manager for ``reload``) receive them
here.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from kiracord.commands.command_datatypes import CommandRegistry
from kiracord.commands.builtin.admin_cmds import ActivateCommand, DeactivateCommand, PermissionCommand
from kiracord.commands.builtin.alias_cmds import AliasCommand
from kiracord.commands.builtin.autorespond_cmds import AutorespondCommand
from kiracord.commands.builtin.config_cmds import ConfigCommand, ReloadCommand
from kiracord.commands.builtin.general_cmds import HelpCommand, PingCommand, QuoteCommand
from kiracord.commands.builtin.moderation_cmds import BlacklistCommand, EntryCommand, VoteMuteCommand

if TYPE_CHECKING:
    from kiracord.services.guild_state_manager import GuildStateManager


def build_default_registry(manager: Optional["GuildStateManager"] = None) -> CommandRegistry:
    registry = CommandRegistry()
    for command in (
        PingCommand(),
        QuoteCommand(),
        AutorespondCommand(),
        BlacklistCommand(),
        EntryCommand(),
        VoteMuteCommand(),
        PermissionCommand(),
        ConfigCommand(),
    ):
        registry.register(command)
    registry.register(HelpCommand(registry))
    registry.register(AliasCommand(registry))
    registry.register(ActivateCommand(registry))
    registry.register(DeactivateCommand(registry))
    if manager is not None:
        registry.register(ReloadCommand(manager))
    return registry
