"""
Administrative commands: permission grants and per-guild command switches.

    permission <user|role> list
    permission <user|role> enable|disable|remove <permission>
    activate <command>
    deactivate <command>

Roles only carry enabled permissions, so ``disable`` on a role removes the
matching grants instead.
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple, Union

from kiracord.commands.command_datatypes import CommandRegistry, InvocationContext, ParsedCommand
from kiracord.commands.builtin.helpers import MENTION_CHANNEL, MENTION_ROLE, MENTION_USER, parse_mention, truncate
from kiracord.datatypes.guild_datatypes import Role, User
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome
from kiracord.util.logger import get_logger

logger = get_logger("admin_cmds")

_PERMISSION_ACTIONS = ("enable", "disable", "remove")


def resolve_permission_target(guild, value: str) -> Optional[Union[User, Role]]:
    """Map a mention or raw id onto a known user or role.

    Raw ids are looked up as users first. A mentioned role that was never seen
    is registered on the fly.
    """
    kind, raw = parse_mention(value)
    if not raw.isdigit() or kind == MENTION_CHANNEL:
        return None
    if kind == MENTION_ROLE:
        guild.register_roles([raw])
        return guild.roles.get_role(raw)
    user = guild.get_user(raw)
    if user is not None or kind == MENTION_USER:
        return user
    return guild.roles.get_role(raw)


class PermissionCommand:
    name = "permission"
    permissions: List[str] = ["admin.permission"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def validate_syntax(self, command: ParsedCommand) -> bool:
        action = command.arg(1)
        if action == "list":
            return command.argc == 2
        return action in _PERMISSION_ACTIONS and command.argc == 3

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        target = resolve_permission_target(guild, command.arg(0))
        if target is None:
            return MessageOutcome.text(guild.translate("command.permission.target_not_found", command.arg(0)))

        action = command.arg(1)
        label = self._label(target)
        permissions = target.permissions

        if action == "list":
            enabled = ", ".join(sorted(permissions.enabled)) or "-"
            disabled = ", ".join(sorted(permissions.disabled)) or "-"
            return MessageOutcome.text(truncate(guild.translate("command.permission.list", label, enabled, disabled)))

        permission = command.arg(2)
        changed, reply_key = self._apply(target, action, permission)
        if changed:
            logger.info("[PERMISSION] Guild %s: %s %s on %s", guild.id, action, permission, label)
        return MessageOutcome.text(guild.translate(reply_key, permission, label), state_changed=changed)

    @staticmethod
    def _apply(target: Union[User, Role], action: str, permission: str) -> Tuple[bool, str]:
        permissions = target.permissions
        if action == "enable":
            # An explicit grant lifts an earlier explicit ban of the same entry
            lifted = isinstance(target, User) and permission in permissions.disabled
            if lifted:
                permissions.disabled.discard(permission)
            changed = permissions.enable(permission) or lifted
            return changed, "command.permission.enabled" if changed else "command.permission.unchanged"
        if action == "disable" and isinstance(target, User):
            changed = permissions.disable(permission)
            return changed, "command.permission.disabled" if changed else "command.permission.unchanged"
        changed = permissions.remove(permission) > 0
        return changed, "command.permission.removed" if changed else "command.permission.unchanged"

    @staticmethod
    def _label(target: Union[User, Role]) -> str:
        if isinstance(target, User):
            return f"<@{target.id}>"
        return f"<@&{target.id}>"


class _CommandSwitch:
    """Shared shape of ``activate`` and ``deactivate``."""

    permissions: List[str] = ["admin.commands"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0
    protected = ("activate", "deactivate")

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    def validate_syntax(self, command: ParsedCommand) -> bool:
        return command.argc == 1

    def _target(self, guild, command: ParsedCommand) -> Tuple[str, bool]:
        wanted = command.arg(0).lower()
        name = guild.aliases.resolve(wanted) or wanted
        return name, name in self.registry


class ActivateCommand(_CommandSwitch):
    name = "activate"

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        name, known = self._target(guild, command)
        if not known:
            return MessageOutcome.text(guild.translate("command.not_found", name))
        if not guild.activate_command(name):
            return MessageOutcome.text(guild.translate("command.activate.already_active", name))
        logger.info("[COMMANDS] Guild %s activated '%s'", guild.id, name)
        return MessageOutcome.text(guild.translate("command.activate.done", name), state_changed=True)


class DeactivateCommand(_CommandSwitch):
    name = "deactivate"

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        name, known = self._target(guild, command)
        if not known:
            return MessageOutcome.text(guild.translate("command.not_found", name))
        if name in self.protected:
            return MessageOutcome.text(guild.translate("command.deactivate.protected", name))
        if not guild.deactivate_command(name):
            return MessageOutcome.text(guild.translate("command.deactivate.already_inactive", name))
        logger.info("[COMMANDS] Guild %s deactivated '%s'", guild.id, name)
        return MessageOutcome.text(guild.translate("command.deactivate.done", name), state_changed=True)
