"""
Command capability and the per-invocation values handed to commands.

A command is any object exposing the ``Command`` protocol: metadata
(``name``, ``permissions``, optional frequency limit) plus ``validate_syntax``
and ``run``. Commands are registered by canonical name in a
``CommandRegistry`` that is passed to the dispatcher explicitly.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Protocol, TYPE_CHECKING, runtime_checkable

from kiracord.datatypes.discord_datatypes import RoleID
from kiracord.datatypes.guild_datatypes import User
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome
from kiracord.util.logger import get_logger

if TYPE_CHECKING:
    from kiracord.configuration.app_configuration import AppConfig
    from kiracord.guild.guild_state import GuildState

logger = get_logger("command_datatypes")


@dataclass(slots=True)
class ParsedCommand:
    """Command name and arguments split from a prefixed message.

    Arguments honour shell-style quoting (``"two words"``); unbalanced quotes
    fall back to plain whitespace splitting. ``raw_arguments`` keeps the text
    after the name untouched for commands taking free text.
    """

    name: str
    arguments: List[str] = field(default_factory=list)
    raw_arguments: str = ""
    invoked_name: str = ""

    @classmethod
    def parse(cls, content: str, prefix: str) -> "ParsedCommand":
        body = content[len(prefix):] if prefix and content.startswith(prefix) else content
        # The name must follow the prefix directly; "! ping" names nothing
        if body[:1].isspace():
            return cls(name="", raw_arguments=body.strip())
        parts = body.split(maxsplit=1)
        head = parts[0] if parts else ""
        rest = parts[1].strip() if len(parts) > 1 else ""
        try:
            arguments = shlex.split(rest)
        except ValueError:
            arguments = rest.split()
        return cls(name=head, arguments=arguments, raw_arguments=rest, invoked_name=head)

    @property
    def argc(self) -> int:
        return len(self.arguments)

    def arg(self, index: int, default: str = "") -> str:
        return self.arguments[index] if 0 <= index < len(self.arguments) else default


@dataclass(slots=True)
class InvocationContext:
    """Ephemeral view of the invoker for one command run.

    ``permissions`` is the union of the user's own enabled permissions and the
    enabled permissions of every role they hold. It is advisory data for the
    command; disabled entries are not filtered out here.
    """

    user: User
    operator: bool = False
    role_ids: List[RoleID] = field(default_factory=list)
    permissions: FrozenSet[str] = frozenset()

    @property
    def user_id(self) -> str:
        return self.user.id


@runtime_checkable
class Command(Protocol):
    """Capability every pluggable command implements.

    ``permissions`` is an OR-list; a first entry of ``"OPERATOR"`` reserves the
    command for global operators. ``frequency_maximum`` of None disables
    throttling, otherwise at most that many runs are allowed per
    ``frequency_minutes`` window.
    """

    name: str
    permissions: List[str]
    frequency_maximum: Optional[int]
    frequency_minutes: float

    def validate_syntax(self, command: ParsedCommand) -> bool: ...

    async def run(
        self,
        config: "AppConfig",
        message: InboundMessage,
        guild: "GuildState",
        command: ParsedCommand,
        invoker: InvocationContext,
        client: Any,
    ) -> Optional[MessageOutcome]: ...


class CommandRegistry:
    """Commands keyed by canonical name."""

    def __init__(self, commands: List[Command] | None = None) -> None:
        self._commands: Dict[str, Command] = {}
        for command in commands or []:
            self.register(command)

    def register(self, command: Command) -> None:
        if not isinstance(command, Command):
            raise TypeError(f"{command!r} does not implement the command capability")
        if command.name in self._commands:
            raise ValueError(f"Command '{command.name}' is already registered")
        self._commands[command.name] = command
        logger.debug("[COMMANDS] Registered command '%s'", command.name)

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def names(self) -> List[str]:
        return sorted(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[Command]:
        return iter([self._commands[name] for name in self.names()])

    def __len__(self) -> int:
        return len(self._commands)
