"""
Failure taxonomy of a single message-handling cycle.

Every ``DispatchError`` carries the translation key and placeholder values of
the one reply the member gets to see. They are raised inside the dispatcher
and converted into that reply there; none of them leave a handling cycle.
"""

from __future__ import annotations

from typing import Tuple


class DispatchError(Exception):
    """Base class of recoverable, user-visible dispatch failures."""

    translation_key: str = "command.error"

    def __init__(self, *reply_args: str) -> None:
        super().__init__(self.translation_key, *reply_args)
        self.reply_args: Tuple[str, ...] = tuple(str(arg) for arg in reply_args)


class CommandTooLong(DispatchError):
    translation_key = "command.too_long"


class CommandNotFound(DispatchError):
    translation_key = "command.not_found"

    def __init__(self, command_name: str) -> None:
        super().__init__(command_name)
        self.command_name = command_name


class CommandDeactivated(DispatchError):
    translation_key = "general.deactivated"

    def __init__(self, command_name: str) -> None:
        super().__init__()
        self.command_name = command_name


class PermissionDenied(DispatchError):
    """Generic denial; never says which permission was missing."""

    translation_key = "command.no_permission"

    def __init__(self, command_name: str) -> None:
        super().__init__()
        self.command_name = command_name


class InvalidSyntax(DispatchError):
    translation_key = "command.invalid_syntax"

    def __init__(self, prefix: str, command_name: str) -> None:
        super().__init__(prefix, command_name)
        self.command_name = command_name


class FrequencyExceeded(DispatchError):
    """A throttled command reached its maximum inside the current window."""

    def __init__(self, command_name: str, maximum: int) -> None:
        super().__init__()
        self.command_name = command_name
        self.maximum = maximum
        self.translation_key = f"command.{command_name}.frequency"


class ExternalServiceFailure(Exception):
    """A Discord API call made on behalf of the engine failed."""
