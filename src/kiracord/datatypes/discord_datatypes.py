"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers but travel as strings through JSON
records, translation placeholders and configuration files. These wrappers keep
one canonical string form so a user id read from storage compares equal to the
integer id reported by the gateway.
"""

from __future__ import annotations

from typing import Any, Union


class Snowflake:
    """
    Base class for the typed snowflake wrappers.

    Attributes:
        _value (str): The snowflake stored as a normalized decimal string.

    Example:
        >>> uid = UserID(123456789012345678)
        >>> str(uid)
        '123456789012345678'
        >>> uid == "123456789012345678"
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    @classmethod
    def from_object(cls, obj: Any):
        """Build the wrapper from any Discord model exposing an ``id``."""
        return cls(obj.id)

    def to_int(self) -> int:
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """Snowflake of a Discord user or guild member."""

    __slots__ = ()


class RoleID(Snowflake):
    """Snowflake of a guild role."""

    __slots__ = ()


class GuildID(Snowflake):
    """Snowflake of a guild."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake of a guild channel."""

    __slots__ = ()


class MessageID(Snowflake):
    """Snowflake of a message."""

    __slots__ = ()
