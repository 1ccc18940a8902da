"""
Platform-neutral message contract of the governance engine.

The Discord listener converts every ``discord.Message`` into an
``InboundMessage``; the engine answers with a ``MessageOutcome`` holding at
most one visible reply and any number of side-effect requests. The listener
then performs those requests against the Discord API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

import discord

from kiracord.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID


@dataclass(slots=True)
class InboundMessage:
    """A guild message reduced to what the engine needs."""

    guild_id: GuildID
    channel_id: ChannelID
    message_id: MessageID
    author_id: UserID
    author_name: str
    content: str
    author_role_ids: List[RoleID] = field(default_factory=list)
    author_is_bot: bool = False
    jump_url: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_discord(cls, message: discord.Message) -> "InboundMessage":
        author = message.author
        roles = getattr(author, "roles", None) or []
        return cls(
            guild_id=GuildID(message.guild.id),
            channel_id=ChannelID(message.channel.id),
            message_id=MessageID(message.id),
            author_id=UserID(author.id),
            author_name=getattr(author, "name", None) or str(author),
            content=message.content or "",
            author_role_ids=[RoleID(role.id) for role in roles],
            author_is_bot=bool(getattr(author, "bot", False)),
            jump_url=getattr(message, "jump_url", "") or "",
            created_at=message.created_at or datetime.now(timezone.utc),
        )


@dataclass(slots=True)
class Reply:
    """Visible answer in the channel the message came from."""

    content: str = ""
    embed: Optional[discord.Embed] = None


class SideEffectType(Enum):
    DELETE_MESSAGE = "delete_message"
    ADD_ROLE = "add_role"
    AUDIT_LOG = "audit_log"
    SEND_MESSAGE = "send_message"


@dataclass(slots=True)
class SideEffect:
    """A request for the platform layer to act on the guild."""

    kind: SideEffectType
    guild_id: GuildID
    channel_id: Optional[ChannelID] = None
    message_id: Optional[MessageID] = None
    user_id: Optional[UserID] = None
    role_id: Optional[RoleID] = None
    content: str = ""
    embed: Optional[discord.Embed] = None
    reason: str = ""

    @classmethod
    def delete_message(cls, message: InboundMessage, reason: str = "") -> "SideEffect":
        return cls(
            SideEffectType.DELETE_MESSAGE,
            message.guild_id,
            channel_id=message.channel_id,
            message_id=message.message_id,
            reason=reason,
        )

    @classmethod
    def add_role(cls, guild_id: GuildID, user_id: UserID, role_id: RoleID, reason: str = "") -> "SideEffect":
        return cls(SideEffectType.ADD_ROLE, guild_id, user_id=user_id, role_id=role_id, reason=reason)

    @classmethod
    def audit_log(cls, guild_id: GuildID, embed: discord.Embed) -> "SideEffect":
        return cls(SideEffectType.AUDIT_LOG, guild_id, embed=embed)

    @classmethod
    def send_message(cls, guild_id: GuildID, channel_id: ChannelID, content: str) -> "SideEffect":
        return cls(SideEffectType.SEND_MESSAGE, guild_id, channel_id=channel_id, content=content)


@dataclass(slots=True)
class MessageOutcome:
    """Everything the engine decided for one inbound event.

    ``state_changed`` tells the caller the guild's persisted entities were
    mutated and should be saved.
    """

    reply: Optional[Reply] = None
    side_effects: List[SideEffect] = field(default_factory=list)
    state_changed: bool = False

    @classmethod
    def text(cls, content: str, *, state_changed: bool = False) -> "MessageOutcome":
        return cls(reply=Reply(content=content), state_changed=state_changed)

    @classmethod
    def rich(cls, embed: discord.Embed, *, state_changed: bool = False) -> "MessageOutcome":
        return cls(reply=Reply(embed=embed), state_changed=state_changed)

    @property
    def is_empty(self) -> bool:
        return self.reply is None and not self.side_effects

    def merge(self, other: Optional["MessageOutcome"]) -> "MessageOutcome":
        """Fold ``other`` into this outcome; ``other``'s reply wins if set."""
        if other is None:
            return self
        if other.reply is not None:
            self.reply = other.reply
        self.side_effects.extend(other.side_effects)
        self.state_changed = self.state_changed or other.state_changed
        return self
