"""
Persisted entities owned by a guild: users, roles, channel configs and the
audit entries attached to users.

All of them round-trip through flat records (see ``records``); absent fields
load with the defaults declared here.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Set

from kiracord.datatypes.records import TRANSIENT, dataclass_to_record, record_to_dataclass
from kiracord.permissions.permission_set import PermissionSet

# Placeholder for timestamps that were never observed
NEVER = "never"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def stable_hash(*parts: str, length: int = 12) -> str:
    """Short deterministic id derived from ``parts``."""
    digest = hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()
    return digest[:length]


@dataclass(slots=True)
class AuditEntry:
    """Free-form note attached to a user, e.g. a blacklist hit or a moderator remark."""

    id: str
    content: str = ""
    author_id: str = ""
    message_url: str = ""
    date: str = ""

    @classmethod
    def create(cls, owner_id: str, content: str, author_id: str, message_url: str = "") -> "AuditEntry":
        date = utc_now_iso()
        return cls(
            id=stable_hash(owner_id, content, date, length=8),
            content=content,
            author_id=str(author_id),
            message_url=message_url,
            date=date,
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "AuditEntry":
        return record_to_dataclass(cls, record)

    def to_record(self) -> Dict[str, Any]:
        return dataclass_to_record(self)


@dataclass(slots=True)
class User:
    """A guild member as seen by the governance engine.

    ``operator`` is computed per invocation from the global operator list and
    is never persisted.
    """

    id: str
    username: str = ""
    enabled_permissions: Set[str] = field(default_factory=set)
    disabled_permissions: Set[str] = field(default_factory=set)
    entries: List[AuditEntry] = field(default_factory=list)
    message_count: int = 0
    blacklist_message_count: int = 0
    last_message: str = NEVER
    joined_server: str = NEVER
    operator: bool = field(default=False, metadata=TRANSIENT)

    @property
    def permissions(self) -> PermissionSet:
        return PermissionSet(self.enabled_permissions, self.disabled_permissions, operator=self.operator)

    def can_permission(self, permission: str) -> bool:
        return self.permissions.can(permission)

    def can_permissions_or(self, permissions: List[str]) -> bool:
        return self.permissions.can_any(permissions)

    def update_display_name(self, username: str) -> bool:
        """Store ``username`` if it differs; return True when it changed."""
        if not username or self.username.strip() == username.strip():
            return False
        self.username = username
        return True

    def add_entry(self, content: str, author_id: str, message_url: str = "") -> AuditEntry:
        entry = AuditEntry.create(self.id, content, author_id, message_url)
        self.entries.append(entry)
        return entry

    def get_entry(self, entry_id: str) -> AuditEntry | None:
        return next((entry for entry in self.entries if entry.id == entry_id), None)

    def remove_entry(self, entry_id: str) -> bool:
        entry = self.get_entry(entry_id)
        if entry is None:
            return False
        self.entries.remove(entry)
        return True

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "User":
        user = record_to_dataclass(cls, record)
        user.entries = [
            entry if isinstance(entry, AuditEntry) else AuditEntry.from_record(entry)
            for entry in user.entries
        ]
        return user

    def to_record(self) -> Dict[str, Any]:
        return dataclass_to_record(self)


@dataclass(slots=True)
class Role:
    """A guild role with the permissions granted to its members."""

    id: str
    enabled_permissions: Set[str] = field(default_factory=set)

    @property
    def permissions(self) -> PermissionSet:
        return PermissionSet(self.enabled_permissions)

    def can_permission(self, permission: str) -> bool:
        return self.permissions.can(permission)

    def can_permissions_or(self, permissions: List[str]) -> bool:
        return self.permissions.can_any(permissions)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Role":
        return record_to_dataclass(cls, record)

    def to_record(self) -> Dict[str, Any]:
        return dataclass_to_record(self)


CHANNEL_TYPE_FEED = "feed"
CHANNEL_TYPE_JOIN = "join"


@dataclass(slots=True)
class ChannelConfig:
    """Configuration bound to one channel (feed target, join greeting, ...).

    One channel may carry several configs; ``id`` is derived from the channel
    id and the feed url so re-adding the same feed yields the same id.
    """

    id: str = ""
    channel_id: str = ""
    feed_url: str = ""
    title: str = ""
    color: str = ""
    type: str = CHANNEL_TYPE_FEED

    def refresh_id(self) -> str:
        self.id = stable_hash(str(self.channel_id), self.feed_url)
        return self.id

    @classmethod
    def create(cls, channel_id: str, feed_url: str = "", type_tag: str = CHANNEL_TYPE_FEED) -> "ChannelConfig":
        config = cls(channel_id=str(channel_id), feed_url=feed_url, type=type_tag)
        config.refresh_id()
        return config

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ChannelConfig":
        config = record_to_dataclass(cls, record)
        if not config.id:
            config.refresh_id()
        return config

    def to_record(self) -> Dict[str, Any]:
        return dataclass_to_record(self)
