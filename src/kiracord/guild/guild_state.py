"""
State of one guild.

``GuildSettings`` is the persisted flat record of guild-level settings;
``GuildState`` is the live aggregate built from it, owning the guild's users,
roles and channel configs plus the transient caches (frequency windows,
mute votes, quotes) that start empty on every load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from kiracord.datatypes.discord_datatypes import RoleID
from kiracord.datatypes.guild_datatypes import NEVER, Role, User
from kiracord.datatypes.records import dataclass_to_record, record_to_dataclass
from kiracord.guild.alias_table import AliasTable
from kiracord.guild.entity_store import ChannelConfigStore, EntityKey, RoleStore, UserStore
from kiracord.i18n.translations import TranslationManager, format_template
from kiracord.moderation.fuzzy_matcher import AutorespondTable
from kiracord.moderation.moderation_gate import ModerationGate
from kiracord.moderation.throttle_cache import ThrottleCache
from kiracord.util.logger import get_logger

logger = get_logger("guild_state")


@dataclass(slots=True)
class GuildSettings:
    """Persisted guild-level settings."""

    id: str
    name: str = ""
    language: str = "en"
    log_channel: str = ""
    mute_role: str = ""
    reference_branch: str = ""
    aliases: Dict[str, str] = field(default_factory=dict)
    translations: Dict[str, str] = field(default_factory=dict)
    autoresponds: Dict[str, str] = field(default_factory=dict)
    deactivated_commands: List[str] = field(default_factory=list)
    blacklist: List[str] = field(default_factory=list)


class GuildState:
    """Live state of one guild."""

    def __init__(
        self,
        settings: GuildSettings,
        translations: TranslationManager | None = None,
        users: Iterable[User] = (),
        roles: Iterable[Role] = (),
        channels: Iterable[Any] = (),
    ) -> None:
        self.id = str(settings.id)
        self.name = settings.name
        self.language = settings.language
        self.log_channel = settings.log_channel
        self.mute_role = settings.mute_role
        self.reference_branch = settings.reference_branch
        self.aliases = AliasTable(settings.aliases)
        self.translation_overrides: Dict[str, str] = dict(settings.translations)
        self.autoresponds = AutorespondTable(settings.autoresponds)
        self.deactivated_commands: List[str] = list(settings.deactivated_commands)
        self.moderation = ModerationGate(settings.blacklist)

        self.users = UserStore(users)
        self.roles = RoleStore(roles)
        self.channels = ChannelConfigStore(channels)

        self.translations = translations or TranslationManager()

        # Transient, rebuilt empty on every load
        self.throttle = ThrottleCache()
        self.quotes: List[str] = []

    @classmethod
    def create(cls, guild_id: EntityKey, name: str = "", language: str = "en",
               translations: TranslationManager | None = None) -> "GuildState":
        return cls(GuildSettings(id=str(guild_id), name=name, language=language), translations)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    @classmethod
    def from_record(cls, record: Mapping[str, Any], **kwargs: Any) -> "GuildState":
        return cls(record_to_dataclass(GuildSettings, record), **kwargs)

    def to_settings(self) -> GuildSettings:
        return GuildSettings(
            id=self.id,
            name=self.name,
            language=self.language,
            log_channel=self.log_channel,
            mute_role=self.mute_role,
            reference_branch=self.reference_branch,
            aliases=self.aliases.to_dict(),
            translations=dict(self.translation_overrides),
            autoresponds=self.autoresponds.to_dict(),
            deactivated_commands=list(self.deactivated_commands),
            blacklist=self.moderation.patterns,
        )

    def to_record(self) -> Dict[str, Any]:
        return dataclass_to_record(self.to_settings())

    def replace_with(self, fresh: "GuildState") -> None:
        """Adopt every persisted value of ``fresh`` and drop transient caches.

        Used by reload: the whole in-memory state is replaced, never merged.
        """
        self.name = fresh.name
        self.language = fresh.language
        self.log_channel = fresh.log_channel
        self.mute_role = fresh.mute_role
        self.reference_branch = fresh.reference_branch
        self.aliases = fresh.aliases
        self.translation_overrides = fresh.translation_overrides
        self.autoresponds = fresh.autoresponds
        self.deactivated_commands = fresh.deactivated_commands
        self.moderation = fresh.moderation
        self.users = fresh.users
        self.roles = fresh.roles
        self.channels = fresh.channels
        self.reset_transient()

    def reset_transient(self) -> None:
        self.throttle = ThrottleCache()
        self.moderation.clear_mute_votes()
        self.quotes = []

    # ------------------------------------------------------------------
    # Translations
    # ------------------------------------------------------------------

    def get_translation(self, key: str) -> str:
        override = self.translation_overrides.get(key)
        if override is not None:
            return override
        return self.translations.get(self.language, key)

    def translate(self, key: str, *args: object) -> str:
        return format_template(self.get_translation(key), *args)

    def has_translation(self, key: str) -> bool:
        return key in self.translation_overrides

    def set_translation(self, key: str, value: str) -> None:
        self.translation_overrides[key] = value

    def delete_translation(self, key: str) -> bool:
        return self.translation_overrides.pop(key, None) is not None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def is_command_deactivated(self, name: str) -> bool:
        return name in self.deactivated_commands

    def deactivate_command(self, name: str) -> bool:
        if self.is_command_deactivated(name):
            return False
        self.deactivated_commands.append(name)
        return True

    def activate_command(self, name: str) -> bool:
        if not self.is_command_deactivated(name):
            return False
        self.deactivated_commands = [entry for entry in self.deactivated_commands if entry != name]
        return True

    # ------------------------------------------------------------------
    # Mute role
    # ------------------------------------------------------------------

    @property
    def mute_role_id(self) -> Optional[RoleID]:
        if not self.mute_role:
            return None
        try:
            return RoleID(self.mute_role)
        except ValueError:
            logger.warning("[GUILD STATE] Guild %s has an invalid mute role %r", self.id, self.mute_role)
            return None

    # ------------------------------------------------------------------
    # Users and roles
    # ------------------------------------------------------------------

    def get_user(self, user_id: EntityKey) -> Optional[User]:
        return self.users.get_user(user_id)

    def ensure_user(self, user_id: EntityKey, username: str = "") -> Tuple[User, bool]:
        user = self.users.get_user(user_id)
        if user is not None:
            return user, False
        user = User(id=str(user_id), username=username)
        self.users.add_user(user)
        logger.info("[USER] New user %s on guild %s", user_id, self.id)
        return user, True

    def register_roles(self, role_ids: Iterable[EntityKey]) -> int:
        """Create a ``Role`` for every id not seen before; return how many."""
        created = 0
        for role_id in role_ids:
            if self.roles.add_role(Role(id=str(role_id))):
                logger.info("[USER] New role %s on guild %s", role_id, self.id)
                created += 1
        return created

    def handle_interaction(
        self,
        user_id: EntityKey,
        username: str,
        role_ids: Iterable[EntityKey] = (),
        *,
        is_message: bool = False,
    ) -> User:
        """Bookkeeping for any observed member action."""
        user, created = self.ensure_user(user_id, username)
        if not created and user.update_display_name(username):
            logger.info("[USER] %s on guild %s is now called %s", user_id, self.id, username)
        self.register_roles(role_ids)
        if is_message:
            user.message_count += 1
        return user

    def record_message_date(self, user_id: EntityKey, when: datetime) -> None:
        user = self.get_user(user_id)
        if user is not None:
            user.last_message = when.replace(microsecond=0).isoformat()

    def record_join(self, user_id: EntityKey, username: str, joined_at: Optional[datetime]) -> User:
        user, _ = self.ensure_user(user_id, username)
        if joined_at is not None and user.joined_server.strip().lower() == NEVER:
            user.joined_server = joined_at.replace(microsecond=0).isoformat()
        return user

    def user_has_permissions_or(self, user_id: EntityKey, permissions: List[str], operator: bool = False) -> bool:
        if operator:
            return True
        user = self.get_user(user_id)
        if user is None:
            return not permissions
        return user.can_permissions_or(permissions)

    def role_has_permissions_or(self, role_id: EntityKey, permissions: List[str]) -> bool:
        role = self.roles.get_role(role_id)
        if role is None:
            return not permissions
        return role.can_permissions_or(permissions)

    def any_role_has_permissions_or(self, role_ids: Iterable[EntityKey], permissions: List[str]) -> bool:
        """True on the first of ``role_ids`` granting one of ``permissions``."""
        return any(self.role_has_permissions_or(role_id, permissions) for role_id in role_ids)

    def __repr__(self) -> str:
        return (
            f"GuildState(id={self.id!r}, users={len(self.users)}, roles={len(self.roles)}, "
            f"channels={len(self.channels)})"
        )
