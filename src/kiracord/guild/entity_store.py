"""
Keyed in-memory collections backing a guild's persisted entities.

Lookups never raise: a missing id yields ``None``. Inserting over an occupied
id is a no-op (the first record wins during a bulk load); callers that want to
change an entity mutate the stored instance instead of replacing it.
"""

from __future__ import annotations

from typing import Dict, Generic, Iterable, Iterator, List, Optional, TypeVar, Union

from kiracord.datatypes.discord_datatypes import Snowflake
from kiracord.datatypes.guild_datatypes import ChannelConfig, Role, User

E = TypeVar("E", User, Role, ChannelConfig)

EntityKey = Union[str, int, Snowflake]


def _key(entity_id: EntityKey) -> str:
    return str(entity_id).strip()


class EntityCollection(Generic[E]):
    """Dictionary of entities keyed by their string id."""

    def __init__(self, entities: Iterable[E] = ()) -> None:
        self._items: Dict[str, E] = {}
        for entity in entities:
            self.add(entity)

    def add(self, entity: E) -> bool:
        """Insert ``entity``; return False if its id is already taken."""
        key = _key(entity.id)
        if key in self._items:
            return False
        self._items[key] = entity
        return True

    def get(self, entity_id: EntityKey) -> Optional[E]:
        return self._items.get(_key(entity_id))

    def remove(self, entity_id: EntityKey) -> bool:
        return self._items.pop(_key(entity_id), None) is not None

    def ids(self) -> List[str]:
        return list(self._items.keys())

    def __contains__(self, entity_id: object) -> bool:
        return _key(entity_id) in self._items  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self)} entities)"


class UserStore(EntityCollection[User]):
    def add_user(self, user: User) -> bool:
        return self.add(user)

    def get_user(self, user_id: EntityKey) -> Optional[User]:
        return self.get(user_id)

    def delete_user(self, user_id: EntityKey) -> bool:
        return self.remove(user_id)


class RoleStore(EntityCollection[Role]):
    def add_role(self, role: Role) -> bool:
        return self.add(role)

    def get_role(self, role_id: EntityKey) -> Optional[Role]:
        return self.get(role_id)


class ChannelConfigStore(EntityCollection[ChannelConfig]):
    """Channel configs keyed by configuration id.

    Several configs can share a channel, so channel lookups return lists.
    """

    def add_config(self, config: ChannelConfig) -> bool:
        if not config.id:
            config.refresh_id()
        return self.add(config)

    def get_config(self, config_id: EntityKey) -> Optional[ChannelConfig]:
        return self.get(config_id)

    def delete_config(self, config_id: EntityKey) -> bool:
        return self.remove(config_id)

    def by_channel(self, channel_id: EntityKey) -> List[ChannelConfig]:
        wanted = _key(channel_id)
        return [config for config in self if config.channel_id == wanted]

    def by_type(self, type_tag: str) -> List[ChannelConfig]:
        return [config for config in self if config.type == type_tag]

    def has_channel(self, channel_id: EntityKey) -> bool:
        return bool(self.by_channel(channel_id))
