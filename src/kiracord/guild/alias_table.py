"""Alias -> canonical command name mapping of a guild."""

from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Optional, Tuple


class AliasTable:
    """
    Maps invoked names to canonical command names.

    Chains are not followed: ``resolve`` performs exactly one lookup, and the
    dispatcher calls it a bounded number of times per message.
    """

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        self._aliases: Dict[str, str] = dict(aliases or {})

    def set(self, alias: str, canonical: str) -> None:
        self._aliases[alias] = canonical

    def resolve(self, alias: str) -> Optional[str]:
        return self._aliases.get(alias)

    def remove(self, alias: str) -> bool:
        return self._aliases.pop(alias, None) is not None

    def aliases_for(self, canonical: str) -> List[str]:
        return [alias for alias, target in self._aliases.items() if target == canonical]

    def remove_aliases_for(self, canonical: str) -> int:
        doomed = self.aliases_for(canonical)
        for alias in doomed:
            del self._aliases[alias]
        return len(doomed)

    def items(self) -> List[Tuple[str, str]]:
        return list(self._aliases.items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._aliases)

    def __contains__(self, alias: object) -> bool:
        return alias in self._aliases

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._aliases))

    def __len__(self) -> int:
        return len(self._aliases)
