"""
Wildcard permission storage shared by users and roles.

Permissions are dotted strings such as ``admin.config``. A trailing ``*``
turns a permission into a prefix: ``admin.*`` grants ``admin.config`` and
``admin.alias``, and a request for ``admin.*`` is satisfied by a stored
``admin.config``. The comparison is symmetric, so the wildcard may sit on
either side.
"""

from __future__ import annotations

from typing import Iterable, Set

# First entry of a command's permission list reserving it for global operators
OPERATOR_PERMISSION = "OPERATOR"

WILDCARD = "*"


def matches(first: str, second: str) -> bool:
    """Return True if two permissions match exactly or by wildcard prefix."""
    first = first.strip()
    second = second.strip()

    if first == second:
        return True
    if first.endswith(WILDCARD):
        return second.startswith(first[:-1])
    if second.endswith(WILDCARD):
        return first.startswith(second[:-1])
    return False


class PermissionSet:
    """
    Enabled/disabled permission sets with wildcard evaluation.

    The sets are held by reference: a ``PermissionSet`` built over an entity's
    stored sets mutates that entity in place.

    Effective permission = operator OR (some enabled entry matches AND no
    disabled entry matches).
    """

    __slots__ = ("enabled", "disabled", "operator")

    def __init__(
        self,
        enabled: Set[str] | None = None,
        disabled: Set[str] | None = None,
        operator: bool = False,
    ) -> None:
        self.enabled: Set[str] = enabled if enabled is not None else set()
        self.disabled: Set[str] = disabled if disabled is not None else set()
        self.operator = operator

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def is_enabled(self, permission: str) -> bool:
        return any(matches(entry, permission) for entry in self.enabled)

    def is_disabled(self, permission: str) -> bool:
        return any(matches(entry, permission) for entry in self.disabled)

    def can(self, permission: str) -> bool:
        if self.operator:
            return True
        return self.is_enabled(permission) and not self.is_disabled(permission)

    def can_any(self, permissions: Iterable[str]) -> bool:
        """OR-evaluation over ``permissions``; an empty requirement is satisfied."""
        permissions = list(permissions)
        if self.operator or not permissions:
            return True
        return any(self.can(permission) for permission in permissions)

    def can_all(self, permissions: Iterable[str]) -> bool:
        if self.operator:
            return True
        return all(self.can(permission) for permission in permissions)

    def effective(self) -> Set[str]:
        """Enabled entries that are not shadowed by a disabled entry."""
        return {entry for entry in self.enabled if not self.is_disabled(entry)}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def enable(self, permission: str) -> bool:
        """Store ``permission`` unless an enabled entry already covers it."""
        permission = permission.strip()
        if not permission or self.is_enabled(permission):
            return False
        self.enabled.add(permission)
        return True

    def disable(self, permission: str) -> bool:
        permission = permission.strip()
        if not permission or self.is_disabled(permission):
            return False
        self.disabled.add(permission)
        return True

    def remove(self, permission: str) -> int:
        """Drop every enabled and disabled entry matching ``permission``.

        Returns the number of removed entries.
        """
        doomed_enabled = {entry for entry in self.enabled if matches(entry, permission)}
        doomed_disabled = {entry for entry in self.disabled if matches(entry, permission)}
        self.enabled -= doomed_enabled
        self.disabled -= doomed_disabled
        return len(doomed_enabled) + len(doomed_disabled)

    def __repr__(self) -> str:
        return (
            f"PermissionSet(enabled={sorted(self.enabled)!r}, "
            f"disabled={sorted(self.disabled)!r}, operator={self.operator!r})"
        )
