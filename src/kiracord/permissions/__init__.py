"""Wildcard-aware permission evaluation."""

from kiracord.permissions.permission_set import (
    OPERATOR_PERMISSION,
    PermissionSet,
    matches,
)

__all__ = ["OPERATOR_PERMISSION", "PermissionSet", "matches"]
