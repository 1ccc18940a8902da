"""
Flat-record (de)serialization for persisted entities.

Every persisted entity is a dataclass. ``record_to_dataclass`` is the single
place where stored records are turned back into value objects: unknown keys
are dropped, absent or ``None`` values fall back to the field defaults, and
set-typed fields are rebuilt from their stored lists. Fields declared with
``metadata={"transient": True}`` are never written and never read.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Mapping, Type, TypeVar

T = TypeVar("T")

TRANSIENT = {"transient": True}


def _is_transient(f: dataclasses.Field) -> bool:
    return bool(f.metadata.get("transient", False))


def _default_for(f: dataclasses.Field) -> Any:
    if f.default is not dataclasses.MISSING:
        return f.default
    if f.default_factory is not dataclasses.MISSING:  # type: ignore[misc]
        return f.default_factory()  # type: ignore[misc]
    raise KeyError(f.name)


def _coerce(template: Any, value: Any) -> Any:
    """Shape a stored value like the field default it replaces."""
    if isinstance(template, set):
        return set(value or [])
    if isinstance(template, list):
        return list(value or [])
    if isinstance(template, dict):
        return dict(value or {})
    if isinstance(template, bool):
        return bool(value)
    if isinstance(template, int):
        return int(value)
    if isinstance(template, str):
        return str(value)
    return value


def record_to_dataclass(cls: Type[T], record: Mapping[str, Any] | None, **overrides: Any) -> T:
    """Build a fully populated ``cls`` instance from a stored record.

    Args:
        cls: Dataclass type to instantiate.
        record: Flat mapping read from storage. ``None`` is treated as empty.
        **overrides: Values that win over the record (e.g. a parent id).

    Raises:
        KeyError: If a required field (one without default) is missing.
    """
    record = record or {}
    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(cls):  # type: ignore[arg-type]
        if not f.init or _is_transient(f):
            continue
        if f.name in overrides:
            kwargs[f.name] = overrides[f.name]
            continue
        value = record.get(f.name)
        try:
            default = _default_for(f)
        except KeyError:
            if value is None:
                raise
            kwargs[f.name] = value
            continue
        kwargs[f.name] = default if value is None else _coerce(default, value)
    return cls(**kwargs)


def dataclass_to_record(obj: Any) -> Dict[str, Any]:
    """Serialize a dataclass into a JSON-friendly flat record.

    Sets become sorted lists so the stored form is deterministic.
    """
    record: Dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        if _is_transient(f):
            continue
        value = getattr(obj, f.name)
        if isinstance(value, (set, frozenset)):
            value = sorted(value)
        elif isinstance(value, list):
            value = [dataclass_to_record(v) if dataclasses.is_dataclass(v) else v for v in value]
        elif isinstance(value, dict):
            value = dict(value)
        record[f.name] = value
    return record
