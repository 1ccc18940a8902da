"""
Global translation tables.

Each language is one YAML mapping ``key -> template``. Templates use numbered
placeholders (``{1}``, ``{2}``, ...) filled by ``format_template``. Guild-level
overrides are layered on top by ``GuildState.translate``.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import yaml

from kiracord.util.logger import get_logger

logger = get_logger("translations")

_PLACEHOLDER = re.compile(r"\{(\d+)\}")


def format_template(template: str, *args: object) -> str:
    """Replace ``{n}`` with the n-th (1-based) argument; unknown slots stay."""

    def _substitute(match: re.Match) -> str:
        index = int(match.group(1)) - 1
        if 0 <= index < len(args):
            return str(args[index])
        return match.group(0)

    return _PLACEHOLDER.sub(_substitute, template)


class TranslationManager:
    """Language code -> translation table, with default-language fallback."""

    def __init__(self, tables: Mapping[str, Mapping[str, str]] | None = None, default_language: str = "en") -> None:
        self.default_language = default_language.lower()
        self._tables: Dict[str, Dict[str, str]] = {}
        self._names: Dict[str, str] = {}
        for lang, table in (tables or {}).items():
            self.add_table(lang, table)

    def add_table(self, lang: str, table: Mapping[str, str], name: str | None = None) -> None:
        lang = lang.lower()
        self._tables[lang] = {str(k): str(v) for k, v in table.items()}
        self._names[lang] = name or lang

    @classmethod
    def from_directory(cls, directory: Path, default_language: str = "en") -> "TranslationManager":
        """Load every ``<lang>.yml`` below ``directory``.

        A table may carry its display name under the reserved ``_name`` key.
        Unreadable files are logged and skipped.
        """
        manager = cls(default_language=default_language)
        if not directory.is_dir():
            logger.error("[TRANSLATIONS] Directory %s does not exist", directory)
            return manager

        for path in sorted(directory.glob("*.yml")):
            try:
                with path.open("r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as exc:
                logger.error("[TRANSLATIONS] Failed to load %s: %s", path, exc)
                continue
            if not isinstance(data, dict):
                logger.warning("[TRANSLATIONS] %s is not a mapping, skipping", path)
                continue
            name = data.pop("_name", None)
            manager.add_table(path.stem, data, name=str(name) if name else None)
            logger.info("[TRANSLATIONS] Loaded %d strings for '%s'", len(data), path.stem)
        return manager

    def has_language(self, lang: str) -> bool:
        return lang.lower() in self._tables

    def languages(self) -> List[str]:
        return sorted(self._tables)

    def language_name(self, lang: str) -> str:
        return self._names.get(lang.lower(), lang)

    def lookup(self, lang: str, key: str) -> Optional[str]:
        table = self._tables.get((lang or "").lower())
        if table is not None and key in table:
            return table[key]
        fallback = self._tables.get(self.default_language)
        if fallback is not None and key in fallback:
            return fallback[key]
        return None

    def get(self, lang: str, key: str) -> str:
        """Template for ``key`` in ``lang``; the key itself when untranslated."""
        template = self.lookup(lang, key)
        if template is None:
            logger.debug("[TRANSLATIONS] Missing key %r for language %r", key, lang)
            return key
        return template
