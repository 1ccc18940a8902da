"""
Typo-tolerant autorespond matching.

Triggers are stored normalized (see ``normalize_trigger``). ``has_match``
accepts an edit distance of at most 1, ``lookup`` is more lenient and accepts
2, so a message can be looked up even when ``has_match`` declined it.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Tuple

from kiracord.util.logger import get_logger

logger = get_logger("fuzzy_matcher")

HAS_MATCH_DISTANCE = 1
LOOKUP_DISTANCE = 2

_STRIP_PATTERN = re.compile(r"[ ,?!.]")


def levenshtein(a: str, b: str) -> int:
    """Single-character insert/delete/substitute edit distance, unit costs."""
    if not a or not b:
        return len(a or b)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], current[j - 1], previous[j]) + 1)
        previous = current
    return previous[-1]


def normalize_trigger(text: str) -> str:
    """Trim, drop spaces and ``, ? ! .`` and lowercase."""
    return _STRIP_PATTERN.sub("", text.strip()).lower()


class AutorespondTable:
    """
    Normalized trigger -> canned response.

    ``lookup`` scans the triggers in insertion order and returns the first one
    within ``LOOKUP_DISTANCE``; it is not a nearest-match search.
    """

    def __init__(self, responses: Mapping[str, str] | None = None) -> None:
        self._responses: Dict[str, str] = {}
        for trigger, response in (responses or {}).items():
            key = normalize_trigger(trigger)
            if not key:
                logger.warning("[AUTORESPOND] Dropping stored trigger %r, nothing left after normalizing", trigger)
                continue
            self._responses[key] = response

    def add(self, trigger: str, response: str) -> str:
        """Store ``response`` under the normalized trigger and return that key.

        Raises ValueError when nothing is left of the trigger after normalizing.
        """
        key = normalize_trigger(trigger)
        if not key:
            raise ValueError(f"trigger {trigger!r} is empty once normalized")
        self._responses[key] = response.strip()
        return key

    def remove(self, trigger: str) -> bool:
        return self._responses.pop(normalize_trigger(trigger), None) is not None

    def has_match(self, text: str) -> bool:
        normalized = normalize_trigger(text)
        if normalized in self._responses:
            return True

        for key in self._responses:
            longer, shorter = normalized, key
            if len(shorter) > len(longer):
                longer, shorter = shorter, longer
            if levenshtein(longer, shorter) <= HAS_MATCH_DISTANCE:
                return True
        return False

    def lookup(self, text: str) -> Optional[str]:
        normalized = normalize_trigger(text)
        response = self._responses.get(normalized)
        if response is not None:
            return response

        for key, candidate in self._responses.items():
            if levenshtein(normalized, key) <= LOOKUP_DISTANCE:
                logger.debug("[AUTORESPOND] %r matched trigger %r by edit distance", normalized, key)
                return candidate
        return None

    def items(self) -> List[Tuple[str, str]]:
        return list(self._responses.items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._responses)

    def __len__(self) -> int:
        return len(self._responses)

    def __contains__(self, trigger: object) -> bool:
        return isinstance(trigger, str) and normalize_trigger(trigger) in self._responses
