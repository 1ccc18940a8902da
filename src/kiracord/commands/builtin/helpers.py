"""Argument helpers shared by the built-in commands."""

from __future__ import annotations

from typing import Optional, Tuple

import discord

MENTION_USER = "user"
MENTION_ROLE = "role"
MENTION_CHANNEL = "channel"
MENTION_RAW = "raw"

# Discord caps message content at 2000 characters
MAX_REPLY_LENGTH = 2000


def parse_mention(value: str) -> Tuple[str, str]:
    """Split ``<@123>``, ``<@!123>``, ``<@&123>``, ``<#123>`` or ``123`` into (kind, id)."""
    value = value.strip()
    if value.startswith("<@&") and value.endswith(">"):
        return MENTION_ROLE, value[3:-1]
    if value.startswith("<@") and value.endswith(">"):
        return MENTION_USER, value[2:-1].lstrip("!")
    if value.startswith("<#") and value.endswith(">"):
        return MENTION_CHANNEL, value[2:-1]
    return MENTION_RAW, value


def parse_snowflake(value: str) -> Optional[str]:
    """Return the numeric id inside a mention or raw id, or None."""
    _, raw = parse_mention(value)
    return raw if raw.isdigit() else None


def truncate(text: str, limit: int = MAX_REPLY_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def code_list(lines: list[str]) -> str:
    return "```\n" + "\n".join(lines) + "\n```" if lines else ""


def parse_color(value: str) -> Optional[discord.Color]:
    """Parse ``#rrggbb`` / ``rrggbb`` / ``0xrrggbb`` into a colour."""
    raw = value.strip().lower().removeprefix("#").removeprefix("0x")
    if len(raw) != 6:
        return None
    try:
        return discord.Color(int(raw, 16))
    except ValueError:
        return None
