"""
Blacklist enforcement and mute escalation.

Blacklist entries are plain substrings or ``/regex/`` patterns, both matched
case-insensitively. Every hit deletes the message, writes an audit embed to
the guild's log channel and records an audit entry on the author. Each user's
hit counter only grows; on every third hit the mute role is requested, if the
guild has one configured.

The gate also keeps the transient mute-vote ledger used by ``votemute``: one
list of distinct voters per target, rebuilt empty on every guild reload.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Pattern

import discord

from kiracord.datatypes.discord_datatypes import RoleID
from kiracord.datatypes.guild_datatypes import User
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome, SideEffect
from kiracord.util.logger import get_logger

logger = get_logger("moderation_gate")

# Every MUTE_ESCALATION_STEP-th blacklist hit requests the mute role
MUTE_ESCALATION_STEP = 3

Translator = Callable[..., str]


def is_regex_pattern(pattern: str) -> bool:
    return len(pattern) >= 3 and pattern.startswith("/") and pattern.endswith("/")


@dataclass(slots=True)
class BlacklistHit:
    pattern: str
    hit_count: int
    mute: bool


class ModerationGate:
    """Blacklist evaluation plus the per-guild mute-vote ledger."""

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns: List[str] = []
        self._compiled: Dict[str, Optional[Pattern[str]]] = {}
        self._mute_votes: Dict[str, List[str]] = {}
        for pattern in patterns:
            self.add_pattern(pattern)

    # ------------------------------------------------------------------
    # Blacklist entries
    # ------------------------------------------------------------------

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    def add_pattern(self, pattern: str) -> bool:
        pattern = pattern.strip()
        if not pattern or pattern in self._patterns:
            return False
        self._patterns.append(pattern)
        if is_regex_pattern(pattern):
            self._compiled[pattern] = self._compile(pattern)
        return True

    def remove_pattern(self, pattern: str) -> bool:
        pattern = pattern.strip()
        if pattern not in self._patterns:
            return False
        self._patterns.remove(pattern)
        self._compiled.pop(pattern, None)
        return True

    @staticmethod
    def _compile(pattern: str) -> Optional[Pattern[str]]:
        try:
            return re.compile(pattern[1:-1], re.IGNORECASE)
        except re.error as exc:
            logger.warning("[MODERATION] Ignoring invalid blacklist regex %r: %s", pattern, exc)
            return None

    def match(self, text: str) -> Optional[str]:
        """Return the first blacklist entry found in ``text``."""
        lowered = text.strip().lower()
        for pattern in self._patterns:
            if is_regex_pattern(pattern):
                compiled = self._compiled.get(pattern)
                if compiled is not None and compiled.search(text):
                    return pattern
            elif pattern.lower() in lowered:
                return pattern
        return None

    def is_blacklisted(self, text: str) -> bool:
        return self.match(text) is not None

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    @staticmethod
    def record_hit(user: User, pattern: str, *, mute_role_configured: bool) -> BlacklistHit:
        user.blacklist_message_count += 1
        count = user.blacklist_message_count
        mute = mute_role_configured and count > 0 and count % MUTE_ESCALATION_STEP == 0
        return BlacklistHit(pattern=pattern, hit_count=count, mute=mute)

    def enforce(
        self,
        message: InboundMessage,
        user: User,
        mute_role_id: Optional[RoleID],
        translate: Translator,
    ) -> Optional[MessageOutcome]:
        """Apply the blacklist to ``message``.

        Returns None when the message is clean, otherwise the outcome holding
        the delete, audit-log and (on escalation) mute requests.
        """
        pattern = self.match(message.content)
        if pattern is None:
            return None

        hit = self.record_hit(user, pattern, mute_role_configured=mute_role_id is not None)
        entry = user.add_entry(
            translate("log.blacklist.entry", message.content),
            author_id=str(message.author_id),
            message_url=message.jump_url,
        )
        logger.info(
            "[MODERATION] Blacklisted message from %s in guild %s (hit %d, pattern %r)",
            message.author_id, message.guild_id, hit.hit_count, pattern,
        )

        embed = discord.Embed(
            title=translate("log.blacklist.title", message.author_name),
            description=translate("log.blacklist.body", message.content, str(message.channel_id), str(hit.hit_count)),
            color=discord.Color.orange(),
        )
        embed.set_footer(text=f"{message.author_id} | {entry.id}")

        outcome = MessageOutcome(state_changed=True)
        outcome.side_effects.append(SideEffect.delete_message(message, reason="blacklist"))
        outcome.side_effects.append(SideEffect.audit_log(message.guild_id, embed))
        if hit.mute and mute_role_id is not None:
            logger.info("[MODERATION] Muting %s in guild %s after %d blacklist hits",
                        message.author_id, message.guild_id, hit.hit_count)
            outcome.side_effects.append(
                SideEffect.add_role(message.guild_id, message.author_id, mute_role_id, reason="blacklist escalation")
            )
        return outcome

    # ------------------------------------------------------------------
    # Mute votes
    # ------------------------------------------------------------------

    def add_mute_vote(self, target_id: str, sender_id: str) -> bool:
        """Register ``sender_id``'s vote; False if they already voted."""
        voters = self._mute_votes.setdefault(str(target_id), [])
        if str(sender_id) in voters:
            return False
        voters.append(str(sender_id))
        return True

    def mute_vote_count(self, target_id: str) -> int:
        return len(self._mute_votes.get(str(target_id), []))

    def reset_mute_votes(self, target_id: str) -> None:
        self._mute_votes[str(target_id)] = []

    def clear_mute_votes(self) -> None:
        self._mute_votes.clear()
