"""
Moderation commands: blacklist upkeep, audit entries on members and mute votes.

    blacklist list | add <pattern> | remove <pattern>
    entry list <user> | add <user> <text...> | remove <user> <id>
    votemute <user>
"""

from __future__ import annotations

from typing import Any, List, Optional

import discord

from kiracord.commands.command_datatypes import InvocationContext, ParsedCommand
from kiracord.commands.builtin.helpers import MENTION_ROLE, MENTION_CHANNEL, code_list, parse_mention, truncate
from kiracord.datatypes.discord_datatypes import UserID
from kiracord.datatypes.message_datatypes import InboundMessage, MessageOutcome, SideEffect
from kiracord.util.logger import get_logger

logger = get_logger("moderation_cmds")


def _user_target(value: str) -> Optional[str]:
    kind, raw = parse_mention(value)
    if kind in (MENTION_ROLE, MENTION_CHANNEL) or not raw.isdigit():
        return None
    return raw


class BlacklistCommand:
    name = "blacklist"
    permissions: List[str] = ["admin.blacklist"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def validate_syntax(self, command: ParsedCommand) -> bool:
        action = command.arg(0)
        if action == "list":
            return command.argc == 1
        return action in ("add", "remove") and command.argc >= 2

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        action = command.arg(0)
        if action == "list":
            patterns = guild.moderation.patterns
            if not patterns:
                return MessageOutcome.text(guild.translate("command.blacklist.list_empty"))
            return MessageOutcome.text(truncate(guild.translate("command.blacklist.list", code_list(patterns))))

        # Patterns may contain spaces; take the untouched remainder
        pattern = command.raw_arguments[len(action):].strip()
        if action == "add":
            if not guild.moderation.add_pattern(pattern):
                return MessageOutcome.text(guild.translate("command.blacklist.exists", pattern))
            logger.info("[BLACKLIST] Guild %s added pattern %r", guild.id, pattern)
            return MessageOutcome.text(guild.translate("command.blacklist.added", pattern), state_changed=True)

        if not guild.moderation.remove_pattern(pattern):
            return MessageOutcome.text(guild.translate("command.blacklist.not_found", pattern))
        logger.info("[BLACKLIST] Guild %s removed pattern %r", guild.id, pattern)
        return MessageOutcome.text(guild.translate("command.blacklist.removed", pattern), state_changed=True)


class EntryCommand:
    """Moderator notes attached to a member, mirrored to the log channel."""

    name = "entry"
    permissions: List[str] = ["admin.entry"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def validate_syntax(self, command: ParsedCommand) -> bool:
        action = command.arg(0)
        if action == "list":
            return command.argc == 2
        if action == "add":
            return command.argc >= 3
        if action == "remove":
            return command.argc == 3
        return False

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        action = command.arg(0)
        target_id = _user_target(command.arg(1))
        user = guild.get_user(target_id) if target_id else None
        if user is None:
            return MessageOutcome.text(guild.translate("command.user_not_found", command.arg(1)))

        if action == "list":
            if not user.entries:
                return MessageOutcome.text(guild.translate("command.entry.list_empty", user.username or user.id))
            lines = [f"[{entry.id}] {entry.date} {entry.content}" for entry in user.entries]
            return MessageOutcome.text(
                truncate(guild.translate("command.entry.list", user.username or user.id, code_list(lines)))
            )

        if action == "remove":
            entry_id = command.arg(2)
            if not user.remove_entry(entry_id):
                return MessageOutcome.text(guild.translate("command.entry.not_found", entry_id))
            return MessageOutcome.text(guild.translate("command.entry.removed", entry_id), state_changed=True)

        text = " ".join(command.arguments[2:])
        entry = user.add_entry(text, author_id=str(message.author_id), message_url=message.jump_url)
        logger.info("[ENTRY] %s added entry %s to %s on guild %s", message.author_id, entry.id, user.id, guild.id)

        embed = discord.Embed(
            title=guild.translate("log.user_entry_added.title", user.username or user.id),
            description=guild.translate("log.user_entry_added.body", text, message.author_name),
            color=discord.Color.blue(),
        )
        embed.set_footer(text=f"{user.id} | {entry.id}")

        outcome = MessageOutcome.text(guild.translate("command.entry.added", entry.id), state_changed=True)
        outcome.side_effects.append(SideEffect.audit_log(message.guild_id, embed))
        return outcome


class VoteMuteCommand:
    """Collects distinct votes; the mute role is given once the threshold is met."""

    name = "votemute"
    permissions: List[str] = ["user.votemute"]
    frequency_maximum: Optional[int] = None
    frequency_minutes: float = 0

    def validate_syntax(self, command: ParsedCommand) -> bool:
        return command.argc == 1

    async def run(self, config, message: InboundMessage, guild, command: ParsedCommand,
                  invoker: InvocationContext, client: Any) -> MessageOutcome:
        mute_role_id = guild.mute_role_id
        if mute_role_id is None:
            return MessageOutcome.text(guild.translate("command.votemute.no_mute_role"))

        target_id = _user_target(command.arg(0))
        if target_id is None:
            return MessageOutcome.text(guild.translate("command.user_not_found", command.arg(0)))

        if not guild.moderation.add_mute_vote(target_id, str(message.author_id)):
            return MessageOutcome.text(guild.translate("command.votemute.already_voted"))

        votes = guild.moderation.mute_vote_count(target_id)
        threshold = config.mute_vote_threshold
        if votes < threshold:
            return MessageOutcome.text(guild.translate("command.votemute.vote_registered", votes, threshold))

        guild.moderation.reset_mute_votes(target_id)
        logger.info("[VOTEMUTE] Muting %s on guild %s after %d votes", target_id, guild.id, votes)
        outcome = MessageOutcome.text(guild.translate("command.votemute.muted", target_id))
        outcome.side_effects.append(
            SideEffect.add_role(message.guild_id, UserID(target_id), mute_role_id, reason="vote mute")
        )
        return outcome
