"""
Pytest configuration and fixtures for Kiracord tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src directory to path so imports work
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))

from kiracord.configuration.app_configuration import AppConfig  # noqa: E402
from kiracord.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID  # noqa: E402
from kiracord.datatypes.message_datatypes import InboundMessage  # noqa: E402
from kiracord.guild.guild_state import GuildState  # noqa: E402
from kiracord.i18n.translations import TranslationManager  # noqa: E402

GUILD_ID = "1000"
OPERATOR_ID = "9000"


@pytest.fixture
def translations():
    return TranslationManager.from_directory(ROOT / "config" / "translations", "en")


@pytest.fixture
def config():
    return AppConfig(data={"command_prefix": "!", "operators": [OPERATOR_ID], "mute_vote_threshold": 2})


@pytest.fixture
def guild(translations):
    return GuildState.create(GUILD_ID, name="Test Guild", translations=translations)


@pytest.fixture
def make_message():
    """Factory for inbound messages with sensible ids."""
    counter = iter(range(5000, 10**6))

    def _make(content, author_id=2000, role_ids=(), author_name="alice", is_bot=False, channel_id=3000):
        return InboundMessage(
            guild_id=GuildID(GUILD_ID),
            channel_id=ChannelID(channel_id),
            message_id=MessageID(next(counter)),
            author_id=UserID(author_id),
            author_name=author_name,
            content=content,
            author_role_ids=[RoleID(role_id) for role_id in role_ids],
            author_is_bot=is_bot,
            jump_url="https://discord.com/channels/1000/3000/1",
            created_at=datetime(2024, 5, 1, 12, 30, 15, 999, tzinfo=timezone.utc),
        )

    return _make
