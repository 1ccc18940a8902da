from datetime import datetime, timezone

from kiracord.datatypes.guild_datatypes import NEVER, ChannelConfig, Role, User
from kiracord.datatypes.discord_datatypes import RoleID
from kiracord.guild.guild_state import GuildState


def test_handle_interaction_creates_and_counts(guild):
    user = guild.handle_interaction("2000", "alice", ["10", "11"], is_message=True)
    assert user.message_count == 1
    assert guild.get_user("2000") is user
    assert guild.roles.get_role("10") is not None
    assert len(guild.roles) == 2

    guild.handle_interaction("2000", "alice2", ["10"], is_message=True)
    assert user.message_count == 2
    assert user.username == "alice2"
    assert len(guild.roles) == 2


def test_non_message_interaction_does_not_count(guild):
    user = guild.handle_interaction("2000", "alice")
    assert user.message_count == 0


def test_register_roles_reports_new_roles(guild):
    assert guild.register_roles(["1", "2"]) == 2
    assert guild.register_roles(["2", "3"]) == 1


def test_record_message_date_truncates_to_seconds(guild):
    guild.ensure_user("2000", "alice")
    guild.record_message_date("2000", datetime(2024, 1, 2, 3, 4, 5, 678, tzinfo=timezone.utc))
    assert guild.get_user("2000").last_message == "2024-01-02T03:04:05+00:00"
    guild.record_message_date("404", datetime.now(timezone.utc))
    assert guild.get_user("404") is None


def test_record_join_only_sets_first_join(guild):
    first = datetime(2023, 1, 1, tzinfo=timezone.utc)
    user = guild.record_join("2000", "alice", first)
    assert user.joined_server == "2023-01-01T00:00:00+00:00"
    guild.record_join("2000", "alice", datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert user.joined_server == "2023-01-01T00:00:00+00:00"
    assert guild.record_join("2001", "bob", None).joined_server == NEVER


def test_deactivate_and_activate(guild):
    assert guild.deactivate_command("ping")
    assert not guild.deactivate_command("ping")
    assert guild.is_command_deactivated("ping")
    assert guild.activate_command("ping")
    assert not guild.activate_command("ping")
    assert not guild.is_command_deactivated("ping")


def test_mute_role_id(guild):
    assert guild.mute_role_id is None
    guild.mute_role = "77"
    assert guild.mute_role_id == RoleID(77)
    guild.mute_role = "not-a-role"
    assert guild.mute_role_id is None


def test_record_round_trip(translations):
    guild = GuildState.create("1000", name="Test", translations=translations)
    guild.language = "de"
    guild.aliases.set("p", "ping")
    guild.autoresponds.add("hello", "hi")
    guild.moderation.add_pattern("spam")
    guild.deactivate_command("quote")
    guild.set_translation("command.ping.pong", "Peng")

    record = guild.to_record()
    restored = GuildState.from_record(record, translations=translations)

    assert restored.to_record() == record
    assert restored.aliases.resolve("p") == "ping"
    assert restored.moderation.patterns == ["spam"]
    assert restored.translate("command.ping.pong") == "Peng"


def test_replace_with_drops_transient_state(guild):
    guild.quotes.append("something clever")
    guild.moderation.add_mute_vote("5", "1")
    guild.throttle.hit("ping", 3, 1)

    fresh = GuildState.create(
        guild.id, name="Renamed", translations=guild.translations,
    )
    fresh.users.add_user(User(id="55"))
    fresh.roles.add_role(Role(id="66"))
    fresh.channels.add_config(ChannelConfig.create("300", "https://example.com"))

    guild.replace_with(fresh)

    assert guild.name == "Renamed"
    assert guild.quotes == []
    assert guild.moderation.mute_vote_count("5") == 0
    assert guild.get_user("55") is not None
    assert len(guild.roles) == 1
    assert len(guild.channels) == 1


def test_reset_transient_keeps_persisted_values(guild):
    guild.moderation.add_pattern("spam")
    guild.moderation.add_mute_vote("5", "1")
    guild.reset_transient()
    assert guild.moderation.patterns == ["spam"]
    assert guild.moderation.mute_vote_count("5") == 0


def test_permission_helpers(guild):
    user, _ = guild.ensure_user("2000", "alice")
    user.enabled_permissions.add("user.quote")
    guild.roles.add_role(Role(id="10", enabled_permissions={"admin.*"}))

    assert guild.user_has_permissions_or("2000", ["user.quote"])
    assert not guild.user_has_permissions_or("2000", ["admin.alias"])
    assert guild.user_has_permissions_or("2000", ["admin.alias"], operator=True)
    assert guild.any_role_has_permissions_or(["10"], ["admin.alias"])
    assert not guild.any_role_has_permissions_or(["11"], ["admin.alias"])
