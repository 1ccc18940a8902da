import pytest

from kiracord.datatypes.guild_datatypes import NEVER, AuditEntry, ChannelConfig, Role, User, stable_hash


def test_user_defaults_from_sparse_record():
    user = User.from_record({"id": "42", "unknown_field": "ignored"})
    assert user.username == ""
    assert user.enabled_permissions == set()
    assert user.entries == []
    assert user.message_count == 0
    assert user.last_message == NEVER
    assert user.joined_server == NEVER


def test_none_values_fall_back_to_defaults():
    user = User.from_record({"id": "42", "message_count": None, "username": None})
    assert user.message_count == 0
    assert user.username == ""


def test_missing_required_id_raises():
    with pytest.raises(KeyError):
        User.from_record({"username": "nobody"})


def test_sets_are_stored_as_sorted_lists():
    user = User(id="1", enabled_permissions={"b.x", "a.y"})
    record = user.to_record()
    assert record["enabled_permissions"] == ["a.y", "b.x"]
    assert User.from_record(record).enabled_permissions == {"a.y", "b.x"}


def test_operator_flag_is_never_persisted():
    user = User(id="1", operator=True)
    record = user.to_record()
    assert "operator" not in record
    assert User.from_record({**record, "operator": True}).operator is False


def test_entries_survive_a_record_cycle():
    user = User(id="7")
    entry = user.add_entry("note", author_id="8", message_url="https://example.com")
    restored = User.from_record(user.to_record())
    assert restored.entries == [entry]
    assert isinstance(restored.entries[0], AuditEntry)
    assert restored.get_entry(entry.id) is not None
    assert restored.remove_entry(entry.id)
    assert not restored.remove_entry(entry.id)


def test_update_display_name():
    user = User(id="1", username="old")
    assert not user.update_display_name("old ")
    assert not user.update_display_name("")
    assert user.update_display_name("new")
    assert user.username == "new"


def test_role_record():
    role = Role.from_record({"id": "5", "enabled_permissions": ["user.*"]})
    assert role.can_permission("user.quote")
    assert role.to_record() == {"id": "5", "enabled_permissions": ["user.*"]}


def test_channel_config_id_is_derived():
    config = ChannelConfig.create("300", "https://example.com/feed")
    assert config.id == stable_hash("300", "https://example.com/feed")
    assert ChannelConfig.from_record({"channel_id": "300", "feed_url": "https://example.com/feed"}).id == config.id
    assert ChannelConfig.from_record({"id": "custom", "channel_id": "300"}).id == "custom"


def test_stable_hash_is_deterministic():
    assert stable_hash("a", "b") == stable_hash("a", "b")
    assert stable_hash("a", "b") != stable_hash("ab")
    assert len(stable_hash("x", length=8)) == 8
