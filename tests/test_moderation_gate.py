import discord

from kiracord.datatypes.discord_datatypes import RoleID
from kiracord.datatypes.guild_datatypes import User
from kiracord.datatypes.message_datatypes import SideEffectType
from kiracord.moderation.moderation_gate import ModerationGate, is_regex_pattern


def _translate(key, *args):
    return key + ":" + "|".join(str(arg) for arg in args)


def test_substring_match_is_case_insensitive():
    gate = ModerationGate(["badword"])
    assert gate.is_blacklisted("this has a BadWord inside")
    assert not gate.is_blacklisted("all clean")


def test_regex_patterns():
    gate = ModerationGate([r"/fr[e3]e\s+nitro/"])
    assert is_regex_pattern(r"/fr[e3]e\s+nitro/")
    assert gate.match("Get FR3E   Nitro now") == r"/fr[e3]e\s+nitro/"
    assert not gate.is_blacklisted("nitro is free")


def test_invalid_regex_is_skipped():
    gate = ModerationGate(["/([unclosed/", "spam"])
    assert gate.patterns == ["/([unclosed/", "spam"]
    assert not gate.is_blacklisted("([unclosed")
    assert gate.is_blacklisted("spam spam")


def test_short_slash_entries_are_substrings():
    gate = ModerationGate(["//"])
    assert not is_regex_pattern("//")
    assert gate.is_blacklisted("see https://example.com")


def test_add_and_remove_patterns():
    gate = ModerationGate()
    assert gate.add_pattern("spam")
    assert not gate.add_pattern("spam")
    assert not gate.add_pattern("   ")
    assert gate.remove_pattern("spam")
    assert not gate.remove_pattern("spam")


def test_mute_escalates_on_every_third_hit(make_message):
    gate = ModerationGate(["badword"])
    user = User(id="2000")
    muted_on = []

    for hit in range(1, 10):
        outcome = gate.enforce(make_message("badword!"), user, RoleID(77), _translate)
        kinds = [effect.kind for effect in outcome.side_effects]
        assert kinds[:2] == [SideEffectType.DELETE_MESSAGE, SideEffectType.AUDIT_LOG]
        if SideEffectType.ADD_ROLE in kinds:
            muted_on.append(hit)

    assert muted_on == [3, 6, 9]
    assert user.blacklist_message_count == 9
    assert len(user.entries) == 9


def test_no_mute_without_mute_role(make_message):
    gate = ModerationGate(["badword"])
    user = User(id="2000", blacklist_message_count=2)
    outcome = gate.enforce(make_message("badword"), user, None, _translate)
    assert user.blacklist_message_count == 3
    assert all(effect.kind is not SideEffectType.ADD_ROLE for effect in outcome.side_effects)


def test_enforce_outcome_details(make_message):
    gate = ModerationGate(["badword"])
    user = User(id="2000")
    message = make_message("a badword here")

    outcome = gate.enforce(message, user, None, _translate)

    assert outcome.state_changed
    assert outcome.reply is None
    delete, audit = outcome.side_effects
    assert delete.message_id == message.message_id
    assert isinstance(audit.embed, discord.Embed)
    assert audit.embed.title == "log.blacklist.title:alice"
    assert user.entries[0].content == "log.blacklist.entry:a badword here"
    assert user.entries[0].message_url == message.jump_url


def test_clean_message_returns_none(make_message):
    gate = ModerationGate(["badword"])
    user = User(id="2000")
    assert gate.enforce(make_message("hello"), user, RoleID(1), _translate) is None
    assert user.blacklist_message_count == 0


def test_mute_votes_are_deduplicated():
    gate = ModerationGate()
    assert gate.add_mute_vote("5", "1")
    assert not gate.add_mute_vote("5", "1")
    assert gate.add_mute_vote("5", "2")
    assert gate.mute_vote_count("5") == 2
    assert gate.mute_vote_count("6") == 0
    gate.reset_mute_votes("5")
    assert gate.mute_vote_count("5") == 0
    gate.add_mute_vote("6", "1")
    gate.clear_mute_votes()
    assert gate.mute_vote_count("6") == 0
