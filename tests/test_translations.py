from kiracord.i18n.translations import TranslationManager, format_template


def test_format_template():
    assert format_template("{1} and {2}", "a", "b") == "a and b"
    assert format_template("{2}{1}{2}", "x", "y") == "yxy"
    assert format_template("missing {3}", "a") == "missing {3}"
    assert format_template("no slots") == "no slots"


def test_lookup_falls_back_to_default_language_then_key():
    manager = TranslationManager({"en": {"a": "A", "b": "B"}, "de": {"a": "Ä"}})
    assert manager.get("de", "a") == "Ä"
    assert manager.get("de", "b") == "B"
    assert manager.get("fr", "a") == "A"
    assert manager.get("de", "zzz") == "zzz"
    assert manager.lookup("de", "zzz") is None


def test_from_directory_reads_names(tmp_path):
    (tmp_path / "en.yml").write_text("_name: English\ngreeting: Hello {1}\n", encoding="utf-8")
    (tmp_path / "xx.yml").write_text("- not\n- a mapping\n", encoding="utf-8")
    manager = TranslationManager.from_directory(tmp_path)
    assert manager.languages() == ["en"]
    assert manager.language_name("en") == "English"
    assert manager.get("en", "greeting") == "Hello {1}"


def test_missing_directory_gives_empty_manager(tmp_path):
    manager = TranslationManager.from_directory(tmp_path / "nope")
    assert manager.languages() == []
    assert manager.get("en", "key") == "key"


def test_shipped_tables_cover_the_same_keys(translations):
    assert set(translations.languages()) == {"de", "en"}
    english = {key for key in translations._tables["en"]}
    german = {key for key in translations._tables["de"]}
    assert english == german
    assert translations.language_name("de") == "Deutsch"


def test_guild_overlay_wins(guild):
    assert guild.translate("command.ping.pong") == "Pong!"
    guild.set_translation("command.ping.pong", "Peng {1}")
    assert guild.has_translation("command.ping.pong")
    assert guild.translate("command.ping.pong", "!") == "Peng !"
    assert guild.delete_translation("command.ping.pong")
    assert not guild.delete_translation("command.ping.pong")
    guild.language = "de"
    assert guild.translate("command.not_found", "x") == "Den Befehl `x` gibt es nicht."
