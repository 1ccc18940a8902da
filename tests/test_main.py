"""Tests for the runtime entry points in main.py."""
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from kiracord import main as main_module


def test_resolve_base_dir_prefers_env(monkeypatch, tmp_path):
    monkeypatch.setenv("KIRACORD_HOME", str(tmp_path))
    assert main_module.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_defaults_to_repository(monkeypatch):
    monkeypatch.delenv("KIRACORD_HOME", raising=False)
    assert (main_module.resolve_base_dir() / "config" / "app_config.yml").exists()


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)
    with patch.object(main_module, "load_dotenv"):
        with pytest.raises(SystemExit):
            main_module.load_environment()


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "secret")
    with patch.object(main_module, "load_dotenv"):
        assert main_module.load_environment() == "secret"


def test_build_intents():
    intents = main_module.build_intents()
    assert intents.message_content
    assert intents.members


def test_build_manager_uses_configured_translations(config):
    config.data["translations_dir"] = str(Path(__file__).parent.parent / "config" / "translations")
    manager = main_module.build_manager(config)
    assert manager.translations.has_language("de")
    assert manager.default_language == "en"


@pytest.mark.asyncio
async def test_create_bot_loads_both_cogs(config):
    bot = main_module.create_bot(MagicMock(), config)
    assert set(bot.cogs) == {"EventsListenerCog", "MessageListenerCog"}


@pytest.mark.asyncio
async def test_shutdown_runtime_survives_storage_errors():
    manager = MagicMock()
    manager.shutdown = AsyncMock(side_effect=RuntimeError("disk gone"))
    await main_module.shutdown_runtime(None, manager)
    manager.shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_bot_session_reports_runtime_errors():
    manager = MagicMock()
    manager.shutdown = AsyncMock()
    control = MagicMock()
    control.manager = manager
    bot = MagicMock()
    bot.is_closed.return_value = True
    bot.start = AsyncMock(side_effect=RuntimeError("gateway down"))

    with patch.object(main_module, "console_session") as session:
        session.return_value.__aenter__ = AsyncMock(return_value=control)
        session.return_value.__aexit__ = AsyncMock(return_value=False)
        assert await main_module.run_bot_session(bot, "token", control) == 1

    control.set_bot.assert_any_call(bot)
    control.set_bot.assert_called_with(None)
    manager.shutdown.assert_awaited_once()


def test_main_returns_exit_codes(monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)

    with patch.object(main_module, "async_main", AsyncMock(return_value=3)):
        assert main_module.main() == 3
    with patch.object(main_module, "async_main", AsyncMock(side_effect=SystemExit("bad"))):
        assert main_module.main() == 1
    with patch.object(main_module, "async_main", AsyncMock(side_effect=KeyboardInterrupt())):
        assert main_module.main() == 0
