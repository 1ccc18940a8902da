"""
Kiracord entry point.

Starts guild storage, connects the Discord client and keeps the operator
console open until either side asks to stop. ``KIRACORD_HOME`` overrides the
directory that relative config, data and ``.env`` paths resolve against.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Directory the bot treats as its working directory.

    ``KIRACORD_HOME`` wins when set. Frozen builds use the folder of the
    executable, a source checkout uses the repository root.
    """
    home = os.getenv("KIRACORD_HOME")
    if home:
        return Path(home).resolve()
    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent
    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
# Config and translation paths are relative to this directory
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from kiracord.commands.builtin import build_default_registry
from kiracord.commands.dispatcher import CommandDispatcher
from kiracord.configuration.app_configuration import AppConfig, app_config
from kiracord.engine.guild_engine import GuildEngine
from kiracord.i18n.translations import TranslationManager
from kiracord.services.guild_state_manager import GuildStateManager
from kiracord.services.guild_state_service import GuildStateService
from kiracord.ui.console import ConsoleControl, close_bot_instance, console_session
from kiracord.util.logger import get_logger, handle_exception


logger = get_logger("main")

TOKEN_VARIABLE = "DISCORD_BOT_TOKEN"


def load_environment() -> str:
    """Read ``.env`` into the environment and return the bot token, exiting without one."""
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv(TOKEN_VARIABLE)
    if not token:
        logger.critical("[STARTUP] %s is empty or unset, refusing to start", TOKEN_VARIABLE)
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    # Prefix commands and autoresponds need message bodies; role checks need members
    intents.message_content = True
    intents.members = True
    intents.guilds = True
    intents.messages = True
    return intents


def build_manager(config: AppConfig) -> GuildStateManager:
    translations = TranslationManager.from_directory(config.translations_dir, config.default_language)
    return GuildStateManager(
        GuildStateService(translations=translations),
        translations,
        default_language=config.default_language,
    )


def load_cogs(bot: discord.Bot, manager: GuildStateManager, engine: GuildEngine) -> None:
    from kiracord.bot.cogs import events_listener, message_listener

    for cog_module in (events_listener, message_listener):
        cog_module.setup(bot, manager, engine)
    logger.info("[STARTUP] Cogs registered: %s", ", ".join(bot.cogs))


def create_bot(manager: GuildStateManager, config: AppConfig) -> discord.Bot:
    """Wire the command registry, dispatcher and engine into a fresh client."""
    bot = discord.Bot(intents=build_intents())
    registry = build_default_registry(manager)
    engine = GuildEngine(CommandDispatcher(registry, config, client=bot), config)
    load_cogs(bot, manager, engine)
    logger.info("[STARTUP] %d commands available: %s", len(registry), ", ".join(registry.names()))
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("[STARTUP] Logging in to Discord")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("[SHUTDOWN] Gateway connection cancelled")
    finally:
        logger.debug("[SHUTDOWN] Gateway loop returned")


async def shutdown_runtime(bot: discord.Bot | None, manager: GuildStateManager) -> None:
    """Disconnect first so no event mutates state while it is flushed."""
    await close_bot_instance(bot, log_close=True)
    try:
        await manager.shutdown()
    except Exception:
        logger.exception("[SHUTDOWN] Guild state could not be flushed")
    logger.info("[SHUTDOWN] Done")


async def run_bot_session(bot: discord.Bot, token: str, control: ConsoleControl) -> int:
    control.set_bot(bot)
    exit_code = 0
    try:
        async with console_session(control):
            try:
                await start_bot(bot, token)
            except Exception as exc:
                logger.critical("[RUNTIME] Discord client stopped with an error: %s", exc)
                exit_code = 1
    finally:
        control.set_bot(None)
        await shutdown_runtime(bot, control.manager)
    return exit_code


async def async_main() -> int:
    token = load_environment()
    manager = build_manager(app_config)

    try:
        await manager.async_init(app_config.database_path)
    except Exception as exc:
        logger.critical("[STARTUP] Database at %s unusable: %s", app_config.database_path, exc)
        return 1

    try:
        bot = create_bot(manager, app_config)
    except Exception as exc:
        logger.critical("[STARTUP] Could not build the Discord client: %s", exc)
        await manager.shutdown()
        return 1

    return await run_bot_session(bot, token, ConsoleControl(manager))


def main() -> int:
    """Run the bot to completion and translate the outcome into an exit code."""
    sys.excepthook = handle_exception
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("[SHUTDOWN] Interrupted")
        return 0
    except SystemExit as exit_exc:
        return exit_exc.code if isinstance(exit_exc.code, int) else 1
    except Exception:
        logger.exception("[RUNTIME] Unhandled error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
