"""
Operator console sharing the event loop with the bot.

Lines typed at the ``kiracord>`` prompt are matched against a small table of
commands that inspect or flush the in-memory guild state. Output goes through
prompt_toolkit so log lines and replies do not garble the prompt.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import discord
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession

from kiracord.services.guild_state_manager import GuildStateManager
from kiracord.util.logger import get_logger

logger = get_logger("console")

PROMPT = "kiracord> "

ConsoleHandler = Callable[["ConsoleControl", list[str]], Awaitable[None]]


@dataclass(frozen=True)
class ConsoleCommand:
    name: str
    handler: ConsoleHandler
    description: str
    aliases: tuple[str, ...] = ()
    usage: str = ""


COMMANDS: dict[str, ConsoleCommand] = {}


def console_command(name: str, description: str, *aliases: str, usage: str = ""):
    """Register the decorated coroutine under ``name`` and its aliases."""

    def register(handler: ConsoleHandler) -> ConsoleHandler:
        entry = ConsoleCommand(name, handler, description, aliases, usage)
        for key in (name, *aliases):
            COMMANDS[key] = entry
        return handler

    return register


def console_print(message: str, style: str = "") -> None:
    if style:
        print_formatted_text(FormattedText([(style, message)]))
    else:
        print_formatted_text(message)


class ConsoleControl:
    """What console commands may touch: guild state, the bot and the stop flag."""

    def __init__(self, manager: GuildStateManager) -> None:
        self.manager = manager
        self.bot: discord.Bot | None = None
        self.shutdown_event = asyncio.Event()

    def set_bot(self, bot: discord.Bot | None) -> None:
        self.bot = bot

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()


async def close_bot_instance(bot: discord.Bot | None, *, log_close: bool = False) -> None:
    """Disconnect ``bot`` unless it is missing or already closed. Errors are logged, not raised."""
    if bot is None or bot.is_closed():
        return
    try:
        await bot.close()
    except Exception:
        logger.exception("[CONSOLE] Closing the Discord client failed")
        return
    if log_close:
        logger.info("[CONSOLE] Discord client closed")


@console_command("help", "List console commands", "h", "?")
async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    seen = set()
    for entry in COMMANDS.values():
        if entry.name in seen:
            continue
        seen.add(entry.name)
        names = " | ".join((entry.name, *entry.aliases))
        console_print(f"  {names}", "ansicyan")
        console_print(f"      {entry.description}")
        if entry.usage:
            console_print(f"      usage: {entry.usage}", "ansibrightblack")


@console_command("status", "Show the gateway connection and guild counts", "stat")
async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    bot = control.bot
    if bot is None:
        console_print("  discord: client not initialized", "ansired")
    elif bot.is_closed():
        console_print("  discord: disconnected", "ansiyellow")
    else:
        console_print(f"  discord: {len(bot.guilds)} guilds joined, latency {bot.latency * 1000:.0f} ms")
    console_print(f"  state:   {len(control.manager.guilds)} guilds in memory")


@console_command("guilds", "List guilds held in memory", "g")
async def cmd_guilds(control: ConsoleControl, args: list[str]) -> None:
    guilds = list(control.manager.guilds.values())
    if not guilds:
        console_print("No guilds in memory.", "ansiyellow")
        return
    for guild in guilds:
        console_print(f"  {guild.id}  {guild.name or '?'}  [{guild.language}]  {len(guild.users)} users")


@console_command("reload", "Discard a guild's memory state and read it back from the database",
                 usage="reload <guild_id>")
async def cmd_reload(control: ConsoleControl, args: list[str]) -> None:
    if len(args) != 1:
        console_print("usage: reload <guild_id>", "ansired")
        return
    guild_id = args[0]
    if control.manager.get_guild(guild_id) is None:
        console_print(f"Unknown guild {guild_id}", "ansired")
        return
    await control.manager.reload_guild(guild_id)
    console_print(f"Guild {guild_id} reloaded", "ansigreen")


@console_command("save", "Write every guild to the database now")
async def cmd_save(control: ConsoleControl, args: list[str]) -> None:
    manager = control.manager
    for guild_id in manager.list_guild_ids():
        manager.mark_dirty(guild_id)
    await manager.flush()
    console_print("Guild state written.", "ansigreen")


@console_command("shutdown", "Stop the bot", "stop", "quit", "exit")
async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    console_print("Stopping...", "ansiyellow")
    control.request_shutdown()
    await close_bot_instance(control.bot)


async def handle_console_command(line: str, control: ConsoleControl) -> None:
    words = line.split()
    if not words:
        return

    name = words[0].lower()
    entry = COMMANDS.get(name)
    if entry is None:
        console_print(f"Unknown command '{name}', see 'help'.", "ansired")
        return

    try:
        await entry.handler(control, words[1:])
    except Exception as exc:
        logger.exception("[CONSOLE] '%s' failed", line.strip())
        console_print(f"Error executing command: {exc}", "ansired")


async def run_console(control: ConsoleControl) -> None:
    session = PromptSession(PROMPT)
    console_print("Console ready, 'help' lists commands.", "ansigreen")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
            except (EOFError, KeyboardInterrupt):
                control.request_shutdown()
                await close_bot_instance(control.bot)
                return
            await handle_console_command(line, control)


@asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Keep the prompt alive for the duration of the block."""
    task = asyncio.create_task(run_console(control))
    try:
        yield control
    finally:
        control.request_shutdown()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
