import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from datetime import datetime
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

# A restart inside this many seconds keeps writing to the previous session file
SESSION_REUSE_WINDOW: float = 60.0

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024
LOG_FILE_BACKUPS: int = 5

LOG_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

LOG_FILEPATH: Path | None = None

# Third-party loggers only worth hearing from when something breaks
NOISY_LOGGERS = (
    "discord", "discord.gateway", "discord.client", "discord.http",
    "aiosqlite", "websockets", "aiohttp",
)


class ColorFormatter(logging.Formatter):
    """Paints a formatted record in the colour of its level."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LOG_COLORS.get(record.levelname)
        if not color:
            return text
        return color + text + RESET_COLOR


class PromptToolkitHandler(logging.Handler):
    """
    Console handler routing records through ``print_formatted_text``.

    Output printed this way is redrawn above the interactive console prompt
    instead of being interleaved with what the operator is typing.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    """True when stderr is attached to a terminal."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
color_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain_formatter


def get_log_filepath() -> Path:
    """
    Resolve the file every Kiracord logger writes to during this process.

    Today's most recently modified log is reused when it changed within
    ``SESSION_REUSE_WINDOW`` seconds; otherwise a new file named after the
    current timestamp is chosen. The answer is cached for the process.
    """
    global LOG_FILEPATH

    if LOG_FILEPATH is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        now = datetime.now()
        candidates = list(LOGS_DIR.glob(now.strftime("%Y-%m-%d") + "*.log"))
        newest = max(candidates, key=lambda path: path.stat().st_mtime, default=None)
        if newest is not None and now.timestamp() - newest.stat().st_mtime < SESSION_REUSE_WINDOW:
            LOG_FILEPATH = newest
        else:
            LOG_FILEPATH = LOGS_DIR / f"{now.strftime(DATE_FORMAT)}.log"

    return LOG_FILEPATH


def _console_handler() -> logging.Handler:
    handler = PromptToolkitHandler(formatter=color_formatter)
    handler.setLevel(logging.INFO)
    return handler


def _file_handler() -> logging.Handler:
    handler = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(plain_formatter)
    return handler


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the console and session-file handlers to ``logger_name``.

    Loggers that already carry handlers are returned untouched, so repeated
    module imports never duplicate output. Records do not propagate to the
    root logger.
    """
    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.addHandler(_console_handler())
        logger.addHandler(_file_handler())
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """Hook for ``sys.excepthook``; Ctrl+C keeps the interpreter's behaviour."""
    exc_info = (exception_type, exception_instance, exception_traceback)
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(*exc_info)
        return
    logging.error("Uncaught exception", exc_info=exc_info)


def quiet_noisy_loggers(names=NOISY_LOGGERS) -> None:
    for name in names:
        library_logger = logging.getLogger(name)
        library_logger.handlers = []
        library_logger.propagate = False
        library_logger.setLevel(logging.ERROR)


quiet_noisy_loggers()
