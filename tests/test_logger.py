"""Tests for logger module."""

import logging
from unittest.mock import patch

import pytest

from kiracord.util import logger as logger_module
from kiracord.util.logger import (
    DATE_FORMAT,
    LOG_FORMAT,
    ColorFormatter,
    get_logger,
    handle_exception,
    should_use_color,
)


class TestShouldUseColor:
    """Tests for should_use_color function."""

    @patch('sys.stderr.isatty')
    def test_should_use_color_tty(self, mock_isatty):
        mock_isatty.return_value = True
        assert should_use_color() is True

    @patch('sys.stderr.isatty')
    def test_should_use_color_exception(self, mock_isatty):
        mock_isatty.side_effect = Exception("Error")
        assert should_use_color() is False


class TestColorFormatter:

    def test_known_level_is_wrapped(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        record = logging.LogRecord("test", logging.ERROR, "test.py", 1, "boom", (), None, func="f")
        formatted = formatter.format(record)
        assert formatted.startswith("\033[31m")
        assert formatted.endswith("\033[0m")
        assert "boom" in formatted

    def test_unknown_level_is_plain(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        record = logging.LogRecord("test", 5, "test.py", 1, "quiet", (), None, func="f")
        assert "\033[" not in formatter.format(record)


class TestGetLogger:

    def test_handlers_are_not_stacked(self, tmp_path, monkeypatch):
        monkeypatch.setattr(logger_module, "LOG_FILEPATH", tmp_path / "session.log")
        first = get_logger("kiracord-test-logger")
        count = len(first.handlers)
        second = get_logger("kiracord-test-logger")
        assert first is second
        assert len(second.handlers) == count == 2
        assert first.propagate is False

    def test_log_filepath_reuses_recent_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr(logger_module, "LOG_FILEPATH", None)
        monkeypatch.setattr(logger_module, "LOGS_DIR", tmp_path)
        from datetime import datetime
        recent = tmp_path / (datetime.now().strftime(DATE_FORMAT) + ".log")
        recent.write_text("", encoding="utf-8")
        assert logger_module.get_log_filepath() == recent


class TestHandleException:

    def test_logs_uncaught_exceptions(self, caplog):
        try:
            raise RuntimeError("kaputt")
        except RuntimeError as exc:
            with caplog.at_level(logging.ERROR):
                handle_exception(type(exc), exc, exc.__traceback__)
        assert "Uncaught exception" in caplog.text

    @patch('sys.__excepthook__')
    def test_keyboard_interrupt_goes_to_default_hook(self, mock_hook):
        handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)
        mock_hook.assert_called_once()


@pytest.mark.parametrize("name", ["discord", "aiosqlite"])
def test_noisy_libraries_are_silenced(name):
    assert logging.getLogger(name).level == logging.ERROR
