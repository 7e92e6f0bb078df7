"""Tests for logger.py: setup_logging() and JsonFormatter.

logging.basicConfig is mocked: pytest's log capture plugin interferes
with real basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from contentful_migrations.logger import DEFAULT_LOG_FILE, JsonFormatter, setup_logging


@pytest.fixture
def mock_basic():
    with patch("contentful_migrations.logger.logging.basicConfig") as mock:
        yield mock
    for handler in mock.call_args[1]["handlers"] if mock.called else []:
        handler.close()


def _handlers(mock_basic):
    return mock_basic.call_args[1]["handlers"]


class TestSetupLogging:
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        mock_basic.assert_called_once()
        handlers = _handlers(mock_basic)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    def test_mcp_mode_logs_to_file_only(self, mock_basic, tmp_path):
        log_file = tmp_path / "mcp.log"
        setup_logging(mode="mcp", log_file=str(log_file))

        handlers = _handlers(mock_basic)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)
        assert handlers[0].baseFilename == str(log_file)

    def test_mcp_mode_log_file_from_env(self, mock_basic, monkeypatch, tmp_path):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("LOG_FILE", str(log_file))
        setup_logging(mode="mcp")

        assert _handlers(mock_basic)[0].baseFilename == str(log_file)

    def test_default_log_file_name(self):
        assert DEFAULT_LOG_FILE == "/tmp/contentful-migrations.log"

    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = _handlers(mock_basic)
        file_handlers = [h for h in handlers if isinstance(h, logging.FileHandler)]
        assert len(handlers) == 2
        assert len(file_handlers) == 1
        # The file format carries the logger name
        assert "%(name)s" in file_handlers[0].formatter._fmt

    @pytest.mark.parametrize(
        ("mode", "env", "debug", "expected"),
        [
            ("mcp", None, False, logging.WARNING),
            ("cli", None, False, logging.INFO),
            ("cli", "ERROR", False, logging.ERROR),
            ("cli", "ERROR", True, logging.DEBUG),
            ("mcp", "bogus", False, logging.INFO),
        ],
    )
    def test_levels(self, mock_basic, monkeypatch, tmp_path, mode, env, debug, expected):
        if env:
            monkeypatch.setenv("LOG_LEVEL", env)
        monkeypatch.setenv("LOG_FILE", str(tmp_path / "level.log"))
        setup_logging(mode=mode, debug=debug)

        assert mock_basic.call_args[1]["level"] == expected

    def test_json_format_uses_json_formatter(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        assert isinstance(_handlers(mock_basic)[0].formatter, JsonFormatter)

    def test_third_party_silenced(self, mock_basic):
        setup_logging(mode="cli")
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("requests").level == logging.WARNING


class TestJsonFormatter:
    def _record(self, msg, args=(), exc_info=None, level=logging.INFO):
        return logging.LogRecord(
            name="contentful_migrations.transfer.engine",
            level=level,
            pathname="engine.py",
            lineno=1,
            msg=msg,
            args=args,
            exc_info=exc_info,
        )

    def test_basic_output(self):
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        output = formatter.format(
            self._record("Transferring %d entries", (3,))
        )
        data = json.loads(output)

        assert "\n" not in output
        assert data["level"] == "INFO"
        assert data["logger"] == "contentful_migrations.transfer.engine"
        assert data["msg"] == "Transferring 3 entries"
        assert "exc" not in data

    def test_includes_exception(self):
        try:
            raise ValueError("bad page")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(
            JsonFormatter().format(
                self._record("Fetch failed", exc_info=exc_info, level=logging.ERROR)
            )
        )
        assert "ValueError" in data["exc"]
        assert "bad page" in data["exc"]
