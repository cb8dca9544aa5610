"""Unit tests for structlog wiring."""

import json
import logging

import pytest
import structlog

from sysmonbot.observability.log_config import configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


def test_creates_directory_and_log_file(tmp_path):
    log_dir = tmp_path / "logs" / "nested"

    log_file = configure_logging(log_dir, "sysmonbot", "INFO")

    assert log_file == log_dir / "sysmonbot.log"
    assert log_dir.is_dir()


def test_events_written_as_json_lines(tmp_path):
    log_file = configure_logging(tmp_path, "bot", "INFO")

    structlog.get_logger("sysmonbot.test").info("history_appended", records=3)
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["event"] == "history_appended"
    assert entry["records"] == 3
    assert entry["level"] == "info"
    assert entry["logger"] == "sysmonbot.test"


def test_level_filters_debug(tmp_path):
    log_file = configure_logging(tmp_path, "bot", "WARNING")

    structlog.get_logger("sysmonbot.test").info("too_chatty")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "too_chatty" not in log_file.read_text(encoding="utf-8")
