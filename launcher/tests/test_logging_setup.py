"""
Tests for logging configuration and the JSON line formatter.
"""

import json
import logging
import sys

import pytest

from hytale_launcher.logging_setup import JsonLineFormatter, get_logger, setup_logging
from hytale_launcher.settings import Settings


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in logging.getLogger("hytale.launcher").handlers[:]:
        logging.getLogger("hytale.launcher").removeHandler(h)
        h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg, *args, exc_info=None):
    return logging.LogRecord("hytale.launcher.test", logging.WARNING, __file__, 1, msg, args, exc_info)


class TestJsonLineFormatter:
    def test_fields(self):
        line = JsonLineFormatter().format(_record("Saved %s", "state"))
        entry = json.loads(line)
        assert entry["level"] == "warning"
        assert entry["logger"] == "hytale.launcher.test"
        assert entry["message"] == "Saved state"
        assert entry["time"].endswith("+00:00")
        assert "exception" not in entry

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            line = JsonLineFormatter().format(_record("failed", exc_info=sys.exc_info()))
        assert "RuntimeError: boom" in json.loads(line)["exception"]


class TestSetupLogging:
    def test_writes_launcher_log(self, tmp_path, restore_root):
        settings = Settings(work_dir=tmp_path / "work", log_json=True)
        setup_logging(settings)

        get_logger("hytale.launcher.test").info("hello %s", "file")
        for h in logging.getLogger("hytale.launcher").handlers:
            h.flush()

        lines = (tmp_path / "work" / "logs" / "launcher.log").read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[-1])["message"] == "hello file"

    def test_repeated_setup_keeps_one_file_handler(self, tmp_path, restore_root):
        settings = Settings(work_dir=tmp_path / "work")
        setup_logging(settings)
        setup_logging(settings)
        assert len(logging.getLogger("hytale.launcher").handlers) == 1

    def test_without_log_file(self, tmp_path, restore_root):
        setup_logging(Settings(work_dir=tmp_path / "work"), log_file=False)
        assert not (tmp_path / "work" / "logs").exists()
