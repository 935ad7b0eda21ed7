"""Tests for logging configuration."""

import logging

import pytest
from rich.logging import RichHandler

from proctor.logging import ENV_VAR, ComponentFormatter, configure_logging, resolve_level


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def _record(name: str) -> logging.LogRecord:
    return logging.LogRecord(name, logging.INFO, __file__, 1, "run_lock_acquired", None, None)


class TestComponentFormatter:
    """Tests for ComponentFormatter."""

    @pytest.mark.parametrize(
        ("name", "component"),
        [
            ("proctor.service.pid", "service"),
            ("proctor.cli.commands.run", "cli"),
            ("proctor.config.loader", "config"),
            ("proctor", "proctor"),
            ("thirdparty.module", "thirdparty"),
        ],
    )
    def test_component_name(self, name: str, component: str):
        formatter = ComponentFormatter("%(component)s | %(message)s")
        assert formatter.format(_record(name)) == f"{component} | run_lock_acquired"


class TestResolveLevel:
    def test_explicit(self):
        assert resolve_level("debug") == "DEBUG"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv(ENV_VAR, "warning")
        assert resolve_level() == "WARNING"

    def test_default(self):
        assert resolve_level() == "INFO"

    def test_unknown_falls_back_to_info(self):
        assert resolve_level("loud") == "INFO"


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_plain_handler(self, restore_root_logger):
        configure_logging("DEBUG")

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0], RichHandler)

    def test_rich_handler(self, restore_root_logger):
        configure_logging("WARNING", use_rich=True)

        root = restore_root_logger
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0], RichHandler)
        assert isinstance(root.handlers[0].formatter, ComponentFormatter)

    def test_reconfigure_replaces_handlers(self, restore_root_logger):
        configure_logging()
        configure_logging()
        assert len(restore_root_logger.handlers) == 1
