# tests/test_logging_config.py
"""
Tests for the supernova.logging_config module.

Covers the UnifiedLoggingManager singleton, the DisplayFilter gate, file
handlers and runtime level changes.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from supernova.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    DisplayFilter,
    UnifiedLoggingManager,
    configure_logging,
    disable_console_logging,
    enable_console_logging,
    get_log_file_path,
    log_display,
    set_component_level,
    set_console_level,
    set_file_level,
)


def _clear_manager():
    manager = UnifiedLoggingManager._instance
    root = logging.getLogger()
    if manager is not None:
        for handler in (manager._console_handler, manager._file_handler):
            if handler is not None:
                root.removeHandler(handler)
                handler.close()
    UnifiedLoggingManager._instance = None
    UnifiedLoggingManager._configured = False
    UnifiedLoggingManager._log_file_path = None
    UnifiedLoggingManager._console_handler = None
    UnifiedLoggingManager._file_handler = None
    UnifiedLoggingManager._display_filter = None


@pytest.fixture
def reset_logging_manager():
    """Reset the logging manager singleton between tests."""
    _clear_manager()
    yield
    _clear_manager()


def _record(display=None, level=logging.INFO):
    record = logging.LogRecord("supernova.test", level, __file__, 1, "msg", None, None)
    if display is not None:
        record.display = display
    return record


class TestDefaultLoggingConfig:

    def test_quiet_defaults(self):
        assert DEFAULT_LOGGING_CONFIG["console_enabled"] is False
        assert DEFAULT_LOGGING_CONFIG["file_enabled"] is False

    def test_components_defined(self):
        assert DEFAULT_LOGGING_CONFIG["components"]["supernova"] == "INFO"


class TestDisplayFilter:
    """Console gating by the display flag."""

    def test_verbose_passes_everything(self):
        assert DisplayFilter(console_globally_enabled=True).filter(_record())

    def test_quiet_blocks_plain_records(self):
        assert not DisplayFilter().filter(_record())

    def test_quiet_passes_display_records(self):
        assert DisplayFilter().filter(_record(display=True))

    def test_display_respects_min_level(self):
        gate = DisplayFilter(display_min_level=logging.WARNING)
        assert not gate.filter(_record(display=True, level=logging.INFO))
        assert gate.filter(_record(display=True, level=logging.ERROR))


class TestUnifiedLoggingManager:

    def test_singleton_pattern(self, reset_logging_manager):
        assert UnifiedLoggingManager() is UnifiedLoggingManager.get_instance()

    def test_is_configured_initially_false(self, reset_logging_manager):
        assert UnifiedLoggingManager.is_configured() is False

    def test_configure_is_idempotent(self, reset_logging_manager):
        configure_logging(config={"console_enabled": True})
        handler = UnifiedLoggingManager.get_instance()._console_handler
        configure_logging(config={"console_enabled": False})
        assert UnifiedLoggingManager.get_instance()._console_handler is handler

    def test_force_reconfigure_replaces_handlers(self, reset_logging_manager):
        configure_logging(config={"console_enabled": True})
        handler = UnifiedLoggingManager.get_instance()._console_handler
        configure_logging(config={"console_enabled": False}, force_reconfigure=True)
        manager = UnifiedLoggingManager.get_instance()
        assert manager._console_handler is not handler
        assert handler not in logging.getLogger().handlers


class TestConfigureLogging:

    def test_console_only(self, reset_logging_manager):
        assert configure_logging(config={"file_enabled": False, "console_enabled": True}) is None
        assert UnifiedLoggingManager.is_configured()

    def test_per_run_file(self, reset_logging_manager, tmp_path):
        path = configure_logging(app_name="nova", config={"file_enabled": True, "log_dir": str(tmp_path)})
        assert isinstance(path, Path)
        assert path.parent == tmp_path
        assert path.name.startswith("nova_")
        assert get_log_file_path() == path

    def test_single_rotating_file(self, reset_logging_manager, tmp_path):
        path = configure_logging(app_name="nova", config={
            "file_enabled": True, "file_mode": "single", "log_dir": str(tmp_path)})
        assert path == tmp_path / "nova.log"
        assert isinstance(UnifiedLoggingManager.get_instance()._file_handler, RotatingFileHandler)

    def test_file_receives_records(self, reset_logging_manager, tmp_path):
        path = configure_logging(config={"file_enabled": True, "log_dir": str(tmp_path),
                                         "components": {"supernova.filetest": "DEBUG"}})
        logging.getLogger("supernova.filetest").info("gravado no arquivo")
        UnifiedLoggingManager.get_instance()._file_handler.flush()
        assert "gravado no arquivo" in path.read_text(encoding="utf-8")

    def test_component_levels(self, reset_logging_manager):
        configure_logging(config={"components": {"supernova.component_test": "ERROR"}})
        assert logging.getLogger("supernova.component_test").level == logging.ERROR


class TestRuntimeLevelChanges:

    def test_set_console_level(self, reset_logging_manager):
        configure_logging(config={"console_enabled": True})
        set_console_level("ERROR")
        assert UnifiedLoggingManager.get_instance()._console_handler.level == logging.ERROR

    def test_set_file_level(self, reset_logging_manager, tmp_path):
        configure_logging(config={"file_enabled": True, "log_dir": str(tmp_path)})
        set_file_level("WARNING")
        assert UnifiedLoggingManager.get_instance()._file_handler.level == logging.WARNING

    def test_set_component_level(self, reset_logging_manager):
        set_component_level("supernova.runtime_test", "CRITICAL")
        assert logging.getLogger("supernova.runtime_test").level == logging.CRITICAL


class TestConsoleToggle:

    def test_disable_console(self, reset_logging_manager):
        configure_logging(config={"console_enabled": True})
        disable_console_logging()
        assert UnifiedLoggingManager.get_instance()._console_handler is None

    def test_enable_console(self, reset_logging_manager):
        configure_logging(config={"console_enabled": False})
        enable_console_logging("DEBUG")
        manager = UnifiedLoggingManager.get_instance()
        assert manager._console_handler.level == logging.DEBUG
        assert manager._display_filter.console_globally_enabled is True


class TestLogDisplay:

    def test_sets_display_flag_and_keeps_extra(self, caplog):
        logger = logging.getLogger("supernova.display_test")
        with caplog.at_level(logging.INFO, logger="supernova.display_test"):
            log_display(logger, logging.INFO, "Pronto: %s", "ok", extra={"session": "s1"})
        record = caplog.records[-1]
        assert record.getMessage() == "Pronto: ok"
        assert record.display is True
        assert record.session == "s1"

    def test_get_log_file_path_before_configure(self, reset_logging_manager):
        assert get_log_file_path() is None
