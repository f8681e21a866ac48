# src/supernova/logging_config.py
"""
Logging setup for applications embedding Supernova.

The library itself only creates module loggers; this module is what a host
application calls once at startup to route those records somewhere:

- a stderr handler gated by :class:`DisplayFilter`, so that in quiet mode
  only records logged with ``extra={"display": True}`` reach the terminal
  (e.g. "Reply settled" notices from a CLI front end);
- an optional file handler, either one file per run or a single rotating file;
- per-logger level overrides from ``[logging.components]``.

Usage:
    from supernova.logging_config import configure_logging, log_display

    configure_logging(app_name="supernova-cli", config=nova.config.get("logging", {}))
    log_display(logger, logging.INFO, "Session '%s' ready", session.title)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "display_min_level": "INFO",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_mode": "per_run",
    "log_dir": "~/.local/share/supernova/logs",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-32s - %(message)s",
    "max_bytes": 10 * 1024 * 1024,
    "backup_count": 5,
    "components": {
        "supernova": "INFO",
        "google_genai": "WARNING",
        "httpx": "WARNING",
        "httpcore": "WARNING",
        "aiosqlite": "WARNING",
        "asyncio": "WARNING",
    },
}


def _to_level(level: Union[str, int, None], fallback: int) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, int):
            return resolved
    return fallback


class DisplayFilter(logging.Filter):
    """
    Gate for the console handler.

    With the console globally enabled every record passes and the handler's
    level decides. Otherwise only records flagged ``display=True`` at or
    above ``display_min_level`` pass.
    """

    def __init__(self, console_globally_enabled: bool = False, display_min_level: int = logging.INFO) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


class UnifiedLoggingManager:
    """
    Process-wide singleton that owns the handlers installed on the root logger.

    ``configure`` is idempotent unless ``force_reconfigure`` is given.
    """

    _instance: Optional["UnifiedLoggingManager"] = None
    _configured: bool = False
    _log_file_path: Optional[Path] = None
    _console_handler: Optional[logging.Handler] = None
    _file_handler: Optional[logging.Handler] = None
    _display_filter: Optional[DisplayFilter] = None

    def __new__(cls) -> "UnifiedLoggingManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "UnifiedLoggingManager":
        return cls()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Optional[Path]:
        return cls._log_file_path

    def configure(self,
                  app_name: str = "supernova",
                  config: Optional[Mapping[str, Any]] = None,
                  force_reconfigure: bool = False) -> Optional[Path]:
        """
        Installs console and file handlers on the root logger.

        Args:
            app_name: Used in log file names.
            config: The ``[logging]`` table; missing keys fall back to DEFAULT_LOGGING_CONFIG.
            force_reconfigure: Replace handlers even if already configured.

        Returns:
            The log file path, or None when file logging is disabled or unavailable.
        """
        if UnifiedLoggingManager._configured and not force_reconfigure:
            return UnifiedLoggingManager._log_file_path

        log_config = {**DEFAULT_LOGGING_CONFIG, **dict((config or {}).items())}

        root_logger = logging.getLogger()
        for handler in (self._console_handler, self._file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        self._console_handler = self._file_handler = None
        UnifiedLoggingManager._log_file_path = None
        root_logger.setLevel(logging.DEBUG)

        console_enabled = bool(log_config.get("console_enabled"))
        self._display_filter = DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_to_level(log_config.get("display_min_level"), logging.INFO),
        )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(log_config["console_format"]))
        # In quiet mode the filter is the only gate.
        handler.setLevel(_to_level(log_config.get("console_level"), logging.WARNING) if console_enabled else logging.DEBUG)
        handler.addFilter(self._display_filter)
        root_logger.addHandler(handler)
        self._console_handler = handler

        if log_config.get("file_enabled"):
            self._file_handler, log_file_path = self._create_file_handler(log_config, app_name)
            if self._file_handler is not None:
                root_logger.addHandler(self._file_handler)
                UnifiedLoggingManager._log_file_path = log_file_path

        components = log_config.get("components") or {}
        for component_name, level in dict(components.items()).items():
            logging.getLogger(component_name).setLevel(_to_level(level, logging.INFO))

        UnifiedLoggingManager._configured = True
        logging.getLogger(__name__).debug(f"Logging configured for '{app_name}'. Log file: {UnifiedLoggingManager._log_file_path}")
        return UnifiedLoggingManager._log_file_path

    def _create_file_handler(self, config: Mapping[str, Any], app_name: str) -> Tuple[Optional[logging.Handler], Optional[Path]]:
        log_dir = Path(os.path.expanduser(str(config.get("log_dir"))))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if config.get("file_mode") == "single":
                log_file_path = log_dir / f"{app_name}.log"
                handler: logging.Handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=int(config.get("max_bytes", 0)),
                    backupCount=int(config.get("backup_count", 0)),
                    encoding="utf-8",
                )
            else:
                log_file_path = log_dir / f"{app_name}_{datetime.now():%Y%m%d_%H%M%S}.log"
                handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_to_level(config.get("file_level"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(config.get("file_format", DEFAULT_LOGGING_CONFIG["file_format"])))
        return handler, log_file_path

    def set_console_level(self, level: Union[str, int]) -> None:
        if self._console_handler is not None:
            self._console_handler.setLevel(_to_level(level, self._console_handler.level))

    def set_file_level(self, level: Union[str, int]) -> None:
        if self._file_handler is not None:
            self._file_handler.setLevel(_to_level(level, self._file_handler.level))

    def set_component_level(self, component: str, level: Union[str, int]) -> None:
        component_logger = logging.getLogger(component)
        component_logger.setLevel(_to_level(level, component_logger.level))

    def disable_console(self) -> None:
        """Removes the console handler; even display records stop appearing."""
        if self._console_handler is not None:
            logging.getLogger().removeHandler(self._console_handler)
            self._console_handler = None
            self._display_filter = None

    def enable_console(self, level: Union[str, int] = "WARNING") -> None:
        """Installs a console handler that passes every record at or above ``level``."""
        if self._display_filter is not None and self._display_filter.console_globally_enabled:
            return
        self.disable_console()
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(DEFAULT_LOGGING_CONFIG["console_format"]))
        handler.setLevel(_to_level(level, logging.WARNING))
        self._display_filter = DisplayFilter(console_globally_enabled=True, display_min_level=logging.DEBUG)
        handler.addFilter(self._display_filter)
        logging.getLogger().addHandler(handler)
        self._console_handler = handler


def configure_logging(app_name: str = "supernova",
                      config: Optional[Mapping[str, Any]] = None,
                      force_reconfigure: bool = False) -> Optional[Path]:
    """Configures process logging once; see UnifiedLoggingManager.configure."""
    return UnifiedLoggingManager.get_instance().configure(
        app_name=app_name, config=config, force_reconfigure=force_reconfigure)


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """
    Logs ``msg`` with ``display=True`` so it reaches the console even in quiet mode.

    Any ``extra`` passed by the caller is merged, not replaced.
    """
    extra = dict(kwargs.pop("extra", None) or {})
    extra["display"] = True
    logger.log(level, msg, *args, extra=extra, **kwargs)


def get_log_file_path() -> Optional[Path]:
    return UnifiedLoggingManager.get_log_file_path()


def set_console_level(level: Union[str, int]) -> None:
    UnifiedLoggingManager.get_instance().set_console_level(level)


def set_file_level(level: Union[str, int]) -> None:
    UnifiedLoggingManager.get_instance().set_file_level(level)


def set_component_level(component: str, level: Union[str, int]) -> None:
    UnifiedLoggingManager.get_instance().set_component_level(component, level)


def disable_console_logging() -> None:
    UnifiedLoggingManager.get_instance().disable_console()


def enable_console_logging(level: Union[str, int] = "WARNING") -> None:
    UnifiedLoggingManager.get_instance().enable_console(level)
