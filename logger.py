"""
logger.py
---------
Logging for transfer runs.

Every pipeline module logs under the "datatransfer" logger: per-table
progress and report lines at INFO, skipped rows at WARNING, table failures
at ERROR, and the text of failing SQL statements at DEBUG.

Design Decisions:
    * The console handler writes to stderr so the run report printed by the
      CLI on stdout stays machine readable.
    * ``LOG_FILE`` adds a file handler that always records DEBUG, so a
      failed row can be traced to its statement after a quiet console run.
    * ``set_level`` applies ``--log-level`` after the handlers exist.
    * Connection settings are logged through ``DatabaseConfig.describe()``,
      which leaves out the password.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from config import CONFIG, get_log_level

_ROOT_LOGGER_NAME = "datatransfer"
_CONSOLE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False
_console_handler: logging.Handler | None = None


def _configure_root_logger() -> None:
    """One-time setup of the root 'datatransfer' logger and its handlers."""
    global _configured, _console_handler
    if _configured:
        return
    _configured = True

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)

    # --- Console handler ---
    _console_handler = logging.StreamHandler(sys.stderr)
    _console_handler.setLevel(get_log_level())
    _console_handler.setFormatter(
        logging.Formatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )
    root.addHandler(_console_handler)

    # --- Optional file handler ---
    if CONFIG.migration.log_file:
        log_path = Path(CONFIG.migration.log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)  # Log everything to file
            file_handler.setFormatter(
                logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT)
            )
            root.addHandler(file_handler)
        except OSError as exc:
            root.warning("Could not create log file '%s': %s", log_path, exc)


_configure_root_logger()


def set_level(level_name: str) -> None:
    """Change the console log level, e.g. from a ``--log-level`` flag."""
    level = getattr(logging, level_name.upper(), None)
    if isinstance(level, int) and _console_handler is not None:
        _console_handler.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Return a child logger scoped to the given name.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance under the 'datatransfer' hierarchy.

    Example::

        log = get_logger(__name__)
        log.info("Table '%s' loaded", name)
        log.error("Fatal error", exc_info=True)
    """
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
