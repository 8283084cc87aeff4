"""Logging setup for applications embedding the connector.

The library itself only creates module loggers; call ``setup_logging`` once
from the host process (or rely on the host's own configuration).

- Output: stderr, one line per record.
- Level: configurable, unknown names fall back to INFO. ``setup_logging_from_env``
  reads it from ``LOG_LEVEL``.
- ``ldap3`` is kept at WARNING or above, its DEBUG output contains packets.
"""
from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Tracks the installed handler so reconfiguration replaces it.
_console_handler: logging.Handler | None = None


def _normalize_level(level: str) -> str:
    level_str = (level or "INFO").strip().upper()
    if level_str not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level_str = "INFO"
    return level_str


def setup_logging(level: str = "INFO") -> None:
    global _console_handler

    level_str = _normalize_level(level)
    log_level = getattr(logging, level_str, logging.INFO)

    root = logging.getLogger()
    if _console_handler and _console_handler in root.handlers:
        root.removeHandler(_console_handler)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT))
    _console_handler = ch

    root.setLevel(log_level)
    root.addHandler(ch)

    logging.getLogger("ldap3").setLevel(max(log_level, logging.WARNING))

    logging.getLogger("dirauth").info("Logging configured: level=%s", level_str)


def setup_logging_from_env() -> None:
    """Configure logging with the ``LOG_LEVEL`` environment variable."""
    from .env_settings import get_env

    setup_logging(level=get_env().log_level)
