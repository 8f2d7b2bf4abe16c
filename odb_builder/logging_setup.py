"""
odb_builder/logging_setup.py
----------------------------

Central logging configuration for odb-builder.

Goals:
- Provide a single place to configure logging format and level.
- Library modules only ever do:
      import structlog
      logger = structlog.get_logger()
  and emit event-style records (`logger.info("odb_task_done", task=...)`).
- The CLI owns configuration and calls `init_logging()` once.
- Allow overrides via environment variables (see odb_builder.config):
      LOG_LEVEL    (e.g. DEBUG, INFO, WARNING, ERROR)
      LOG_FORMAT   ("console" or "json")

Implementation notes
====================

- structlog sits on top of Python's built-in `logging` module, so records
  from third-party stdlib loggers end up on the same handler.
- `init_logging` is idempotent; calling it multiple times is safe.
- Loggers are not cached on first use, which keeps
  `structlog.testing.capture_logs()` usable after the CLI configured logging.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from .config import get_settings

# Internal flag to avoid re-configuring logging multiple times
_INITIALIZED = False

DEFAULT_LOG_FORMAT = "%(message)s"


def _level_from_name(name: Optional[str]) -> int:
    return getattr(logging, (name or "INFO").upper(), logging.INFO)


def init_logging(
    level: Optional[int] = None,
    json_logs: Optional[bool] = None,
    *,
    force: bool = False,
) -> None:
    """
    Initialize stdlib logging and structlog.

    Args:
        level:
            Logging level (e.g. logging.DEBUG). If None, it is read from
            LOG_LEVEL, defaulting to INFO.
        json_logs:
            Render one JSON object per line instead of the console renderer.
            If None, LOG_FORMAT decides.
        force:
            Reconfigure even if logging was already initialized.
    """
    global _INITIALIZED

    if _INITIALIZED and not force:
        return

    cfg = get_settings()
    if level is None:
        level = _level_from_name(cfg.LOG_LEVEL)
    if json_logs is None:
        json_logs = cfg.LOG_FORMAT.strip().lower() == "json"

    # Diagnostics go to stderr; stdout is reserved for emitted graphs/source lists.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    _INITIALIZED = True


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger, ensuring logging is initialized.
    """
    if not _INITIALIZED:
        init_logging()
    return structlog.get_logger(name)


__all__ = ["init_logging", "get_logger"]
