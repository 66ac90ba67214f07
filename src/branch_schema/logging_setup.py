"""
Logging setup for branch-schema.

Reconciliation outcomes are reported through the standard ``logging`` tree,
so the CLI and embedding applications configure it from ``LoggingConfig``.
"""

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

from .config import LoggingConfig


def build_logging_config(config: LoggingConfig, debug: bool = False) -> Dict[str, Any]:
    """Build a ``logging.config.dictConfig`` mapping from LoggingConfig."""
    level = "DEBUG" if debug else config.level

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level,
        },
    }

    if config.file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": config.file,
            "maxBytes": config.max_size,
            "backupCount": config.backup_count,
            "encoding": "utf-8",
            "level": level,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": config.format},
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": level,
        },
        "loggers": {
            "asyncpg": {"level": "WARNING"},
        },
    }


def setup_logging(config: Optional[LoggingConfig] = None, debug: bool = False) -> None:
    """Apply logging configuration to the root logger."""
    config = config or LoggingConfig()

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(config, debug=debug))
