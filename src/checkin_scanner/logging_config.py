"""Logging bootstrap for the check-in scanner."""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def build_logging_config(
    level: str = "INFO",
    log_dir: Optional[Union[Path, str]] = None,
    retention_days: int = 14,
) -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping used by :func:`configure_logging`."""

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level,
        }
    }

    if log_dir is not None:
        directory = Path(log_dir).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        handlers["runtime_file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "default",
            "level": level,
            "filename": str(directory / "checkin-scanner.log"),
            "when": "midnight",
            "backupCount": max(int(retention_days), 1),
            "utc": True,
            "delay": True,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
    }


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Union[Path, str]] = None,
    retention_days: int = 14,
) -> None:
    """Log to the console, and to a daily rotating file when ``log_dir`` is set."""

    dictConfig(build_logging_config(level, log_dir, retention_days))


__all__ = ["LOG_FORMAT", "build_logging_config", "configure_logging"]
