"""Structured logging for cogscore.

All modules obtain loggers through ``get_logger`` so that every logger sits
under the ``cogscore`` namespace and is configured by ``setup_logging``.

Usage::

    from cogscore.utils.logging import get_logger

    logger = get_logger("scoring.scorer")   # -> "cogscore.scoring.scorer"
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

ROOT_LOGGER_NAME = "cogscore"

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;31m",
}
_RESET = "\033[0m"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for CI log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            data["duration_ms"] = round(duration, 2)
        return json.dumps(data)


class HumanFormatter(logging.Formatter):
    """Compact single-line format for terminals."""

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors and level in _LEVEL_COLORS:
            level = f"{_LEVEL_COLORS[level]}{level:<8}{_RESET}"
        else:
            level = f"{level:<8}"
        timestamp = time.strftime("%H:%M:%S", time.localtime(record.created))
        line = f"{timestamp} {level} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Union[str, int] = "WARNING",
    json_format: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the ``cogscore`` logger.

    Args:
        level: Log level name or number.
        json_format: Emit JSON lines instead of human-readable text.
        log_file: Optional file to log to in addition to stderr.

    Returns:
        The configured root ``cogscore`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = HumanFormatter(use_colors=sys.stderr.isatty())

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``cogscore`` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


@contextmanager
def log_operation(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
) -> Iterator[None]:
    """Log the start and completion (with duration) of an operation."""
    start = time.perf_counter()
    logger.log(level, f"Starting {operation}")
    try:
        yield
    except Exception:
        elapsed = (time.perf_counter() - start) * 1000
        logger.log(logging.ERROR, f"Failed {operation} after {elapsed:.1f}ms")
        raise
    elapsed = (time.perf_counter() - start) * 1000
    logger.log(
        level,
        f"Completed {operation} in {elapsed:.1f}ms",
        extra={"duration_ms": elapsed},
    )
