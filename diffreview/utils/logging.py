"""Structured logging for diffreview.

All loggers live under the ``diffreview`` namespace and write to stderr,
so a report printed on stdout is never interleaved with diagnostics.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

ROOT_LOGGER_NAME = "diffreview"

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;31m",
}
_RESET = "\033[0m"


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            data["duration_ms"] = duration_ms
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data)


class HumanFormatter(logging.Formatter):
    """Compact single-line format for terminals."""

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = record.levelname
        if self.use_colors and level in _LEVEL_COLORS:
            level = f"{_LEVEL_COLORS[level]}{level:<7}{_RESET}"
        else:
            level = f"{level:<7}"

        line = f"{timestamp} {level} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "WARNING",
    json_format: bool = False,
    stream=None,
) -> logging.Logger:
    """Configure the diffreview root logger.

    Args:
        level: Log level name.
        json_format: Emit JSON lines instead of human-readable output.
        stream: Destination stream (default: stderr).

    Returns:
        The configured root logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream = stream or sys.stderr
    handler = logging.StreamHandler(stream)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        use_colors = hasattr(stream, "isatty") and stream.isatty()
        handler.setFormatter(HumanFormatter(use_colors=use_colors))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the diffreview namespace.

    ``get_logger("llm.client")`` and ``get_logger("diffreview.llm.client")``
    return the same logger.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


@contextmanager
def log_operation(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
) -> Iterator[dict]:
    """Log the start and completion of an operation with its duration.

    Yields a dict the caller may inspect afterwards; ``duration_ms`` is
    filled in when the block exits, whether or not it raised.
    """
    timing: dict = {}
    logger.log(level, f"Starting {operation}")
    start = time.monotonic()
    try:
        yield timing
    except Exception:
        timing["duration_ms"] = (time.monotonic() - start) * 1000
        logger.log(
            level,
            f"Failed {operation} after {timing['duration_ms']:.0f}ms",
            extra={"duration_ms": timing["duration_ms"]},
        )
        raise
    timing["duration_ms"] = (time.monotonic() - start) * 1000
    logger.log(
        level,
        f"Completed {operation} in {timing['duration_ms']:.0f}ms",
        extra={"duration_ms": timing["duration_ms"]},
    )
