"""Logging setup.

Modules log through ``logging.getLogger(__name__)``; this module only wires
handlers for the CLI and other entry points.
"""

from __future__ import annotations

import json
import logging

from rich.console import Console
from rich.logging import RichHandler


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str = "INFO", fmt: str = "console") -> logging.Logger:
    """Install a handler on the ``opencache`` logger.

    Args:
        level: Logging level name.
        fmt: ``console`` for rich output on stderr, ``json`` for JSON lines.

    Returns:
        The configured ``opencache`` logger.

    Example:
        >>> from opencache.core.logging import configure_logging
        >>> logger = configure_logging("WARNING", "json")
        >>> logger.level == logging.WARNING
        True
    """
    logger = logging.getLogger("opencache")
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler: logging.Handler
    if fmt == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)
    logger.propagate = False
    return logger
