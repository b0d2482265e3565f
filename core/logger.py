"""Logging utilities for pluginkit.

Plugins obtain their loggers through :func:`get_logger`; hosts configure
output once with :func:`setup_logging`. A destroyed plugin keeps a silent
logger from :func:`get_null_logger` so late log calls stay harmless.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, TypedDict

NULL_LOGGER_NAME = "pluginkit.null"


class LoggingSetupConfig(TypedDict, total=False):
    """Configuration options for :func:`setup_logging`.

    Attributes:
        level: Logging level name (e.g. ``"INFO"``) or integer level.
        format: Formatter pattern for text output.
        file_path: Optional file path for file handler output.
        json_format: Whether to output logs as JSON lines.
    """

    level: str | int
    format: str
    file_path: str | None
    json_format: bool


DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Format log records as one-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RECORD_FIELDS or key.startswith("_"):
                continue
            payload[key] = value

        if record.exc_info is not None:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a component name.

    Args:
        name: Component name, e.g. ``"Sample(Plugin)"``.
    """
    return logging.getLogger(name)


def get_null_logger() -> logging.Logger:
    """Return a logger that drops every record."""
    null_logger = logging.getLogger(NULL_LOGGER_NAME)
    if not null_logger.handlers:
        null_logger.addHandler(logging.NullHandler())
    null_logger.propagate = False
    null_logger.disabled = True
    return null_logger


def setup_logging(config: Mapping[str, Any] | None = None) -> None:
    """Configure root logging handlers and formatter.

    Existing root handlers are removed and closed first, so calling this
    again replaces the previous setup.

    Args:
        config: Optional mapping with :class:`LoggingSetupConfig` keys.
    """
    conf = dict(config or {})

    level = _parse_level(conf.get("level", "INFO"))
    text_format = str(conf.get("format") or DEFAULT_FORMAT)
    file_path = conf.get("file_path")
    json_format = bool(conf.get("json_format", False))

    root_logger = logging.getLogger()

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(level)

    formatter: logging.Formatter
    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(text_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if isinstance(file_path, str) and file_path:
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def _parse_level(level: str | int) -> int:
    """Convert level setting into a logging level integer."""
    if isinstance(level, int):
        return level

    parsed_level = logging.getLevelName(level.upper())
    if isinstance(parsed_level, int):
        return parsed_level

    return logging.INFO
