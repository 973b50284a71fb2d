"""Logging setup.

Components log through ``logging.getLogger(__name__)`` and pass context
with ``extra={...}``. This module installs the single root handler once
at startup, either as plain text or as JSON lines.

Never log tokens, emails or response bodies.
"""

from __future__ import annotations

import logging
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

from .config import ObservabilityConfig, get_config

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

JSON_FIELDS = ("asctime", "levelname", "name", "message")
JSON_RENAME_FIELDS = {"levelname": "level", "name": "logger"}


def create_formatter(config: ObservabilityConfig) -> logging.Formatter:
    """Build the formatter described by the configuration."""
    if config.structured:
        return JsonFormatter(
            " ".join(f"%({name})s" for name in JSON_FIELDS),
            rename_fields=JSON_RENAME_FIELDS,
        )
    return logging.Formatter(config.format)


def configure_logging(config: Optional[ObservabilityConfig] = None) -> None:
    """Install the root log handler.

    Args:
        config: Logging configuration, defaults to the app configuration.

    Raises:
        ValueError: If the configured level is not a valid level name.
    """
    config = config or get_config().observability
    level = config.level.upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {config.level}. "
            f"Valid: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(create_formatter(config))

    root = logging.getLogger()
    root.setLevel(level)
    # Replace existing handlers to avoid duplicate lines
    root.handlers = [handler]
