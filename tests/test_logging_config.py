"""Tests for the logging setup."""

import logging

import pytest
from pythonjsonlogger.json import JsonFormatter

from roamsync.config import ObservabilityConfig
from roamsync.logging_config import configure_logging, create_formatter


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_plain_formatter_by_default():
    formatter = create_formatter(ObservabilityConfig())
    assert not isinstance(formatter, JsonFormatter)


def test_structured_formatter_renames_fields():
    formatter = create_formatter(ObservabilityConfig(structured=True))
    record = logging.LogRecord("roamsync.test", logging.INFO, __file__, 1, "hello", None, None)

    output = formatter.format(record)

    assert isinstance(formatter, JsonFormatter)
    assert '"level": "INFO"' in output
    assert '"logger": "roamsync.test"' in output


def test_invalid_level_rejected(restore_root_logger):
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(ObservabilityConfig(level="LOUD"))


def test_installs_a_single_root_handler(restore_root_logger):
    configure_logging(ObservabilityConfig(level="debug"))
    configure_logging(ObservabilityConfig(level="debug"))

    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.level == logging.DEBUG
