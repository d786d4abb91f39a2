"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
import structlog

from docflow.config import LoggingConfig
from docflow.logging import (
    add_context_id,
    get_context_id,
    get_logger,
    set_context_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration before each test."""
    root = logging.getLogger()
    root.handlers.clear()

    structlog.reset_defaults()

    structlog.contextvars.clear_contextvars()
    set_context_id(None)


@pytest.fixture
def capture_stream() -> StringIO:
    """Create a StringIO stream for capturing log output."""
    return StringIO()


@pytest.fixture
def json_config() -> LoggingConfig:
    """Create a LoggingConfig for JSON output."""
    return LoggingConfig(level="INFO", format="json", file=None)


@pytest.fixture
def console_config() -> LoggingConfig:
    """Create a LoggingConfig for console output."""
    return LoggingConfig(level="DEBUG", format="console", file=None)


def test_json_output_format(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that JSON format produces valid JSON output."""
    setup_logging(json_config, stream=capture_stream)

    logger = get_logger("test.module")
    logger.info("project_saved", project_id="p-1", created=True)

    log_entry = json.loads(capture_stream.getvalue().strip())

    assert log_entry["event"] == "project_saved"
    assert log_entry["project_id"] == "p-1"
    assert log_entry["created"] is True
    assert log_entry["level"] == "info"
    assert log_entry["logger"] == "test.module"
    assert "timestamp" in log_entry


def test_console_output_format(console_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that console format produces human-readable output."""
    setup_logging(console_config, stream=capture_stream)

    logger = get_logger("test.module")
    logger.debug("bus_subscribed", total_subscribers=2)

    output = capture_stream.getvalue()
    assert "bus_subscribed" in output
    assert "total_subscribers" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_log_level_filtering(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that DEBUG is filtered at INFO level."""
    setup_logging(json_config, stream=capture_stream)
    logger = get_logger("test.module")

    logger.debug("debug_message")
    assert capture_stream.getvalue() == ""

    logger.info("info_message")
    assert "info_message" in capture_stream.getvalue()


def test_defaults_to_stdout(json_config: LoggingConfig) -> None:
    """Test that without a stream or file the handler writes to stdout."""
    setup_logging(json_config)

    handler = logging.getLogger().handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    assert not isinstance(handler, logging.FileHandler)


def test_context_id_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that the context id is added to log entries while set."""
    setup_logging(json_config, stream=capture_stream)
    logger = get_logger("test.module")

    set_context_id("tab-1")
    assert get_context_id() == "tab-1"

    logger.info("with_context")
    log_entry = json.loads(capture_stream.getvalue().strip())
    assert log_entry["context_id"] == "tab-1"

    set_context_id(None)
    capture_stream.truncate(0)
    capture_stream.seek(0)

    logger.info("without_context")
    log_entry = json.loads(capture_stream.getvalue().strip())
    assert "context_id" not in log_entry


def test_context_id_processor() -> None:
    """Test the context id processor directly."""
    event_dict: dict[str, Any] = {"event": "test"}

    result = add_context_id(None, "", event_dict.copy())
    assert "context_id" not in result

    set_context_id("tab-2")
    result = add_context_id(None, "", event_dict.copy())
    assert result["context_id"] == "tab-2"

    # An explicit value on the event wins
    result = add_context_id(None, "", {"event": "test", "context_id": "explicit"})
    assert result["context_id"] == "explicit"


def test_file_rotation_handler_configuration(tmp_path: Path) -> None:
    """Test that the file rotation handler is configured correctly."""
    log_file = tmp_path / "docflow.log"
    config = LoggingConfig(
        level="INFO",
        format="json",
        file=log_file,
        rotation_size_mb=10,
        retention_count=3,
    )

    setup_logging(config)

    assert log_file.exists()
    root = logging.getLogger()
    assert len(root.handlers) == 1

    handler = root.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 3

    logger = get_logger("test.module")
    logger.info("migration_completed", migrated=2)
    handler.flush()

    log_entry = json.loads(log_file.read_text().strip())
    assert log_entry["event"] == "migration_completed"
    assert log_entry["migrated"] == 2


def test_file_rotation_creates_parent_directories(tmp_path: Path) -> None:
    """Test that parent directories are created for the log file."""
    log_file = tmp_path / "subdir" / "nested" / "docflow.log"

    setup_logging(LoggingConfig(level="INFO", format="json", file=log_file))

    assert log_file.exists()


def test_exception_formatting(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that exceptions are formatted into the log entry."""
    setup_logging(json_config, stream=capture_stream)
    logger = get_logger("test.module")

    try:
        raise ValueError("Test exception")
    except ValueError:
        logger.exception("bus_handler_error")

    log_entry = json.loads(capture_stream.getvalue().strip())
    assert log_entry["level"] == "error"
    assert "ValueError: Test exception" in log_entry["exception"]
