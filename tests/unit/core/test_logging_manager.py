"""Unit tests for the Logging Manager."""

import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pythonjsonlogger import jsonlogger

from extpack.core.logging_manager import LoggingManager


@pytest.fixture
def logging_config(tmp_path: Path):
    """Create a logging configuration for testing."""
    return {
        "level": "INFO",
        "format": "text",
        "file": {
            "enabled": True,
            "path": str(tmp_path / "logs" / "test.log"),
            "rotation": "1 MB",
            "retention": "5 days",
        },
        "console": {"enabled": True, "level": "DEBUG"},
    }


@pytest.fixture
def config_manager_mock(logging_config):
    """Create a mock ConfigManager for the LoggingManager."""
    config_manager = MagicMock()
    config_manager.get.return_value = logging_config
    return config_manager


def test_logging_manager_initialization(config_manager_mock, tmp_path: Path):
    """Test that the LoggingManager initializes correctly."""
    logging_manager = LoggingManager(config_manager_mock)
    logging_manager.initialize()

    assert logging_manager.initialized
    assert logging_manager.healthy
    assert (tmp_path / "logs").is_dir()

    status = logging_manager.status()
    assert status["handlers"] == {"console": True, "file": True}
    assert status["structured_logging"] is False

    logging_manager.shutdown()
    assert not logging_manager.initialized


def test_console_logs_go_to_stderr(config_manager_mock):
    """Test that log output never mixes with command output on stdout."""
    logging_manager = LoggingManager(config_manager_mock)
    logging_manager.initialize()

    assert logging_manager._console_handler.stream is sys.stderr

    logging_manager.shutdown()


def test_file_handler_writes(config_manager_mock, logging_config):
    logging_manager = LoggingManager(config_manager_mock)
    logging_manager.initialize()

    logging_manager.get_logger("archive").info("archiving dist/extension.js")
    logging_manager.shutdown()

    content = Path(logging_config["file"]["path"]).read_text(encoding="utf-8")
    assert "INFO archive: archiving dist/extension.js" in content


def test_rotation_settings(config_manager_mock):
    logging_manager = LoggingManager(config_manager_mock)
    logging_manager.initialize()

    assert logging_manager._file_handler.maxBytes == 1024 * 1024
    assert logging_manager._file_handler.backupCount == 5

    logging_manager.shutdown()


def test_parse_rotation_and_retention():
    assert LoggingManager._parse_rotation("512 KB") == 512 * 1024
    assert LoggingManager._parse_rotation(2048) == 2048
    assert LoggingManager._parse_rotation("weekly") == 10 * 1024 * 1024
    assert LoggingManager._parse_retention("7 days") == 7
    assert LoggingManager._parse_retention(None) == 30


def test_get_logger(config_manager_mock):
    """Test getting a logger from the LoggingManager."""
    logging_manager = LoggingManager(config_manager_mock)
    logging_manager.initialize()

    logger = logging_manager.get_logger("installer")

    assert isinstance(logger, logging.Logger)
    assert logger.name == "installer"

    logging_manager.shutdown()


def test_json_format(config_manager_mock, logging_config):
    """Test that the json format uses a JSON formatter and structlog."""
    logging_config["format"] = "json"
    logging_config["file"]["enabled"] = False
    logging_manager = LoggingManager(config_manager_mock)
    logging_manager.initialize()

    assert isinstance(logging_manager._console_handler.formatter, jsonlogger.JsonFormatter)
    assert logging_manager.status()["structured_logging"] is True
    assert not isinstance(logging_manager.get_logger("installer"), logging.Logger)

    logging_manager.shutdown()


def test_console_disabled(config_manager_mock, logging_config):
    logging_config["console"]["enabled"] = False
    logging_config["file"]["enabled"] = False
    logging_manager = LoggingManager(config_manager_mock)
    logging_manager.initialize()

    assert logging_manager.status()["handlers"] == {"console": False, "file": False}

    logging_manager.shutdown()
