"""Tests for the service logging setup."""

import logging
import os
import sys
from unittest.mock import patch

import pytest

from watermark_export.core.logging_config import (
    COMPONENTS,
    SIMPLE_FORMAT,
    STRUCTURED_FORMAT,
    configure_service_logging,
    get_logger,
    logger,
    setup_logger,
)


@pytest.fixture
def fresh_name(request):
    """A logger name unique to the test, removed afterwards."""
    name = f"test-logging.{request.node.name}"
    yield name
    logging.Logger.manager.loggerDict.pop(name, None)


class TestSetupLogger:
    def test_service_logger_does_not_propagate(self):
        assert logger.name == "watermark-export"
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_new_logger_writes_to_stdout(self, fresh_name):
        configured = setup_logger(fresh_name)
        assert [handler.stream for handler in configured.handlers] == [sys.stdout]

    def test_level_from_environment_on_first_use(self, fresh_name):
        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}):
            assert setup_logger(fresh_name).level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, fresh_name):
        assert setup_logger(fresh_name, level="LOUD").level == logging.INFO

    @pytest.mark.parametrize(
        "env_format, expected",
        [("structured", STRUCTURED_FORMAT), ("simple", SIMPLE_FORMAT)],
    )
    def test_log_format_env_overrides_argument(self, fresh_name, env_format, expected):
        other = "simple" if env_format == "structured" else "structured"
        with patch.dict(os.environ, {"LOG_FORMAT": env_format}):
            configured = setup_logger(fresh_name, format_type=other)
        assert configured.handlers[0].formatter._fmt == expected

    def test_repeated_lookups_share_one_handler(self, fresh_name):
        first = get_logger(fresh_name)
        second = get_logger(fresh_name)
        assert first is second
        assert len(first.handlers) == 1

    def test_explicit_level_survives_later_lookups(self, fresh_name):
        setup_logger(fresh_name, level="ERROR")
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            assert get_logger(fresh_name).level == logging.ERROR


class TestConfigureServiceLogging:
    """Process-start configuration used by ``watermark-export serve``."""

    def test_component_loggers_share_level(self):
        configure_service_logging("WARNING", "simple")
        try:
            for component in COMPONENTS:
                assert logging.getLogger(f"watermark-export.{component}").level == logging.WARNING
        finally:
            configure_service_logging("INFO")

    def test_uvicorn_access_log_uses_service_handlers(self):
        service_logger = configure_service_logging("INFO")
        access_logger = logging.getLogger("uvicorn.access")
        assert access_logger.handlers == service_logger.handlers
        assert not access_logger.propagate

    def test_component_records_reach_stdout(self, capsys):
        configure_service_logging("INFO", "simple")
        # handler bound sys.stdout at creation; capsys swaps it afterwards
        handler = logging.getLogger("watermark-export.export").handlers[0]
        with patch.object(handler, "stream", sys.stdout):
            get_logger("watermark-export.export").info("Batch 1 exported")
            get_logger("watermark-export.export").debug("hidden")
        output = capsys.readouterr().out
        assert "Batch 1 exported" in output
        assert "hidden" not in output
