"""Tests for structured logging setup."""

from __future__ import annotations

import io
import json
import logging

import pytest
import structlog

from strategy_lab.observability.logger import (
    bind_session,
    clear_session,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestSetupLogging:
    def test_json_output_carries_session(self, restore_logging):
        setup_logging(level="INFO", format="json")
        stream = io.StringIO()
        logging.getLogger().handlers[0].setStream(stream)

        bind_session("session_123")
        logging.getLogger("strategy_lab.test").info("Imported %s", "alphaSignal")
        clear_session()

        entry = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert entry["event"] == "Imported alphaSignal"
        assert entry["session_id"] == "session_123"
        assert entry["level"] == "info"
        assert entry["component"] == "strategy_lab"

    def test_level_filters(self, restore_logging):
        setup_logging(level="WARNING", format="json")
        stream = io.StringIO()
        logging.getLogger().handlers[0].setStream(stream)
        logging.getLogger("strategy_lab.test").info("hidden")
        assert stream.getvalue() == ""

    def test_get_logger(self, restore_logging):
        setup_logging(level="DEBUG", format="console")
        assert get_logger("strategy_lab.test") is not None
