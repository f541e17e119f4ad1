"""Tests for structured logging setup."""

from __future__ import annotations

import io
import json
from decimal import Decimal

import structlog

from parimutuel_core.config.schema import LoggingConfig
from parimutuel_core.logging import get_logger, setup_logging, setup_logging_from_config


class TestSetupLogging:
    def test_json_format(self, capsys):
        setup_logging(level="INFO", log_format="json")
        logger = get_logger("test_json")
        logger.info("stake_placed", market_id=7)

        captured = capsys.readouterr()
        line = json.loads(captured.err.strip())
        assert line["event"] == "stake_placed"
        assert line["market_id"] == 7
        assert line["level"] == "info"
        assert "timestamp" in line

    def test_console_format(self, capsys):
        setup_logging(level="INFO", log_format="console")
        logger = get_logger("test_console")
        logger.info("hello console", outcome="SIM")

        captured = capsys.readouterr()
        assert "hello console" in captured.err
        assert "SIM" in captured.err

    def test_log_level_filtering(self, capsys):
        setup_logging_from_config(LoggingConfig(level="WARNING", format="json"))
        logger = get_logger("test_level")
        logger.info("should be hidden")
        logger.warning("should appear")

        captured = capsys.readouterr()
        assert "should be hidden" not in captured.err
        assert "should appear" in captured.err

    def test_get_logger_with_context(self, capsys):
        setup_logging(level="INFO", log_format="json")
        logger = get_logger("test_ctx", user_id=3, operation="cashout")
        logger.info("context test")

        captured = capsys.readouterr()
        line = json.loads(captured.err.strip())
        assert line["user_id"] == 3
        assert line["operation"] == "cashout"

    def test_contextvars_binding(self, capsys):
        setup_logging(level="INFO", log_format="json")
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id="abc123")

        logger = get_logger("test_ctxvars")
        logger.info("with context var")

        captured = capsys.readouterr()
        line = json.loads(captured.err.strip())
        assert line["request_id"] == "abc123"

        structlog.contextvars.clear_contextvars()

    def test_decimals_render_as_exact_strings(self, capsys):
        setup_logging(level="INFO", log_format="json")
        get_logger("test_money").info("payout", amount=Decimal("121.67"), odds=Decimal("1.2167"))

        line = json.loads(capsys.readouterr().err.strip())
        assert line["amount"] == "121.67"
        assert line["odds"] == "1.2167"

    def test_custom_stream(self):
        buf = io.StringIO()
        setup_logging(level="INFO", log_format="json", stream=buf)
        get_logger("test_stream").info("to buffer")
        assert json.loads(buf.getvalue().strip())["event"] == "to buffer"
