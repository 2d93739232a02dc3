"""
Tests for the error registry, settings and logging helpers.
"""

import json
import logging
from unittest.mock import patch

import pytest

from teenvest.config.logging import (
    BusinessLogger,
    ConsoleFormatter,
    LogContext,
    StructuredFormatter,
    clear_user_context,
    configure_logging,
    log_performance,
    set_user_context,
    user_id_var,
)
from teenvest.config.settings import (
    DisciplineConfig,
    ReplicationConfig,
    TeenvestSettings,
    WeightingScheme,
    get_settings,
)
from teenvest.core.engine import setup_logging
from teenvest.core.errors import (
    DegenerateInputError,
    ErrorCategory,
    ErrorCodes,
    InsufficientCashError,
    MalformedTradeError,
    TeenvestError,
)


def make_record(msg="hello", **extra):
    record = logging.LogRecord("teenvest.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestTeenvestError:
    """Tests for structured errors."""

    def test_code_and_messages(self):
        error = InsufficientCashError(detail="cost 500 exceeds cash 100")
        assert error.code == "BUSINESS_2001"
        assert error.category == ErrorCategory.BUSINESS
        assert error.user_message == "Insufficient phantom cash."
        assert error.technical_message.endswith("cost 500 exceeds cash 100")
        assert str(error) == error.technical_message

    def test_to_dict_debug(self):
        error = MalformedTradeError(detail="no price", context={"id": "t1"})
        data = error.to_dict(include_debug=True)
        assert data["code"] == "DATA_3002"
        assert data["debug"]["context"] == {"id": "t1"}
        assert "debug" not in error.to_dict()

    def test_log_uses_severity(self):
        error = DegenerateInputError(detail="zero target")
        with patch("teenvest.core.errors.logger") as mock_logger:
            error.log()
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["extra"]["ctx_error_code"] == "DATA_3001"

    def test_is_exception(self):
        with pytest.raises(TeenvestError):
            raise TeenvestError(ErrorCodes.DATA_MALFORMED_TRADE)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, settings):
        assert settings.REVENGE_WINDOW_MS == 60_000
        assert settings.DEFAULT_STARTING_BALANCE == 10_000.0
        assert settings.PHANTOM_WEIGHTING == WeightingScheme.RANK

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TEENVEST_REVENGE_WINDOW_MS", "30000")
        monkeypatch.setenv("TEENVEST_PHANTOM_WEIGHTING", "equal")
        settings = TeenvestSettings(_env_file=None)
        assert settings.discipline_config().revenge_window_ms == 30_000
        assert settings.replication_config().weighting == WeightingScheme.EQUAL

    def test_config_objects(self, settings):
        discipline = settings.discipline_config()
        replication = settings.replication_config()
        assert isinstance(discipline, DisciplineConfig)
        assert isinstance(replication, ReplicationConfig)
        assert discipline.plan_tolerance_pct == 0.005
        assert replication.holdings_count == 6
        assert replication.share_precision == 4

    def test_configs_are_frozen(self):
        with pytest.raises(Exception):
            DisciplineConfig().revenge_window_ms = 1

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()


class TestFormatters:
    """Tests for log formatters and user context."""

    def test_structured_formatter_strips_prefix(self):
        formatter = StructuredFormatter(service_name="svc", environment="test")
        with LogContext("user-123"):
            output = json.loads(formatter.format(make_record(ctx_score=87)))
        assert output["message"] == "hello"
        assert output["service"] == "svc"
        assert output["score"] == 87
        assert output["user_id"] == "user-123"

    def test_console_formatter_includes_extras(self):
        output = ConsoleFormatter().format(make_record(ctx_symbol="AAPL"))
        assert "hello" in output
        assert "symbol=AAPL" in output

    def test_log_context_restores_previous(self):
        set_user_context("outer")
        with LogContext("inner"):
            assert user_id_var.get() == "inner"
        assert user_id_var.get() == "outer"
        clear_user_context()
        assert user_id_var.get() is None

    def test_configure_logging_json(self, tmp_path):
        log_file = tmp_path / "teenvest.log"
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            configure_logging(level="debug", json_format=True, log_file=str(log_file))
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
            assert len(root.handlers) == 2
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_setup_logging_reads_settings(self, settings):
        with patch("teenvest.core.engine.configure_logging") as mock_configure:
            setup_logging(settings)
        mock_configure.assert_called_once_with(
            level="INFO", json_format=False, environment="development"
        )


class TestLogPerformance:
    def test_returns_result(self):
        @log_performance(threshold_ms=1_000)
        def add(a, b):
            return a + b

        assert add(2, 3) == 5

    def test_reraises(self):
        @log_performance()
        def boom():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            boom()


class TestBusinessLogger:
    """Tests for business event logging."""

    def test_trade_rejection_is_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="teenvest.business"):
            BusinessLogger().log_phantom_trade("u1", "buy", "AAPL", 1, 10.0, error="Insufficient phantom cash.")
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.ctx_event == "phantom_trade"
        assert record.ctx_error == "Insufficient phantom cash."

    def test_scored_event_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger="teenvest.business"):
            BusinessLogger().log_discipline_scored("u1", 77, 8, skipped_records=2)
        record = caplog.records[-1]
        assert record.ctx_score == 77
        assert record.ctx_skipped_records == 2
