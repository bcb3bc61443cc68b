"""
Unit tests for structured logging.
"""

import json
import logging

from shadowrisk.observability import (
    HumanReadableFormatter,
    ShadowLogger,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


def make_record(message="Assessment started", **extra) -> logging.LogRecord:
    """Create a log record carrying extra fields."""
    record = logging.LogRecord(
        name="shadowrisk.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_json_output(self):
        """Test records are rendered as JSON with extra fields."""
        formatter = StructuredFormatter(extra_fields={"service": "shadowrisk"})
        data = json.loads(formatter.format(make_record(run_id="abc", entity_count=3)))

        assert data["level"] == "info"
        assert data["logger"] == "shadowrisk.engine"
        assert data["message"] == "Assessment started"
        assert data["run_id"] == "abc"
        assert data["entity_count"] == 3
        assert data["service"] == "shadowrisk"
        assert data["timestamp"].endswith("Z")

    def test_optional_fields(self):
        """Test optional fields can be switched off or on."""
        formatter = StructuredFormatter(
            include_timestamp=False, include_logger=False, include_location=True
        )
        data = json.loads(formatter.format(make_record()))
        assert "timestamp" not in data
        assert "logger" not in data
        assert data["location"]["line"] == 10


class TestHumanReadableFormatter:
    """Tests for HumanReadableFormatter."""

    def test_plain_output(self):
        """Test human-readable output without colors."""
        formatter = HumanReadableFormatter(use_colors=False, include_timestamp=False)
        output = formatter.format(make_record())
        assert output.endswith("shadowrisk.engine: Assessment started")
        assert "INFO" in output


class TestShadowLogger:
    """Tests for ShadowLogger and helpers."""

    def test_get_logger_prefix(self):
        """Test logger names are placed under the package logger."""
        assert get_logger("engine").logger.name == "shadowrisk.engine"
        assert get_logger("shadowrisk.cli").logger.name == "shadowrisk.cli"

    def test_context_fields(self, caplog):
        """Test context fields are attached to every record."""
        caplog.set_level(logging.INFO, logger="shadowrisk")
        logger = ShadowLogger("shadowrisk.test")
        logger.set_context(run_id="r-1")
        logger.info("first", entity_count=2)
        logger.clear_context()
        logger.info("second")

        first, second = caplog.records[-2:]
        assert first.run_id == "r-1"
        assert first.entity_count == 2
        assert not hasattr(second, "run_id")

    def test_event_helpers(self, caplog):
        """Test assessment event helpers tag their event type."""
        caplog.set_level(logging.DEBUG, logger="shadowrisk")
        logger = get_logger("test")
        logger.assessment_started("r-2", 4, "points")
        logger.entity_scored("alice", "aws", "low", 0)
        logger.normalization_failed("azure", "", "Unknown identity provider: 'azure'")

        events = [r.event_type for r in caplog.records[-3:]]
        assert events == ["assessment.started", "entity.scored", "normalization.failed"]
        assert caplog.records[-1].levelno == logging.ERROR


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_handler(self):
        """Test a single handler with the requested formatter is installed."""
        configure_logging(level="DEBUG", format="json", output="stdout")
        root = logging.getLogger("shadowrisk")
        try:
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            configure_logging(level="WARNING")

    def test_unknown_level_defaults_to_info(self):
        """Test an unknown level name falls back to INFO."""
        configure_logging(level="chatty")
        try:
            assert logging.getLogger("shadowrisk").level == logging.INFO
        finally:
            configure_logging(level="WARNING")
