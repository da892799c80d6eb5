"""Tests for the structured logging system (textile_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from textile_kernel.domain.ledger import EntryStatus
from textile_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "textile_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("payment_applied", extra={"entry_ref": "bill:7", "status": "PARTIAL"})

        record = _parse_log(stream)
        assert record["entry_ref"] == "bill:7"
        assert record["status"] == "PARTIAL"

    def test_decimal_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("amounts", extra={"amount": Decimal("100.50"), "state": EntryStatus.PAID})

        record = _parse_log(stream)
        assert record["amount"] == "100.50"
        assert record["state"] == "PAID"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(correlation_id="abc-123", khata_id="4")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["khata_id"] == "4"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_core_exception_code_extracted(self):
        """Core exceptions carry .code and their structured fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        from textile_kernel.exceptions import ExceedsRemainingBalanceError

        try:
            raise ExceedsRemainingBalanceError("payable:3", "100.01", "100.00")
        except ExceedsRemainingBalanceError:
            logger.error("payment_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "EXCEEDS_REMAINING_BALANCE"
        assert record["exc_type"] == "ExceedsRemainingBalanceError"
        assert record["exc_remaining_amount"] == "100.00"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "batch_id" not in record

    def test_debug_filtered_at_info_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_ignores_none(self):
        LogContext.set(entry_ref="bill:1")
        LogContext.set(entry_ref=None, batch_id="b-1")
        assert LogContext.get_all() == {"entry_ref": "bill:1", "batch_id": "b-1"}

    def test_bind_restores_previous_value(self):
        LogContext.set(entry_ref="bill:1")
        with LogContext.bind(entry_ref="payable:9"):
            assert LogContext.get_all()["entry_ref"] == "payable:9"
        assert LogContext.get_all()["entry_ref"] == "bill:1"

    def test_bind_stringifies_values(self):
        with LogContext.bind(khata_id=12):
            assert LogContext.get_all()["khata_id"] == "12"

    def test_clear(self):
        LogContext.set(correlation_id="x", actor_id="y")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:
    """configure_logging is idempotent."""

    def test_second_call_is_noop(self):
        first, first_stream = _make_handler()
        second, second_stream = _make_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)

        get_logger("test").info("once")

        assert first_stream.getvalue()
        assert second_stream.getvalue() == ""
