"""Tests for the structured logging system (tax_kernel/logging_config.py)."""

import importlib
import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from tax_engines.rates import TaxMode
from tax_kernel.exceptions import CreditQuantityExceededError
from tax_kernel.logging_config import (
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
    configure_logging(level=logging.DEBUG)


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
    """Parse all JSON log lines from a stream."""
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
        assert record["logger"] == "tax_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("line_computed", extra={"line_count": 3, "total": "10.00"})

        record = _parse_log(stream)
        assert record["line_count"] == 3
        assert record["total"] == "10.00"

    def test_decimal_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "values", extra={"amount": Decimal("1.50"), "mode": TaxMode.INCLUSIVE}
        )

        record = _parse_log(stream)
        assert record["amount"] == "1.50"
        assert record["mode"] == "INCLUSIVE"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="corr-1", document_id="INV-9")
        get_logger("test").info("with_context")

        record = _parse_log(stream)
        assert record["correlation_id"] == "corr-1"
        assert record["document_id"] == "INV-9"
        assert "line_id" not in record

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise CreditQuantityExceededError(Decimal("15"), Decimal("10"))
        except CreditQuantityExceededError:
            get_logger("test").exception("credit_failed")

        record = _parse_log(stream)
        assert record["exc_type"] == "CreditQuantityExceededError"
        assert record["exc_code"] == "CREDIT_QTY_EXCEEDS_ORIGINAL"
        assert record["exc_requested_qty"] == "15"
        assert record["exc_original_qty"] == "10"
        assert "traceback" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_only_updates_non_none(self):
        LogContext.set(document_id="INV-1")
        LogContext.set(line_id="L1")
        assert LogContext.get_all() == {"document_id": "INV-1", "line_id": "L1"}

    def test_clear(self):
        LogContext.set(actor_id="user-1")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_values(self):
        LogContext.set(document_id="outer")
        with LogContext.bind(document_id="inner", line_id="L2"):
            assert LogContext.get_all() == {"document_id": "inner", "line_id": "L2"}
        assert LogContext.get_all() == {"document_id": "outer"}

    def test_bind_ignores_none(self):
        LogContext.set(document_id="kept")
        with LogContext.bind(document_id=None):
            assert LogContext.get_all() == {"document_id": "kept"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(line_id="L9"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_bind_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            with LogContext.bind(invoice_number="INV-1"):
                pass


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        first, first_stream = _make_handler()
        second, second_stream = _make_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)

        get_logger("test").info("once")

        assert len(_parse_all_logs(first_stream)) == 1
        assert second_stream.getvalue() == ""

    def test_level_respected(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        logger = get_logger("test")
        logger.info("dropped")
        logger.warning("kept")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["kept"]

    def test_reset_clears_handlers(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        reset_logging()

        root = logging.getLogger("tax_kernel")
        assert root.handlers == []
        assert root.propagate is True

    def test_configure_again_after_reset(self):
        first, _ = _make_handler()
        second, second_stream = _make_handler()
        configure_logging(handler=first)
        reset_logging()
        configure_logging(handler=second)

        get_logger("test").info("after_reset")

        assert _parse_log(second_stream)["message"] == "after_reset"


class TestPackageLoad:
    def test_engines_package_logs_modules(self):
        import tax_engines

        handler, stream = _make_handler()
        configure_logging(level=logging.DEBUG, handler=handler)

        importlib.reload(tax_engines)

        loaded = [r for r in _parse_all_logs(stream) if r["message"] == "engines_package_loaded"]
        assert loaded[0]["module_count"] == 8
        assert "credit" in loaded[0]["modules"]
