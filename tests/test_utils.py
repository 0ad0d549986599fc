"""
Unit tests for utility functions.
"""

import json
import logging
from datetime import datetime, timezone, timedelta
import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from app.schemas import envelope
from app.utils import (
    JSONFormatter,
    classify_db_error,
    handle_db_errors,
    format_timestamp,
    format_error_message,
    setup_logging,
)

def _db_error(cls):
    return cls("INSERT INTO users ...", {}, Exception("duplicate key value violates unique constraint"))

class TestErrorClassification:
    """Storage errors map to generic messages."""

    def test_integrity_error(self):
        assert classify_db_error(_db_error(IntegrityError)) == "Storage constraint violated"

    def test_operational_error(self):
        assert classify_db_error(_db_error(OperationalError)) == "Storage unavailable"

    def test_other_error(self):
        assert classify_db_error(_db_error(ProgrammingError)) == "Database error"

class TestHandleDbErrors:
    """The route decorator."""

    def test_passes_through_results(self):
        @handle_db_errors
        def ok():
            return 42
        assert ok() == 42

    def test_storage_error_becomes_500_without_details(self, caplog):
        @handle_db_errors
        def boom():
            raise _db_error(IntegrityError)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(HTTPException) as exc:
                boom()
        assert exc.value.status_code == 500
        assert exc.value.detail == "Storage constraint violated"
        # The full driver message stays in the server log
        assert "duplicate key value" in caplog.text

    def test_http_exception_is_reraised(self):
        @handle_db_errors
        def missing():
            raise HTTPException(status_code=404, detail="User not found")

        with pytest.raises(HTTPException) as exc:
            missing()
        assert exc.value.status_code == 404

    def test_unexpected_error_is_generic(self):
        @handle_db_errors
        def broken():
            raise RuntimeError("secret internals")

        with pytest.raises(HTTPException) as exc:
            broken()
        assert exc.value.status_code == 500
        assert exc.value.detail == "Internal server error"

class TestEnvelope:
    """Response envelope helper."""

    def test_default_message_is_reason_phrase(self):
        assert envelope({"a": 1}, 201) == {"data": {"a": 1}, "status": "201", "message": "Created"}

    def test_custom_message(self):
        assert envelope(None, 404, "User not found") == {"data": None, "status": "404", "message": "User not found"}

class TestFormatting:
    """Timestamps, errors and log records."""

    def test_format_timestamp_converts_to_utc(self):
        value = datetime(2024, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value) == "2024-01-02 03:04:05"

    def test_format_timestamp_naive(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02 03:04:05"

    def test_format_error_message(self):
        assert format_error_message(ValueError("bad")) == "ValueError: bad"

    def test_json_formatter(self):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "app.test"

    def test_setup_logging_is_idempotent(self):
        root = logging.getLogger()
        setup_logging("INFO", json_format=True)
        setup_logging("DEBUG", json_format=False)
        ours = [h for h in root.handlers if h.get_name() == "user-service"]
        assert len(ours) == 1
        assert root.level == logging.DEBUG
