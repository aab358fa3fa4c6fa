"""
Collab Platform API - Structured Logger Tests
==============================================

What we test:
    ✅ Shallow redaction of deny-listed keys
    ✅ Payloads omitted entirely in production
    ✅ Automatic level selection (slow responses, 5xx errors)
    ✅ Stack trace emitted as a second record for 5xx failures
    ✅ correlationId taken from the request ContextVar when not passed
    ✅ Unserializable payloads still produce one line
"""

import json
import logging

import pytest

from collab_api.middleware.request_id import request_id_var
from collab_api.structured_logger import (
    REDACTED,
    SENSITIVE_FIELDS,
    StructuredLogger,
    redact,
)

LOGGER_NAME = "collab_api.http"


def records(caplog):
    """Parsed JSON records written by the structured logger."""
    return [
        (record.levelno, json.loads(record.getMessage()))
        for record in caplog.records
        if record.name == LOGGER_NAME
    ]


@pytest.fixture
def capture(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    return caplog


class TestRedaction:

    def test_every_deny_listed_key_is_masked(self):
        payload = {field: "secret-value" for field in SENSITIVE_FIELDS}
        payload["email"] = "a@b.com"

        redacted = redact(payload)

        assert redacted["email"] == "a@b.com"
        for field in SENSITIVE_FIELDS:
            assert redacted[field] == REDACTED

    def test_redaction_is_shallow(self):
        payload = {"password": "top", "profile": {"password": "nested"}}

        redacted = redact(payload)

        assert redacted["password"] == REDACTED
        assert redacted["profile"] == {"password": "nested"}

    def test_input_is_not_mutated(self):
        payload = {"password": "p"}
        redact(payload)
        assert payload["password"] == "p"

    def test_non_dict_payloads_pass_through(self):
        assert redact(["password"]) == ["password"]
        assert redact(None) is None


class TestPayloadInclusion:

    def test_request_body_logged_redacted_outside_production(self, capture):
        logger = StructuredLogger(environment="development")
        logger.log_request(
            method="POST",
            url="/api/v1/users/login",
            body={"email": "a@b.com", "password": "hunter2"},
            query={"page": "1"},
            correlation_id="cid",
        )

        [(level, record)] = records(capture)
        assert level == logging.INFO
        assert record["type"] == "http_request"
        assert record["body"] == {"email": "a@b.com", "password": REDACTED}
        assert record["query"] == {"page": "1"}
        assert "hunter2" not in json.dumps(record)

    def test_production_omits_body_query_and_params(self, capture):
        logger = StructuredLogger(environment="production")
        logger.log_request(
            method="POST",
            url="/api/v1/users/login",
            body={"email": "a@b.com"},
            query={"page": "1"},
            params={"user_id": "u1"},
            correlation_id="cid",
        )
        logger.log_error(
            method="POST",
            url="/api/v1/users/login",
            status_code=401,
            error_code="AUTH_INVALID_CREDENTIALS",
            message="Invalid email or password",
            body={"email": "a@b.com"},
            correlation_id="cid",
        )

        for _, record in records(capture):
            assert "body" not in record
            assert "query" not in record
            assert "params" not in record


class TestLevelSelection:

    def setup_method(self):
        self.logger = StructuredLogger(environment="test")

    def _response(self, duration_ms):
        self.logger.log_response(
            method="GET",
            url="/api/v1/users/me",
            status_code=200,
            duration_ms=duration_ms,
            correlation_id="cid",
        )

    def test_response_at_threshold_is_info(self, capture):
        self._response(1000)
        [(level, record)] = records(capture)
        assert level == logging.INFO
        assert record["level"] == "INFO"

    def test_slow_response_is_warning_with_same_fields(self, capture):
        self._response(999)
        self._response(1000.5)

        (fast_level, fast), (slow_level, slow) = records(capture)
        assert fast_level == logging.INFO
        assert slow_level == logging.WARNING
        assert slow["level"] == "WARNING"
        drop = {"timestamp", "level", "durationMs"}
        assert set(fast) - drop == set(slow) - drop

    def test_client_error_is_warning(self, capture):
        self.logger.log_error(
            method="GET", url="/x", status_code=404,
            error_code="USER_NOT_FOUND", message="User not found",
        )
        [(level, record)] = records(capture)
        assert level == logging.WARNING
        assert record["statusCode"] == 404

    def test_server_error_is_error_with_stack_line(self, capture):
        try:
            raise RuntimeError("db exploded")
        except RuntimeError as exc:
            error = exc

        self.logger.log_error(
            method="GET", url="/x", status_code=500,
            error_code="COMMON_INTERNAL_SERVER_ERROR", message="boom",
            error=error, correlation_id="cid",
        )

        (level, record), (stack_level, stack) = records(capture)
        assert level == logging.ERROR
        assert record["errorType"] == "RuntimeError"
        assert stack_level == logging.ERROR
        assert stack["type"] == "http_error_stack"
        assert "db exploded" in stack["stack"]
        assert stack["correlationId"] == "cid"

    def test_server_error_without_traceback_has_no_stack_line(self, capture):
        self.logger.log_error(
            method="GET", url="/x", status_code=503,
            error_code="DB_CONNECTION_ERROR", message="down",
            error=RuntimeError("never raised"),
        )
        assert len(records(capture)) == 1


class TestRecordShape:

    def test_correlation_id_from_context_var(self, capture):
        token = request_id_var.set("from-context")
        try:
            StructuredLogger().info("User registered", userId="u1")
        finally:
            request_id_var.reset(token)

        [(_, record)] = records(capture)
        assert record["correlationId"] == "from-context"
        assert record["type"] == "info"
        assert record["message"] == "User registered"
        assert record["userId"] == "u1"

    def test_none_fields_are_dropped(self, capture):
        StructuredLogger().log_request(method="GET", url="/health", correlation_id="c")
        [(_, record)] = records(capture)
        assert "userId" not in record
        assert "body" not in record

    def test_circular_payload_falls_back_to_repr(self, capture):
        body = {}
        body["self"] = body

        StructuredLogger().log_request(method="POST", url="/x", body=body, correlation_id="c")

        [(_, record)] = records(capture)
        assert record["type"] == "http_request"
        assert "payload" in record

    def test_disabled_level_emits_nothing(self, caplog):
        caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
        StructuredLogger().debug("hidden")
        assert records(caplog) == []
