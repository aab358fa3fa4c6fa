"""
Collab Platform API - Structured Logger
========================================

What:  Leveled, single-line JSON log records for the request pipeline.
How:   StructuredLogger builds a dict per event and writes it through the
       stdlib logger "collab_api.http" as one json.dumps() line.
Who:   Constructed once in create_app(), stored on app.state.logger and
       handed to the middleware, the Failure Translator and the services.

Record shape:
    {
        "timestamp": "2024-01-15T12:00:00.000+00:00",
        "level": "INFO",
        "type": "http_response",
        "correlationId": "550e8400-e29b-41d4-a716-446655440000",
        "method": "POST",
        "url": "/api/v1/users/register",
        "statusCode": 201,
        "durationMs": 312.4
    }

Level rules (not caller controlled):
    http_response → WARNING when durationMs > 1000, else INFO
    http_error    → ERROR when statusCode >= 500, else WARNING

Privacy:
    Request body, query and path params are only written outside production.
    Deny-listed keys are replaced with ***REDACTED*** (top level only).
"""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from collab_api.middleware.request_id import request_id_var

SLOW_REQUEST_THRESHOLD_MS = 1000
REDACTED = "***REDACTED***"

SENSITIVE_FIELDS = frozenset({
    "password",
    "passwordConfirm",
    "token",
    "accessToken",
    "refreshToken",
    "secret",
    "apiKey",
    "privateKey",
    "creditCard",
    "cardNumber",
    "ssn",
})


def redact(payload: Any) -> Any:
    """
    Returns a shallow copy of payload with deny-listed keys masked.

    Only top-level keys are inspected; nested objects pass through as-is.
    Non-dict payloads are returned unchanged.
    """
    if not isinstance(payload, Mapping):
        return payload
    return {
        key: (REDACTED if key in SENSITIVE_FIELDS else value)
        for key, value in payload.items()
    }


class CorrelationIdFilter(logging.Filter):
    """Adds `correlation_id` to every record so plain module loggers carry it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = request_id_var.get("") or "-"
        return True


class StructuredLogger:
    """
    Emits request, response, error and generic records as JSON lines.

    Args:
        environment: Deployment environment; "production" drops payloads.
        name: Name of the underlying stdlib logger.
    """

    def __init__(self, environment: str = "development", name: str = "collab_api.http"):
        self.environment = environment
        self._logger = logging.getLogger(name)

    @property
    def include_payloads(self) -> bool:
        return self.environment != "production"

    # ── HTTP events ───────────────────────────────────────────────────────

    def log_request(
        self,
        *,
        method: str,
        url: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        user_id: Optional[str] = None,
        body: Any = None,
        query: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Logs request-received at INFO."""
        entry: Dict[str, Any] = {
            "method": method,
            "url": url,
            "ip": ip,
            "userAgent": user_agent,
            "userId": user_id,
        }
        entry.update(self._payloads(body, query, params))
        self._emit(logging.INFO, "http_request", entry, correlation_id)

    def log_response(
        self,
        *,
        method: str,
        url: str,
        status_code: int,
        duration_ms: float,
        user_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Logs response-sent; slow responses are raised to WARNING."""
        level = logging.WARNING if duration_ms > SLOW_REQUEST_THRESHOLD_MS else logging.INFO
        entry = {
            "method": method,
            "url": url,
            "statusCode": status_code,
            "durationMs": round(duration_ms, 2),
            "userId": user_id,
        }
        self._emit(level, "http_response", entry, correlation_id)

    def log_error(
        self,
        *,
        method: str,
        url: str,
        status_code: int,
        error_code: str,
        message: str,
        error: Optional[BaseException] = None,
        duration_ms: Optional[float] = None,
        user_id: Optional[str] = None,
        body: Any = None,
        query: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """
        Logs a failure; ERROR for 5xx, WARNING otherwise.

        For 5xx failures with a traceback, the formatted stack is written as
        a second record of type http_error_stack.
        """
        level = logging.ERROR if status_code >= 500 else logging.WARNING
        entry: Dict[str, Any] = {
            "method": method,
            "url": url,
            "statusCode": status_code,
            "errorCode": error_code,
            "message": message,
            "errorType": type(error).__name__ if error is not None else None,
            "durationMs": round(duration_ms, 2) if duration_ms is not None else None,
            "userId": user_id,
        }
        entry.update(self._payloads(body, query, params))
        self._emit(level, "http_error", entry, correlation_id)

        if status_code >= 500 and error is not None and error.__traceback__ is not None:
            stack = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
            self._emit(logging.ERROR, "http_error_stack", {"stack": stack}, correlation_id)

    # ── Generic events ────────────────────────────────────────────────────

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, "info", {"message": message, **fields})

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, "warning", {"message": message, **fields})

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, "debug", {"message": message, **fields})

    # ── Internals ─────────────────────────────────────────────────────────

    def _payloads(
        self,
        body: Any,
        query: Optional[Mapping[str, Any]],
        params: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        if not self.include_payloads:
            return {}
        return {
            "body": redact(body),
            "query": dict(query) if query else None,
            "params": dict(params) if params else None,
        }

    def _emit(
        self,
        level: int,
        record_type: str,
        entry: Dict[str, Any],
        correlation_id: Optional[str] = None,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return

        record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": logging.getLevelName(level),
            "type": record_type,
            "correlationId": correlation_id or request_id_var.get("") or None,
        }
        record.update({key: value for key, value in entry.items() if value is not None})

        try:
            line = json.dumps(record, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            # Circular structures; fall back to repr of the payload
            fallback = {key: record[key] for key in ("timestamp", "level", "type", "correlationId")}
            fallback["payload"] = repr(entry)
            line = json.dumps(fallback, ensure_ascii=False)
        self._logger.log(level, line)
