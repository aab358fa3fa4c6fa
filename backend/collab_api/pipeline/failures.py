"""
Collab Platform API - Failure Translator
=========================================

What:  The single place where any exception becomes a failure envelope.
How:   classify() maps the exception to a Failure (status, code, message,
       details, headers); translate() records it on the request context,
       logs it once through the StructuredLogger and renders the envelope.
Who:   Called by PipelineRoute (handler failures), the registered exception
       handlers (router-level 404/405), RateLimitMiddleware (429) and
       RequestIDMiddleware (anything escaping the inner stages).

Classification:
    RequestValidationError          → 400 COMMON_VALIDATION_ERROR (all messages)
    BusinessError / CollabError     → status + code as carried by the error
    StorageConnectionError          → 503 DB_CONNECTION_ERROR (reason in development only)
    Raw SQLAlchemy / driver errors  → classified into the StorageError family first
    HTTPException (starlette)       → its status; code derived from the status
    RequestTimeoutError             → 408 COMMON_REQUEST_TIMEOUT
    anything else                   → 500 COMMON_INTERNAL_SERVER_ERROR
                                      (name/message/stack in development only)

translate() never raises.
"""

import logging
import traceback
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Sequence

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from collab_api.database import classify_storage_error
from collab_api.exceptions import (
    CollabError,
    ErrorCode,
    RateLimitExceededError,
    StorageConnectionError,
)
from collab_api.middleware.request_id import (
    REQUEST_ID_HEADER,
    get_request_context,
    request_id_var,
)
from collab_api.pipeline.envelope import error_envelope, utc_timestamp
from collab_api.structured_logger import StructuredLogger

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

STATUS_ERROR_CODES = {
    400: ErrorCode.COMMON_BAD_REQUEST,
    401: ErrorCode.AUTH_UNAUTHORIZED,
    403: ErrorCode.AUTH_FORBIDDEN,
    404: ErrorCode.COMMON_NOT_FOUND,
}

# Location prefixes FastAPI adds to validation error locs
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


@dataclass
class Failure:
    """A classified failure, ready to render."""

    status_code: int
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


def validation_messages(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Flattens pydantic / FastAPI validation errors into {field, message}.

    ValueError messages raised by field validators are used verbatim
    (without pydantic's "Value error, " prefix).
    """
    items = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in _LOCATION_PREFIXES]
        message = error.get("msg", "Invalid value")
        if error.get("type") == "value_error":
            original = (error.get("ctx") or {}).get("error")
            if original is not None:
                message = _safe_str(original)
        items.append({"field": ".".join(loc) or "request", "message": message})
    return items


class FailureTranslator:
    """
    Args:
        logger: The application's StructuredLogger
        environment: Deployment environment; "development" exposes detail
    """

    def __init__(self, logger: StructuredLogger, environment: str = "development"):
        self.structured_logger = logger
        self.environment = environment

    @property
    def expose_detail(self) -> bool:
        return self.environment == "development"

    # ── Classification ────────────────────────────────────────────────────

    def classify(self, exc: BaseException) -> Failure:
        if isinstance(exc, RequestValidationError):
            return self._validation_failure(exc)

        if isinstance(exc, StorageConnectionError):
            details = None
            if self.expose_detail and exc.__cause__ is not None:
                details = {"reason": _safe_str(exc.__cause__)}
            return Failure(exc.status_code, exc.code.value, exc.message, details)

        if isinstance(exc, CollabError):
            failure = Failure(exc.status_code, exc.code.value, exc.message, exc.details)
            if isinstance(exc, RateLimitExceededError):
                failure.headers["Retry-After"] = str(exc.retry_after)
            return failure

        storage_error = classify_storage_error(exc)
        if storage_error is not None:
            storage_error.__cause__ = exc
            return self.classify(storage_error)

        if isinstance(exc, StarletteHTTPException):
            return self._http_failure(exc)

        return self._unexpected_failure(exc)

    def _validation_failure(self, exc: RequestValidationError) -> Failure:
        errors = validation_messages(exc.errors())
        message = "; ".join(f"{item['field']}: {item['message']}" for item in errors)
        return Failure(
            status_code=400,
            code=ErrorCode.COMMON_VALIDATION_ERROR.value,
            message=message or "Request validation failed",
            details={"errors": errors},
        )

    def _http_failure(self, exc: StarletteHTTPException) -> Failure:
        headers = dict(exc.headers or {})
        detail = exc.detail

        # Structured payload: {"code": ..., "message": ..., "details": ...}
        if isinstance(detail, dict) and "code" in detail:
            return Failure(
                status_code=exc.status_code,
                code=_safe_str(detail["code"]),
                message=_safe_str(detail.get("message", "")),
                details=detail.get("details"),
                headers=headers,
            )

        code = STATUS_ERROR_CODES.get(exc.status_code, ErrorCode.COMMON_INTERNAL_SERVER_ERROR)
        if detail:
            message = _safe_str(detail)
        else:
            try:
                message = HTTPStatus(exc.status_code).phrase
            except ValueError:
                message = GENERIC_ERROR_MESSAGE
        return Failure(exc.status_code, code.value, message, headers=headers)

    def _unexpected_failure(self, exc: BaseException) -> Failure:
        if not self.expose_detail:
            return Failure(500, ErrorCode.COMMON_INTERNAL_SERVER_ERROR.value, GENERIC_ERROR_MESSAGE)

        text = _safe_str(exc)
        return Failure(
            status_code=500,
            code=ErrorCode.COMMON_INTERNAL_SERVER_ERROR.value,
            message=text or GENERIC_ERROR_MESSAGE,
            details={
                "name": type(exc).__name__,
                "message": text,
                "stack": traceback.format_exception(type(exc), exc, exc.__traceback__),
            },
        )

    # ── Rendering ─────────────────────────────────────────────────────────

    async def translate(self, request: Request, exc: BaseException) -> JSONResponse:
        """Classifies, logs and renders exc. Never raises."""
        try:
            return self._render(request, exc)
        except Exception:
            logger.exception("Failure translator could not render %s", type(exc).__name__)
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": {
                        "code": ErrorCode.COMMON_INTERNAL_SERVER_ERROR.value,
                        "message": GENERIC_ERROR_MESSAGE,
                    },
                    "meta": {
                        "timestamp": utc_timestamp(),
                        "correlationId": request_id_var.get(""),
                    },
                },
            )

    def _render(self, request: Request, exc: BaseException) -> JSONResponse:
        context = get_request_context(request)
        context.failure = exc
        failure = self.classify(exc)

        principal = context.principal
        self.structured_logger.log_error(
            method=request.method,
            url=request.url.path,
            status_code=failure.status_code,
            error_code=failure.code,
            message=failure.message,
            error=exc,
            duration_ms=context.elapsed_ms,
            user_id=principal.user_id if principal else None,
            body=context.body,
            query=request.query_params,
            params=request.path_params,
            correlation_id=context.correlation_id,
        )

        headers = dict(failure.headers)
        headers[REQUEST_ID_HEADER] = context.correlation_id
        return JSONResponse(
            status_code=failure.status_code,
            content=error_envelope(
                code=failure.code,
                message=failure.message,
                details=failure.details,
                correlation_id=context.correlation_id,
                path=request.url.path,
                method=request.method,
            ),
            headers=headers,
        )
