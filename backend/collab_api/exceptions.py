"""
Collab Platform API - Error Codes and Exception Hierarchy
==========================================================

What:  Stable machine-readable error codes and the application exceptions
       that carry them.
How:   Every exception carries a message, a code, an HTTP status and optional
       details. The Failure Translator (collab_api.pipeline.failures) turns
       any of them into the failure envelope.
Who:   Raised by services, the persistence gateway and pipeline stages.

Exception Hierarchy:
    CollabError (base)
    ├── BusinessError                    → status/code passed through as given
    │   ├── AuthenticationRequiredError  → 401 AUTH_UNAUTHORIZED
    │   ├── InvalidCredentialsError      → 401 AUTH_INVALID_CREDENTIALS
    │   ├── UserInactiveError            → 403 USER_INACTIVE
    │   ├── UserNotFoundError            → 404 USER_NOT_FOUND
    │   ├── EmailAlreadyExistsError      → 409 USER_EMAIL_ALREADY_EXISTS
    │   └── RateLimitExceededError       → 429 COMMON_TOO_MANY_REQUESTS
    ├── RequestTimeoutError              → 408 COMMON_REQUEST_TIMEOUT
    └── StorageError
        ├── UniqueConstraintError        → 409 DB_UNIQUE_CONSTRAINT
        ├── RecordNotFoundError          → 404 COMMON_NOT_FOUND
        ├── ForeignKeyViolationError     → 400 COMMON_BAD_REQUEST
        └── StorageConnectionError       → 503 DB_CONNECTION_ERROR
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Error codes returned in `error.code` of every failure envelope."""

    # ── Common ────────────────────────────────────────────────────────────
    COMMON_BAD_REQUEST = "COMMON_BAD_REQUEST"
    COMMON_VALIDATION_ERROR = "COMMON_VALIDATION_ERROR"
    COMMON_NOT_FOUND = "COMMON_NOT_FOUND"
    COMMON_INTERNAL_SERVER_ERROR = "COMMON_INTERNAL_SERVER_ERROR"
    COMMON_REQUEST_TIMEOUT = "COMMON_REQUEST_TIMEOUT"
    COMMON_TOO_MANY_REQUESTS = "COMMON_TOO_MANY_REQUESTS"

    # ── Authentication ────────────────────────────────────────────────────
    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"

    # ── Users ─────────────────────────────────────────────────────────────
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_EMAIL_ALREADY_EXISTS = "USER_EMAIL_ALREADY_EXISTS"
    USER_INACTIVE = "USER_INACTIVE"

    # ── Database ──────────────────────────────────────────────────────────
    DB_CONNECTION_ERROR = "DB_CONNECTION_ERROR"
    DB_UNIQUE_CONSTRAINT = "DB_UNIQUE_CONSTRAINT"


class CollabError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:      Client-facing description (safe to return in responses)
        code:         Stable ErrorCode for programmatic handling
        status_code:  HTTP status the failure maps to
        details:      Optional structured context returned as `error.details`
    """

    status_code: int = 500
    code: ErrorCode = ErrorCode.COMMON_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Business errors: explicit status + code, passed through unchanged
# ══════════════════════════════════════════════════════════════════════════


class BusinessError(CollabError):
    """
    A domain rule failure with a caller-specified status and code.

    Subclasses fix the status/code pair; ad-hoc failures can pass both
    explicitly: BusinessError("...", code=ErrorCode.AUTH_FORBIDDEN, status_code=403).
    """

    status_code = 400
    code = ErrorCode.COMMON_BAD_REQUEST
    default_message = "The request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message=message, details=details)


class AuthenticationRequiredError(BusinessError):
    """No authenticated principal is attached to the request. HTTP 401."""

    status_code = 401
    code = ErrorCode.AUTH_UNAUTHORIZED
    default_message = "Authentication is required"


class InvalidCredentialsError(BusinessError):
    """
    Login failed. HTTP 401.

    The message is identical whether the email is unknown or the password
    is wrong, so responses never reveal which accounts exist.
    """

    status_code = 401
    code = ErrorCode.AUTH_INVALID_CREDENTIALS
    default_message = "Invalid email or password"

    def __init__(self):
        super().__init__()


class UserInactiveError(BusinessError):
    """Credentials were valid but the account is deactivated. HTTP 403."""

    status_code = 403
    code = ErrorCode.USER_INACTIVE
    default_message = "This account has been deactivated"


class UserNotFoundError(BusinessError):
    """No user matches the requested id. HTTP 404."""

    status_code = 404
    code = ErrorCode.USER_NOT_FOUND
    default_message = "User not found"

    def __init__(self, user_id: Optional[str] = None):
        details = {"id": user_id} if user_id else None
        super().__init__(details=details)


class EmailAlreadyExistsError(BusinessError):
    """Registration with an email that is already taken. HTTP 409."""

    status_code = 409
    code = ErrorCode.USER_EMAIL_ALREADY_EXISTS
    default_message = "An account with this email already exists"


class RateLimitExceededError(BusinessError):
    """
    Client exceeded the fixed-window request budget. HTTP 429.

    retry_after is rendered as the Retry-After response header.
    """

    status_code = 429
    code = ErrorCode.COMMON_TOO_MANY_REQUESTS

    def __init__(self, retry_after: int, limit: int, window: int):
        self.retry_after = retry_after
        super().__init__(
            message=f"Too many requests. Please wait {retry_after} seconds before retrying.",
            details={"limit": limit, "window_seconds": window, "retry_after": retry_after},
        )


# ══════════════════════════════════════════════════════════════════════════
# Pipeline errors
# ══════════════════════════════════════════════════════════════════════════


class RequestTimeoutError(CollabError):
    """The handler exceeded the configured deadline. HTTP 408."""

    status_code = 408
    code = ErrorCode.COMMON_REQUEST_TIMEOUT

    def __init__(self, timeout_seconds: float):
        self.timeout_ms = int(round(timeout_seconds * 1000))
        super().__init__(
            message=f"Request timed out after {self.timeout_ms}ms",
            details={"timeout_ms": self.timeout_ms},
        )


# ══════════════════════════════════════════════════════════════════════════
# Storage errors: raised by the persistence gateway
# ══════════════════════════════════════════════════════════════════════════


class StorageError(CollabError):
    """Base for failures reported by the relational store."""

    default_message = "A database error occurred"


class UniqueConstraintError(StorageError):
    """A unique index rejected the write. HTTP 409."""

    status_code = 409
    code = ErrorCode.DB_UNIQUE_CONSTRAINT

    def __init__(self, fields: Optional[List[str]] = None):
        self.fields = fields or []
        if self.fields:
            message = f"A record with this {', '.join(self.fields)} already exists"
        else:
            message = "A record with these values already exists"
        super().__init__(message=message, details={"fields": self.fields})


class RecordNotFoundError(StorageError):
    """The row targeted by an update or delete does not exist. HTTP 404."""

    status_code = 404
    code = ErrorCode.COMMON_NOT_FOUND
    default_message = "The requested record was not found"


class ForeignKeyViolationError(StorageError):
    """A write referenced a row that does not exist. HTTP 400."""

    status_code = 400
    code = ErrorCode.COMMON_BAD_REQUEST
    default_message = "The request references a related record that does not exist"


class StorageConnectionError(StorageError):
    """The database is unreachable or the connection was lost. HTTP 503."""

    status_code = 503
    code = ErrorCode.DB_CONNECTION_ERROR
    default_message = "The database is temporarily unavailable"
