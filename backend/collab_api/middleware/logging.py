"""
Collab Platform API - Request Logging Middleware
=================================================

What:  Writes request-received and response-sent records for every request.
How:   Logs on arrival (method, path, client IP, user agent and, outside
       production, the redacted JSON body and query), then logs the
       response with its duration once the handler finished successfully.
When:  Inside RequestIDMiddleware, so both records carry the correlation ID.

Failure responses (status >= 400) are logged by the Failure Translator,
so a failed request produces one error record and no response-sent record.

Body capture:
    Only for application/json requests up to MAX_LOGGED_BODY_BYTES, and only
    when the StructuredLogger includes payloads (non-production). The parsed
    body is kept on the RequestContext so an error record can include it.
"""

import json
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from collab_api.middleware.request_id import get_request_context
from collab_api.structured_logger import StructuredLogger

MAX_LOGGED_BODY_BYTES = 64 * 1024


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def _read_json_body(request: Request) -> Any:
    """Parsed JSON body, or None when absent, too large or not JSON."""
    if request.method in ("GET", "HEAD", "OPTIONS", "DELETE"):
        return None
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > MAX_LOGGED_BODY_BYTES:
        return None

    raw = await request.body()
    if not raw or len(raw) > MAX_LOGGED_BODY_BYTES:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        # Malformed JSON is reported by the validation stage
        return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs request-received and response-sent through the StructuredLogger.

    Skips /health (probed every few seconds by orchestrators).
    """

    SKIP_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.SKIP_PATHS:
            return await call_next(request)

        structured: StructuredLogger = request.app.state.logger
        context = get_request_context(request)

        if structured.include_payloads:
            context.body = await _read_json_body(request)

        structured.log_request(
            method=request.method,
            url=path,
            ip=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
            user_id=context.principal.user_id if context.principal else None,
            body=context.body,
            query=request.query_params,
            correlation_id=context.correlation_id,
        )

        response = await call_next(request)

        if response.status_code < 400:
            structured.log_response(
                method=request.method,
                url=path,
                status_code=response.status_code,
                duration_ms=context.elapsed_ms,
                user_id=context.principal.user_id if context.principal else None,
                correlation_id=context.correlation_id,
            )

        return response
