"""
Collab Platform API - Request ID Middleware (Identity Stamper)
===============================================================

What:  Assigns a correlation ID to each incoming request, creates the
       per-request RequestContext, and echoes the ID in the response.
How:   Uses the caller's X-Request-ID verbatim when present, otherwise a
       fresh UUID4. Stores it in a ContextVar (for loggers) and in
       request.state.context (for handlers), then sets the response header.
When:  Outermost pipeline stage; every other stage can read the context.

Correlation invariant:
    One ID per request. The same value appears in every log line emitted
    while handling the request, in the X-Request-ID response header and in
    the envelope's meta.correlationId.
"""

import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local storage for the current correlation ID; read by
# CorrelationIdFilter and StructuredLogger so every record carries it.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@dataclass(frozen=True)
class Principal:
    """An authenticated identity attached to a request."""

    user_id: str
    email: str
    role: str


@dataclass
class RequestContext:
    """
    Transient per-request state, created at pipeline entry.

    correlation_id and start_time never change after creation. principal is
    populated by an authentication stage when one is installed; body holds
    the parsed JSON body captured for logging; failure records the exception
    the Failure Translator handled, so the session scope can roll back.
    """

    correlation_id: str
    start_time: float
    principal: Optional[Principal] = None
    body: Any = None
    failure: Optional[BaseException] = None

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.start_time) * 1000


def get_request_context(request: Request) -> RequestContext:
    """
    Returns the RequestContext for this request.

    Requests that bypassed RequestIDMiddleware (e.g. a bare router in a unit
    test) get a context built from the header or the ContextVar.
    """
    context = getattr(request.state, "context", None)
    if context is None:
        rid = request.headers.get(REQUEST_ID_HEADER) or request_id_var.get("") or str(uuid.uuid4())
        context = RequestContext(correlation_id=rid, start_time=time.perf_counter())
        request.state.context = context
    return context


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that stamps each request with its correlation ID.

    Behavior:
        1. Take X-Request-ID from the request headers, or generate a UUID4
        2. Build the RequestContext and store it on request.state
        3. Bind the ID to request_id_var for the duration of the request
        4. Run the rest of the pipeline; any exception that escapes it is
           rendered by the Failure Translator
        5. Set X-Request-ID on the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Caller-supplied IDs are used verbatim, no format validation
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        request.state.context = RequestContext(
            correlation_id=rid,
            start_time=time.perf_counter(),
        )
        token = request_id_var.set(rid)

        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                translator = request.app.state.failure_translator
                response = await translator.translate(request, exc)

            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            request_id_var.reset(token)
