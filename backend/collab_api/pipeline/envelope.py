"""
Collab Platform API - Response Envelope (Response Shaper)
==========================================================

What:  Builders for the two envelope shapes and the success shaper.
How:   Plain dict builders; the shaper re-renders JSON responses produced by
       route handlers into the success envelope unless the payload already
       is one.

Envelope shapes (exactly one of data / error):
    Success: {"success": true,  "data": ..., "meta": {"timestamp", "correlationId", ...extra}}
    Failure: {"success": false, "error": {"code", "message", "details"?},
              "meta": {"timestamp", "correlationId", "path", "method"}}
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel
from starlette.responses import JSONResponse, Response

# Headers recomputed when a body is re-rendered
_REGENERATED_HEADERS = {"content-length", "content-type"}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def success_envelope(data: Any, correlation_id: str, **extra_meta: Any) -> Dict[str, Any]:
    """Wraps data as {success: true, data, meta: {timestamp, correlationId, ...extra_meta}}."""
    meta = {"timestamp": utc_timestamp(), "correlationId": correlation_id}
    meta.update(extra_meta)
    return {"success": True, "data": data, "meta": meta}


def error_envelope(
    *,
    code: str,
    message: str,
    correlation_id: str,
    path: str,
    method: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Builds the failure envelope; `details` is omitted when empty."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "meta": {
            "timestamp": utc_timestamp(),
            "correlationId": correlation_id,
            "path": path,
            "method": method,
        },
    }


def is_envelope(value: Any) -> bool:
    """True when value already carries a boolean `success` field."""
    if isinstance(value, BaseModel):
        return isinstance(getattr(value, "success", None), bool)
    if isinstance(value, dict):
        return isinstance(value.get("success"), bool)
    return False


def shape_success(value: Any, correlation_id: str) -> Any:
    """
    Wraps a handler result in the success envelope.

    Already-enveloped values are returned unchanged (the same object), so
    shaping is idempotent.
    """
    if is_envelope(value):
        return value
    return success_envelope(value, correlation_id)


def shape_response(response: Response, correlation_id: str) -> Response:
    """
    Applies shape_success to a rendered JSON response.

    Non-JSON and empty responses pass through untouched. Status code,
    custom headers and background tasks are preserved.
    """
    body = getattr(response, "body", None)
    if not body or response.media_type != "application/json":
        return response

    payload = json.loads(body)
    if is_envelope(payload):
        return response

    headers = {
        key: value
        for key, value in response.headers.items()
        if key.lower() not in _REGENERATED_HEADERS
    }
    return JSONResponse(
        content=success_envelope(payload, correlation_id),
        status_code=response.status_code,
        headers=headers,
        background=response.background,
    )
