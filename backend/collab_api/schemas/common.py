"""
Collab Platform API - Envelope and Health Schemas
==================================================

What:  Pydantic descriptions of the response envelopes and the health
       payload.
How:   The pipeline builds envelopes as dicts (collab_api.pipeline.envelope);
       these models document the same shapes in the OpenAPI schema via each
       route's `responses=` mapping.
"""

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


# ══════════════════════════════════════════════════════════════════════════
# Envelopes
# ══════════════════════════════════════════════════════════════════════════


class ResponseMeta(BaseModel):
    timestamp: str = Field(description="ISO-8601 time the response was produced")
    correlationId: str = Field(description="Same value as the X-Request-ID header")


class SuccessEnvelope(BaseModel, Generic[T]):
    """{success: true, data, meta}"""

    success: bool = True
    data: T
    meta: ResponseMeta


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class PaginatedMeta(ResponseMeta):
    pagination: PaginationMeta


class PaginatedEnvelope(BaseModel, Generic[T]):
    success: bool = True
    data: list[T]
    meta: PaginatedMeta


class ErrorBody(BaseModel):
    code: str = Field(description="Stable machine-readable error code")
    message: str = Field(description="Human-readable description")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Structured context")


class ErrorMeta(ResponseMeta):
    path: str
    method: str


class ErrorEnvelope(BaseModel):
    """
    Failure envelope returned by every error response.

    Example:
        {
            "success": false,
            "error": {
                "code": "USER_EMAIL_ALREADY_EXISTS",
                "message": "An account with this email already exists"
            },
            "meta": {
                "timestamp": "2024-01-15T12:00:00.000+00:00",
                "correlationId": "550e8400-e29b-41d4-a716-446655440000",
                "path": "/api/v1/users/register",
                "method": "POST"
            }
        }
    """

    success: bool = False
    error: ErrorBody
    meta: ErrorMeta


# ══════════════════════════════════════════════════════════════════════════
# Health
# ══════════════════════════════════════════════════════════════════════════


class ServiceInfo(BaseModel):
    name: str
    version: str
    environment: str


class HealthResponse(BaseModel):
    """Liveness payload; the endpoint answers 200 even when degraded."""

    model_config = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel))

    status: str = Field(description="ok, or degraded when the database is unreachable")
    timestamp: str = Field(description="ISO-8601 server time")
    service: ServiceInfo
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float = Field(description="Seconds since the app was created")
