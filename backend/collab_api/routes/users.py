"""
Collab Platform API - User Route Handlers
==========================================

What:  HTTP endpoints for registration, login and user lookups.
How:   Thin handlers: FastAPI validates the input against the schemas,
       the handler delegates to UserService, and PipelineRoute wraps the
       returned model in the success envelope.
Who:   Mounted under the API prefix (/api/v1) by create_app().

Status codes:
    POST /users/register   201 | 400 validation | 409 duplicate email
    POST /users/login      200 | 400 validation | 401 invalid credentials | 403 inactive
    GET  /users/me         200 | 401 no principal
    GET  /users            200 | 401
    GET  /users/stats      200 | 401
    GET  /users/search     200 | 401
    GET  /users/{user_id}  200 | 404
"""

import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from collab_api.dependencies import get_current_principal, get_user_service
from collab_api.middleware.request_id import Principal, get_request_context
from collab_api.pipeline.envelope import success_envelope
from collab_api.pipeline.route import PipelineRoute
from collab_api.schemas.common import ErrorEnvelope, PaginatedEnvelope, SuccessEnvelope
from collab_api.schemas.user import (
    LoginRequest,
    LoginResponse,
    PublicUser,
    RegisterRequest,
    UserListQuery,
    UserSearchResponse,
    UserStatistics,
)
from collab_api.services.user_service import UserService

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/users", tags=["Users"], route_class=PipelineRoute)

ERROR_RESPONSES = {
    400: {"description": "Validation failed", "model": ErrorEnvelope},
    408: {"description": "Request timed out", "model": ErrorEnvelope},
    500: {"description": "Server error", "model": ErrorEnvelope},
}
AUTH_RESPONSES = {401: {"description": "Authentication required", "model": ErrorEnvelope}}


@router.post(
    "/register",
    status_code=201,
    response_model=PublicUser,
    responses={
        201: {"description": "Account created", "model": SuccessEnvelope[PublicUser]},
        409: {"description": "Email already registered", "model": ErrorEnvelope},
        **ERROR_RESPONSES,
    },
    summary="Register a new account",
)
async def register_user(
    payload: RegisterRequest,
    service: UserService = Depends(get_user_service),
) -> PublicUser:
    return await service.register(payload)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        200: {"description": "Credentials accepted", "model": SuccessEnvelope[LoginResponse]},
        401: {"description": "Invalid email or password", "model": ErrorEnvelope},
        403: {"description": "Account deactivated", "model": ErrorEnvelope},
        **ERROR_RESPONSES,
    },
    summary="Verify email and password",
    description=(
        "Checks the credentials and returns the public profile. Unknown emails and "
        "wrong passwords produce the same 401 response."
    ),
)
async def login(
    payload: LoginRequest,
    service: UserService = Depends(get_user_service),
) -> LoginResponse:
    user = await service.authenticate(payload.email, payload.password)
    return LoginResponse(user=user)


@router.get(
    "/me",
    response_model=PublicUser,
    responses={**AUTH_RESPONSES, **ERROR_RESPONSES},
    summary="Profile of the authenticated user",
)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
) -> PublicUser:
    return await service.get_by_id(principal.user_id)


@router.get(
    "",
    response_model=None,
    responses={
        200: {"description": "One page of users", "model": PaginatedEnvelope[PublicUser]},
        **AUTH_RESPONSES,
        **ERROR_RESPONSES,
    },
    summary="List active users",
)
async def list_users(
    request: Request,
    query: Annotated[UserListQuery, Query()],
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
) -> dict:
    users, total = await service.list_users(query)
    # Built as an envelope here to carry pagination in meta
    return success_envelope(
        [user.model_dump(mode="json", by_alias=True) for user in users],
        get_request_context(request).correlation_id,
        pagination={
            "page": query.page,
            "limit": query.limit,
            "total": total,
            "totalPages": math.ceil(total / query.limit) if total else 0,
        },
    )


@router.get(
    "/stats",
    response_model=UserStatistics,
    responses={**AUTH_RESPONSES, **ERROR_RESPONSES},
    summary="Account statistics",
)
async def user_statistics(
    days: int = Query(default=30, ge=1, le=365, description="Window for recent registrations"),
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
) -> UserStatistics:
    return await service.statistics(recent_days=days)


@router.get(
    "/search",
    response_model=UserSearchResponse,
    responses={**AUTH_RESPONSES, **ERROR_RESPONSES},
    summary="Search active users by name or email",
)
async def search_users(
    q: str = Query(min_length=1, max_length=100, description="Substring to match"),
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
) -> UserSearchResponse:
    return UserSearchResponse(results=await service.search(q, limit))


@router.get(
    "/{user_id}",
    response_model=PublicUser,
    responses={
        404: {"description": "User not found", "model": ErrorEnvelope},
        **ERROR_RESPONSES,
    },
    summary="Public profile by id",
)
async def get_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> PublicUser:
    return await service.get_by_id(user_id)
