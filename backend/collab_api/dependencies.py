"""
Collab Platform API - FastAPI Dependencies
===========================================

What:  Wiring between app.state singletons and route handlers.
How:   Shared components (StructuredLogger, PasswordHasher) are built once
       by create_app() and read from app.state; request-scoped ones
       (session, repository, service) are built per request.

Authentication:
    RequestContext.principal is the hook for an authentication stage.
    Until one is installed it stays None, and get_current_principal
    rejects with 401 AUTH_UNAUTHORIZED. Tests override
    get_current_principal through app.dependency_overrides.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from collab_api.database import get_db_session
from collab_api.exceptions import AuthenticationRequiredError
from collab_api.middleware.request_id import Principal, get_request_context
from collab_api.repositories.user_repository import UserRepository
from collab_api.services.user_service import UserService


def get_user_service(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> UserService:
    state = request.app.state
    return UserService(
        repository=UserRepository(session),
        hasher=state.hasher,
        logger=state.logger,
    )


def get_current_principal(request: Request) -> Principal:
    """The authenticated principal, or 401 when the request is anonymous."""
    principal = get_request_context(request).principal
    if principal is None:
        raise AuthenticationRequiredError()
    return principal
