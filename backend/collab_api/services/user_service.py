"""
Collab Platform API - User Service (Business Handler)
======================================================

What:  Registration, authentication and profile use cases.
How:   Works on validated request schemas, talks to storage only through
       UserRepository, hashes credentials with PasswordHasher, and returns
       PublicUser models (never the ORM object or the password hash).
Who:   Built per request by collab_api.dependencies.get_user_service.

Workflow (register):
    1. Look up the normalized email → EmailAlreadyExistsError (409) if taken
    2. Hash the password (bcrypt, fixed cost)
    3. Insert; a concurrent duplicate surfaces as UniqueConstraintError (409)
    4. Return the stored user without the hash

Workflow (authenticate):
    1. Look up the email; unknown → dummy bcrypt check, InvalidCredentialsError
    2. Wrong password → InvalidCredentialsError (same message as step 1)
    3. Correct password on a deactivated account → UserInactiveError (403)
"""

from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from collab_api.exceptions import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    UserInactiveError,
    UserNotFoundError,
)
from collab_api.models.user import UserRole
from collab_api.repositories.user_repository import UserRepository
from collab_api.schemas.user import (
    PublicUser,
    RegisterRequest,
    UserListQuery,
    UserSearchResult,
    UserStatistics,
)
from collab_api.services.password_hasher import PasswordHasher
from collab_api.structured_logger import StructuredLogger


class UserService:
    """
    User use cases over one repository (one request's session).

    Args:
        repository: Persistence gateway bound to the request session
        hasher: Shared PasswordHasher (cost fixed at startup)
        logger: Shared StructuredLogger
    """

    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasher,
        logger: StructuredLogger,
    ):
        self.repository = repository
        self.hasher = hasher
        self.logger = logger

    async def register(self, data: RegisterRequest) -> PublicUser:
        existing = await self.repository.find_by_email(data.email)
        if existing is not None:
            raise EmailAlreadyExistsError()

        user = await self.repository.create(
            {
                "email": data.email,
                "password": self.hasher.hash(data.password),
                "name": data.name,
                "phone_number": data.phone_number,
                "marketing_consent": data.marketing_consent,
                "role": UserRole.MEMBER.value,
            }
        )
        self.logger.info("User registered", userId=user.id)
        return PublicUser.model_validate(user)

    async def authenticate(self, email: str, password: str) -> PublicUser:
        user = await self.repository.find_by_email(email)

        if user is None:
            self.hasher.verify_dummy(password)
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, user.password):
            self.logger.warning("Login failed: wrong password", userId=user.id)
            raise InvalidCredentialsError()

        if not user.is_active:
            raise UserInactiveError()

        self.logger.info("User logged in", userId=user.id)
        return PublicUser.model_validate(user)

    async def get_by_id(self, user_id: str) -> PublicUser:
        user = await self.repository.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return PublicUser.model_validate(user)

    async def list_users(self, query: UserListQuery) -> Tuple[List[PublicUser], int]:
        users, total = await self.repository.find_many(
            page=query.page,
            limit=query.limit,
            sort=query.sort,
            order=query.order,
        )
        return [PublicUser.model_validate(user) for user in users], total

    async def statistics(self, recent_days: int = 30) -> UserStatistics:
        since = datetime.now(timezone.utc) - timedelta(days=recent_days)
        total = await self.repository.count()
        active = await self.repository.count(is_active=True)
        return UserStatistics(
            total=total,
            active=active,
            inactive=total - active,
            by_role=await self.repository.count_by_role(),
            registered_recently=await self.repository.count_registered_since(since),
            recent_days=recent_days,
        )

    async def search(self, term: str, limit: int = 20) -> List[UserSearchResult]:
        rows = await self.repository.search(term, limit)
        return [UserSearchResult.model_validate(row) for row in rows]
