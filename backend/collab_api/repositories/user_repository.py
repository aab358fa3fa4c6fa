"""
Collab Platform API - User Repository (Persistence Gateway)
============================================================

What:  Translates user operations into storage queries.
How:   ORM statements (select/update/delete) for CRUD and pagination;
       hand-written parameterized SQL via text() for the aggregate and
       search queries. Every driver error is re-raised as a StorageError
       subclass by storage_errors().
Who:   Constructed per request with the request's AsyncSession; used by
       UserService.

Queries:
    find_by_id / find_by_email     → User | None
    create / update                → User (flushed, not committed)
    delete / soft_delete           → None, RecordNotFoundError when absent
    count / find_many              → int / (List[User], total)
    count_by_role                  → Dict[role, count]        (raw SQL)
    count_registered_since         → int                      (raw SQL)
    search                         → List[dict]               (raw SQL)

Transactions:
    The repository only flushes. get_db_session() commits or rolls back
    once per request.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import DateTime, bindparam, delete, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from collab_api.database import storage_errors
from collab_api.exceptions import RecordNotFoundError
from collab_api.models.user import User

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "createdAt": User.created_at,
    "email": User.email,
    "name": User.name,
}

# Columns a caller may change through update()
UPDATABLE_FIELDS = {
    "email",
    "password",
    "name",
    "phone_number",
    "marketing_consent",
    "avatar_url",
    "role",
    "is_active",
    "email_verified",
}

_COUNT_BY_ROLE_SQL = text(
    """
    SELECT role, COUNT(*) AS total
    FROM users
    WHERE deleted_at IS NULL
    GROUP BY role
    ORDER BY role
    """
)

_COUNT_REGISTERED_SINCE_SQL = text(
    """
    SELECT COUNT(*)
    FROM users
    WHERE created_at >= :since
      AND deleted_at IS NULL
    """
).bindparams(bindparam("since", type_=DateTime(timezone=True)))

_SEARCH_SQL = text(
    """
    SELECT id, name, email, avatar_url
    FROM users
    WHERE (lower(name) LIKE :pattern ESCAPE '\\' OR lower(email) LIKE :pattern ESCAPE '\\')
      AND is_active = :active
      AND deleted_at IS NULL
    ORDER BY name
    LIMIT :limit
    """
)


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class UserRepository:
    """Storage access for the users table, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Lookups ───────────────────────────────────────────────────────────

    async def find_by_id(self, user_id: str) -> Optional[User]:
        with storage_errors():
            result = await self.session.execute(
                select(User).where(User.id == user_id, User.deleted_at.is_(None))
            )
            return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        with storage_errors():
            result = await self.session.execute(
                select(User).where(User.email == email.lower())
            )
            return result.scalar_one_or_none()

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, fields: Dict[str, Any]) -> User:
        """
        Inserts a user and flushes so constraint violations surface here.

        Raises:
            UniqueConstraintError: email already taken (e.g. a concurrent
                registration that passed the service's existence check)
        """
        user = User(**fields)
        self.session.add(user)
        with storage_errors():
            await self.session.flush()
        logger.debug("Created user %s", user.id)
        return user

    async def update(self, user_id: str, fields: Dict[str, Any]) -> User:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

        user = await self.find_by_id(user_id)
        if user is None:
            raise RecordNotFoundError(details={"id": user_id})

        for name, value in fields.items():
            setattr(user, name, value)
        user.updated_at = datetime.now(timezone.utc)

        with storage_errors():
            await self.session.flush()
        return user

    async def delete(self, user_id: str) -> None:
        """Hard delete. Raises RecordNotFoundError when no row matched."""
        with storage_errors():
            result = await self.session.execute(delete(User).where(User.id == user_id))
        if result.rowcount == 0:
            raise RecordNotFoundError(details={"id": user_id})

    async def soft_delete(self, user_id: str) -> None:
        """Deactivates the account and stamps deleted_at."""
        user = await self.find_by_id(user_id)
        if user is None:
            raise RecordNotFoundError(details={"id": user_id})
        now = datetime.now(timezone.utc)
        user.is_active = False
        user.deleted_at = now
        user.updated_at = now
        with storage_errors():
            await self.session.flush()

    # ── Counting + Pagination ─────────────────────────────────────────────

    async def count(self, is_active: Optional[bool] = None, role: Optional[str] = None) -> int:
        query = select(func.count()).select_from(User).where(User.deleted_at.is_(None))
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        if role is not None:
            query = query.where(User.role == role)
        with storage_errors():
            result = await self.session.execute(query)
            return int(result.scalar_one())

    async def find_many(
        self,
        page: int = 1,
        limit: int = 20,
        sort: str = "createdAt",
        order: str = "desc",
    ) -> Tuple[List[User], int]:
        """
        One page of active users plus the total number of active users.

        Offset pagination: OFFSET (page - 1) * limit.
        """
        column = SORTABLE_COLUMNS.get(sort, User.created_at)
        ordering = column.asc() if order == "asc" else column.desc()

        query = (
            select(User)
            .where(User.is_active.is_(True), User.deleted_at.is_(None))
            .order_by(ordering, User.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        with storage_errors():
            result = await self.session.execute(query)
            users = list(result.scalars().all())
        total = await self.count(is_active=True)
        return users, total

    # ── Hand-written aggregate queries ────────────────────────────────────

    async def count_by_role(self) -> Dict[str, int]:
        with storage_errors():
            result = await self.session.execute(_COUNT_BY_ROLE_SQL)
            return {row.role: int(row.total) for row in result}

    async def count_registered_since(self, since: datetime) -> int:
        with storage_errors():
            result = await self.session.execute(_COUNT_REGISTERED_SINCE_SQL, {"since": since})
            return int(result.scalar_one())

    async def search(self, term: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Case-insensitive substring match on name or email, active users only."""
        with storage_errors():
            result = await self.session.execute(
                _SEARCH_SQL,
                {"pattern": _like_pattern(term), "active": True, "limit": limit},
            )
            return [dict(row._mapping) for row in result]
