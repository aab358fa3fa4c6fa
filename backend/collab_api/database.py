"""
Collab Platform API - Database Engine, Sessions and Storage Errors
===================================================================

What:  Async SQLAlchemy engine + session factory, the per-request session
       dependency, and the classifier that turns driver errors into the
       application's StorageError family.
How:   Database wraps create_async_engine() and async_sessionmaker().
       create_app() builds one per app and stores it on app.state.database.
Who:   Repositories receive sessions from get_db_session(); the Failure
       Translator calls classify_storage_error() on raw SQLAlchemy errors.

Session lifecycle (per request):
    1. get_db_session() opens a session from the pool
    2. Route handler and services use it
    3. No failure recorded for the request → COMMIT
       Failure recorded (business error, timeout, cancellation) → ROLLBACK
    4. Session closed, connection returned to the pool

Connection pool:
    pool_size / max_overflow / pre_ping apply to server databases only.
    sqlite (used by the test suite) keeps SQLAlchemy's default pool.
"""

import asyncio
import logging
import re
from contextlib import contextmanager
from typing import AsyncGenerator, Iterator, List, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from starlette.requests import Request

from collab_api.config import Settings
from collab_api.exceptions import (
    ForeignKeyViolationError,
    RecordNotFoundError,
    StorageConnectionError,
    StorageError,
    UniqueConstraintError,
)

logger = logging.getLogger(__name__)

PING_TIMEOUT_SECONDS = 2.0


class Base(DeclarativeBase):
    """Declarative base for all ORM models; Alembic reads Base.metadata."""
    pass


# ══════════════════════════════════════════════════════════════════════════
# Engine + Session Factory
# ══════════════════════════════════════════════════════════════════════════


class Database:
    """
    Owns the async engine and the session factory for one application.

    Sessions use expire_on_commit=False so ORM objects stay readable after
    the request's commit (response serialization happens afterwards).
    """

    def __init__(self, settings: Settings):
        engine_kwargs = {"echo": settings.db_echo}
        if not settings.database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
            )

        self.engine: AsyncEngine = create_async_engine(settings.database_url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Creates every table known to Base.metadata (tests and local bootstrap)."""
        import collab_api.models  # noqa: F401  registers tables on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self, timeout: float = PING_TIMEOUT_SECONDS) -> bool:
        """Runs SELECT 1; False when the database cannot be reached in time."""
        try:
            await asyncio.wait_for(self._select_one(), timeout=timeout)
            return True
        except (sa_exc.SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.warning("Database ping failed: %s", e)
            return False

    async def _select_one(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Closes all pooled connections; called on application shutdown."""
        await self.engine.dispose()
        logger.info("Database engine disposed")


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Commits only when the request finished without a recorded failure.
    The Failure Translator records failures on request.state.context, which
    covers errors rendered into responses before this scope exits.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            context = getattr(request.state, "context", None)
            if context is not None and context.failure is not None:
                await session.rollback()
            else:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


# ══════════════════════════════════════════════════════════════════════════
# Storage Error Classification
# ══════════════════════════════════════════════════════════════════════════

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

# sqlite: "UNIQUE constraint failed: users.email, users.name"
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: ([\w., ]+)")
# PostgreSQL detail: "Key (email)=(a@b.com) already exists."
_POSTGRES_KEY = re.compile(r"Key \(([^)]+)\)=")


def _sqlstate(error: BaseException) -> Optional[str]:
    """Finds the SQLSTATE on the DBAPI error or the driver error it wraps."""
    orig = getattr(error, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _unique_fields(message: str) -> List[str]:
    match = _SQLITE_UNIQUE.search(message)
    if match:
        return [column.strip().split(".")[-1] for column in match.group(1).split(",")]
    match = _POSTGRES_KEY.search(message)
    if match:
        return [column.strip() for column in match.group(1).split(",")]
    return []


def classify_storage_error(error: BaseException) -> Optional[StorageError]:
    """
    Maps a SQLAlchemy / driver exception to a StorageError.

    Returns None when the error is not a recognised storage failure.
    """
    if isinstance(error, StorageError):
        return error

    if isinstance(error, sa_exc.NoResultFound):
        return RecordNotFoundError()

    if isinstance(error, sa_exc.IntegrityError):
        state = _sqlstate(error)
        message = str(error.orig) if error.orig is not None else str(error)
        cause = getattr(error.orig, "__cause__", None)
        detail = getattr(cause, "detail", None) or ""
        if state == UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
            return UniqueConstraintError(fields=_unique_fields(f"{message} {detail}"))
        if state == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in message:
            return ForeignKeyViolationError()
        return None

    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return StorageConnectionError()

    if isinstance(
        error,
        (
            sa_exc.OperationalError,
            sa_exc.InterfaceError,
            sa_exc.DisconnectionError,
            sa_exc.TimeoutError,
            ConnectionError,
        ),
    ):
        return StorageConnectionError()

    return None


@contextmanager
def storage_errors() -> Iterator[None]:
    """
    Re-raises recognised driver errors as StorageError subclasses.

    Usage:
        with storage_errors():
            await self.session.flush()
    """
    try:
        yield
    except (sa_exc.SQLAlchemyError, ConnectionError) as e:
        classified = classify_storage_error(e)
        if classified is None:
            raise
        raise classified from e
