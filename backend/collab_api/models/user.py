"""
Collab Platform API - User SQLAlchemy Model
============================================

What:  ORM model for the `users` table.
How:   Inherits from the shared DeclarativeBase; Alembic migration 001
       creates the same table.
Who:   Used by UserRepository; never returned to clients directly
       (PublicUser strips the password hash).

Table notes:
    - id is a UUID stored as a 36-char string (portable across PostgreSQL
      and the sqlite test database)
    - email is stored lower-cased; the unique index enforces one account
      per address
    - password holds the bcrypt hash, never the plain credential
    - deleted_at marks soft-deleted accounts
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from collab_api.database import Base


class UserRole(str, enum.Enum):
    """Platform-wide roles, highest privilege first."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ORG_ADMIN = "ORG_ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered platform account."""

    __tablename__ = "users"

    # ── Identity ──────────────────────────────────────────────────────────
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Profile ───────────────────────────────────────────────────────────
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    marketing_consent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # ── Account State ─────────────────────────────────────────────────────
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.MEMBER.value,
        server_default=text("'MEMBER'"),
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # ── Timestamps (UTC) ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
