"""Create users table

Revision ID: 001
Revises: None
Create Date: 2026-09-28 00:00:00.000000+00:00

What:  Creates the `users` table backing registration, login and profile
       lookups.
How:   Column set mirrors collab_api/models/user.py. The id is a 36-char
       UUID string generated by the application.

Rollback: downgrade() drops the table and every account in it.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",

        sa.Column("id", sa.String(36), nullable=False, comment="UUID v4, application generated"),

        # Stored lower-cased by the service; uniqueness is case-insensitive in practice
        sa.Column("email", sa.String(255), nullable=False, comment="Login email, lower-cased"),
        sa.Column("password", sa.String(255), nullable=False, comment="bcrypt hash"),
        sa.Column("name", sa.String(100), nullable=False),

        sa.Column(
            "phone_number",
            sa.String(20),
            nullable=True,
            comment="Mobile number, digits only (hyphens stripped)",
        ),
        sa.Column(
            "marketing_consent",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("avatar_url", sa.String(500), nullable=True),

        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'MEMBER'"),
            comment="SUPER_ADMIN, ORG_ADMIN, MANAGER or MEMBER",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),

        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "deleted_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="Set when the account is soft-deleted",
        ),

        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_created_at", "users", ["created_at"])


def downgrade() -> None:
    """Drop the users table. Destructive: all accounts are lost."""
    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_index("idx_users_role", table_name="users")
    op.drop_table("users")
