"""ORM models. Importing this package registers every table with Base.metadata."""

from collab_api.models.user import User, UserRole

__all__ = ["User", "UserRole"]
