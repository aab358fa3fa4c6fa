"""
Collab Platform API - User Request/Response Schemas
====================================================

What:  Pydantic models for the user endpoints (Validation Gate schemas and
       the public user representation).
How:   Request models forbid undeclared fields, accept camelCase keys and
       normalize values (lower-cased email, stripped name, digits-only
       phone) before the service sees them. Response models read ORM
       attributes and serialize with camelCase keys.

Wire format:
    POST /register  {"email", "password", "passwordConfirm", "name",
                     "phoneNumber"?, "marketingConsent"?}
    POST /login     {"email", "password"}
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from collab_api.validators import (
    normalize_email,
    normalize_phone,
    validate_name,
    validate_password_complexity,
)

# Strict inbound models: camelCase keys, unknown keys rejected
REQUEST_CONFIG = ConfigDict(extra="forbid", alias_generator=to_camel)

# Outbound models: built from ORM objects, serialized as camelCase
RESPONSE_CONFIG = ConfigDict(
    from_attributes=True,
    alias_generator=AliasGenerator(serialization_alias=to_camel),
)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    """
    Body of POST /api/v1/users/register.

    Every failing rule is reported, including the password confirmation
    mismatch, in one 400 response.
    """

    model_config = REQUEST_CONFIG

    email: str = Field(description="Account email; stored lower-cased")
    password: str = Field(description="8-100 chars with upper, lower, digit and one of @$!%*?&")
    password_confirm: str = Field(description="Must equal password")
    name: str = Field(description="Display name, 2-50 characters")
    phone_number: Optional[str] = Field(
        default=None,
        description="Mobile number, e.g. 010-1234-5678; stored as digits only",
    )
    marketing_consent: bool = Field(default=False, description="Opt-in to marketing messages")

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_complexity(v)

    @field_validator("password_confirm")
    @classmethod
    def check_password_confirm(cls, v: str, info: ValidationInfo) -> str:
        # password is absent from info.data when it failed its own rules
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Password confirmation does not match")
        return v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return validate_name(v)

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return normalize_phone(v)


class LoginRequest(BaseModel):
    """Body of POST /api/v1/users/login."""

    model_config = REQUEST_CONFIG

    email: str = Field(description="Account email")
    password: str = Field(min_length=1, description="Account password")

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class UserListQuery(BaseModel):
    """Query parameters of GET /api/v1/users."""

    model_config = ConfigDict(extra="forbid")

    page: int = Field(default=1, ge=1, description="1-based page number")
    limit: int = Field(default=20, ge=1, le=100, description="Items per page (max 100)")
    sort: Literal["createdAt", "email", "name"] = Field(default="createdAt")
    order: Literal["asc", "desc"] = Field(default="desc")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PublicUser(BaseModel):
    """A user as exposed to clients; the password hash is never included."""

    model_config = RESPONSE_CONFIG

    id: str
    email: str
    name: str
    phone_number: Optional[str] = None
    marketing_consent: bool = False
    avatar_url: Optional[str] = None
    role: str
    is_active: bool
    email_verified: bool
    created_at: datetime
    updated_at: datetime


class LoginResponse(BaseModel):
    """Successful login. Token issuance is not part of this service yet."""

    model_config = RESPONSE_CONFIG

    user: PublicUser


class UserStatistics(BaseModel):
    """Account totals for GET /api/v1/users/stats."""

    model_config = RESPONSE_CONFIG

    total: int
    active: int
    inactive: int
    by_role: Dict[str, int]
    registered_recently: int
    recent_days: int


class UserSearchResult(BaseModel):
    model_config = RESPONSE_CONFIG

    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None


class UserSearchResponse(BaseModel):
    model_config = RESPONSE_CONFIG

    results: List[UserSearchResult]
