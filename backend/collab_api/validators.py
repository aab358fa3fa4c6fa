"""
Collab Platform API - Field Validators
=======================================

What:  Reusable field rules (email, password complexity, name, phone).
How:   Plain functions that normalize and return the value, or raise
       ValueError with a client-facing message. Schemas call them from
       pydantic field_validators; pydantic collects every failure so the
       400 response lists all of them.
"""

import re

EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"
# Hangul, latin letters, digits, spaces, hyphen and underscore
NAME_PATTERN = re.compile(r"^[가-힣a-zA-Z0-9\s\-_]+$")
# Korean mobile numbers: 010-1234-5678, 01012345678, 011-123-4567
PHONE_PATTERN = re.compile(r"^(01[016789])-?(\d{3,4})-?(\d{4})$")


def normalize_email(value: str) -> str:
    """Strips, lower-cases and checks the address shape."""
    email = value.strip().lower()
    if not email:
        raise ValueError("Email is required")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError(f"Email must be at most {EMAIL_MAX_LENGTH} characters")
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Email must be a valid email address")
    return email


def validate_password_complexity(value: str) -> str:
    """
    Password rules:
        - 8 to 100 characters
        - at least one uppercase letter, one lowercase letter, one digit
        - at least one special character from @$!%*?&

    All unmet rules are reported in a single message.
    """
    problems = []
    if not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH:
        problems.append(f"be {PASSWORD_MIN_LENGTH} to {PASSWORD_MAX_LENGTH} characters long")
    if not re.search(r"[A-Z]", value):
        problems.append("contain an uppercase letter")
    if not re.search(r"[a-z]", value):
        problems.append("contain a lowercase letter")
    if not re.search(r"\d", value):
        problems.append("contain a digit")
    if not any(ch in PASSWORD_SPECIAL_CHARACTERS for ch in value):
        problems.append(f"contain a special character ({PASSWORD_SPECIAL_CHARACTERS})")

    if problems:
        raise ValueError("Password must " + ", ".join(problems))
    return value


def validate_name(value: str) -> str:
    name = value.strip()
    if len(name) < NAME_MIN_LENGTH:
        raise ValueError(f"Name must be at least {NAME_MIN_LENGTH} characters")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"Name must be at most {NAME_MAX_LENGTH} characters")
    if not NAME_PATTERN.match(name):
        raise ValueError(
            "Name may only contain letters, digits, spaces, hyphens and underscores"
        )
    return name


def normalize_phone(value: str) -> str:
    """Validates a mobile number and returns it as digits only (01012345678)."""
    phone = value.strip()
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Phone number must be a valid mobile number (e.g. 010-1234-5678)")
    return phone.replace("-", "")
