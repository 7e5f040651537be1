from __future__ import annotations

import re

from ..core.exceptions import ValidationError

_ROLL_NUMBER_RE = re.compile(r"^[a-zA-Z0-9-]+$")
_NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be less than {max_len} characters")
    return value


def validate_roll_number(value: str) -> str:
    roll_number = require_non_empty(value, "Roll number")
    require_max_length(roll_number, "Roll number", 50)
    if not _ROLL_NUMBER_RE.match(roll_number):
        raise ValidationError("Roll number can only contain letters, numbers, and hyphens")
    return roll_number


def validate_name(value: str) -> str:
    name = (value or "").strip()
    require_min_length(name, "Name", 2)
    require_max_length(name, "Name", 100)
    if not _NAME_RE.match(name):
        raise ValidationError("Name can only contain letters and spaces")
    return name


def validate_email(value: str) -> str:
    email = (value or "").strip()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    require_max_length(email, "Email", 255)
    return email.lower()


def validate_login_password(value: str) -> str:
    require_min_length(value, "Password", 8)
    require_max_length(value, "Password", 100)
    return value


def validate_signup_password(value: str) -> str:
    """Signup passwords additionally need mixed case and a digit."""
    validate_login_password(value)
    if not re.search(r"[A-Z]", value):
        raise ValidationError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValidationError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", value):
        raise ValidationError("Password must contain at least one number")
    return value
