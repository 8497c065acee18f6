"""
Credential checks. Pure functions, they never raise: callers translate a
False into a ValidationError.
"""
from __future__ import annotations

import re

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

PASSWORD_SYMBOLS = "@$!%*?&"
PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)

MIN_FULL_NAME_LENGTH = 3


def is_valid_email(value) -> bool:
    if not isinstance(value, str):
        return False
    return EMAIL_RE.fullmatch(value) is not None


def is_strong_password(value) -> bool:
    """
    At least 8 characters with one lowercase letter, one uppercase letter,
    one digit and one of @$!%*?&. Any other character is rejected.
    """
    if not isinstance(value, str):
        return False
    return PASSWORD_RE.fullmatch(value) is not None


def is_valid_full_name(value) -> bool:
    if not isinstance(value, str):
        return False
    return len(value.strip()) >= MIN_FULL_NAME_LENGTH


def normalize_username(value: str) -> str:
    return value.strip().lower()


def normalize_email(value: str) -> str:
    return value.strip().lower()
