"""Shared validation utilities"""

import re
from typing import Optional

TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lowercase and trim an email address; empty strings become None"""
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Trim a phone number; empty strings become None"""
    if phone is None:
        return None
    phone = phone.strip()
    return phone or None


def validate_time_of_day(value: str) -> str:
    """
    Validate an ``HH:MM`` or ``HH:MM:SS`` wall-clock time.

    Raises:
        ValueError: If the time is not a valid 24-hour time of day
    """
    if not isinstance(value, str) or not TIME_OF_DAY_RE.match(value.strip()):
        raise ValueError("Time must be in HH:MM or HH:MM:SS 24-hour format")
    return value.strip()


def format_validation_issues(errors: list[dict]) -> list[dict]:
    """
    Convert pydantic error dicts into ``{path, code, message}`` issues.
    The leading location segment (body/query/path) is dropped from the path.
    """
    issues = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        issues.append(
            {
                "path": loc,
                "code": err.get("type", "invalid"),
                "message": err.get("msg", "Invalid value"),
            }
        )
    return issues
