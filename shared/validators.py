"""
Input validators — framework-agnostic, pure functions.

Used by the request DTOs so that malformed emails and phone numbers are
rejected before anything touches the database.
"""

from __future__ import annotations

import re

import validators as _validators

_PHONE_RE = re.compile(r"^\d{10}$")


def normalize_email(email: str) -> str:
    """Strip surrounding whitespace and lower-case *email*."""
    return email.strip().lower()


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address."""
    return bool(_validators.email(email))


def validate_phone_no(phone_no: str) -> bool:
    """Return True if *phone_no* is exactly ten ASCII digits."""
    return bool(_PHONE_RE.fullmatch(phone_no))


def validate_password(password: str, min_length: int = 6) -> bool:
    """Return True if *password* is long enough and not only whitespace."""
    return len(password) >= min_length and bool(password.strip())
