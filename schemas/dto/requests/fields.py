"""
Annotated field types shared by the request DTOs.

Form submissions arrive loosely typed: "null"/"undefined" placeholders, padded
strings, numbers as strings. These types normalise once, at the boundary,
so services only ever see None or a real value.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BeforeValidator, StringConstraints

from shared.validators import normalize_email, validate_email, validate_phone_no

NULL_SENTINELS = frozenset({"", "null", "undefined", "none"})


def blank_to_none(value: Any) -> Any:
    """Map empty strings and "null"-style placeholders to None."""
    if isinstance(value, str) and value.strip().lower() in NULL_SENTINELS:
        return None
    return value


def _check_email(value: str) -> str:
    value = normalize_email(value)
    if not validate_email(value):
        raise ValueError("Please enter a valid email address")
    return value


def _check_phone_no(value: str) -> str:
    value = value.strip()
    if not validate_phone_no(value):
        raise ValueError("Please enter a valid 10-digit phone number")
    return value


Email = Annotated[str, AfterValidator(_check_email)]
PhoneNo = Annotated[str, AfterValidator(_check_phone_no)]
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# Optional variants: placeholders and blanks collapse to None first
OptionalEmail = Annotated[Optional[Email], BeforeValidator(blank_to_none)]
OptionalPhoneNo = Annotated[Optional[PhoneNo], BeforeValidator(blank_to_none)]
OptionalStr = Annotated[Optional[NonBlankStr], BeforeValidator(blank_to_none)]
OptionalInt = Annotated[Optional[int], BeforeValidator(blank_to_none)]
OptionalBool = Annotated[Optional[bool], BeforeValidator(blank_to_none)]


def _code_to_str(value: Any) -> Any:
    # Mobile clients post the code as a JSON number
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


OtpCode = Annotated[
    str,
    BeforeValidator(_code_to_str),
    StringConstraints(min_length=1, max_length=12),
]
