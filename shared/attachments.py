"""
Binary attachment codec.

Certificates, logos and banners are stored as raw bytes plus a content type
and travel over JSON as Base64. Pure, stateless conversions only.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Optional, Protocol

_DATA_URI_RE = re.compile(r"^data:(?P<content_type>[^;,]+);base64,(?P<data>.*)$", re.DOTALL)


class BinaryAttachment(Protocol):
    data: bytes
    content_type: str


def encode_binary(data: bytes) -> str:
    """Return the standard Base64 encoding of *data*."""
    return base64.b64encode(data).decode("ascii")


def decode_binary(encoded: str) -> bytes:
    """Decode a standard Base64 string.

    Raises:
        ValueError: *encoded* is not valid Base64.
    """
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def to_data_uri(data: bytes, content_type: str) -> str:
    """Render *data* as ``data:<content_type>;base64,<payload>``."""
    return f"data:{content_type};base64,{encode_binary(data)}"


def from_data_uri(uri: str) -> tuple[bytes, str]:
    """Split a Base64 data URI into ``(bytes, content_type)``.

    Raises:
        ValueError: *uri* is not a Base64 data URI.
    """
    match = _DATA_URI_RE.match(uri)
    if match is None:
        raise ValueError("Not a base64 data URI")
    return decode_binary(match.group("data")), match.group("content_type")


def encode_attachment(attachment: Optional[BinaryAttachment]) -> Optional[dict]:
    """Return the ``{data, contentType}`` response shape, or None when absent."""
    if attachment is None or not attachment.data:
        return None
    return {
        "data": encode_binary(attachment.data),
        "contentType": attachment.content_type,
    }
