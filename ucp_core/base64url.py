"""Base64url without padding (RFC 7515 §2)."""

from __future__ import annotations

import base64
import binascii
from typing import Union

_FROM_URLSAFE = str.maketrans("-_", "+/")


def b64url_encode(data: Union[bytes, str]) -> str:
    """Encode bytes (or UTF-8 text) as unpadded base64url."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode unpadded base64url. Raises ValueError on invalid input."""
    if not isinstance(data, str):
        raise ValueError(f"base64url input must be str, got {type(data).__name__}")
    padded = data.translate(_FROM_URLSAFE) + "=" * (-len(data) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64url data: {exc}") from exc
