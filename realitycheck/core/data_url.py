"""Helpers for base64 `data:` URLs."""

import base64
import binascii
from typing import Optional


def decode_data_url(data_url: str) -> Optional[bytes]:
    """Return the decoded payload of a base64 data URL, or None if it is not one."""
    if not data_url.startswith("data:"):
        return None
    header, sep, data_str = data_url.partition(",")
    if not sep or ";base64" not in header:
        return None
    try:
        return base64.b64decode(data_str, validate=False)
    except (binascii.Error, ValueError):
        return None


def encode_data_url(data: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
