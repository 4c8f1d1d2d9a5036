"""Base64URL helpers for WebAuthn wire payloads."""
from __future__ import annotations

import base64
import binascii
from typing import Optional

from fido2.utils import websafe_encode

from .errors import DecodeError

__all__ = ["add_padding", "decode_with_padding", "encode"]


def add_padding(value: str) -> str:
    return value + "=" * (-len(value) % 4)


def encode(data: bytes) -> str:
    """Encode ``data`` as unpadded URL-safe Base64."""

    return websafe_encode(bytes(data))


def decode_with_padding(value: str, field: Optional[str] = None) -> bytes:
    """Decode an unpadded URL-safe Base64 string into raw bytes.

    The URL-safe alphabet is mapped back onto the standard one, the value is
    padded to a multiple of four and then strictly decoded. Anything that is
    not valid Base64 after padding raises :class:`DecodeError`.
    """

    if not isinstance(value, str):
        raise DecodeError(field or "value", "expected a Base64URL string")

    standard = add_padding(value.replace("-", "+").replace("_", "/"))
    try:
        return base64.b64decode(standard, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(field or "value", "malformed Base64URL value") from exc
