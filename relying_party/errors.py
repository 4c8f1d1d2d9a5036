"""Error taxonomy raised by the relying party client."""
from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Optional

__all__ = [
    "DecodeError",
    "ErrorKind",
    "ProtocolError",
    "RelyingPartyError",
    "TransportError",
    "classify",
]


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    DECODE = "decode"
    CANCELLED = "cancelled"


class RelyingPartyError(Exception):
    """Base class for failures surfaced by client operations."""

    kind: ErrorKind


class TransportError(RelyingPartyError):
    """Raised when a request could not be sent or no response was received."""

    kind = ErrorKind.TRANSPORT


class ProtocolError(RelyingPartyError):
    """Raised when the relying party answers with a non-2xx status.

    ``body`` holds the response text verbatim; no structure is imposed on it.
    """

    kind = ErrorKind.PROTOCOL

    def __init__(self, body: str, *, status_code: Optional[int] = None) -> None:
        if status_code is None:
            message = body
        else:
            message = f"HTTP {status_code}: {body}" if body else f"HTTP {status_code}"
        super().__init__(message)
        self.body = body
        self.status_code = status_code

    def json(self) -> Any:
        """Parse ``body`` as JSON, raising ``ValueError`` when it is not."""

        return json.loads(self.body)


class DecodeError(RelyingPartyError):
    """Raised when a response field is missing or cannot be decoded."""

    kind = ErrorKind.DECODE

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        detail = message or "missing required field"
        super().__init__(f"{field}: {detail}")
        self.field = field
        self.detail = detail


def classify(exc: BaseException) -> Optional[ErrorKind]:
    """Return the :class:`ErrorKind` of ``exc`` or ``None`` for foreign errors."""

    if isinstance(exc, asyncio.CancelledError):
        return ErrorKind.CANCELLED
    if isinstance(exc, RelyingPartyError):
        return exc.kind
    return None
