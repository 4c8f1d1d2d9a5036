"""Request and response payloads exchanged with the relying party server."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, Union

from .encoding import encode
from .errors import DecodeError

__all__ = [
    "ChallengeRequest",
    "ChallengeType",
    "Cookies",
    "FIDO2Registration",
    "FIDO2Verification",
    "OTPChallenge",
    "OTPVerification",
    "SessionArtifact",
    "Token",
    "UserAuthentication",
    "UserSignUp",
    "parse_set_cookie_headers",
]


_MISSING = object()


def _field_path(prefix: Optional[str], key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def require(
    payload: Mapping[str, Any],
    key: str,
    expected: Union[Type[Any], Tuple[Type[Any], ...]],
    *,
    prefix: Optional[str] = None,
) -> Any:
    """Fetch ``key`` from ``payload`` and check its type."""

    value = payload.get(key, _MISSING) if isinstance(payload, Mapping) else _MISSING
    if value is _MISSING or value is None:
        raise DecodeError(_field_path(prefix, key))
    return check_type(value, key, expected, prefix=prefix)


def optional(
    payload: Mapping[str, Any],
    key: str,
    expected: Union[Type[Any], Tuple[Type[Any], ...]],
    default: Any = None,
    *,
    prefix: Optional[str] = None,
) -> Any:
    value = payload.get(key)
    if value is None:
        return default
    return check_type(value, key, expected, prefix=prefix)


def check_type(
    value: Any,
    key: str,
    expected: Union[Type[Any], Tuple[Type[Any], ...]],
    *,
    prefix: Optional[str] = None,
) -> Any:
    # bool is an int subclass; keep numeric fields honest.
    if isinstance(value, bool) and bool not in (expected if isinstance(expected, tuple) else (expected,)):
        raise DecodeError(_field_path(prefix, key), "unexpected boolean value")
    if not isinstance(value, expected):
        raise DecodeError(
            _field_path(prefix, key),
            f"unexpected type {type(value).__name__}",
        )
    return value


def require_integer(payload: Mapping[str, Any], key: str, *, prefix: Optional[str] = None) -> int:
    """Fetch an integer field, accepting integral floats such as ``3600.0``."""

    value = require(payload, key, (int, float), prefix=prefix)
    if isinstance(value, float):
        if not value.is_integer():
            raise DecodeError(_field_path(prefix, key), f"expected an integer, got {value!r}")
        return int(value)
    return value


def parse_iso_datetime(value: str, field_name: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise DecodeError(field_name, "invalid ISO-8601 timestamp") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# Outbound payloads


class ChallengeType(str, Enum):
    """FIDO2 ceremony a challenge is requested for."""

    ATTESTATION = "attestation"
    ASSERTION = "assertion"


@dataclass(frozen=True)
class UserAuthentication:
    username: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "password": self.password}


@dataclass(frozen=True)
class UserSignUp:
    name: str
    email: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "email": self.email}


@dataclass(frozen=True)
class OTPVerification:
    transaction_id: str
    otp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"transactionId": self.transaction_id, "otp": self.otp}


@dataclass(frozen=True)
class ChallengeRequest:
    type: ChallengeType
    display_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": ChallengeType(self.type).value}
        if self.display_name is not None:
            data["displayName"] = self.display_name
        return data


@dataclass(frozen=True)
class FIDO2Registration:
    """Attestation results submitted to ``/v1/register``."""

    nickname: str
    client_data_json: str
    attestation_object: str
    credential_id: str

    @classmethod
    def from_ceremony(
        cls,
        nickname: str,
        client_data_json: bytes,
        attestation_object: bytes,
        credential_id: bytes,
    ) -> "FIDO2Registration":
        return cls(
            nickname=nickname,
            client_data_json=encode(client_data_json),
            attestation_object=encode(attestation_object),
            credential_id=encode(credential_id),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nickname": self.nickname,
            "clientDataJSON": self.client_data_json,
            "attestationObject": self.attestation_object,
            "credentialId": self.credential_id,
        }


@dataclass(frozen=True)
class FIDO2Verification:
    """Assertion results submitted to ``/v1/signin``."""

    client_data_json: str
    authenticator_data: str
    credential_id: str
    signature: str
    user_handle: str

    @classmethod
    def from_ceremony(
        cls,
        signature: bytes,
        client_data_json: bytes,
        authenticator_data: bytes,
        credential_id: bytes,
        user_id: bytes,
    ) -> "FIDO2Verification":
        return cls(
            client_data_json=encode(client_data_json),
            authenticator_data=encode(authenticator_data),
            credential_id=encode(credential_id),
            signature=encode(signature),
            user_handle=encode(user_id),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clientDataJSON": self.client_data_json,
            "authenticatorData": self.authenticator_data,
            "credentialId": self.credential_id,
            "signature": self.signature,
            "userHandle": self.user_handle,
        }


# Inbound payloads


@dataclass(frozen=True)
class OTPChallenge:
    """A pending sign-up verification awaiting its one-time password."""

    transaction_id: str
    correlation: str
    expiry: datetime

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "OTPChallenge":
        return cls(
            transaction_id=require(payload, "transactionId", str),
            correlation=require(payload, "correlation", str),
            expiry=parse_iso_datetime(require(payload, "expiry", str), "expiry"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "correlation": self.correlation,
            "expiry": self.expiry.isoformat(),
        }


@dataclass(frozen=True)
class Token:
    """Bearer token issued after authentication, validation or sign-in."""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"
    id_token: Optional[str] = None

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Token":
        return cls(
            access_token=require(payload, "access_token", str),
            expires_in=require_integer(payload, "expires_in"),
            token_type=optional(payload, "token_type", str, "Bearer"),
            id_token=optional(payload, "id_token", str),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }
        if self.id_token is not None:
            data["id_token"] = self.id_token
        return data


@dataclass(frozen=True)
class Cookies:
    """Session cookies returned by a cookie-based sign-in."""

    items: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.items.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self.items

    def header_value(self) -> str:
        """Render the cookies as a ``Cookie`` request header value."""

        return "; ".join(f"{name}={value}" for name, value in self.items.items())

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Cookies":
        raw_items = require(payload, "items", Mapping)
        items: Dict[str, str] = {}
        for name, value in raw_items.items():
            items[str(name)] = check_type(value, str(name), str, prefix="items")
        return cls(items=items)

    def to_dict(self) -> Dict[str, Any]:
        return {"items": dict(self.items)}


SessionArtifact = Union[Token, Cookies]


def parse_set_cookie_headers(values: Iterable[str]) -> Dict[str, str]:
    """Collect cookie names and values from ``Set-Cookie`` header values.

    Only the leading ``name=value`` pair of each header is a cookie; the
    attributes after the first ``;`` are dropped. A later header wins over an
    earlier one with the same cookie name.
    """

    cookies: Dict[str, str] = {}
    for header in values:
        pair = header.split(";", 1)[0]
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        cookies[name] = value.strip()
    return cookies
