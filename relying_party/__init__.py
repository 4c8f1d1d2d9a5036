"""Client for passkey relying party servers."""
from __future__ import annotations

from .client import RelyingPartyClient
from .config import ClientSettings, load_settings
from .encoding import decode_with_padding, encode
from .errors import (
    DecodeError,
    ErrorKind,
    ProtocolError,
    RelyingPartyError,
    TransportError,
    classify,
)
from .models import (
    ChallengeType,
    Cookies,
    OTPChallenge,
    SessionArtifact,
    Token,
)
from .options import (
    CredentialAssertionOptions,
    CredentialOptions,
    CredentialRegistrationOptions,
    decode_assertion_options,
    decode_options,
    decode_registration_options,
)

__all__ = [
    "ChallengeType",
    "ClientSettings",
    "Cookies",
    "CredentialAssertionOptions",
    "CredentialOptions",
    "CredentialRegistrationOptions",
    "DecodeError",
    "ErrorKind",
    "OTPChallenge",
    "ProtocolError",
    "RelyingPartyClient",
    "RelyingPartyError",
    "SessionArtifact",
    "Token",
    "TransportError",
    "classify",
    "decode_assertion_options",
    "decode_options",
    "decode_registration_options",
    "decode_with_padding",
    "encode",
    "load_settings",
]
