"""Typed credential options decoded from relying party challenge payloads.

The relying party answers ``/v1/challenge`` with WebAuthn options in their
JSON form: binary values are Base64URL strings and several authenticator
selection members may be left out. This module turns those documents into
:class:`CredentialRegistrationOptions` (attestation) or
:class:`CredentialAssertionOptions` (assertion), decoding the binary members
once and filling in the platform-passkey defaults.
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union

from fido2.webauthn import (
    AttestationConveyancePreference,
    AuthenticatorAttachment,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialCreationOptions,
    PublicKeyCredentialDescriptor,
    PublicKeyCredentialParameters,
    PublicKeyCredentialRequestOptions,
    PublicKeyCredentialRpEntity,
    PublicKeyCredentialType,
    PublicKeyCredentialUserEntity,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from .encoding import decode_with_padding
from .errors import DecodeError
from .models import ChallengeType, check_type, optional, require

__all__ = [
    "DEFAULT_AUTHENTICATOR_ATTACHMENT",
    "DEFAULT_REQUIRE_RESIDENT_KEY",
    "DEFAULT_RESIDENT_KEY",
    "DEFAULT_USER_VERIFICATION",
    "AuthenticatorSelection",
    "CredentialAssertionOptions",
    "CredentialDescriptor",
    "CredentialOptions",
    "CredentialRegistrationOptions",
    "PublicKeyCredentialParameter",
    "RelyingPartyEntity",
    "UserEntity",
    "decode_assertion_options",
    "decode_options",
    "decode_registration_options",
    "load_document",
]


DEFAULT_AUTHENTICATOR_ATTACHMENT = AuthenticatorAttachment.PLATFORM.value
DEFAULT_RESIDENT_KEY = ResidentKeyRequirement.REQUIRED.value
DEFAULT_REQUIRE_RESIDENT_KEY = True
DEFAULT_USER_VERIFICATION = UserVerificationRequirement.REQUIRED.value

Document = Union[Mapping[str, Any], str, bytes, bytearray]


def load_document(document: Document) -> Mapping[str, Any]:
    """Return ``document`` as a mapping, parsing JSON text when needed."""

    if isinstance(document, Mapping):
        return document

    if isinstance(document, (bytes, bytearray)):
        try:
            document = bytes(document).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("body", "response is not UTF-8 text") from exc

    if not isinstance(document, str):
        raise DecodeError("body", f"unsupported document type {type(document).__name__}")

    try:
        parsed = json.loads(document)
    except ValueError as exc:
        raise DecodeError("body", "response is not valid JSON") from exc

    if not isinstance(parsed, Mapping):
        raise DecodeError("body", "expected a JSON object")
    return parsed


def _mapping(payload: Mapping[str, Any], key: str, *, prefix: Optional[str] = None) -> Mapping[str, Any]:
    return require(payload, key, Mapping, prefix=prefix)


def _list(payload: Mapping[str, Any], key: str, *, prefix: Optional[str] = None) -> List[Any]:
    return list(optional(payload, key, list, [], prefix=prefix))


def _to_enum(enum_type: Any, value: Optional[str], field_name: str) -> Any:
    if value is None:
        return None
    try:
        member = enum_type(value)
    except ValueError as exc:
        raise DecodeError(field_name, f"unsupported value {value!r}") from exc
    # fido2 2.x string enums map unknown values to None.
    if member is None:
        raise DecodeError(field_name, f"unsupported value {value!r}")
    return member


@dataclass(frozen=True)
class RelyingPartyEntity:
    id: str
    name: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RelyingPartyEntity":
        return cls(
            id=require(payload, "id", str, prefix="rp"),
            name=require(payload, "name", str, prefix="rp"),
        )


@dataclass(frozen=True)
class UserEntity:
    """User account the new credential is bound to; ``id`` is raw bytes."""

    id: bytes
    name: str
    display_name: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UserEntity":
        return cls(
            id=decode_with_padding(require(payload, "id", str, prefix="user"), "user.id"),
            name=require(payload, "name", str, prefix="user"),
            display_name=require(payload, "displayName", str, prefix="user"),
        )


@dataclass(frozen=True)
class AuthenticatorSelection:
    authenticator_attachment: str = DEFAULT_AUTHENTICATOR_ATTACHMENT
    resident_key: str = DEFAULT_RESIDENT_KEY
    require_resident_key: bool = DEFAULT_REQUIRE_RESIDENT_KEY
    user_verification: str = DEFAULT_USER_VERIFICATION

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "AuthenticatorSelection":
        payload = payload or {}
        prefix = "authenticatorSelection"
        return cls(
            authenticator_attachment=optional(
                payload, "authenticatorAttachment", str, DEFAULT_AUTHENTICATOR_ATTACHMENT, prefix=prefix
            ),
            resident_key=optional(payload, "residentKey", str, DEFAULT_RESIDENT_KEY, prefix=prefix),
            require_resident_key=optional(
                payload, "requireResidentKey", bool, DEFAULT_REQUIRE_RESIDENT_KEY, prefix=prefix
            ),
            user_verification=optional(
                payload, "userVerification", str, DEFAULT_USER_VERIFICATION, prefix=prefix
            ),
        )

    def to_fido2(self) -> AuthenticatorSelectionCriteria:
        prefix = "authenticatorSelection"
        return AuthenticatorSelectionCriteria(
            authenticator_attachment=_to_enum(
                AuthenticatorAttachment, self.authenticator_attachment, f"{prefix}.authenticatorAttachment"
            ),
            resident_key=_to_enum(ResidentKeyRequirement, self.resident_key, f"{prefix}.residentKey"),
            user_verification=_to_enum(
                UserVerificationRequirement, self.user_verification, f"{prefix}.userVerification"
            ),
            require_resident_key=self.require_resident_key,
        )


@dataclass(frozen=True)
class PublicKeyCredentialParameter:
    alg: int
    type: str

    @classmethod
    def from_dict(cls, payload: Any, index: int) -> "PublicKeyCredentialParameter":
        prefix = f"pubKeyCredParams[{index}]"
        check_type(payload, prefix, Mapping)
        return cls(
            alg=require(payload, "alg", int, prefix=prefix),
            type=require(payload, "type", str, prefix=prefix),
        )

    def to_fido2(self) -> PublicKeyCredentialParameters:
        return PublicKeyCredentialParameters(
            type=_to_enum(PublicKeyCredentialType, self.type, "pubKeyCredParams.type"),
            alg=self.alg,
        )


@dataclass(frozen=True)
class CredentialDescriptor:
    """A credential to exclude or allow; ``id`` stays in its Base64URL form."""

    id: str
    type: str
    transports: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, payload: Any, prefix: str) -> "CredentialDescriptor":
        check_type(payload, prefix, Mapping)
        transports = optional(payload, "transports", list, prefix=prefix)
        return cls(
            id=require(payload, "id", str, prefix=prefix),
            type=require(payload, "type", str, prefix=prefix),
            transports=[str(item) for item in transports] if transports is not None else None,
        )

    @property
    def raw_id(self) -> bytes:
        return decode_with_padding(self.id, "credential.id")

    def to_fido2(self) -> PublicKeyCredentialDescriptor:
        transports = None
        if self.transports is not None:
            transports = []
            for value in self.transports:
                try:
                    transport = AuthenticatorTransport(value)
                except ValueError:
                    transport = None
                # Hints only; unknown transports are dropped.
                if transport is not None:
                    transports.append(transport)
        return PublicKeyCredentialDescriptor(
            type=_to_enum(PublicKeyCredentialType, self.type, "credential.type"),
            id=self.raw_id,
            transports=transports,
        )


def _descriptors(payload: Mapping[str, Any], key: str) -> List[CredentialDescriptor]:
    return [
        CredentialDescriptor.from_dict(item, f"{key}[{index}]")
        for index, item in enumerate(_list(payload, key))
    ]


def _timeout(payload: Mapping[str, Any]) -> Optional[int]:
    value = optional(payload, "timeout", (int, float))
    return int(value) if value is not None else None


def _extensions(payload: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    extensions = optional(payload, "extensions", Mapping)
    return dict(extensions) if extensions is not None else None


@dataclass(frozen=True)
class CredentialRegistrationOptions:
    """Options for creating a new passkey (the attestation ceremony)."""

    challenge_type: ClassVar[ChallengeType] = ChallengeType.ATTESTATION

    challenge: bytes
    rp: RelyingPartyEntity
    user: UserEntity
    pub_key_cred_params: List[PublicKeyCredentialParameter]
    timeout: Optional[int] = None
    exclude_credentials: List[CredentialDescriptor] = field(default_factory=list)
    authenticator_selection: AuthenticatorSelection = field(default_factory=AuthenticatorSelection)
    attestation: Optional[str] = None
    extensions: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CredentialRegistrationOptions":
        params = require(payload, "pubKeyCredParams", list)
        selection = optional(payload, "authenticatorSelection", Mapping)
        return cls(
            challenge=decode_with_padding(require(payload, "challenge", str), "challenge"),
            rp=RelyingPartyEntity.from_dict(_mapping(payload, "rp")),
            user=UserEntity.from_dict(_mapping(payload, "user")),
            pub_key_cred_params=[
                PublicKeyCredentialParameter.from_dict(item, index) for index, item in enumerate(params)
            ],
            timeout=_timeout(payload),
            exclude_credentials=_descriptors(payload, "excludeCredentials"),
            authenticator_selection=AuthenticatorSelection.from_dict(selection),
            attestation=optional(payload, "attestation", str),
            extensions=_extensions(payload),
        )

    def to_fido2(self) -> PublicKeyCredentialCreationOptions:
        """Convert to python-fido2 options for ``Fido2Client.make_credential``."""

        return PublicKeyCredentialCreationOptions(
            rp=PublicKeyCredentialRpEntity(name=self.rp.name, id=self.rp.id),
            user=PublicKeyCredentialUserEntity(
                name=self.user.name,
                id=self.user.id,
                display_name=self.user.display_name,
            ),
            challenge=self.challenge,
            pub_key_cred_params=[param.to_fido2() for param in self.pub_key_cred_params],
            timeout=self.timeout,
            exclude_credentials=[descriptor.to_fido2() for descriptor in self.exclude_credentials],
            authenticator_selection=self.authenticator_selection.to_fido2(),
            attestation=_to_enum(AttestationConveyancePreference, self.attestation, "attestation"),
            extensions=self.extensions,
        )


@dataclass(frozen=True)
class CredentialAssertionOptions:
    """Options for signing in with an existing passkey (the assertion ceremony)."""

    challenge_type: ClassVar[ChallengeType] = ChallengeType.ASSERTION

    challenge: bytes
    timeout: Optional[int] = None
    rp_id: Optional[str] = None
    allow_credentials: List[CredentialDescriptor] = field(default_factory=list)
    user_verification: Optional[str] = None
    extensions: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CredentialAssertionOptions":
        return cls(
            challenge=decode_with_padding(require(payload, "challenge", str), "challenge"),
            timeout=_timeout(payload),
            rp_id=optional(payload, "rpId", str),
            allow_credentials=_descriptors(payload, "allowCredentials"),
            user_verification=optional(payload, "userVerification", str),
            extensions=_extensions(payload),
        )

    def to_fido2(self) -> PublicKeyCredentialRequestOptions:
        """Convert to python-fido2 options for ``Fido2Client.get_assertion``."""

        return PublicKeyCredentialRequestOptions(
            challenge=self.challenge,
            timeout=self.timeout,
            rp_id=self.rp_id,
            allow_credentials=[descriptor.to_fido2() for descriptor in self.allow_credentials],
            user_verification=_to_enum(
                UserVerificationRequirement, self.user_verification, "userVerification"
            ),
            extensions=self.extensions,
        )


CredentialOptions = Union[CredentialRegistrationOptions, CredentialAssertionOptions]

_OPTIONS_BY_TYPE = {
    ChallengeType.ATTESTATION: CredentialRegistrationOptions,
    ChallengeType.ASSERTION: CredentialAssertionOptions,
}


def decode_registration_options(document: Document) -> CredentialRegistrationOptions:
    return CredentialRegistrationOptions.from_dict(load_document(document))


def decode_assertion_options(document: Document) -> CredentialAssertionOptions:
    return CredentialAssertionOptions.from_dict(load_document(document))


def decode_options(document: Document, challenge_type: Union[ChallengeType, str]) -> CredentialOptions:
    """Decode ``document`` into the options shape selected by ``challenge_type``."""

    options_cls = _OPTIONS_BY_TYPE[ChallengeType(challenge_type)]
    return options_cls.from_dict(load_document(document))
