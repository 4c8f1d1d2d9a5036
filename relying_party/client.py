"""Async client orchestrating the relying party passkey ceremonies."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Type, Union

import httpx

from .config import ClientSettings
from .errors import ProtocolError, TransportError
from .models import (
    ChallengeRequest,
    ChallengeType,
    Cookies,
    FIDO2Registration,
    FIDO2Verification,
    OTPChallenge,
    OTPVerification,
    SessionArtifact,
    Token,
    UserAuthentication,
    UserSignUp,
    parse_set_cookie_headers,
)
from .options import (
    CredentialAssertionOptions,
    CredentialOptions,
    CredentialRegistrationOptions,
    decode_assertion_options,
    decode_options,
    decode_registration_options,
    load_document,
)

__all__ = [
    "AUTHENTICATE_PATH",
    "CHALLENGE_PATH",
    "REGISTER_PATH",
    "SIGNIN_PATH",
    "SIGNUP_PATH",
    "VALIDATE_PATH",
    "RelyingPartyClient",
]

LOGGER = logging.getLogger("relying_party.client")

AUTHENTICATE_PATH = "/v1/authenticate"
SIGNUP_PATH = "/v1/signup"
VALIDATE_PATH = "/v1/validate"
CHALLENGE_PATH = "/v1/challenge"
REGISTER_PATH = "/v1/register"
SIGNIN_PATH = "/v1/signin"

_JSON_CONTENT_TYPE = "application/json"


class RelyingPartyClient:
    """Lightweight orchestrator for relying party WebAuthn requests.

    Every operation is a single POST against ``base_url`` and holds no state
    between calls, so one instance can be shared by concurrent tasks. Pass an
    ``httpx.AsyncClient`` to reuse connections or to substitute a fake
    transport; otherwise a short-lived client is opened per request.

    Example::

        client = RelyingPartyClient("https://example.com")
        token = await client.authenticate("johnc@email.com", "a1b2c3d4")
        options = await client.challenge_for_registration("John", token=token)
    """

    def __init__(
        self,
        base_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        verify_tls: bool = True,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._timeout = timeout
        self._verify_tls = verify_tls

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "RelyingPartyClient":
        return cls(
            settings.require_base_url(),
            http_client=http_client,
            timeout=settings.timeout,
            verify_tls=settings.verify_tls,
        )

    # User authentication, sign-up and validation

    async def authenticate(self, username: str, password: str) -> Token:
        """Exchange a username and password for a bearer :class:`Token`."""

        payload = UserAuthentication(username=username, password=password).to_dict()
        response = await self._post(AUTHENTICATE_PATH, payload)
        return Token.from_dict(load_document(response.content))

    async def signup(self, name: str, email: str) -> OTPChallenge:
        """Start a sign-up; the server sends a one-time password to ``email``."""

        payload = UserSignUp(name=name, email=email).to_dict()
        response = await self._post(SIGNUP_PATH, payload)
        return OTPChallenge.from_dict(load_document(response.content))

    async def validate(self, transaction_id: str, otp: str) -> Token:
        """Complete a sign-up by submitting the one-time password."""

        payload = OTPVerification(transaction_id=transaction_id, otp=otp).to_dict()
        response = await self._post(VALIDATE_PATH, payload)
        return Token.from_dict(load_document(response.content))

    # FIDO2 registration and verification

    async def challenge(
        self,
        challenge_type: Union[ChallengeType, str],
        display_name: Optional[str] = None,
        token: Optional[Token] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> CredentialOptions:
        """Request a FIDO2 challenge and decode it for ``challenge_type``.

        Attestation requests always carry ``displayName`` (empty when not
        given); the relying party decides whether that is acceptable.
        Assertion requests only send it when provided. The returned challenge
        expires on the server and must go straight to the authenticator.
        """

        challenge_type = ChallengeType(challenge_type)
        response = await self._request_challenge(challenge_type, display_name, token, headers)
        return decode_options(response.content, challenge_type)

    async def challenge_for_registration(
        self,
        display_name: Optional[str] = None,
        token: Optional[Token] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> CredentialRegistrationOptions:
        response = await self._request_challenge(
            ChallengeType.ATTESTATION, display_name, token, headers
        )
        return decode_registration_options(response.content)

    async def challenge_for_assertion(
        self,
        display_name: Optional[str] = None,
        token: Optional[Token] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> CredentialAssertionOptions:
        response = await self._request_challenge(
            ChallengeType.ASSERTION, display_name, token, headers
        )
        return decode_assertion_options(response.content)

    async def _request_challenge(
        self,
        challenge_type: ChallengeType,
        display_name: Optional[str],
        token: Optional[Token],
        headers: Optional[Mapping[str, str]],
    ) -> httpx.Response:
        if challenge_type is ChallengeType.ATTESTATION and display_name is None:
            display_name = ""

        request = ChallengeRequest(type=challenge_type, display_name=display_name)
        return await self._post(CHALLENGE_PATH, request.to_dict(), token=token, headers=headers)

    async def register(
        self,
        nickname: str,
        client_data_json: bytes,
        attestation_object: bytes,
        credential_id: bytes,
        token: Optional[Token] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Submit the results of an attestation ceremony.

        Either a bearer ``token`` or ``headers`` carrying a cookie session
        must authorize the request.
        """

        if token is None and headers is None:
            raise ValueError("register requires a token or session headers")

        registration = FIDO2Registration.from_ceremony(
            nickname=nickname,
            client_data_json=client_data_json,
            attestation_object=attestation_object,
            credential_id=credential_id,
        )
        await self._post(REGISTER_PATH, registration.to_dict(), token=token, headers=headers)

    async def signin(
        self,
        signature: bytes,
        client_data_json: bytes,
        authenticator_data: bytes,
        credential_id: bytes,
        user_id: bytes,
        expect: Type[SessionArtifact] = Token,
    ) -> SessionArtifact:
        """Submit the results of an assertion ceremony.

        ``expect`` selects the session artifact: :class:`Token` decodes the
        JSON body, :class:`Cookies` collects the ``Set-Cookie`` headers.
        """

        if expect is Token:
            return await self.signin_expecting_token(
                signature, client_data_json, authenticator_data, credential_id, user_id
            )
        if expect is Cookies:
            return await self.signin_expecting_cookies(
                signature, client_data_json, authenticator_data, credential_id, user_id
            )
        raise TypeError(f"unsupported session artifact type {expect!r}")

    async def signin_expecting_token(
        self,
        signature: bytes,
        client_data_json: bytes,
        authenticator_data: bytes,
        credential_id: bytes,
        user_id: bytes,
    ) -> Token:
        response = await self._submit_verification(
            signature, client_data_json, authenticator_data, credential_id, user_id
        )
        return Token.from_dict(load_document(response.content))

    async def signin_expecting_cookies(
        self,
        signature: bytes,
        client_data_json: bytes,
        authenticator_data: bytes,
        credential_id: bytes,
        user_id: bytes,
    ) -> Cookies:
        response = await self._submit_verification(
            signature, client_data_json, authenticator_data, credential_id, user_id
        )
        values = parse_set_cookie_headers(response.headers.get_list("set-cookie"))
        return Cookies.from_dict({"items": values})

    async def _submit_verification(
        self,
        signature: bytes,
        client_data_json: bytes,
        authenticator_data: bytes,
        credential_id: bytes,
        user_id: bytes,
    ) -> httpx.Response:
        verification = FIDO2Verification.from_ceremony(
            signature=signature,
            client_data_json=client_data_json,
            authenticator_data=authenticator_data,
            credential_id=credential_id,
            user_id=user_id,
        )
        return await self._post(SIGNIN_PATH, verification.to_dict())

    # Transport

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @staticmethod
    def _build_headers(
        token: Optional[Token] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        merged: Dict[str, str] = {"Content-Type": _JSON_CONTENT_TYPE}
        if token is not None:
            merged["Authorization"] = token.authorization_header

        if headers:
            present = {name.lower() for name in merged}
            for name, value in headers.items():
                if name.lower() not in present:
                    merged[name] = value
                    present.add(name.lower())
        return merged

    async def _post(
        self,
        path: str,
        payload: Mapping[str, Any],
        *,
        token: Optional[Token] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        url = self._url(path)
        request_headers = self._build_headers(token, headers)
        LOGGER.debug("POST %s", url)

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload, headers=request_headers)
            else:
                async with httpx.AsyncClient(**self._client_options()) as client:
                    response = await client.post(url, json=payload, headers=request_headers)
        except httpx.RequestError as exc:
            LOGGER.error("Request to %s failed: %s", url, exc)
            raise TransportError(f"Failed to reach relying party at {url}: {exc}") from exc

        if not 200 <= response.status_code <= 299:
            body = response.content.decode("utf-8", errors="replace")
            LOGGER.warning("Relying party rejected %s with HTTP %d", path, response.status_code)
            raise ProtocolError(body, status_code=response.status_code)

        LOGGER.debug("POST %s answered HTTP %d", url, response.status_code)
        return response

    def _client_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"verify": self._verify_tls}
        if self._timeout is not None:
            options["timeout"] = self._timeout
        return options
