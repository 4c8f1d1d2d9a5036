from datetime import datetime, timezone

import pytest

from relying_party.errors import DecodeError
from relying_party.models import (
    ChallengeRequest,
    ChallengeType,
    Cookies,
    FIDO2Registration,
    FIDO2Verification,
    OTPChallenge,
    OTPVerification,
    Token,
    UserAuthentication,
    UserSignUp,
    parse_set_cookie_headers,
)


def test_token_uses_snake_case_wire_names():
    token = Token.from_dict(
        {
            "access_token": "a1b2c3",
            "token_type": "Bearer",
            "expires_in": 7200,
            "id_token": "eyJ0eXAi",
        }
    )
    assert token.access_token == "a1b2c3"
    assert token.expires_in == 7200
    assert token.id_token == "eyJ0eXAi"
    assert token.authorization_header == "Bearer a1b2c3"
    assert token.to_dict() == {
        "access_token": "a1b2c3",
        "token_type": "Bearer",
        "expires_in": 7200,
        "id_token": "eyJ0eXAi",
    }


def test_token_defaults_type_and_identity():
    token = Token.from_dict({"access_token": "xyz", "expires_in": 60})
    assert token.token_type == "Bearer"
    assert token.id_token is None
    assert "id_token" not in token.to_dict()


def test_token_custom_type_in_authorization_header():
    token = Token(access_token="abc", expires_in=1, token_type="DPoP")
    assert token.authorization_header == "DPoP abc"


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"expires_in": 60}, "access_token"),
        ({"access_token": "xyz"}, "expires_in"),
        ({"access_token": "xyz", "expires_in": "60"}, "expires_in"),
        ({"access_token": "xyz", "expires_in": True}, "expires_in"),
        ({"access_token": "xyz", "expires_in": 60.5}, "expires_in"),
    ],
)
def test_token_rejects_missing_or_mistyped_fields(payload, field):
    with pytest.raises(DecodeError) as excinfo:
        Token.from_dict(payload)
    assert excinfo.value.field == field


def test_token_accepts_integral_float_expiry():
    token = Token.from_dict({"access_token": "xyz", "expires_in": 3600.0})
    assert token.expires_in == 3600
    assert isinstance(token.expires_in, int)


def test_otp_challenge_parses_iso_8601_expiry():
    challenge = OTPChallenge.from_dict(
        {
            "transactionId": "7705d361-f014-44c1-bae4-2877a0c962b6",
            "correlation": "4321",
            "expiry": "2026-10-19T12:30:00Z",
        }
    )
    assert challenge.transaction_id == "7705d361-f014-44c1-bae4-2877a0c962b6"
    assert challenge.correlation == "4321"
    assert challenge.expiry == datetime(2026, 10, 19, 12, 30, tzinfo=timezone.utc)


def test_otp_challenge_treats_naive_expiry_as_utc():
    challenge = OTPChallenge.from_dict(
        {"transactionId": "t", "correlation": "c", "expiry": "2026-10-19T12:30:00"}
    )
    assert challenge.expiry.tzinfo == timezone.utc


def test_otp_challenge_rejects_bad_expiry():
    with pytest.raises(DecodeError) as excinfo:
        OTPChallenge.from_dict({"transactionId": "t", "correlation": "c", "expiry": "tomorrow"})
    assert excinfo.value.field == "expiry"


def test_outbound_payload_field_names():
    assert UserAuthentication("user", "pw").to_dict() == {"username": "user", "password": "pw"}
    assert UserSignUp("Norm", "norm@example.com").to_dict() == {
        "name": "Norm",
        "email": "norm@example.com",
    }
    assert OTPVerification("tx", "123456").to_dict() == {"transactionId": "tx", "otp": "123456"}


def test_challenge_request_omits_missing_display_name():
    assert ChallengeRequest(ChallengeType.ASSERTION).to_dict() == {"type": "assertion"}
    assert ChallengeRequest(ChallengeType.ATTESTATION, "John").to_dict() == {
        "type": "attestation",
        "displayName": "John",
    }


def test_registration_encodes_binary_fields_once():
    registration = FIDO2Registration.from_ceremony(
        nickname="Laptop",
        client_data_json=b'{"type":"webauthn.create"}',
        attestation_object=b"\xfb\xff\xfe",
        credential_id=b"\x00\x01",
    )
    assert registration.to_dict() == {
        "nickname": "Laptop",
        "clientDataJSON": "eyJ0eXBlIjoid2ViYXV0aG4uY3JlYXRlIn0",
        "attestationObject": "-__-",
        "credentialId": "AAE",
    }


def test_verification_maps_user_id_to_user_handle():
    verification = FIDO2Verification.from_ceremony(
        signature=b"signature",
        client_data_json=b"client",
        authenticator_data=b"auth",
        credential_id=b"cred",
        user_id=b"user",
    )
    assert verification.to_dict() == {
        "clientDataJSON": "Y2xpZW50",
        "authenticatorData": "YXV0aA",
        "credentialId": "Y3JlZA",
        "signature": "c2lnbmF0dXJl",
        "userHandle": "dXNlcg",
    }


def test_cookies_explicit_lookup():
    cookies = Cookies.from_dict({"items": {"auth_session": "a1b2c3d4", "lang": "en"}})
    assert cookies.get("auth_session") == "a1b2c3d4"
    assert cookies.get("missing") is None
    assert cookies.get("missing", "fallback") == "fallback"
    assert "lang" in cookies
    assert cookies.header_value() == "auth_session=a1b2c3d4; lang=en"
    assert cookies.to_dict() == {"items": {"auth_session": "a1b2c3d4", "lang": "en"}}


def test_cookies_require_items():
    with pytest.raises(DecodeError) as excinfo:
        Cookies.from_dict({})
    assert excinfo.value.field == "items"


def test_parse_set_cookie_headers_drops_attributes():
    cookies = parse_set_cookie_headers(
        [
            "auth_session=a1b2c3d4; Path=/; HttpOnly; Secure",
            "theme=dark; Expires=Wed, 21 Oct 2026 07:28:00 GMT",
            "auth_session=e5f6; Path=/",
        ]
    )
    assert cookies == {"auth_session": "e5f6", "theme": "dark"}


def test_parse_set_cookie_headers_keeps_unusual_values():
    assert parse_set_cookie_headers(["token=abc[1]"]) == {"token": "abc[1]"}


def test_parse_set_cookie_headers_ignores_unknown_attributes():
    cookies = parse_set_cookie_headers(
        [
            "auth_session=a1b2c3d4; Path=/; Priority=High; Secure",
            "lang=en; Partitioned=1; SameSite=Lax",
        ]
    )
    assert cookies == {"auth_session": "a1b2c3d4", "lang": "en"}


def test_parse_set_cookie_headers_skips_headers_without_a_pair():
    assert parse_set_cookie_headers(["garbage", "=orphan", "ok=1"]) == {"ok": "1"}
