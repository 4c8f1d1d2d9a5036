import base64
import os

import pytest

from relying_party.encoding import add_padding, decode_with_padding, encode
from relying_party.errors import DecodeError, ErrorKind


def test_encode_uses_url_safe_alphabet_without_padding():
    data = b"\xfb\xff\xfe"
    assert base64.b64encode(data) == b"+//+"
    assert encode(data) == "-__-"

    assert encode(b"a") == "YQ"
    assert "=" not in encode(b"ab")


def test_decode_pads_and_maps_alphabet():
    assert add_padding("abc-_12") == "abc-_12="
    decoded = decode_with_padding("abc-_12")
    assert decoded == base64.b64decode("abc+/12=")
    assert decoded == b"\x69\xb7\x3e\xff\x5d"
    assert len(decoded) == 5


@pytest.mark.parametrize("length", [0, 1, 2, 3, 4, 5, 16, 31, 32, 33, 64])
def test_round_trip_random_bytes(length):
    data = os.urandom(length)
    assert decode_with_padding(encode(data)) == data


def test_round_trip_canonical_strings():
    for value in ("", "YQ", "YWI", "YWJj", "-__-", "AAECAwQFBgcICQ"):
        assert encode(decode_with_padding(value)) == value


@pytest.mark.parametrize("value", ["A", "abc!", "ab$d", "YQ==="])
def test_malformed_values_raise_decode_error(value):
    with pytest.raises(DecodeError) as excinfo:
        decode_with_padding(value, "challenge")
    assert excinfo.value.field == "challenge"
    assert excinfo.value.kind is ErrorKind.DECODE


def test_non_string_input_is_rejected():
    with pytest.raises(DecodeError):
        decode_with_padding(b"YQ")  # type: ignore[arg-type]
