import json
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

from relying_party import RelyingPartyClient

BASE_URL = "https://rp.example.com"


def pytest_addoption(parser):
    parser.addoption(
        "--run-live-tests",
        action="store_true",
        help="Include the tests under tests/live that talk to RELYING_PARTY_BASE_URL.",
    )


def pytest_ignore_collect(collection_path, config):
    """Skip tests against a real relying party unless explicitly requested."""

    if config.getoption("--run-live-tests"):
        return None

    try:
        path_obj = Path(str(collection_path))
    except TypeError:
        return None

    parts = path_obj.parts
    try:
        tests_index = parts.index("tests")
    except ValueError:
        return None

    if tests_index + 1 < len(parts) and parts[tests_index + 1] == "live":
        return True
    return None


class RecordingTransport:
    """Collects the requests sent through an ``httpx.MockTransport``."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last_request.content)


@pytest.fixture
def make_client():
    """Build a client whose HTTP traffic is answered by ``handler``."""

    def _make(handler):
        recorder = RecordingTransport(handler)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return RelyingPartyClient(BASE_URL, http_client=http_client), recorder

    return _make
