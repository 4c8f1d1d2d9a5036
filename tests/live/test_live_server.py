"""Smoke tests against a running relying party (``--run-live-tests``)."""
import uuid

import pytest

from relying_party import (
    CredentialAssertionOptions,
    ProtocolError,
    RelyingPartyClient,
    load_settings,
)


@pytest.fixture
def live_client():
    settings = load_settings()
    if not settings.base_url:
        pytest.skip("RELYING_PARTY_BASE_URL is not set")
    return RelyingPartyClient.from_settings(settings)


@pytest.mark.asyncio
async def test_assertion_challenge(live_client):
    options = await live_client.challenge_for_assertion()
    assert isinstance(options, CredentialAssertionOptions)
    assert options.challenge


@pytest.mark.asyncio
async def test_authenticate_rejects_unknown_account(live_client):
    with pytest.raises(ProtocolError):
        await live_client.authenticate(f"{uuid.uuid4().hex}@example.com", uuid.uuid4().hex)
