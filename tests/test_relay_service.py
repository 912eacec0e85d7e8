"""Tests for the relay pipeline's request field gate."""

import pytest

from intent_relay.core.errors import BadRequestError
from intent_relay.services.relay import RelayService, SignedEnvelope


def test_complete_envelope_yields_its_fields() -> None:
    envelope = SignedEnvelope(
        account_id="alice", message="{}", signature="c2ln", public_key="ed25519:key"
    )
    assert RelayService._check_fields(envelope) == ("alice", "{}", "ed25519:key")


@pytest.mark.parametrize(
    ("envelope", "missing"),
    [
        (SignedEnvelope(None, "{}", "c2ln", "ed25519:key"), "accountId"),
        (SignedEnvelope("alice", "", "c2ln", "ed25519:key"), "message"),
        (SignedEnvelope("alice", "{}", [], "ed25519:key"), "signature"),
        (SignedEnvelope("alice", "{}", "c2ln", None), "publicKey"),
    ],
)
def test_missing_field_is_named(envelope, missing) -> None:
    with pytest.raises(BadRequestError) as excinfo:
        RelayService._check_fields(envelope)
    assert excinfo.value.reason == f"Missing required fields: {missing}"
