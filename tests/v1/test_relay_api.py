# tests/v1/test_relay_api.py
"""End-to-end tests for the intent relay endpoint."""

import dataclasses
import json

import pytest
from fastapi import status

from intent_relay.core.errors import LedgerError
from intent_relay.core.intents import now_ms, serialize_intent
from intent_relay.services.ledger import LedgerService

RELAY_URL = "/api/v1/intents/relay"


def test_relay_credits_signed_intent(client, alice, make_intent, relay_body) -> None:
    """A valid intent signed by the account holder is credited once."""
    response = client.post(RELAY_URL, json=relay_body(alice, make_intent("alice", "50.00")))

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["accountId"] == "alice"
    assert body["newBalance"] == "50.000000"
    assert body["transaction"] == {
        "type": "intent_deposit",
        "status": "completed",
        "amount": "50.000000",
    }

    account = client.get("/api/v1/accounts/alice").json()
    assert account["balance"] == "50.000000"
    assert len(account["transactions"]) == 1
    tx = account["transactions"][0]
    assert (tx["type"], tx["status"], tx["amount"]) == ("intent_deposit", "completed", "50.000000")
    assert tx["currency"] == "usdt.near"
    assert tx["metadata"]["recipient"] == "treasury.near"


def test_relay_accumulates_balance(client, alice, make_intent, relay_body) -> None:
    client.post(RELAY_URL, json=relay_body(alice, make_intent("alice", "10")))
    response = client.post(RELAY_URL, json=relay_body(alice, make_intent("alice", "2.5")))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["newBalance"] == "12.500000"


def test_relay_prefers_amount_out(client, alice, make_intent, relay_body) -> None:
    intent = make_intent("alice", "50.00", amount_out="49.5")
    response = client.post(RELAY_URL, json=relay_body(alice, intent))
    assert response.json()["newBalance"] == "49.500000"


def test_relay_rejects_key_of_another_identity(
    client, alice, mallory, make_intent, relay_body
) -> None:
    """The signature must verify under the public key sent with it."""
    body = relay_body(alice, make_intent("alice"), key_owner=mallory)
    response = client.post(RELAY_URL, json=body)

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"success": False, "error": "invalid signature"}
    assert client.get("/api/v1/accounts/alice").status_code == status.HTTP_404_NOT_FOUND


def test_relay_rejects_tampered_message(client, alice, make_intent, relay_body) -> None:
    body = relay_body(alice, make_intent("alice", "5"))
    body["message"] = body["message"].replace('"5"', '"500"')
    response = client.post(RELAY_URL, json=body)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_relay_rejects_intent_signed_for_another_account(
    client, mallory, make_intent, relay_body
) -> None:
    """An intent naming mallory as signer cannot be credited to alice."""
    body = relay_body(mallory, make_intent("mallory"), account_id="alice")
    response = client.post(RELAY_URL, json=body)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "signer does not match account"


def test_relay_rejects_expired_intent(client, alice, make_intent, relay_body) -> None:
    intent = dataclasses.replace(make_intent("alice"), deadline=now_ms() - 1)
    response = client.post(RELAY_URL, json=relay_body(alice, intent))

    assert response.status_code == status.HTTP_410_GONE
    assert response.json() == {"success": False, "error": "intent expired"}
    assert client.get("/api/v1/accounts/alice").status_code == status.HTTP_404_NOT_FOUND


def test_relay_rejects_negative_amount(client, alice, make_intent, relay_body) -> None:
    payload = make_intent("alice").to_dict()
    payload["action"]["amountIn"] = "-5"
    message = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    response = client.post(RELAY_URL, json=relay_body(alice, message))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"success": False, "error": "invalid amount"}


def test_relay_rejects_free_text_message(client, alice, relay_body) -> None:
    response = client.post(RELAY_URL, json=relay_body(alice, "Deposit 5 USDT"))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "malformed payload"


def test_relay_reports_missing_fields(client, alice) -> None:
    response = client.post(RELAY_URL, json={"accountId": "alice", "signature": ""})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Missing required fields: message, signature, publicKey"


def test_relay_rejects_replayed_intent(client, alice, make_intent, relay_body) -> None:
    body = relay_body(alice, make_intent("alice", "50.00"))
    assert client.post(RELAY_URL, json=body).status_code == status.HTTP_200_OK

    replay = client.post(RELAY_URL, json=body)
    assert replay.status_code == status.HTTP_409_CONFLICT
    assert replay.json() == {"success": False, "error": "intent already processed"}
    assert client.get("/api/v1/accounts/alice").json()["balance"] == "50.000000"


def test_relay_rejects_malformed_signature(client, alice, make_intent, relay_body) -> None:
    body = relay_body(alice, make_intent("alice"))
    body["signature"] = "0xnothex"
    response = client.post(RELAY_URL, json=body)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "invalid signature"


def test_relay_rejects_malformed_public_key(client, alice, make_intent, relay_body) -> None:
    body = relay_body(alice, make_intent("alice"))
    body["publicKey"] = "ed25519:tooshort"
    response = client.post(RELAY_URL, json=body)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_relay_accepts_byte_array_signature_and_hex_key(
    client, alice, make_intent, relay_body
) -> None:
    intent = make_intent("alice", "7")
    body = relay_body(alice, intent)
    body["signature"] = list(alice.sign(serialize_intent(intent)))
    body["publicKey"] = alice.pubkey_hex

    response = client.post(RELAY_URL, json=body)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["newBalance"] == "7.000000"


def test_relay_accepts_hex_signature(client, alice, make_intent, relay_body) -> None:
    intent = make_intent("alice", "3")
    body = relay_body(alice, intent)
    body["signature"] = "0x" + alice.sign(serialize_intent(intent)).hex()
    assert client.post(RELAY_URL, json=body).status_code == status.HTTP_200_OK


def test_relay_rejects_signature_of_wrong_shape(client, alice, make_intent, relay_body) -> None:
    body = relay_body(alice, make_intent("alice"))
    body["signature"] = {"bytes": "abc"}
    response = client.post(RELAY_URL, json=body)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False


def test_relay_reports_ledger_failure(client, alice, make_intent, relay_body, monkeypatch) -> None:
    def _fail(self, *args, **kwargs):
        raise LedgerError("ledger update failed")

    monkeypatch.setattr(LedgerService, "credit_account", _fail)
    response = client.post(RELAY_URL, json=relay_body(alice, make_intent("alice")))

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"success": False, "error": "ledger update failed"}


def _signed_payload(alice, make_intent, relay_body, **changes):
    payload = make_intent("alice").to_dict()
    for key, value in changes.items():
        if key in ("deadline", "nonce"):
            payload[key] = value
        else:
            payload["action"][key] = value
    return relay_body(alice, json.dumps(payload, sort_keys=True, separators=(",", ":")))


@pytest.mark.parametrize("deadline", [float("inf"), float("-inf"), float("nan")])
def test_relay_rejects_non_finite_deadline(
    client, alice, make_intent, relay_body, deadline
) -> None:
    body = _signed_payload(alice, make_intent, relay_body, deadline=deadline)
    response = client.post(RELAY_URL, json=body)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"success": False, "error": "deadline missing"}


@pytest.mark.parametrize("amount", ["1e20", "9223372036855", "1e999998", "1e9999999999"])
def test_relay_rejects_oversized_amount(
    client, alice, make_intent, relay_body, amount
) -> None:
    body = _signed_payload(alice, make_intent, relay_body, amountIn=amount)
    response = client.post(RELAY_URL, json=body)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"success": False, "error": "invalid amount"}
    assert client.get("/api/v1/accounts/alice").status_code == status.HTTP_404_NOT_FOUND


def test_relay_keeps_every_digit_of_large_balances(client, alice, make_intent, relay_body) -> None:
    intent = make_intent("alice", "12345678901.123456")
    response = client.post(RELAY_URL, json=relay_body(alice, intent))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["newBalance"] == "12345678901.123456"
    assert client.get("/api/v1/accounts/alice").json()["balance"] == "12345678901.123456"
