# tests/v1/test_accounts_api.py
"""Tests for the account balance and history endpoint."""

from decimal import Decimal

from fastapi import status

from intent_relay.services.ledger import LedgerService


def test_unknown_account_returns_404(client) -> None:
    response = client.get("/api/v1/accounts/nobody.near")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "error": "Account not found"}


def test_account_history_is_paginated(client, db_session) -> None:
    ledger = LedgerService(db_session)
    for index in range(5):
        ledger.credit_account("bob", Decimal(index + 1), nonce=f"n-{index}", currency="usdt.near")

    body = client.get("/api/v1/accounts/bob", params={"limit": 2}).json()
    assert body["accountId"] == "bob"
    assert body["balance"] == "15.000000"
    assert [tx["amount"] for tx in body["transactions"]] == ["5.000000", "4.000000"]
    assert "createdAt" in body["transactions"][0]

    body = client.get("/api/v1/accounts/bob", params={"limit": 2, "offset": 4}).json()
    assert [tx["amount"] for tx in body["transactions"]] == ["1.000000"]


def test_account_limit_is_bounded(client, db_session) -> None:
    LedgerService(db_session).credit_account("bob", Decimal("1"), nonce="n-1")
    response = client.get("/api/v1/accounts/bob", params={"limit": 0})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False
