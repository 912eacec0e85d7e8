# tests/conftest.py
from __future__ import annotations

import base64
from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass
from typing import Any

import base58
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from intent_relay.core.intents import (
    CreateIntentOptions,
    Intent,
    build_token_transfer_intent,
    serialize_intent,
)
from intent_relay.db.session import Base
from intent_relay.db.session import get_db as app_get_session
from intent_relay.main import app as fastapi_app

TEST_DB_URL = "sqlite://"
TREASURY = "treasury.near"


@dataclass(frozen=True)
class Identity:
    """A test signer with its key in every encoding the relay accepts."""

    account_id: str
    signing_key: SigningKey

    @property
    def pubkey_bytes(self) -> bytes:
        return bytes(self.signing_key.verify_key)

    @property
    def public_key(self) -> str:
        return "ed25519:" + base58.b58encode(self.pubkey_bytes).decode()

    @property
    def pubkey_hex(self) -> str:
        return self.pubkey_bytes.hex()

    def sign(self, message: str) -> bytes:
        return self.signing_key.sign(message.encode("utf-8")).signature


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Ledger operations commit, so clean every table between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def alice() -> Identity:
    return Identity("alice", SigningKey.generate())


@pytest.fixture()
def mallory() -> Identity:
    return Identity("mallory", SigningKey.generate())


@pytest.fixture()
def make_intent() -> Callable[..., Intent]:
    """Return a factory building a token transfer intent for a signer."""

    def _make(signer_id: str, amount_in: str = "50.00", **overrides: Any) -> Intent:
        options = {
            "signer_id": signer_id,
            "receiver_id": TREASURY,
            "token_in": "usdc.base",
            "amount_in": amount_in,
            "token_out": "usdt.near",
        }
        options.update(overrides)
        return build_token_transfer_intent(CreateIntentOptions(**options))

    return _make


@pytest.fixture()
def relay_body() -> Callable[..., dict[str, Any]]:
    """Return a factory producing a signed relay request body.

    `signer` signs the message; `key_owner` (defaults to the signer) supplies
    the public key sent alongside it.
    """

    def _body(
        signer: Identity,
        message: str | Intent,
        *,
        key_owner: Identity | None = None,
        account_id: str | None = None,
    ) -> dict[str, Any]:
        text = serialize_intent(message) if isinstance(message, Intent) else message
        return {
            "accountId": account_id or signer.account_id,
            "message": text,
            "signature": base64.b64encode(signer.sign(text)).decode(),
            "publicKey": (key_owner or signer).public_key,
        }

    return _body
