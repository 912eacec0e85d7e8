"""Build and sign a token transfer intent from the command line.

Stands in for a wallet during development: the printed JSON is a complete
relay request body, and ``--submit`` posts it to a running relay.

Usage:
    python -m intent_relay.scripts.sign_intent --account alice.near \
        --receiver treasury.near --token-in usdc.base --token-out usdt.near \
        --amount 50.00 --private-key <64 hex chars>
"""
from __future__ import annotations

import argparse
import base64
import json
import sys
from typing import Any

import httpx
from nacl.signing import SigningKey

from intent_relay.core.errors import IntentValidationError
from intent_relay.core.intents import (
    CreateIntentOptions,
    Intent,
    build_token_transfer_intent,
    serialize_intent,
)
from intent_relay.core.settings import settings
from intent_relay.services.crypto import CryptoService

RELAY_PATH = "/api/v1/intents/relay"


def build_relay_request(intent: Intent, signing_key: SigningKey, account_id: str) -> dict[str, Any]:
    """Sign the canonical serialization of `intent` and return a relay body."""
    message = serialize_intent(intent)
    signature = signing_key.sign(message.encode("utf-8")).signature
    return {
        "accountId": account_id,
        "message": message,
        "signature": base64.b64encode(signature).decode("ascii"),
        "publicKey": CryptoService.encode_public_key(bytes(signing_key.verify_key)),
    }


def submit(base_url: str, body: dict[str, Any], timeout: float = 10.0) -> httpx.Response:
    """POST a relay body to a running relay service."""
    with httpx.Client(base_url=base_url, timeout=timeout) as client:
        return client.post(RELAY_PATH, json=body)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and sign a token transfer intent")
    parser.add_argument("--account", required=True, help="Signer / credited account id")
    parser.add_argument(
        "--receiver",
        default=settings.treasury_account_id,
        help="Receiving account (defaults to TREASURY_ACCOUNT_ID)",
    )
    parser.add_argument("--token-in", required=True)
    parser.add_argument("--token-out", required=True)
    parser.add_argument("--amount", required=True, help="amountIn, in display units")
    parser.add_argument("--amount-out", default=None, help="Optional amountOut")
    parser.add_argument(
        "--deadline-minutes",
        type=int,
        default=None,
        help="Minutes until the intent expires (defaults to INTENT_DEFAULT_DEADLINE_MINUTES)",
    )
    parser.add_argument("--description", default=None, help="Optional metadata description")
    parser.add_argument(
        "--private-key",
        default=None,
        help="Hex-encoded 32-byte Ed25519 seed; a fresh key is generated when omitted",
    )
    parser.add_argument("--submit", metavar="BASE_URL", default=None, help="POST to this relay")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.private_key:
        try:
            signing_key = SigningKey(bytes.fromhex(args.private_key))
        except ValueError as exc:
            print(f"[sign_intent] ERROR: invalid private key: {exc}", file=sys.stderr)
            return 1
    else:
        signing_key = SigningKey.generate()
        print(f"[sign_intent] generated key {bytes(signing_key).hex()}", file=sys.stderr)

    metadata = {"description": args.description} if args.description else None
    try:
        intent = build_token_transfer_intent(
            CreateIntentOptions(
                signer_id=args.account,
                receiver_id=args.receiver or "",
                token_in=args.token_in,
                amount_in=args.amount,
                token_out=args.token_out,
                amount_out=args.amount_out,
                deadline_minutes=args.deadline_minutes,
                metadata=metadata,
            )
        )
    except IntentValidationError as exc:
        print(f"[sign_intent] ERROR: {exc}", file=sys.stderr)
        return 1

    body = build_relay_request(intent, signing_key, args.account)
    if not args.submit:
        print(json.dumps(body, indent=2))
        return 0

    try:
        response = submit(args.submit, body)
    except httpx.HTTPError as exc:
        print(f"[sign_intent] ERROR: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(response.json(), indent=2))
    return 0 if response.is_success else 1


if __name__ == "__main__":
    sys.exit(main())
