"""Signature verification for relayed intents."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Sequence

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from intent_relay.core.errors import MalformedInputError

PUBKEY_LENGTH_BYTES = 32
SIGNATURE_LENGTH_BYTES = 64
ED25519_KEY_PREFIX = "ed25519:"
HEX_PREFIX = "0x"

SignatureInput = str | bytes | bytearray | Sequence[int]


class CryptoService:
    """Service handling Ed25519 key decoding and signature checks."""

    @staticmethod
    def _decode_base64(data: str) -> bytes:
        """Decode standard or URL-safe base64, accepting omitted padding."""
        padding = "=" * (-len(data) % 4)
        altchars = b"-_" if ("-" in data or "_" in data) else None
        try:
            return base64.b64decode(data + padding, altchars=altchars, validate=True)
        except (binascii.Error, ValueError) as err:
            raise ValueError(f"Invalid base64 encoding: {err}") from err

    @staticmethod
    def _decode_hex(data: str) -> bytes:
        if data.lower().startswith(HEX_PREFIX):
            data = data[len(HEX_PREFIX):]
        try:
            return bytes.fromhex(data)
        except ValueError as err:
            raise ValueError(f"Invalid hex encoding: {err}") from err

    @staticmethod
    def _decode_base58(data: str) -> bytes:
        try:
            return base58.b58decode(data)
        except ValueError as err:
            raise ValueError(f"Invalid base58 encoding: {err}") from err

    @staticmethod
    def decode_public_key(public_key: str) -> bytes:
        """Decode an Ed25519 public key.

        Accepts NEAR-style ``ed25519:<base58>`` keys as well as bare hex or
        base64.

        Raises:
            MalformedInputError: If no decoding yields 32 bytes.
        """
        cleaned = public_key.strip()
        if not cleaned:
            raise MalformedInputError("Invalid public key format: empty value")

        if cleaned.lower().startswith(ED25519_KEY_PREFIX):
            decoders = (CryptoService._decode_base58,)
            cleaned = cleaned[len(ED25519_KEY_PREFIX):]
        else:
            decoders = (CryptoService._decode_hex, CryptoService._decode_base64)

        errors: list[str] = []
        for decoder in decoders:
            try:
                result = decoder(cleaned)
            except ValueError as err:
                errors.append(str(err))
                continue
            if len(result) != PUBKEY_LENGTH_BYTES:
                errors.append("Ed25519 public keys must be 32 bytes")
                continue
            return result
        joined = "; ".join(errors) if errors else "unknown decoding error"
        raise MalformedInputError(f"Invalid public key format: {joined}")

    @staticmethod
    def decode_signature(signature: SignatureInput) -> bytes:
        """Decode a signature given as ``0x`` hex, base64 or raw bytes.

        Raises:
            MalformedInputError: For any other shape, or a decoded length
                other than 64 bytes.
        """
        if isinstance(signature, (bytes, bytearray)):
            raw = bytes(signature)
        elif isinstance(signature, str):
            cleaned = signature.strip()
            raw = b""
            # base64 text may itself start with "0x", so hex is only a first guess.
            if cleaned.lower().startswith(HEX_PREFIX):
                try:
                    raw = CryptoService._decode_hex(cleaned)
                except ValueError:
                    raw = b""
            if len(raw) != SIGNATURE_LENGTH_BYTES:
                try:
                    raw = CryptoService._decode_base64(cleaned)
                except ValueError as err:
                    raise MalformedInputError(f"Invalid signature format: {err}") from err
        elif isinstance(signature, Sequence) and all(
            isinstance(item, int) and not isinstance(item, bool) for item in signature
        ):
            try:
                raw = bytes(signature)
            except ValueError as err:
                raise MalformedInputError(f"Invalid signature format: {err}") from err
        else:
            raise MalformedInputError("Invalid signature format")

        if len(raw) != SIGNATURE_LENGTH_BYTES:
            raise MalformedInputError("Ed25519 signatures must be 64 bytes")
        return raw

    @staticmethod
    def verify_signature_bytes(pubkey_bytes: bytes, message: bytes, signature: bytes) -> bool:
        """Verify an Ed25519 signature over raw bytes."""
        try:
            pubkey = Ed25519PublicKey.from_public_bytes(pubkey_bytes)
            pubkey.verify(signature, message)
            return True
        except (InvalidSignature, ValueError):
            return False

    @staticmethod
    def verify_payload(
        payload: bytes,
        signature: SignatureInput | None,
        public_key: str,
    ) -> bool:
        """Verify `signature` over `payload` under `public_key`.

        Args:
            payload: Exact bytes that were signed on the client.
            signature: Signature as ``0x`` hex, base64 or raw bytes.
            public_key: Encoded Ed25519 public key.

        Returns:
            True if the signature is valid; False on mismatch or when no
            signature was supplied.

        Raises:
            MalformedInputError: If the key or signature cannot be decoded.
        """
        if signature is None or (isinstance(signature, (str, bytes, bytearray)) and not signature):
            return False
        pubkey_bytes = CryptoService.decode_public_key(public_key)
        signature_bytes = CryptoService.decode_signature(signature)
        return CryptoService.verify_signature_bytes(pubkey_bytes, payload, signature_bytes)

    @staticmethod
    def generate_key_pair() -> tuple[str, str]:
        """Generate a new Ed25519 key pair.

        Returns:
            Tuple of (private_key_hex, public_key) where the public key is in
            ``ed25519:<base58>`` form.
        """
        private_key = Ed25519PrivateKey.generate()
        private_hex = private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        ).hex()
        public_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return private_hex, CryptoService.encode_public_key(public_bytes)

    @staticmethod
    def encode_public_key(pubkey_bytes: bytes) -> str:
        """Return `pubkey_bytes` in ``ed25519:<base58>`` form."""
        return ED25519_KEY_PREFIX + base58.b58encode(pubkey_bytes).decode("ascii")
