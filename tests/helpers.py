"""Signing helpers for tests: produce deliveries the way Telnyx does."""

import base64

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey


def public_key_b64(private_key: Ed25519PrivateKey) -> str:
    """Base64 of the raw public key, as shown in the Telnyx portal."""
    raw = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return base64.b64encode(raw).decode("ascii")


def public_key_pem(private_key: Ed25519PrivateKey) -> str:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def sign(private_key: Ed25519PrivateKey, timestamp, payload: bytes) -> str:
    """Produce a telnyx-signature-ed25519 header value over "{timestamp}|{payload}"."""
    signed = f"{timestamp}|".encode("ascii") + payload
    return base64.b64encode(private_key.sign(signed)).decode("ascii")
