"""Ed25519 signature verification for Telnyx webhook deliveries."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import math
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from .config import KeySource
from .config_providers import EnvKeySource
from .exceptions import (
    ConfigurationError,
    InvalidSignatureError,
    MalformedSignatureError,
    MalformedTimestampError,
    SignatureVerificationError,
    StaleTimestampError,
    VerificationFailure,
)

logger = logging.getLogger(__name__)

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64

Payload = Union[bytes, bytearray, memoryview, str]
TimestampValue = Union[int, float, str, bytes, None]

# Leading optional whitespace and sign, then digits; trailing junk is ignored.
# Underscore digit separators ("1_700_000_000") are not supported.
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification attempt, for callers that branch instead of catching."""

    ok: bool
    reason: Optional[VerificationFailure] = None
    error: Optional[SignatureVerificationError] = None

    def __bool__(self) -> bool:
        return self.ok


def coerce_timestamp(value: TimestampValue) -> Tuple[int, bool]:
    """
    Parse a timestamp header into whole seconds since epoch.

    Never raises. Returns ``(seconds, well_formed)``; input without a
    leading integer coerces to ``(0, False)``.
    """
    if isinstance(value, bool):
        return 0, False
    if isinstance(value, int):
        return value, True
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return 0, False
        return int(value), True
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("ascii", errors="replace")
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            try:
                return int(match.group(1)), True
            except ValueError:
                # Exceeds the interpreter's int-from-str digit limit
                return 0, False
    return 0, False


def decode_signature(signature_header: Optional[str], payload: Payload = None) -> bytes:
    """Strictly base64-decode a signature header into the 64 raw signature bytes."""
    if not signature_header:
        raise MalformedSignatureError("No signature found in header", signature_header, http_body=payload)
    try:
        signature = base64.b64decode(signature_header, validate=True)
    except (binascii.Error, ValueError):
        raise MalformedSignatureError(
            "Signature header is not valid base64", signature_header, http_body=payload
        ) from None
    if len(signature) != SIGNATURE_LENGTH:
        raise MalformedSignatureError(
            f"Signature must decode to {SIGNATURE_LENGTH} bytes, got {len(signature)}",
            signature_header,
            http_body=payload,
        )
    return signature


def build_signed_payload(timestamp: int, payload: bytes) -> bytes:
    """Reconstruct the exact signed bytes: ``{timestamp}|{payload}``."""
    return b"%d|" % timestamp + payload


def load_verification_key(material: str) -> Ed25519PublicKey:
    """
    Parse public key material into an Ed25519 verification key.

    Accepts base64 of the 32 raw key bytes (the format shown in the Telnyx
    portal) or a PEM ``SubjectPublicKeyInfo`` block.

    Raises:
        ConfigurationError: When the material cannot be parsed as an Ed25519 key
    """
    text = (material or "").strip()
    if not text:
        raise ConfigurationError("Public key material is empty")

    if text.startswith("-----BEGIN"):
        try:
            key = serialization.load_pem_public_key(text.encode("ascii"))
        except (ValueError, UnicodeEncodeError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(f"Public key PEM could not be parsed: {e}") from e
        if not isinstance(key, Ed25519PublicKey):
            raise ConfigurationError("Public key PEM does not contain an Ed25519 key")
        return key

    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"Public key is not valid base64: {e}") from e
    if len(raw) != PUBLIC_KEY_LENGTH:
        raise ConfigurationError(
            f"Public key must decode to {PUBLIC_KEY_LENGTH} bytes, got {len(raw)}"
        )
    try:
        return Ed25519PublicKey.from_public_bytes(raw)
    except ValueError as e:
        raise ConfigurationError(f"Public key is not a valid Ed25519 key: {e}") from e


def key_fingerprint(key: Ed25519PublicKey) -> str:
    """Short SHA-256 fingerprint of the raw public key, safe to log."""
    raw = key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return hashlib.sha256(raw).hexdigest()[:16]


def _as_bytes(payload: Payload) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise TypeError(f"payload must be bytes or str, not {type(payload).__name__}")


def _format_timestamp(timestamp: int) -> str:
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


class WebhookVerifier:
    """
    Verifies Telnyx webhook signatures against a lazily loaded public key.

    The key is read from ``key_source`` on first use and cached. Loads and
    reloads are serialized; readers pick up the current key with a single
    attribute read and never take the lock once the key is cached.
    """

    def __init__(
        self,
        key_source: Optional[KeySource] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.key_source = key_source if key_source is not None else EnvKeySource()
        self._clock = clock
        self._key: Optional[Ed25519PublicKey] = None
        self._lock = threading.Lock()

    @property
    def verification_key(self) -> Ed25519PublicKey:
        """The cached key, loaded from the key source on first access."""
        key = self._key
        if key is not None:
            return key
        with self._lock:
            if self._key is None:
                self._key = self._load_key()
            return self._key

    def reload_verification_key(self) -> Ed25519PublicKey:
        """
        Re-read the key source and replace the cached key.

        The previous key stays in place if the new material is missing or
        malformed.

        Raises:
            ConfigurationError: When the key source is absent or malformed
        """
        with self._lock:
            key = self._load_key()
            self._key = key
        logger.info("Reloaded verification key from %s (fingerprint %s)",
                    self.key_source.describe(), key_fingerprint(key))
        return key

    def _load_key(self) -> Ed25519PublicKey:
        material = self.key_source.load_key_material()
        return load_verification_key(material)

    def verify(
        self,
        payload: Payload,
        signature_header: Optional[str],
        timestamp_header: TimestampValue,
        tolerance: Optional[float] = None,
    ) -> bool:
        """
        Verify the signature for a given payload.

        Args:
            payload: Raw request body exactly as received
            signature_header: ``telnyx-signature-ed25519`` header value (base64)
            timestamp_header: ``telnyx-timestamp`` header value (seconds since epoch)
            tolerance: Maximum age in seconds; None skips the freshness check

        Returns:
            True when the signature is valid and the timestamp is fresh

        Raises:
            ConfigurationError: When no usable verification key is configured
            StaleTimestampError: When the timestamp is outside the tolerance
            MalformedSignatureError: When the header is missing or not a 64-byte base64 signature
            InvalidSignatureError: When the signature does not match the payload
        """
        body = _as_bytes(payload)
        if tolerance is not None and (not math.isfinite(tolerance) or tolerance < 0):
            raise ValueError("tolerance must be a finite, non-negative number of seconds")

        key = self.verification_key
        timestamp, well_formed = coerce_timestamp(timestamp_header)

        if tolerance is not None and timestamp < self._clock() - tolerance:
            if not well_formed:
                raise self._rejected(MalformedTimestampError(
                    f"Timestamp header is not an integer ({timestamp_header!r})",
                    signature_header, http_body=payload,
                ))
            raise self._rejected(StaleTimestampError(
                f"Timestamp outside the tolerance zone ({_format_timestamp(timestamp)})",
                signature_header, http_body=payload,
            ))

        try:
            signature = decode_signature(signature_header, payload)
        except MalformedSignatureError as e:
            raise self._rejected(e) from None

        try:
            key.verify(signature, build_signed_payload(timestamp, body))
        except InvalidSignature:
            raise self._rejected(InvalidSignatureError(
                "Signature is invalid and does not match the payload",
                signature_header, http_body=payload,
            )) from None

        return True

    def check(
        self,
        payload: Payload,
        signature_header: Optional[str],
        timestamp_header: TimestampValue,
        tolerance: Optional[float] = None,
    ) -> VerificationResult:
        """Like verify(), but returns a VerificationResult instead of raising on failure."""
        try:
            self.verify(payload, signature_header, timestamp_header, tolerance=tolerance)
        except SignatureVerificationError as e:
            return VerificationResult(ok=False, reason=e.reason, error=e)
        return VerificationResult(ok=True)

    @staticmethod
    def _rejected(error: SignatureVerificationError) -> SignatureVerificationError:
        logger.warning("Webhook signature verification failed (%s): %s",
                       error.reason.value, error.message)
        return error


# Process-wide default verifier bound to TELNYX_PUBLIC_KEY
_default_verifier: Optional[WebhookVerifier] = None
_default_lock = threading.Lock()


def get_default_verifier() -> WebhookVerifier:
    """Get or create the process-wide verifier."""
    global _default_verifier
    if _default_verifier is None:
        with _default_lock:
            if _default_verifier is None:
                _default_verifier = WebhookVerifier()
    return _default_verifier


def set_default_verifier(verifier: Optional[WebhookVerifier]) -> None:
    """Install an explicitly configured verifier (or None to reset to the env default)."""
    global _default_verifier
    with _default_lock:
        _default_verifier = verifier


def verify(
    payload: Payload,
    signature_header: Optional[str],
    timestamp_header: TimestampValue,
    tolerance: Optional[float] = None,
) -> bool:
    """Verify with the default verifier. See WebhookVerifier.verify."""
    return get_default_verifier().verify(payload, signature_header, timestamp_header, tolerance=tolerance)


def check(
    payload: Payload,
    signature_header: Optional[str],
    timestamp_header: TimestampValue,
    tolerance: Optional[float] = None,
) -> VerificationResult:
    """Check with the default verifier. See WebhookVerifier.check."""
    return get_default_verifier().check(payload, signature_header, timestamp_header, tolerance=tolerance)


def reload_verification_key() -> Ed25519PublicKey:
    """Reload the default verifier's key from its source."""
    return get_default_verifier().reload_verification_key()
