"""
Core verification module for telnyx-webhooks.

Exports:
- WebhookVerifier: Ed25519 verifier with a lazily loaded, reloadable key
- verify / check / reload_verification_key: helpers bound to the default verifier
- construct_event: verify, then parse into a WebhookEvent
- Key sources and the exception hierarchy
"""

from .config import DEFAULT_TOLERANCE, KeySource, SIGNATURE_HEADER, TIMESTAMP_HEADER
from .config_providers import EnvKeySource, FileKeySource, StaticKeySource
from .exceptions import (
    WebhookError,
    ConfigurationError,
    SignatureVerificationError,
    MalformedSignatureError,
    StaleTimestampError,
    MalformedTimestampError,
    InvalidSignatureError,
    PayloadParseError,
    VerificationFailure,
)
from .models import WebhookEvent
from .signature import (
    WebhookVerifier,
    VerificationResult,
    check,
    get_default_verifier,
    reload_verification_key,
    set_default_verifier,
    verify,
)
from .webhook import construct_event, parse_event

__all__ = [
    "DEFAULT_TOLERANCE",
    "KeySource",
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "EnvKeySource",
    "FileKeySource",
    "StaticKeySource",
    "WebhookError",
    "ConfigurationError",
    "SignatureVerificationError",
    "MalformedSignatureError",
    "StaleTimestampError",
    "MalformedTimestampError",
    "InvalidSignatureError",
    "PayloadParseError",
    "VerificationFailure",
    "WebhookEvent",
    "WebhookVerifier",
    "VerificationResult",
    "check",
    "get_default_verifier",
    "reload_verification_key",
    "set_default_verifier",
    "verify",
    "construct_event",
    "parse_event",
]
