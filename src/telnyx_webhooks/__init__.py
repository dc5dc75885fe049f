"""
telnyx-webhooks: verification of Telnyx webhook deliveries.

Checks the Ed25519 signature and timestamp Telnyx attaches to every
webhook, then parses verified bodies into typed events. Includes a small
FastAPI receiver adapter.
"""

__version__ = "0.1.0"

# Re-export core components for convenience
from .core import (
    WebhookVerifier,
    VerificationResult,
    construct_event,
    verify,
    check,
    reload_verification_key,
    ConfigurationError,
    SignatureVerificationError,
    PayloadParseError,
)

__all__ = [
    "WebhookVerifier",
    "VerificationResult",
    "construct_event",
    "verify",
    "check",
    "reload_verification_key",
    "ConfigurationError",
    "SignatureVerificationError",
    "PayloadParseError",
]
