#%% Custom Exceptions
"""
Exception classes for webhook verification.

Configuration problems, verification failures and payload parsing errors
are kept apart so callers can tell "misconfigured" from "attack/replay"
from "verified but unparseable".
"""

from enum import Enum
from typing import Optional, Union


class VerificationFailure(str, Enum):
    """Reason codes attached to every verification failure."""

    MALFORMED_SIGNATURE = "malformed_signature"
    STALE_TIMESTAMP = "stale_timestamp"
    MALFORMED_TIMESTAMP = "malformed_timestamp"
    INVALID_SIGNATURE = "invalid_signature"


class WebhookError(Exception):
    """Base exception class for all webhook-related errors."""
    pass


class ConfigurationError(WebhookError):
    """Raised when the verification key source is missing or malformed."""
    pass


class SignatureVerificationError(WebhookError):
    """Raised when a delivery fails verification.

    Carries the header value involved and the original body for caller-side
    diagnostics. Never carries key material.
    """

    reason = VerificationFailure.INVALID_SIGNATURE

    def __init__(
        self,
        message: str,
        sig_header: Optional[str] = None,
        http_body: Optional[Union[bytes, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.sig_header = sig_header
        self.http_body = http_body


class MalformedSignatureError(SignatureVerificationError):
    """Signature header missing, not base64, or the wrong length."""

    reason = VerificationFailure.MALFORMED_SIGNATURE


class StaleTimestampError(SignatureVerificationError):
    """Timestamp older than the tolerance window allows."""

    reason = VerificationFailure.STALE_TIMESTAMP


class MalformedTimestampError(StaleTimestampError):
    """Timestamp header is not an integer; it was coerced to 0 and failed the window."""

    reason = VerificationFailure.MALFORMED_TIMESTAMP


class InvalidSignatureError(SignatureVerificationError):
    """Signature does not match the payload under the configured key."""

    reason = VerificationFailure.INVALID_SIGNATURE


class PayloadParseError(WebhookError):
    """Raised after successful verification when the body is not a JSON object."""

    def __init__(self, message: str, http_body: Optional[Union[bytes, str]] = None):
        super().__init__(message)
        self.message = message
        self.http_body = http_body
