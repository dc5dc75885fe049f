"""Build typed events from verified webhook deliveries."""

from __future__ import annotations

import json
import logging
from typing import Optional

from pydantic import ValidationError

from .config import DEFAULT_TOLERANCE
from .exceptions import PayloadParseError
from .models import WebhookEvent
from .signature import Payload, TimestampValue, WebhookVerifier, get_default_verifier

logger = logging.getLogger(__name__)


def parse_event(payload: Payload) -> WebhookEvent:
    """
    Parse a webhook body into a WebhookEvent.

    Only call this on a payload that has already been verified.

    Raises:
        PayloadParseError: When the body is not a JSON object of the expected shape
    """
    try:
        if isinstance(payload, memoryview):
            payload = bytes(payload)
        data = json.loads(payload)
    except (ValueError, TypeError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise PayloadParseError(f"Webhook body is not valid JSON: {e}", http_body=payload) from e

    if not isinstance(data, dict):
        raise PayloadParseError(
            f"Webhook body must be a JSON object, got {type(data).__name__}",
            http_body=payload,
        )

    try:
        return WebhookEvent.model_validate(data)
    except ValidationError as e:
        raise PayloadParseError(f"Webhook body has an unexpected shape: {e}", http_body=payload) from e


def construct_event(
    payload: Payload,
    signature_header: Optional[str],
    timestamp_header: TimestampValue,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
    verifier: Optional[WebhookVerifier] = None,
) -> WebhookEvent:
    """
    Verify a delivery and return it as a WebhookEvent.

    Args:
        payload: Raw request body
        signature_header: ``telnyx-signature-ed25519`` header value
        timestamp_header: ``telnyx-timestamp`` header value
        tolerance: Maximum age in seconds (default 300); None disables the check
        verifier: Verifier to use; defaults to the process-wide one

    Raises:
        SignatureVerificationError: When verification fails (the body is never parsed)
        PayloadParseError: When the verified body is not valid JSON
    """
    verifier = verifier or get_default_verifier()
    verifier.verify(payload, signature_header, timestamp_header, tolerance=tolerance)

    event = parse_event(payload)
    logger.debug("Constructed webhook event %s (%s)", event.id, event.event_type)
    return event
