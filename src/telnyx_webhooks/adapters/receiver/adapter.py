"""FastAPI receiver for Telnyx webhooks."""

import logging
import time
import traceback
from pathlib import Path
from typing import Optional

import httpx
from cachetools import TTLCache
from fastapi import FastAPI, HTTPException, Request, BackgroundTasks

from .config import Settings, load_settings
from ...core.config import SIGNATURE_HEADER, TIMESTAMP_HEADER
from ...core.config_providers import key_source_from_settings
from ...core.exceptions import ConfigurationError, PayloadParseError, VerificationFailure
from ...core.logging import get_webhook_logger
from ...core.models import HealthResponse, WebhookAck, WebhookEvent
from ...core.signature import WebhookVerifier, key_fingerprint
from ...core.webhook import parse_event

logger = logging.getLogger(__name__)

# Replays and stale deliveries are client errors; a bad signature is an auth failure
STATUS_BY_REASON = {
    VerificationFailure.MALFORMED_SIGNATURE: 400,
    VerificationFailure.STALE_TIMESTAMP: 400,
    VerificationFailure.MALFORMED_TIMESTAMP: 400,
    VerificationFailure.INVALID_SIGNATURE: 401,
}


class WebhookReceiver:
    """Receives, verifies and acknowledges Telnyx webhook deliveries."""

    def __init__(self, settings: Settings, verifier: Optional[WebhookVerifier] = None):
        """Initialize the receiver with settings."""
        self.settings = settings
        self.app = FastAPI(
            title="Telnyx Webhook Receiver",
            description="Verifies Telnyx webhook signatures before accepting events",
            version="0.1.0"
        )

        self.verifier = verifier or WebhookVerifier(key_source_from_settings(settings))

        # Event deduplication cache (event id -> receive time)
        cache_ttl_seconds = settings.dedup_cache_ttl_minutes * 60
        self.event_cache = TTLCache(
            maxsize=settings.dedup_cache_size,
            ttl=cache_ttl_seconds
        )

        # HTTP client for the downstream service
        self.http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.forward_timeout_seconds))

        self.logger = get_webhook_logger(settings.log_dir)

        self._register_routes()

    def _register_routes(self):
        """Register FastAPI routes."""

        @self.app.get("/health", response_model=HealthResponse)
        async def health_check():
            """Health check endpoint."""
            return HealthResponse(status="healthy", service="telnyx-webhooks")

        @self.app.post(self.settings.webhook_path, response_model=WebhookAck)
        async def handle_webhook(request: Request, background_tasks: BackgroundTasks):
            """Handle incoming Telnyx webhook."""
            return await self._process_webhook(request, background_tasks)

    async def _process_webhook(self, request: Request, background_tasks: BackgroundTasks) -> WebhookAck:
        """Verify the delivery, then parse and deduplicate it."""
        try:
            # 1. Read the raw body; the signature covers these exact bytes
            body = await request.body()
            if len(body) > self.settings.max_body_bytes:
                raise HTTPException(status_code=413, detail="Request too large")

            client = request.client.host if request.client else None
            signature = request.headers.get(SIGNATURE_HEADER)
            timestamp = request.headers.get(TIMESTAMP_HEADER)

            # 2. Verify signature and freshness
            try:
                result = self.verifier.check(
                    body, signature, timestamp,
                    tolerance=self.settings.tolerance_seconds
                )
            except ConfigurationError as e:
                logger.error("Webhook verification is misconfigured: %s", e)
                raise HTTPException(status_code=503, detail="Webhook verification unavailable")

            if not result.ok:
                await self.logger.log_rejected(
                    result.reason.value, result.error.message, len(body), client
                )
                raise HTTPException(
                    status_code=STATUS_BY_REASON[result.reason],
                    detail=result.reason.value
                )

            # 3. Parse only after verification succeeded
            try:
                event = parse_event(body)
            except PayloadParseError as e:
                logger.warning("Verified webhook body could not be parsed: %s", e.message)
                await self.logger.log_rejected("payload_parse_error", e.message, len(body), client)
                raise HTTPException(status_code=400, detail="payload_parse_error")

            # 4. Check for duplicate delivery
            if event.id and event.id in self.event_cache:
                logger.info("Duplicate event ignored: %s", event.id)
                await self.logger.log_accepted(event.id, event.event_type, len(body), duplicate=True)
                return WebhookAck(status="duplicate", event_id=event.id, event_type=event.event_type)

            if event.id:
                self.event_cache[event.id] = time.time()

            await self.logger.log_accepted(event.id, event.event_type, len(body))
            logger.info("Accepted event %s (%s)", event.id, event.event_type)

            # 5. Forward in background to return 200 quickly
            if self.settings.forward_url:
                background_tasks.add_task(self._forward_event, event, body)

            return WebhookAck(status="accepted", event_id=event.id, event_type=event.event_type)

        except HTTPException:
            raise
        except Exception as e:
            logger.error("Unexpected error in webhook handler: %s", str(e))
            raise HTTPException(status_code=500, detail="Internal server error")

    async def _forward_event(self, event: WebhookEvent, body: bytes):
        """POST a verified event body to the configured downstream URL."""
        try:
            response = await self.http_client.post(
                self.settings.forward_url,
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "X-Telnyx-Event-Id": event.id or "",
                    "X-Telnyx-Event-Type": event.event_type or "",
                }
            )
            response.raise_for_status()
            logger.info("Forwarded event %s (status %s)", event.id, response.status_code)
        except Exception as e:
            logger.error("Error forwarding event %s: %s\nType: %s\nTraceback: %s",
                         event.id, str(e), type(e).__name__, traceback.format_exc())

    async def startup(self):
        """Application startup tasks."""
        logger.info("Starting Telnyx webhook receiver on path %s", self.settings.webhook_path)
        try:
            key = self.verifier.verification_key
            logger.info("Verification key loaded from %s (fingerprint %s)",
                        self.verifier.key_source.describe(), key_fingerprint(key))
        except ConfigurationError as e:
            logger.error("Verification key unavailable, deliveries will be rejected: %s", e)
        if self.settings.forward_url:
            logger.info("Forwarding verified events to %s", self.settings.forward_url)

    async def shutdown(self):
        """Application shutdown tasks."""
        logger.info("Shutting down Telnyx webhook receiver")
        await self.http_client.aclose()


def create_app(settings: Settings = None, verifier: Optional[WebhookVerifier] = None) -> FastAPI:
    """Factory function to create the FastAPI app."""
    if settings is None:
        # Attempt to load default YAML config from CWD
        default_cfg = Path("telnyx_config.yaml")
        if not default_cfg.exists():
            raise RuntimeError("No settings provided and telnyx_config.yaml not found in current directory")
        settings = load_settings(default_cfg)

    receiver = WebhookReceiver(settings, verifier=verifier)

    @receiver.app.on_event("startup")
    async def startup_event():
        await receiver.startup()

    @receiver.app.on_event("shutdown")
    async def shutdown_event():
        await receiver.shutdown()

    return receiver.app
