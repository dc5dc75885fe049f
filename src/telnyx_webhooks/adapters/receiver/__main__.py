"""CLI entry point for the Telnyx webhook receiver."""

import logging
import time
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from typing_extensions import Annotated

from .adapter import create_app
from .config import load_settings
from ...core.config_providers import key_source_from_settings
from ...core.exceptions import ConfigurationError, SignatureVerificationError
from ...core.signature import WebhookVerifier, coerce_timestamp, key_fingerprint

app = typer.Typer(
    name="telnyx-webhooks",
    help="Telnyx webhook signature verification and receiver"
)


@app.command()
def run(
    host: Annotated[str, typer.Option("--host", "-h", help="Host to bind to")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to bind to")] = 8820,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Log level (overrides config)")] = None,
    config: Annotated[Path, typer.Option("--config", "-c", help="Path to YAML config file")] = Path("telnyx_config.yaml"),
):
    """Run the webhook receiver server."""

    # Load settings
    try:
        settings = load_settings(config)
    except Exception as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)

    level = (log_level or settings.log_level).upper()

    # Set up logging
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    fastapi_app = create_app(settings)

    typer.echo(f"Starting Telnyx webhook receiver on {host}:{port}")
    typer.echo(f"Webhook endpoint: {settings.webhook_path}")
    if settings.forward_url:
        typer.echo(f"Forwarding verified events to: {settings.forward_url}")

    try:
        uvicorn.run(
            fastapi_app,
            host=host,
            port=port,
            log_level=level.lower()
        )
    except KeyboardInterrupt:
        typer.echo("\nShutting down...")
    except Exception as e:
        typer.echo(f"Server error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def validate_config(
    config: Annotated[Path, typer.Option("--config", "-c", help="Path to YAML config file")] = Path("telnyx_config.yaml"),
):
    """Validate configuration and the verification key without starting the server."""
    try:
        settings = load_settings(config)
        verifier = WebhookVerifier(key_source_from_settings(settings))
        key = verifier.verification_key
    except (ValueError, ConfigurationError) as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("✅ Configuration is valid")
    typer.echo(f"Key source: {verifier.key_source.describe()}")
    typer.echo(f"Key fingerprint: {key_fingerprint(key)}")
    if settings.tolerance_seconds is None:
        typer.echo("Tolerance: disabled")
    else:
        typer.echo(f"Tolerance: {settings.tolerance_seconds} seconds")
    typer.echo(f"Webhook path: {settings.webhook_path}")
    typer.echo(f"Max body size: {settings.max_body_bytes:,} bytes")
    if settings.forward_url:
        typer.echo(f"Forward URL: {settings.forward_url}")


@app.command()
def verify(
    payload_file: Annotated[Path, typer.Argument(help="File containing the raw webhook body")],
    signature: Annotated[str, typer.Option("--signature", "-s", help="telnyx-signature-ed25519 header value")],
    timestamp: Annotated[str, typer.Option("--timestamp", "-t", help="telnyx-timestamp header value")],
    tolerance: Annotated[Optional[int], typer.Option("--tolerance", min=0, help="Maximum age in seconds; omit to skip the check")] = None,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to YAML config file (default: TELNYX_PUBLIC_KEY)")] = None,
):
    """Verify a captured webhook delivery offline."""
    if not payload_file.is_file():
        typer.echo(f"❌ Payload file not found: {payload_file}", err=True)
        raise typer.Exit(1)
    payload = payload_file.read_bytes()

    try:
        verifier = WebhookVerifier(key_source_from_settings(load_settings(config))) if config else WebhookVerifier()
        verifier.verify(payload, signature, timestamp, tolerance=tolerance)
    except (ValueError, ConfigurationError) as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(1)
    except SignatureVerificationError as e:
        typer.echo(f"❌ Verification failed ({e.reason.value}): {e.message}", err=True)
        raise typer.Exit(1)

    seconds, _ = coerce_timestamp(timestamp)
    typer.echo(f"✅ Signature is valid (signed {int(time.time()) - seconds}s ago)")


if __name__ == "__main__":
    app()
