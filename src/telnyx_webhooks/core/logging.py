"""
Audit logging for webhook deliveries.

Writes one JSON line per accepted or rejected delivery to
{log_dir}/telnyx-webhooks/deliveries_YYYY-MM-DD.jsonl
"""

import json
import asyncio
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional
import aiofiles
import logging


class WebhookLogger:
    """
    Append-only delivery log for the webhook receiver.

    Entries never contain key material or raw signatures; rejected
    deliveries record only the failure reason and body size.
    """

    def __init__(self, base_log_dir: Path):
        self.log_dir = Path(base_log_dir) / "telnyx-webhooks"
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._write_lock = asyncio.Lock()

    def _log_file(self) -> Path:
        today = datetime.now().strftime("%Y-%m-%d")
        return self.log_dir / f"deliveries_{today}.jsonl"

    async def _append(self, entry: Dict[str, Any]) -> None:
        try:
            async with self._write_lock:
                async with aiofiles.open(self._log_file(), 'a', encoding='utf-8') as f:
                    await f.write(json.dumps(entry, ensure_ascii=False) + '\n')
        except Exception as e:
            # Fallback to standard logging if file write fails
            logging.error(f"Failed to write delivery log entry: {e}")

    async def log_accepted(
        self,
        event_id: Optional[str],
        event_type: Optional[str],
        body_length: int,
        duplicate: bool = False
    ) -> None:
        """
        Record a delivery that passed verification.

        Args:
            event_id: Telnyx event id (data.id)
            event_type: Telnyx event type (data.event_type)
            body_length: Size of the raw body in bytes
            duplicate: True if the event id was already seen
        """
        await self._append({
            "timestamp": datetime.now().isoformat(),
            "outcome": "duplicate" if duplicate else "accepted",
            "event_id": event_id,
            "event_type": event_type,
            "body_length": body_length,
        })

    async def log_rejected(
        self,
        reason: str,
        message: str,
        body_length: int,
        client: Optional[str] = None
    ) -> None:
        """
        Record a delivery that was rejected.

        Args:
            reason: Failure reason code (e.g. "stale_timestamp")
            message: Human-readable failure message
            body_length: Size of the raw body in bytes
            client: Remote address, if known
        """
        await self._append({
            "timestamp": datetime.now().isoformat(),
            "outcome": "rejected",
            "reason": reason,
            "message": message,
            "body_length": body_length,
            "client": client,
        })


def get_webhook_logger(base_log_dir: Optional[Path] = None) -> WebhookLogger:
    """Get a delivery logger instance."""
    if base_log_dir is None:
        base_log_dir = Path("./logs")
    return WebhookLogger(base_log_dir)
