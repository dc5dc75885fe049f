"""Configuration management for the webhook receiver (YAML-based)."""

from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel, field_validator

from ...core.config import DEFAULT_PUBLIC_KEY_ENV, DEFAULT_TOLERANCE


class Settings(BaseModel):
    """Receiver settings loaded from a YAML file."""

    # Verification key: inline value, file, or environment variable (in that order)
    public_key: Optional[str] = None
    public_key_file: Optional[Path] = None
    public_key_env: str = DEFAULT_PUBLIC_KEY_ENV

    # Verification
    tolerance_seconds: Optional[int] = DEFAULT_TOLERANCE

    # HTTP endpoint
    webhook_path: str = "/telnyx/webhooks"
    max_body_bytes: int = 1_000_000  # 1MB

    # Optional downstream service that receives verified events
    forward_url: Optional[str] = None
    forward_timeout_seconds: float = 10.0

    # Cache settings
    dedup_cache_size: int = 4096
    dedup_cache_ttl_minutes: int = 30

    # Logging
    log_dir: Path = Path("./logs")
    log_level: str = "INFO"

    @field_validator("public_key_file", "log_dir", mode="before")
    @classmethod
    def _coerce_path(cls, v):
        if v is None or isinstance(v, Path):
            return v
        return Path(v).expanduser()

    @field_validator("webhook_path")
    @classmethod
    def _normalize_path(cls, v: str) -> str:
        v = (v or "").strip()
        if not v.startswith("/"):
            v = "/" + v
        return v.rstrip("/") or "/"

    def model_post_init(self, __context) -> None:
        """Validate configuration after loading."""
        if self.tolerance_seconds is not None and self.tolerance_seconds < 0:
            raise ValueError("tolerance_seconds must be non-negative (or null to disable)")
        if self.max_body_bytes <= 0:
            raise ValueError("max_body_bytes must be positive")


def load_settings(config_path: Path) -> Settings:
    """Load Settings from a YAML file."""
    if not config_path:
        raise ValueError("Config path is required")
    p = Path(config_path)
    if not p.exists():
        raise ValueError(f"Config file not found: {p}")
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        # Allow top-level 'telnyx' key or flat structure
        if isinstance(data.get("telnyx"), dict):
            data = data["telnyx"]
        return Settings(**data)
    except Exception as e:
        raise ValueError(f"Failed to load config from {p}: {e}") from e
