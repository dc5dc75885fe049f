from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from .config import DEFAULT_PUBLIC_KEY_ENV, KeySource
from .exceptions import ConfigurationError


class EnvKeySource:
    """Reads the public key from an environment variable."""

    def __init__(self, variable: str = DEFAULT_PUBLIC_KEY_ENV, environ: Optional[Mapping[str, str]] = None):
        self.variable = variable
        # None means the live os.environ, looked up on every load
        self._environ = environ

    def load_key_material(self) -> str:
        environ = os.environ if self._environ is None else self._environ
        value = environ.get(self.variable)
        if value is None or not value.strip():
            raise ConfigurationError(f"Environment variable {self.variable} is not set")
        return value.strip()

    def describe(self) -> str:
        return f"env:{self.variable}"


class FileKeySource:
    """Reads the public key from a file, re-read on every reload."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load_key_material(self) -> str:
        if not self.path.is_file():
            raise ConfigurationError(f"Public key file not found: {self.path}")
        # Public keys are tiny; anything large is a misconfiguration
        if self.path.stat().st_size > 64 * 1024:
            raise ConfigurationError(f"Public key file too large: {self.path}")
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Failed to read public key file {self.path}: {e}") from e
        if not text:
            raise ConfigurationError(f"Public key file is empty: {self.path}")
        return text

    def describe(self) -> str:
        return f"file:{self.path}"


class StaticKeySource:
    """Key material supplied directly, e.g. inline in the YAML config."""

    def __init__(self, material: str):
        self._material = material

    def load_key_material(self) -> str:
        if not self._material or not self._material.strip():
            raise ConfigurationError("Inline public key is empty")
        return self._material.strip()

    def describe(self) -> str:
        return "inline"


def key_source_from_settings(settings) -> KeySource:
    """Pick a key source from receiver settings: inline, then file, then env."""
    if getattr(settings, "public_key", None):
        return StaticKeySource(settings.public_key)
    if getattr(settings, "public_key_file", None):
        return FileKeySource(settings.public_key_file)
    return EnvKeySource(getattr(settings, "public_key_env", None) or DEFAULT_PUBLIC_KEY_ENV)
