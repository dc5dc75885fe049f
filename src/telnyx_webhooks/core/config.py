from __future__ import annotations

from typing import Protocol, runtime_checkable


DEFAULT_TOLERANCE = 300
DEFAULT_PUBLIC_KEY_ENV = "TELNYX_PUBLIC_KEY"

SIGNATURE_HEADER = "telnyx-signature-ed25519"
TIMESTAMP_HEADER = "telnyx-timestamp"


@runtime_checkable
class KeySource(Protocol):
    """Where the verifier reads its public key material from.

    Implementations return the raw configured text (base64 of the 32 key
    bytes, or a PEM block) and are re-read on every explicit reload, so a
    rotated key is picked up without restarting the process.
    """

    def load_key_material(self) -> str:  # pragma: no cover - protocol
        ...

    def describe(self) -> str:  # pragma: no cover - protocol
        ...
