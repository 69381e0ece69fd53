"""Key derivation for field encryption.

A single 256-bit key is derived from the operator-supplied secret with a
one-way SHA-256 hash.  The key lives as long as the process; there is no
rotation and no per-user key separation.
"""

from __future__ import annotations

import hashlib

from family_vault.logging import get_logger

log = get_logger("family_vault.security.keys")

KEY_SIZE = 32

# Used when no secret is configured.  Anyone who knows this string can read
# data written under it; operators must set FDM_ENCRYPTION_KEY.
DEFAULT_SECRET = "dev-only-insecure-key-change-this-32bytes!"


class KeyManager:
    """Derive and hold the process-wide field encryption key."""

    def __init__(self, secret: str | None = None) -> None:
        """Derive the key from *secret*.

        Args:
            secret: Operator-supplied secret.  ``None`` or an empty string
                selects :data:`DEFAULT_SECRET`.
        """
        self._using_default = not secret
        if self._using_default:
            log.warning("encryption_default_secret_in_use")
            secret = DEFAULT_SECRET
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()
        log.info("encryption_key_derived", default_secret=self._using_default)

    @property
    def key(self) -> bytes:
        """The derived 32-byte key."""
        return self._key

    @property
    def using_default_secret(self) -> bool:
        """Whether the insecure built-in secret is in use."""
        return self._using_default
