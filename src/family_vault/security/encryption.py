"""Field-level AES-256-GCM encryption.

Each value is sealed into a self-contained text envelope::

    base64( nonce[12] || tag[16] || ciphertext )

Decryption is deliberately forgiving: anything that is not valid base64,
is too short to hold a nonce and tag, or fails tag verification is returned
unchanged.  Values written before encryption existed therefore keep
reading back as they were.  The flip side is permanent: a corrupted or
tampered envelope, or one sealed under a different key, is
indistinguishable from legacy plaintext and is also returned as-is.
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from family_vault.logging import get_logger
from family_vault.security.keys import KEY_SIZE

log = get_logger("family_vault.security.encryption")

NONCE_SIZE = 12
TAG_SIZE = 16
MIN_ENVELOPE_SIZE = NONCE_SIZE + TAG_SIZE


class FieldEncryptor:
    """Encrypt and decrypt individual string fields.

    Instances hold only the key and are safe to share between tasks.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self._aesgcm = AESGCM(key)

    def encrypt_value(self, plaintext: Any) -> Any:
        """Encrypt *plaintext* into an envelope.

        Empty or ``None`` values are returned unchanged.  Every call uses a
        fresh random nonce, so equal inputs produce different envelopes.
        """
        if not plaintext:
            return plaintext
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(nonce, str(plaintext).encode("utf-8"), None)
        # AESGCM appends the tag; the envelope stores it ahead of the ciphertext.
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

    def decrypt_value(self, envelope: Any) -> Any:
        """Decrypt *envelope*, or return it unchanged if it does not open.

        Never raises for bad input.
        """
        if not envelope or not isinstance(envelope, str):
            return envelope
        plaintext = self._open(envelope)
        if plaintext is None:
            log.debug("decrypt_fallback_to_plaintext", length=len(envelope))
            return envelope
        return plaintext

    def is_encrypted(self, value: Any) -> bool:
        """Return ``True`` only if *value* is an envelope sealed under this key."""
        if not value or not isinstance(value, str):
            return False
        return self._open(value) is not None

    def _open(self, envelope: str) -> str | None:
        # Line breaks or spaces from re-wrapped text are not part of the envelope.
        compact = "".join(envelope.split())
        try:
            raw = base64.b64decode(compact.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError):
            return None
        if len(raw) < MIN_ENVELOPE_SIZE:
            return None
        nonce = raw[:NONCE_SIZE]
        tag = raw[NONCE_SIZE:MIN_ENVELOPE_SIZE]
        ciphertext = raw[MIN_ENVELOPE_SIZE:]
        try:
            data = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return None
