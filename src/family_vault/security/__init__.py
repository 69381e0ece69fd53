"""Security module for Family Vault.

Provides application-layer encryption for sensitive record fields stored
in PostgreSQL.
"""

from family_vault.security.encryption import FieldEncryptor
from family_vault.security.keys import KeyManager
from family_vault.security.policy import EncryptionPolicy

__all__ = ["EncryptionPolicy", "FieldEncryptor", "KeyManager"]
