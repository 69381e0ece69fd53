"""Family Vault: field-encrypted, owner-scoped storage of family records.

Public API:
- KeyManager / FieldEncryptor / EncryptionPolicy: encryption at rest
- FamilyStore: owner-scoped CRUD for members and every record kind
- DataTransfer: export and import of a user's whole family tree
"""

from family_vault.errors import (
    FamilyVaultError,
    InternalError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from family_vault.models import DESCRIPTORS, EntityDescriptor, EntityKind
from family_vault.security import EncryptionPolicy, FieldEncryptor, KeyManager
from family_vault.storage import FamilyDatabase
from family_vault.store import FamilyStore
from family_vault.transfer import DataTransfer, ImportSummary

__version__ = "0.1.0"

__all__ = [
    "DESCRIPTORS",
    "DataTransfer",
    "EncryptionPolicy",
    "EntityDescriptor",
    "EntityKind",
    "FamilyDatabase",
    "FamilyStore",
    "FamilyVaultError",
    "FieldEncryptor",
    "ImportSummary",
    "InternalError",
    "KeyManager",
    "NotAuthorizedError",
    "NotFoundError",
    "ValidationError",
]
