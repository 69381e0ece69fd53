"""Per-kind encryption policy.

Applies :class:`FieldEncryptor` to the sensitive columns declared by each
:class:`~family_vault.models.EntityDescriptor`, leaving every other column
untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from family_vault.models import DESCRIPTORS, EntityDescriptor, EntityKind, resolve_kind
from family_vault.security.encryption import FieldEncryptor


class EncryptionPolicy:
    """Registry of which fields are encrypted for each entity kind."""

    def __init__(
        self,
        encryptor: FieldEncryptor,
        descriptors: Mapping[EntityKind, EntityDescriptor] = DESCRIPTORS,
    ) -> None:
        self._encryptor = encryptor
        self._fields: dict[EntityKind, frozenset[str]] = {
            kind: descriptor.sensitive for kind, descriptor in descriptors.items()
        }

    def sensitive_fields(self, kind: EntityKind | str) -> frozenset[str]:
        """Fields encrypted for *kind*; empty for unknown kinds."""
        resolved = resolve_kind(kind)
        if resolved is None:
            return frozenset()
        return self._fields.get(resolved, frozenset())

    def encrypt_record(
        self, kind: EntityKind | str, record: dict[str, Any] | None
    ) -> dict[str, Any] | None:
        """Return a copy of *record* with its sensitive fields encrypted."""
        return self._apply(kind, record, self._encryptor.encrypt_value)

    def decrypt_record(
        self, kind: EntityKind | str, record: dict[str, Any] | None
    ) -> dict[str, Any] | None:
        """Return a copy of *record* with its sensitive fields decrypted."""
        return self._apply(kind, record, self._encryptor.decrypt_value)

    def _apply(self, kind, record, transform):
        fields = self.sensitive_fields(kind)
        if not fields or record is None:
            return record
        copy = dict(record)
        for name in fields:
            if copy.get(name):
                copy[name] = transform(copy[name])
        return copy
