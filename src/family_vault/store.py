"""Owner-scoped hierarchical CRUD over family members and their records.

Every public method takes the acting user's id first and resolves the full
ownership chain (user → family member → record) against the database before
reading or writing anything.  Nothing is cached between calls.  A link that
does not resolve for the acting user is reported as :class:`NotFoundError`,
whether or not the row exists under someone else.

Record operations are generic over :class:`~family_vault.models.EntityKind`;
column lists, defaults and the encrypted subset all come from the kind's
descriptor.  ``update_record`` is a plain read-merge-write with no locking:
two concurrent updates of the same record resolve as last write wins.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from family_vault.errors import NotAuthorizedError, NotFoundError, ValidationError
from family_vault.logging import get_logger
from family_vault.models import (
    DESCRIPTORS,
    MEMBER_FIELDS,
    EntityDescriptor,
    EntityKind,
    resolve_kind,
)
from family_vault.security.policy import EncryptionPolicy
from family_vault.storage import FamilyDatabase

log = get_logger("family_vault.store")

# BIGINT range
_MIN_ID = -(2**63)
_MAX_ID = 2**63 - 1


def require_owner(owner_user_id: int | None) -> int:
    if owner_user_id is None:
        raise NotAuthorizedError("Not authenticated.")
    return owner_user_id


def _as_id(value: Any) -> int | None:
    """Coerce an identifier to ``int``; ``None`` if it cannot name a row."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int) or not _MIN_ID <= value <= _MAX_ID:
        return None
    return value


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _number(name: str, value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number.") from None


def normalize_fields(descriptor: EntityDescriptor, fields: Mapping[str, Any]) -> dict[str, Any]:
    """Project *fields* onto the descriptor's columns with defaults applied.

    Unknown keys are dropped.  Missing text columns become ``""`` and missing
    numeric columns become ``None``; numeric strings are converted to floats.
    """
    normalized: dict[str, Any] = {}
    for name in descriptor.fields:
        value = fields.get(name)
        if descriptor.is_numeric(name):
            normalized[name] = _number(name, value)
        else:
            normalized[name] = _text(value)
    return normalized


class FamilyStore:
    """Generic owner-scoped store for members and every record kind."""

    def __init__(
        self,
        database: FamilyDatabase,
        policy: EncryptionPolicy,
        descriptors: Mapping[EntityKind, EntityDescriptor] = DESCRIPTORS,
    ) -> None:
        self._db = database
        self._policy = policy
        self._descriptors = descriptors

    # ------------------------------------------------------------------
    # Family members
    # ------------------------------------------------------------------

    async def list_members(self, owner_user_id: int | None) -> list[dict[str, Any]]:
        """Return every family member owned by the acting user."""
        owner = require_owner(owner_user_id)
        return await self._db.list_members(owner)

    async def create_member(
        self, owner_user_id: int | None, fields: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Create a family member owned by the acting user.

        Raises:
            ValidationError: ``name`` is missing or blank.
        """
        owner = require_owner(owner_user_id)
        name = _text(fields.get("name")).strip()
        if not name:
            raise ValidationError("Name is required.")
        values = {key: _text(fields.get(key)) for key in MEMBER_FIELDS}
        values["name"] = name
        member = await self._db.insert_member(owner, values)
        log.info("member_created", owner_user_id=owner, member_id=member["id"])
        return member

    async def get_member(self, owner_user_id: int | None, member_id: Any) -> dict[str, Any]:
        """Return one family member owned by the acting user."""
        owner = require_owner(owner_user_id)
        return await self._resolve_member(owner, member_id)

    async def update_member(
        self, owner_user_id: int | None, member_id: Any, fields: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Merge *fields* into a member's basic info.

        Keys that are omitted or ``None`` keep their stored value.

        Raises:
            ValidationError: ``name`` was supplied but blank.
        """
        owner = require_owner(owner_user_id)
        member = await self._resolve_member(owner, member_id)
        merged = {key: member[key] for key in MEMBER_FIELDS}
        for key in MEMBER_FIELDS:
            if fields.get(key) is not None:
                merged[key] = _text(fields[key])
        merged["name"] = merged["name"].strip()
        if not merged["name"]:
            raise ValidationError("Name is required.")
        updated = await self._db.update_member(member["id"], merged)
        log.info("member_updated", owner_user_id=owner, member_id=member["id"])
        return updated

    async def delete_member(self, owner_user_id: int | None, member_id: Any) -> None:
        """Delete a member together with all of its records."""
        owner = require_owner(owner_user_id)
        member = await self._resolve_member(owner, member_id)
        if not await self._db.delete_member(member["id"]):
            raise NotFoundError("Family member not found.")
        log.info("member_deleted", owner_user_id=owner, member_id=member["id"])

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def list_records(
        self, owner_user_id: int | None, member_id: Any, kind: EntityKind | str
    ) -> list[dict[str, Any]]:
        """Return all records of *kind* under a member, decrypted, oldest first."""
        owner = require_owner(owner_user_id)
        descriptor = self._descriptor(kind)
        member = await self._resolve_member(owner, member_id)
        rows = await self._db.list_records(descriptor, member["id"])
        return [self._policy.decrypt_record(descriptor.kind, row) for row in rows]

    async def get_record(
        self, owner_user_id: int | None, member_id: Any, kind: EntityKind | str, record_id: Any
    ) -> dict[str, Any]:
        """Return one decrypted record after checking the full chain."""
        owner = require_owner(owner_user_id)
        descriptor = self._descriptor(kind)
        member = await self._resolve_member(owner, member_id)
        row = await self._resolve_record(descriptor, member["id"], record_id)
        return self._policy.decrypt_record(descriptor.kind, row)

    async def create_record(
        self,
        owner_user_id: int | None,
        member_id: Any,
        kind: EntityKind | str,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Create a record under a member and return it decrypted."""
        owner = require_owner(owner_user_id)
        descriptor = self._descriptor(kind)
        member = await self._resolve_member(owner, member_id)
        values = normalize_fields(descriptor, fields)
        stored = await self._db.insert_record(
            descriptor, member["id"], self._policy.encrypt_record(descriptor.kind, values)
        )
        log.info(
            "record_created",
            owner_user_id=owner,
            member_id=member["id"],
            kind=descriptor.kind.value,
            record_id=stored["id"],
        )
        return self._policy.decrypt_record(descriptor.kind, stored)

    async def update_record(
        self,
        owner_user_id: int | None,
        member_id: Any,
        kind: EntityKind | str,
        record_id: Any,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Merge *fields* over a stored record and return the decrypted result.

        Supplied keys overwrite; omitted keys keep their prior value.
        """
        owner = require_owner(owner_user_id)
        descriptor = self._descriptor(kind)
        member = await self._resolve_member(owner, member_id)
        existing = await self._resolve_record(descriptor, member["id"], record_id)

        merged = self._policy.decrypt_record(descriptor.kind, existing)
        for name in descriptor.fields:
            if name in fields:
                merged[name] = fields[name]
        values = normalize_fields(descriptor, merged)

        stored = await self._db.update_record(
            descriptor, existing["id"], self._policy.encrypt_record(descriptor.kind, values)
        )
        log.info(
            "record_updated",
            owner_user_id=owner,
            member_id=member["id"],
            kind=descriptor.kind.value,
            record_id=existing["id"],
        )
        return self._policy.decrypt_record(descriptor.kind, stored)

    async def delete_record(
        self, owner_user_id: int | None, member_id: Any, kind: EntityKind | str, record_id: Any
    ) -> None:
        """Delete one record after checking the full chain."""
        owner = require_owner(owner_user_id)
        descriptor = self._descriptor(kind)
        member = await self._resolve_member(owner, member_id)
        existing = await self._resolve_record(descriptor, member["id"], record_id)
        if not await self._db.delete_record(descriptor, existing["id"]):
            raise NotFoundError("Item not found.")
        log.info(
            "record_deleted",
            owner_user_id=owner,
            member_id=member["id"],
            kind=descriptor.kind.value,
            record_id=existing["id"],
        )

    # ------------------------------------------------------------------
    # Ownership chain
    # ------------------------------------------------------------------

    def _descriptor(self, kind: EntityKind | str) -> EntityDescriptor:
        resolved = resolve_kind(kind)
        if resolved is None or resolved not in self._descriptors:
            raise ValidationError(f"Unknown record kind: {kind!r}")
        return self._descriptors[resolved]

    async def _resolve_member(self, owner: int, member_id: Any) -> dict[str, Any]:
        resolved = _as_id(member_id)
        member = None
        if resolved is not None:
            member = await self._db.fetch_member(owner, resolved)
        if member is None:
            log.info("member_not_found", owner_user_id=owner, member_id=member_id)
            raise NotFoundError("Family member not found.")
        return member

    async def _resolve_record(
        self, descriptor: EntityDescriptor, member_id: int, record_id: Any
    ) -> dict[str, Any]:
        resolved = _as_id(record_id)
        row = None
        if resolved is not None:
            row = await self._db.fetch_record(descriptor, member_id, resolved)
        if row is None:
            log.info(
                "record_not_found",
                member_id=member_id,
                kind=descriptor.kind.value,
                record_id=record_id,
            )
            raise NotFoundError("Item not found.")
        return row
