"""Export and import of a user's complete family tree.

The export document carries *decrypted* values so it can be moved between
installations or users::

    {
        "exportedAt": "<ISO-8601>",
        "userId": <int>,
        "familyData": [
            {"member": {...}, "documents": [...], "accounts": [...],
             "insurances_loans": [...], "lockers": [...], "properties": [...]},
        ],
    }

Import always creates new members and records for the acting user, routing
every row through :meth:`FamilyStore.create_record` so defaults and
encryption are applied exactly as for interactive writes.  Ids and the
owner found in the payload are ignored.

There is no transaction around an import.  If a row fails, the error
propagates, the remaining entries are not processed and everything created
before the failure stays in place.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

import pydantic
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from family_vault.errors import ValidationError
from family_vault.logging import get_logger
from family_vault.models import DESCRIPTORS, EntityKind
from family_vault.store import FamilyStore, require_owner

log = get_logger("family_vault.transfer")

_INVALID_FORMAT = "Invalid import format. Expecting { familyData: [...] }."

# ---------------------------------------------------------------------------
# Payload models
# ---------------------------------------------------------------------------


class FamilyEntry(BaseModel):
    """One member and its records inside an export document."""

    model_config = ConfigDict(extra="ignore")

    member: Any = None
    documents: list[dict[str, Any]] = Field(default_factory=list)
    accounts: list[dict[str, Any]] = Field(default_factory=list)
    insurances_loans: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("insurances_loans", "insuranceLoans"),
    )
    lockers: list[dict[str, Any]] = Field(default_factory=list)
    properties: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator(*(kind.value for kind in EntityKind), mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def records(self, kind: EntityKind) -> list[dict[str, Any]]:
        return getattr(self, kind.value)

    @property
    def member_name(self) -> str:
        if not isinstance(self.member, Mapping):
            return ""
        name = self.member.get("name")
        if name is None:
            return ""
        return str(name).strip()


class ImportPayload(BaseModel):
    """Top-level import document; only ``familyData`` is required."""

    model_config = ConfigDict(extra="ignore")

    exported_at: Any = Field(default=None, validation_alias="exportedAt")
    user_id: Any = Field(
        default=None, validation_alias=AliasChoices("userId", "ownerUserId")
    )
    family_data: list[FamilyEntry] = Field(validation_alias="familyData")


@dataclass
class ImportSummary:
    """Counts of what an import created."""

    members_created: int = 0
    records_created: int = 0
    members_skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class DataTransfer:
    """Serialise an owner's subtree and restore it under a (new) owner."""

    def __init__(self, store: FamilyStore) -> None:
        self._store = store

    async def export_data(self, owner_user_id: int | None) -> dict[str, Any]:
        """Build the export document for every member the user owns."""
        owner = require_owner(owner_user_id)
        members = await self._store.list_members(owner)
        family_data: list[dict[str, Any]] = []
        for member in members:
            entry: dict[str, Any] = {"member": member}
            for kind in DESCRIPTORS:
                entry[kind.value] = await self._store.list_records(owner, member["id"], kind)
            family_data.append(entry)

        log.info(
            "export_completed",
            owner_user_id=owner,
            member_count=len(family_data),
        )
        return {
            "exportedAt": datetime.now(UTC).isoformat(),
            "userId": owner,
            "familyData": family_data,
        }

    async def import_data(self, owner_user_id: int | None, payload: Any) -> ImportSummary:
        """Recreate the payload's members and records under *owner_user_id*.

        Raises:
            ValidationError: The payload has no ``familyData`` list or an
                entry is malformed.  Nothing is written in that case.
        """
        owner = require_owner(owner_user_id)
        parsed = parse_import_payload(payload)
        summary = ImportSummary()

        for entry in parsed.family_data:
            if not entry.member_name:
                summary.members_skipped += 1
                continue

            member = await self._store.create_member(owner, entry.member)
            summary.members_created += 1

            for kind in DESCRIPTORS:
                for row in entry.records(kind):
                    await self._store.create_record(owner, member["id"], kind, row)
                    summary.records_created += 1

        log.info("import_completed", owner_user_id=owner, **summary.to_dict())
        return summary


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def parse_import_payload(payload: Any) -> ImportPayload:
    """Validate a decoded export document."""
    if not isinstance(payload, dict):
        raise ValidationError(_INVALID_FORMAT)
    try:
        return ImportPayload.model_validate(payload)
    except pydantic.ValidationError as exc:
        log.warning("import_payload_invalid", error_count=exc.error_count())
        raise ValidationError(_INVALID_FORMAT) from exc


def dump_export(document: dict[str, Any]) -> str:
    """Serialise an export document to JSON text."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def load_export(text: str | bytes) -> Any:
    """Decode JSON text produced by :func:`dump_export`."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(_INVALID_FORMAT) from exc
