"""Shared fixtures for the Family Vault test suite.

``InMemoryFamilyDatabase`` mirrors the row-level API of
:class:`family_vault.storage.FamilyDatabase` so the store, the encryption
policy and the import/export engine can be exercised together without a
PostgreSQL server.  Values are kept exactly as the store hands them over,
which lets tests inspect what would be written to disk.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from typing import Any

import pytest

from family_vault.config import get_settings
from family_vault.models import DESCRIPTORS, MEMBER_FIELDS, EntityDescriptor, EntityKind
from family_vault.security.encryption import FieldEncryptor
from family_vault.security.keys import KeyManager
from family_vault.security.policy import EncryptionPolicy
from family_vault.store import FamilyStore
from family_vault.transfer import DataTransfer

TEST_SECRET = "unit-test-secret-value-long-enough"


class InMemoryFamilyDatabase:
    """Dict-backed stand-in for :class:`FamilyDatabase`."""

    def __init__(self) -> None:
        self.members: dict[int, dict[str, Any]] = {}
        self.records: dict[EntityKind, dict[int, dict[str, Any]]] = {
            kind: {} for kind in DESCRIPTORS
        }
        self._member_ids = itertools.count(1)
        self._record_ids = {kind: itertools.count(1) for kind in DESCRIPTORS}
        self.fail_on_insert: EntityKind | None = None

    async def list_members(self, owner_user_id: int) -> list[dict[str, Any]]:
        return [dict(m) for m in self.members.values() if m["owner_user_id"] == owner_user_id]

    async def fetch_member(self, owner_user_id: int, member_id: int) -> dict[str, Any] | None:
        member = self.members.get(member_id)
        if member is None or member["owner_user_id"] != owner_user_id:
            return None
        return dict(member)

    async def insert_member(
        self, owner_user_id: int, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        member_id = next(self._member_ids)
        row = {"id": member_id, "owner_user_id": owner_user_id}
        row.update({name: values[name] for name in MEMBER_FIELDS})
        self.members[member_id] = row
        return dict(row)

    async def update_member(self, member_id: int, values: Mapping[str, Any]) -> dict[str, Any]:
        self.members[member_id].update({name: values[name] for name in MEMBER_FIELDS})
        return dict(self.members[member_id])

    async def delete_member(self, member_id: int) -> bool:
        if self.members.pop(member_id, None) is None:
            return False
        for rows in self.records.values():
            for record_id in [rid for rid, r in rows.items() if r["family_member_id"] == member_id]:
                del rows[record_id]
        return True

    async def list_records(
        self, descriptor: EntityDescriptor, member_id: int
    ) -> list[dict[str, Any]]:
        rows = self.records[descriptor.kind]
        return [dict(rows[rid]) for rid in sorted(rows) if rows[rid]["family_member_id"] == member_id]

    async def fetch_record(
        self, descriptor: EntityDescriptor, member_id: int, record_id: int
    ) -> dict[str, Any] | None:
        row = self.records[descriptor.kind].get(record_id)
        if row is None or row["family_member_id"] != member_id:
            return None
        return dict(row)

    async def insert_record(
        self, descriptor: EntityDescriptor, member_id: int, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        if self.fail_on_insert is descriptor.kind:
            raise RuntimeError("simulated storage failure")
        record_id = next(self._record_ids[descriptor.kind])
        row = {"id": record_id, "family_member_id": member_id}
        row.update({name: values.get(name) for name in descriptor.fields})
        self.records[descriptor.kind][record_id] = row
        return dict(row)

    async def update_record(
        self, descriptor: EntityDescriptor, record_id: int, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        row = self.records[descriptor.kind][record_id]
        row.update({name: values.get(name) for name in descriptor.fields})
        return dict(row)

    async def delete_record(self, descriptor: EntityDescriptor, record_id: int) -> bool:
        return self.records[descriptor.kind].pop(record_id, None) is not None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Make every test build Settings from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def key_manager() -> KeyManager:
    return KeyManager(secret=TEST_SECRET)


@pytest.fixture()
def encryptor(key_manager: KeyManager) -> FieldEncryptor:
    return FieldEncryptor(key=key_manager.key)


@pytest.fixture()
def policy(encryptor: FieldEncryptor) -> EncryptionPolicy:
    return EncryptionPolicy(encryptor)


@pytest.fixture()
def database() -> InMemoryFamilyDatabase:
    return InMemoryFamilyDatabase()


@pytest.fixture()
def store(database: InMemoryFamilyDatabase, policy: EncryptionPolicy) -> FamilyStore:
    return FamilyStore(database, policy)  # type: ignore[arg-type]


@pytest.fixture()
def transfer(store: FamilyStore) -> DataTransfer:
    return DataTransfer(store)
