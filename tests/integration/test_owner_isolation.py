"""Integration tests for owner isolation.

Two users share one database; neither may see or change anything the other
owns, and foreign rows are indistinguishable from missing ones.
"""

from __future__ import annotations

import pytest

from family_vault.errors import NotFoundError
from family_vault.models import EntityKind

ALICE = 1
BOB = 2


@pytest.fixture
async def alice_member(store):
    member = await store.create_member(ALICE, {"name": "Priya"})
    record = await store.create_record(
        ALICE, member["id"], EntityKind.DOCUMENTS, {"type": "Passport", "number": "P1234567"}
    )
    return member, record


@pytest.mark.integration
class TestMemberIsolation:
    """Members are visible to their owner only."""

    async def test_list_is_scoped(self, store, alice_member):
        await store.create_member(BOB, {"name": "Rahul"})

        assert [m["name"] for m in await store.list_members(ALICE)] == ["Priya"]
        assert [m["name"] for m in await store.list_members(BOB)] == ["Rahul"]

    async def test_foreign_member_looks_missing(self, store, alice_member):
        member, _ = alice_member

        with pytest.raises(NotFoundError) as foreign:
            await store.get_member(BOB, member["id"])
        with pytest.raises(NotFoundError) as missing:
            await store.get_member(BOB, 999_999)

        assert str(foreign.value) == str(missing.value)

    async def test_foreign_update_and_delete_change_nothing(self, store, database, alice_member):
        member, _ = alice_member

        with pytest.raises(NotFoundError):
            await store.update_member(BOB, member["id"], {"name": "Hijacked"})
        with pytest.raises(NotFoundError):
            await store.delete_member(BOB, member["id"])

        assert database.members[member["id"]]["name"] == "Priya"


@pytest.mark.integration
class TestRecordIsolation:
    """Records inherit their member's ownership."""

    async def test_foreign_records_unreachable(self, store, alice_member):
        member, record = alice_member

        with pytest.raises(NotFoundError):
            await store.list_records(BOB, member["id"], "documents")
        with pytest.raises(NotFoundError):
            await store.get_record(BOB, member["id"], "documents", record["id"])
        with pytest.raises(NotFoundError):
            await store.update_record(
                BOB, member["id"], "documents", record["id"], {"number": "X"}
            )
        with pytest.raises(NotFoundError):
            await store.delete_record(BOB, member["id"], "documents", record["id"])

        fetched = await store.get_record(ALICE, member["id"], "documents", record["id"])
        assert fetched["number"] == "P1234567"

    async def test_record_under_wrong_member_is_missing(self, store, alice_member):
        """A record id only resolves beneath the member it belongs to."""
        _, record = alice_member
        sibling = await store.create_member(ALICE, {"name": "Arjun"})

        with pytest.raises(NotFoundError, match="Item not found"):
            await store.get_record(ALICE, sibling["id"], "documents", record["id"])

    async def test_bob_cannot_attach_records_to_alice(self, store, database, alice_member):
        member, _ = alice_member

        with pytest.raises(NotFoundError):
            await store.create_record(BOB, member["id"], "lockers", {"bank_name": "SBI"})

        assert database.records[EntityKind.LOCKERS] == {}

    async def test_export_never_includes_foreign_data(self, store, transfer, alice_member):
        await store.create_member(BOB, {"name": "Rahul"})

        document = await transfer.export_data(BOB)

        assert [e["member"]["name"] for e in document["familyData"]] == ["Rahul"]
        assert document["familyData"][0]["documents"] == []
