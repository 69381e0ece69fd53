"""PostgreSQL persistence for family members and their records.

Follows the asyncpg.Pool pattern: construct with a DSN, call
``initialize()`` to open the pool and ensure the schema, then use the async
row-level helpers below.  This layer knows nothing about ownership checks or
encryption; values are stored exactly as given.  Those rules live in
:mod:`family_vault.store`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import asyncpg  # type: ignore[import-not-found]

from family_vault.logging import get_logger
from family_vault.models import DESCRIPTORS, MEMBER_FIELDS, EntityDescriptor

log = get_logger("family_vault.storage")

# ---------------------------------------------------------------------------
# SQL schema
# ---------------------------------------------------------------------------

_MEMBERS_SQL = """\
CREATE TABLE IF NOT EXISTS family_members (
    id             BIGSERIAL    PRIMARY KEY,
    owner_user_id  BIGINT       NOT NULL,
    name           TEXT         NOT NULL,
    relationship   TEXT         NOT NULL DEFAULT '',
    dob            TEXT         NOT NULL DEFAULT '',
    notes          TEXT         NOT NULL DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_family_members_owner
    ON family_members (owner_user_id);
"""


def _child_table_sql(descriptor: EntityDescriptor) -> str:
    """Build the DDL for one record table from its descriptor."""
    columns = []
    for name in descriptor.fields:
        if descriptor.is_numeric(name):
            columns.append(f"    {name} DOUBLE PRECISION")
        elif name == descriptor.required:
            columns.append(f"    {name} TEXT NOT NULL DEFAULT ''")
        else:
            columns.append(f"    {name} TEXT")
    body = ",\n".join(columns)
    return (
        f"CREATE TABLE IF NOT EXISTS {descriptor.table} (\n"
        "    id                BIGSERIAL PRIMARY KEY,\n"
        "    family_member_id  BIGINT NOT NULL\n"
        "                      REFERENCES family_members(id) ON DELETE CASCADE,\n"
        f"{body}\n"
        ");\n"
        f"CREATE INDEX IF NOT EXISTS idx_{descriptor.table}_member\n"
        f"    ON {descriptor.table} (family_member_id);\n"
    )


SCHEMA_SQL = _MEMBERS_SQL + "\n".join(
    _child_table_sql(descriptor) for descriptor in DESCRIPTORS.values()
)


class FamilyDatabase:
    """Row-level access to the ``family_members`` and record tables."""

    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None  # type: ignore[type-arg]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the connection pool and ensure the schema exists."""
        try:
            self._pool = await asyncpg.create_pool(dsn=self._dsn)
            log.info("postgres_pool_created", dsn=self._dsn.split("@")[-1])
        except (asyncpg.PostgresError, OSError) as exc:
            log.error("postgres_pool_creation_failed", error=str(exc))
            raise

        await self._ensure_schema()

    async def close(self) -> None:
        """Gracefully close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            log.info("postgres_pool_closed")

    # ------------------------------------------------------------------
    # Family members
    # ------------------------------------------------------------------

    async def list_members(self, owner_user_id: int) -> list[dict[str, Any]]:
        """Return every member owned by *owner_user_id*, oldest first."""
        rows = await self._fetch(
            "SELECT * FROM family_members WHERE owner_user_id = $1 ORDER BY id",
            owner_user_id,
        )
        return [dict(row) for row in rows]

    async def fetch_member(self, owner_user_id: int, member_id: int) -> dict[str, Any] | None:
        """Return the member only if it exists *and* belongs to the owner."""
        row = await self._fetchrow(
            "SELECT * FROM family_members WHERE id = $1 AND owner_user_id = $2",
            member_id,
            owner_user_id,
        )
        return dict(row) if row is not None else None

    async def insert_member(
        self, owner_user_id: int, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Insert a member and return the stored row."""
        row = await self._fetchrow(
            """
            INSERT INTO family_members (owner_user_id, name, relationship, dob, notes)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            """,
            owner_user_id,
            *(values[name] for name in MEMBER_FIELDS),
        )
        return dict(row)

    async def update_member(self, member_id: int, values: Mapping[str, Any]) -> dict[str, Any]:
        """Overwrite the member's editable columns and return the stored row."""
        row = await self._fetchrow(
            """
            UPDATE family_members
               SET name = $1, relationship = $2, dob = $3, notes = $4
             WHERE id = $5
            RETURNING *
            """,
            *(values[name] for name in MEMBER_FIELDS),
            member_id,
        )
        return dict(row)

    async def delete_member(self, member_id: int) -> bool:
        """Delete a member; its records go with it (``ON DELETE CASCADE``)."""
        result = await self._execute("DELETE FROM family_members WHERE id = $1", member_id)
        return result == "DELETE 1"

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def list_records(
        self, descriptor: EntityDescriptor, member_id: int
    ) -> list[dict[str, Any]]:
        """Return every record of one kind under *member_id*, in creation order."""
        rows = await self._fetch(
            f"SELECT * FROM {descriptor.table} WHERE family_member_id = $1 ORDER BY id",  # nosec B608
            member_id,
        )
        return [dict(row) for row in rows]

    async def fetch_record(
        self, descriptor: EntityDescriptor, member_id: int, record_id: int
    ) -> dict[str, Any] | None:
        """Return the record only if it sits under *member_id*."""
        row = await self._fetchrow(
            f"SELECT * FROM {descriptor.table} WHERE id = $1 AND family_member_id = $2",  # nosec B608
            record_id,
            member_id,
        )
        return dict(row) if row is not None else None

    async def insert_record(
        self, descriptor: EntityDescriptor, member_id: int, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Insert one record (all descriptor columns) and return the stored row."""
        columns = descriptor.fields
        placeholders = ", ".join(f"${i}" for i in range(2, len(columns) + 2))
        row = await self._fetchrow(
            f"INSERT INTO {descriptor.table} (family_member_id, {', '.join(columns)}) "  # nosec B608
            f"VALUES ($1, {placeholders}) RETURNING *",
            member_id,
            *self._ordered(columns, values),
        )
        return dict(row)

    async def update_record(
        self, descriptor: EntityDescriptor, record_id: int, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Overwrite all descriptor columns of a record and return the stored row."""
        columns = descriptor.fields
        assignments = ", ".join(f"{name} = ${i}" for i, name in enumerate(columns, start=1))
        row = await self._fetchrow(
            f"UPDATE {descriptor.table} SET {assignments} "  # nosec B608
            f"WHERE id = ${len(columns) + 1} RETURNING *",
            *self._ordered(columns, values),
            record_id,
        )
        return dict(row)

    async def delete_record(self, descriptor: EntityDescriptor, record_id: int) -> bool:
        """Delete one record by id."""
        result = await self._execute(
            f"DELETE FROM {descriptor.table} WHERE id = $1",  # nosec B608
            record_id,
        )
        return result == "DELETE 1"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ordered(columns: Sequence[str], values: Mapping[str, Any]) -> list[Any]:
        return [values.get(name) for name in columns]

    async def _ensure_schema(self) -> None:
        """Run the DDL statements to create tables and indexes if absent."""
        try:
            async with self._pool.acquire() as conn:  # type: ignore[union-attr]
                await conn.execute(SCHEMA_SQL)
            log.info("schema_ensured")
        except asyncpg.PostgresError as exc:
            log.error("schema_creation_failed", error=str(exc))
            raise

    async def _fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Execute *query* and return the first row."""
        async with self._pool.acquire() as conn:  # type: ignore[union-attr]
            return await conn.fetchrow(query, *args)

    async def _fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        """Execute *query* and return all result rows."""
        async with self._pool.acquire() as conn:  # type: ignore[union-attr]
            result: list[asyncpg.Record] = await conn.fetch(query, *args)
            return result

    async def _execute(self, query: str, *args: Any) -> str:
        """Execute *query* and return the status string."""
        async with self._pool.acquire() as conn:  # type: ignore[union-attr]
            result: str = await conn.execute(query, *args)
            return result
