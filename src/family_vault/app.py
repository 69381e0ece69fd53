"""Assemble the Family Vault components from settings.

Settings are read once here and passed down as plain values; nothing below
this module consults global configuration.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from family_vault.config import Settings, get_settings
from family_vault.logging import get_logger
from family_vault.security import EncryptionPolicy, FieldEncryptor, KeyManager
from family_vault.storage import FamilyDatabase
from family_vault.store import FamilyStore
from family_vault.transfer import DataTransfer

log = get_logger("family_vault.app")


@dataclass
class FamilyVault:
    """The wired-up core: database, owner-scoped store and transfer engine."""

    database: FamilyDatabase
    store: FamilyStore
    transfer: DataTransfer


def build_vault(settings: Settings) -> FamilyVault:
    """Construct every component without touching the database."""
    key_manager = KeyManager(secret=settings.encryption_secret)
    encryptor = FieldEncryptor(key=key_manager.key)
    policy = EncryptionPolicy(encryptor)
    database = FamilyDatabase(dsn=settings.postgres_dsn)
    store = FamilyStore(database, policy)
    return FamilyVault(database=database, store=store, transfer=DataTransfer(store))


@asynccontextmanager
async def open_vault(settings: Settings | None = None) -> AsyncIterator[FamilyVault]:
    """Build the vault, open its database and close it on exit."""
    settings = settings or get_settings()
    vault = build_vault(settings)
    await vault.database.initialize()
    log.info("family_vault_ready", environment=settings.environment)
    try:
        yield vault
    finally:
        await vault.database.close()
