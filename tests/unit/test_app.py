"""Unit tests for component wiring."""

from unittest.mock import AsyncMock, patch

import pytest

from family_vault.app import build_vault, open_vault
from family_vault.config import Settings
from family_vault.store import FamilyStore
from family_vault.transfer import DataTransfer


def _settings(**overrides) -> Settings:
    defaults = {"_env_file": None, "encryption_key": "wiring-test-secret"}
    defaults.update(overrides)
    return Settings(**defaults)


class TestBuildVault:
    """Tests for build_vault."""

    def test_components_share_one_store(self):
        vault = build_vault(_settings(postgres_dsn="postgresql://u@h/db"))

        assert isinstance(vault.store, FamilyStore)
        assert isinstance(vault.transfer, DataTransfer)
        assert vault.transfer._store is vault.store
        assert vault.database._dsn == "postgresql://u@h/db"


class TestOpenVault:
    """Tests for open_vault."""

    async def test_initializes_and_closes_database(self):
        with (
            patch("family_vault.app.FamilyDatabase.initialize", AsyncMock()) as initialize,
            patch("family_vault.app.FamilyDatabase.close", AsyncMock()) as close,
        ):
            async with open_vault(_settings()) as vault:
                initialize.assert_awaited_once()
                close.assert_not_awaited()
                assert vault.store is not None

        close.assert_awaited_once()

    async def test_closes_database_on_error(self):
        with (
            patch("family_vault.app.FamilyDatabase.initialize", AsyncMock()),
            patch("family_vault.app.FamilyDatabase.close", AsyncMock()) as close,
        ):
            with pytest.raises(RuntimeError):
                async with open_vault(_settings()):
                    raise RuntimeError("boom")

        close.assert_awaited_once()
