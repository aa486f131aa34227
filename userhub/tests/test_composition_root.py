"""Integration tests for the composition root.

These tests verify that configuration loads and validates correctly and
that the configured store adapter is instantiated and wired.
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from userhub.adapters.store.postgresql import PostgreSQLUserStore
from userhub.adapters.store.sqlite import SQLiteUserStore
from userhub.config import Settings, load_settings
from userhub.core.user_service import UserService
from userhub.main import build_store, configure_logging


class TestConfigurationLoading:
    """Test configuration loading and validation."""

    def test_load_settings_with_defaults(self) -> None:
        """Load settings with default values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.store_backend == "sqlite"
        assert settings.server_port == 8081
        assert settings.run_mode == "server"
        assert settings.statement_timeout_seconds == 5.0
        assert settings.request_timeout_seconds == 30.0
        assert settings.log_level == "INFO"

    def test_load_settings_from_env(self) -> None:
        """Load settings from environment variables."""
        with patch.dict(
            os.environ,
            {
                "STORE_BACKEND": "postgresql",
                "DB_HOST": "db.internal",
                "SERVER_PORT": "9090",
                "RUN_MODE": "cli",
                "LOG_LEVEL": "DEBUG",
            },
        ):
            settings = load_settings()
            assert settings.store_backend == "postgresql"
            assert settings.db_host == "db.internal"
            assert settings.server_port == 9090
            assert settings.run_mode == "cli"
            assert settings.log_level == "DEBUG"

    def test_load_settings_from_env_file(self) -> None:
        """Load settings from an explicit .env file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            env_file = Path(tmpdir) / "test.env"
            env_file.write_text("STORE_POOL_SIZE=3\nLOG_FORMAT=json\n")
            with patch.dict(os.environ, {}, clear=True):
                settings = load_settings(str(env_file))
        assert settings.store_pool_size == 3
        assert settings.log_format == "json"

    @pytest.mark.parametrize(
        "variable,value",
        [
            ("SERVER_PORT", "0"),
            ("DB_PORT", "70000"),
            ("STORE_POOL_SIZE", "0"),
            ("STATEMENT_TIMEOUT_SECONDS", "0"),
            ("REQUEST_TIMEOUT_SECONDS", "-1"),
            ("STORE_BACKEND", "mongodb"),
            ("RUN_MODE", "daemon"),
        ],
    )
    def test_invalid_values_rejected(self, variable: str, value: str) -> None:
        with patch.dict(os.environ, {variable: value}):
            with pytest.raises(Exception):  # ValidationError
                load_settings()


class TestStoreWiring:
    """Test store adapter selection."""

    @pytest.mark.asyncio
    async def test_sqlite_store(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = Settings(
                _env_file=None,  # type: ignore[call-arg]
                store_backend="sqlite",
                store_sqlite_path=str(Path(tmpdir) / "nested" / "users.db"),
                statement_timeout_seconds=2.0,
            )
            store = build_store(settings)
            try:
                assert isinstance(store, SQLiteUserStore)
                assert store.db_path.parent.exists()

                service = UserService(store=store)
                user = await service.create_user("John", "john@example.com")
                assert (await service.get_user(user.id)).email == "john@example.com"
            finally:
                await store.close()

    def test_postgresql_store_from_settings(self) -> None:
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            store_backend="postgresql",
            db_host="db.internal",
            db_port=6543,
            db_name="accounts",
            db_user="svc",
            db_password="secret",
        )
        store = build_store(settings)

        assert isinstance(store, PostgreSQLUserStore)
        assert (store.host, store.port, store.database) == ("db.internal", 6543, "accounts")
        assert (store.user, store.password) == ("svc", "secret")

    def test_postgresql_store_from_url(self) -> None:
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            store_backend="postgresql",
            database_url="postgresql://app:pw@pg.example:5433/users?sslmode=require",
        )
        store = build_store(settings)

        assert isinstance(store, PostgreSQLUserStore)
        assert store.host == "pg.example"
        assert store.port == 5433
        assert store.database == "users"
        assert store.user == "app"
        assert store.password == "pw"
        assert store.sslmode == "require"


def test_configure_logging_accepts_both_formats() -> None:
    configure_logging("DEBUG", "json")
    configure_logging("INFO", "text")
