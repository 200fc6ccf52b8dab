"""Tests for engine configuration helpers."""
from types import SimpleNamespace

from app.database import engine_options, normalise_database_url, uses_cloud_sql


def _settings(**overrides):
    values = {
        "LOG_LEVEL": "INFO",
        "DB_POOL_SIZE": 4,
        "DB_MAX_OVERFLOW": 2,
        "DB_POOL_RECYCLE_SECONDS": 600,
        "CLOUD_SQL_USE_UNIX_SOCKET": False,
        "CLOUD_SQL_INSTANCE_CONNECTION": "",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestNormaliseDatabaseUrl:
    def test_plain_postgres_urls_use_asyncpg(self):
        assert normalise_database_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
        assert normalise_database_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"

    def test_explicit_driver_kept(self):
        url = "postgresql+asyncpg://u:p@h/db"
        assert normalise_database_url(url) == url


class TestEngineSettings:
    def test_pool_options_come_from_settings(self):
        options = engine_options(_settings(LOG_LEVEL="DEBUG"))
        assert options["echo"] is True
        assert options["pool_size"] == 4
        assert options["max_overflow"] == 2
        assert options["pool_recycle"] == 600

    def test_cloud_sql_needs_flag_and_instance(self):
        assert not uses_cloud_sql(_settings(CLOUD_SQL_USE_UNIX_SOCKET=True))
        assert not uses_cloud_sql(_settings(CLOUD_SQL_INSTANCE_CONNECTION="p:r:i"))
        assert uses_cloud_sql(
            _settings(CLOUD_SQL_USE_UNIX_SOCKET=True, CLOUD_SQL_INSTANCE_CONNECTION="p:r:i")
        )
