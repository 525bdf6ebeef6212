"""
Test suite for database engine configuration.

Run tests:
    pytest tests/core/db/test_db_config.py -v
"""

from unittest.mock import patch


class TestEngineOptions:

    def test_server_database_bounds_waits(self):
        from carintel.core.config import settings
        from carintel.core.db.config import _engine_options

        with (
            patch.object(settings, "DATABASE_POOL_TIMEOUT_SECONDS", 3.0),
            patch.object(settings, "DATABASE_COMMAND_TIMEOUT_SECONDS", 7.5),
        ):
            options = _engine_options("postgresql+asyncpg://user:pass@db/carintel")

        assert options["pool_timeout"] == 3.0
        assert options["connect_args"] == {"command_timeout": 7.5}
        assert options["pool_pre_ping"] is True
        assert options["pool_size"] == 20

    def test_sqlite_takes_no_pool_options(self):
        from carintel.core.db.config import _engine_options

        options = _engine_options("sqlite+aiosqlite:///:memory:")

        assert "pool_timeout" not in options
        assert "connect_args" not in options
