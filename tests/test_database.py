import asyncio
from contextlib import asynccontextmanager

import pytest

from database.connection import connection_kwargs
from database.migration_manager import MigrationManager


class FakeConnection:
    def __init__(self, applied=()):
        self.applied = set(applied)
        self.statements = []
        self.fail_on = None

    async def execute(self, sql, *args):
        if self.fail_on and self.fail_on in sql:
            raise RuntimeError("syntax error")
        self.statements.append(sql)
        if sql.startswith("INSERT INTO schema_version"):
            self.applied.add(args[0])

    async def fetch(self, sql):
        return [{"version": version} for version in sorted(self.applied)]

    @asynccontextmanager
    async def transaction(self):
        yield


class FakePool:
    def __init__(self, conn):
        self.conn = conn

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


def test_pending_files_in_numeric_order():
    manager = MigrationManager()

    assert [version for version, _ in manager.pending_files(set())] == ["001", "002"]
    assert [version for version, _ in manager.pending_files({"001"})] == ["002"]


def test_pending_files_skips_invalid_names(tmp_path):
    (tmp_path / "010_late.sql").write_text("SELECT 1;")
    (tmp_path / "2_early.sql").write_text("SELECT 1;")
    (tmp_path / "notes.sql").write_text("-- rascunho")

    pending = MigrationManager(tmp_path).pending_files(set())

    assert [version for version, _ in pending] == ["2", "010"]


def test_run_migrations_applies_once():
    conn = FakeConnection()
    pool = FakePool(conn)
    manager = MigrationManager()

    assert asyncio.run(manager.run_migrations(pool)) == ["001", "002"]
    assert conn.applied == {"001", "002"}
    assert any("CREATE TABLE" in sql and "projects" in sql for sql in conn.statements)

    assert asyncio.run(manager.run_migrations(pool)) == []


def test_failed_migration_is_not_recorded(tmp_path):
    (tmp_path / "001_ok.sql").write_text("CREATE TABLE a (id INT);")
    (tmp_path / "002_broken.sql").write_text("CREATE TABLE broken (;")
    conn = FakeConnection()
    conn.fail_on = "broken"

    with pytest.raises(RuntimeError):
        asyncio.run(MigrationManager(tmp_path).run_migrations(FakePool(conn)))

    assert conn.applied == {"001"}


def test_connection_kwargs_prefers_dsn(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://bridge@db/agent_bridge")

    kwargs = connection_kwargs({"persistence": {"max_pool_size": 10}})

    assert kwargs == {"dsn": "postgresql://bridge@db/agent_bridge", "min_size": 1, "max_size": 10}


def test_connection_kwargs_password_only_from_env(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("POSTGRES_HOST", "db")
    monkeypatch.setenv("POSTGRES_PASSWORD", "s3cret")

    kwargs = connection_kwargs({"persistence": {"port": 6543, "password": "from-file"}})

    assert kwargs["host"] == "db"
    assert kwargs["port"] == 6543
    assert kwargs["password"] == "s3cret"
    assert kwargs["min_size"] == 1 and kwargs["max_size"] == 5
