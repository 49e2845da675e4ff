import os
import sys
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from domainvault import create_app
from domainvault.core.resolver import RequestResolver
from domainvault.domains.devices.services.device_registry import InMemoryDeviceRegistry
from domainvault.domains.secrets.services.secret_store import InMemorySecretStore
from domainvault.extensions import db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")


def _test_database_url() -> str:
    db_url = os.environ.get("TEST_DATABASE_URL")
    if db_url:
        return db_url
    (ROOT / "instance").mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{ROOT / 'instance' / 'test.db'}"


def _alembic_config() -> AlembicConfig:
    cfg = AlembicConfig(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "domainvault" / "migrations"))
    cfg.set_main_option("domainvault_env", "testing")
    cfg.set_main_option("sqlalchemy.url", _test_database_url())
    return cfg


@pytest.fixture(scope="session", autouse=True)
def migrated_db():
    """Apply migrations once per session to mirror production schema."""
    cfg = _alembic_config()
    command.upgrade(cfg, "head")
    yield
    try:
        command.downgrade(cfg, "base")
    except Exception:
        # Downgrade is optional for local/CI runs; ignore failures to avoid hiding test results.
        pass


@pytest.fixture()
def app(migrated_db):
    """
    Create a per-test app with an isolated database transaction.

    Sessions join the outer transaction through savepoints, so store commits
    are real to the test but everything rolls back afterwards.
    """
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()

    connection = db.engine.connect()
    if connection.dialect.name == "sqlite":
        # pysqlite defers BEGIN by default, which lets savepoint releases commit;
        # emit BEGIN explicitly so the outer transaction really wraps the test.
        connection.connection.driver_connection.isolation_level = None
        event.listen(connection, "begin", lambda conn: conn.exec_driver_sql("BEGIN"))
    transaction = connection.begin()

    session_factory = scoped_session(
        sessionmaker(bind=connection, join_transaction_mode="create_savepoint", expire_on_commit=False)
    )
    original_session = db.session
    db.session = session_factory

    try:
        yield app
    finally:
        session_factory.remove()
        db.session = original_session
        transaction.rollback()
        if connection.dialect.name == "sqlite":
            connection.connection.driver_connection.isolation_level = ""
        connection.close()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def memory_resolver():
    return RequestResolver(InMemorySecretStore(), InMemoryDeviceRegistry())


@pytest.fixture()
def memory_app(memory_resolver):
    """App wired to the in-memory stores; no database access."""
    app = create_app("testing")
    app.extensions["request_resolver"] = memory_resolver
    return app


@pytest.fixture()
def memory_client(memory_app):
    return memory_app.test_client()
