"""
Shared pytest fixtures for VetPractice Core tests.

Provides:
- Isolated SQLite owner database per test
- Tenant databases (SQLite files named after the tenant's db_name)
- A fresh tenant connection manager and default connection per test
- FastAPI TestClient with dependency overrides
- Owner token and practice-user session helpers
"""

import os
import tempfile
from pathlib import Path

# Settings are read once at import time, so the environment must be in
# place before anything from vetcore is imported.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="vetcore-tests-"))
os.environ["VETCORE_OWNER_DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'owner.db'}"
os.environ["VETCORE_DEFAULT_DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'default.db'}"
os.environ["VETCORE_TENANT_URL_TEMPLATE"] = f"sqlite:///{_TEST_ROOT}/{{name}}.db"
os.environ["VETCORE_CONFIG_PATH"] = str(_TEST_ROOT / "config.yaml")
os.environ["VETCORE_SECRET_KEY"] = "test-secret-key-for-the-vetcore-suite"
os.environ["VETCORE_LOG_TO_FILE"] = "false"

import uuid
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from vetcore.config import get_settings
from vetcore.config_schema import TenancyConfig
from vetcore.database import OwnerBase, get_owner_db
from vetcore.dependencies import get_manager, get_tenancy_config
from vetcore.main import app
from vetcore.middleware.owner_auth import issue_owner_token
from vetcore.middleware.rate_limit import limiter
from vetcore.models import Practice, Tenant, User
from vetcore.services.config_service import clear_config_cache
from vetcore.services.connection_manager import (
    TenantConnectionManager,
    TenantDatabase,
    build_engine,
    set_default_connection,
)
from vetcore.services.provisioning import prepare_tenant_database
from vetcore.services.tenant_resolver import DEFAULT_TENANT_KEY, TenantDescriptor

from tests.fixtures.factories import (
    create_owner_user,
    create_practice,
    create_session,
    create_tenant,
    create_user,
)

ACME_HOST = "acme.localhost"


# ============================================
# Database Fixtures
# ============================================


@pytest.fixture(scope="function")
def owner_engine(tmp_path):
    """
    Create an isolated owner database engine for each test.

    Uses a file-based database in tmp_path to avoid connection isolation
    issues with in-memory SQLite.
    """
    db_path = tmp_path / "owner.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def owner_db(owner_engine) -> Generator[Session, None, None]:
    """
    Create the owner tables and provide a session.

    Tables are created before and dropped after.
    """
    from vetcore.models import access_log, owner  # noqa: F401

    OwnerBase.metadata.create_all(bind=owner_engine)

    TestingSessionLocal = sessionmaker(bind=owner_engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        OwnerBase.metadata.drop_all(bind=owner_engine)


@pytest.fixture(scope="function")
def tenant_db(tmp_path) -> Generator[Session, None, None]:
    """A prepared tenant database (schema, system roles, categories) not tied to any tenant row."""
    engine = build_engine(f"sqlite:///{tmp_path / 'tenant.db'}")
    prepare_tenant_database(engine)
    db = sessionmaker(bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture(scope="function")
def default_database(tmp_path) -> Generator[TenantDatabase, None, None]:
    """Install a fresh default connection for requests without a tenant."""
    database = TenantDatabase(DEFAULT_TENANT_KEY, build_engine(f"sqlite:///{tmp_path / 'default.db'}"))
    prepare_tenant_database(database.engine)
    set_default_connection(database)
    yield database
    set_default_connection(None)


@pytest.fixture(scope="function")
def manager() -> Generator[TenantConnectionManager, None, None]:
    """Connection manager with the real opener and no retry backoff."""
    connection_manager = TenantConnectionManager(retry_backoff=0, connect_timeout=5)
    yield connection_manager
    connection_manager.close_all()


# ============================================
# Tenant Fixtures
# ============================================


@pytest.fixture
def acme_tenant(owner_db: Session) -> Tenant:
    """Active tenant 'acme' with its own database file."""
    return create_tenant(owner_db, subdomain="acme", db_name=f"acme_{uuid.uuid4().hex[:8]}")


@pytest.fixture
def acme_db(acme_tenant: Tenant) -> Generator[Session, None, None]:
    """Session on acme's database, prepared the way provisioning prepares it."""
    descriptor = TenantDescriptor.from_tenant(acme_tenant, get_settings().tenant_url_template)
    engine = build_engine(descriptor.url)
    prepare_tenant_database(engine)
    db = sessionmaker(bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def practice(acme_db: Session) -> Practice:
    """Practice 5 of acme."""
    return create_practice(acme_db, name="Harbour Vets", id=5)


@pytest.fixture
def other_practice(acme_db: Session) -> Practice:
    """Practice 6 of acme."""
    return create_practice(acme_db, name="Hillside Vets", id=6)


@pytest.fixture
def admin_user(acme_db: Session, practice: Practice) -> User:
    return create_user(acme_db, email="admin@acme.test", role="PRACTICE_ADMINISTRATOR", practice_id=practice.id)


@pytest.fixture
def client_user(acme_db: Session, practice: Practice) -> User:
    return create_user(acme_db, email="client@acme.test", role="CLIENT", practice_id=practice.id)


@pytest.fixture
def session_headers(acme_db: Session) -> Callable[[User], dict[str, str]]:
    """
    Build request headers for a logged-in acme user.

    Usage:
        def test_endpoint(client, session_headers, client_user):
            response = client.get("/api/v1/auth/me", headers=session_headers(client_user))
    """

    def build(user: User, host: str = ACME_HOST) -> dict[str, str]:
        token = create_session(acme_db, user)
        return {"Host": host, "Cookie": f"{get_settings().session_cookie_name}={token}"}

    return build


# ============================================
# Owner Fixtures
# ============================================


@pytest.fixture
def owner_headers(owner_db: Session) -> dict[str, str]:
    """Bearer header for a logged-in owner."""
    owner = create_owner_user(owner_db)
    token, _ = issue_owner_token(owner_db, owner)
    return {"Authorization": f"Bearer {token}"}


# ============================================
# Client Fixtures
# ============================================


@pytest.fixture(scope="function")
def client(
    owner_db: Session,
    manager: TenantConnectionManager,
    default_database: TenantDatabase,
) -> Generator[TestClient, None, None]:
    """
    FastAPI TestClient with owner database, connection manager and tenancy
    config overridden.
    """

    def override_get_owner_db():
        try:
            yield owner_db
        finally:
            pass

    app.dependency_overrides[get_owner_db] = override_get_owner_db
    app.dependency_overrides[get_manager] = lambda: manager
    app.dependency_overrides[get_tenancy_config] = lambda: TenancyConfig()
    limiter.reset()

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def config_path(tmp_path, monkeypatch) -> Path:
    """Point the config service at a fresh config.yaml for this test."""
    path = tmp_path / "config.yaml"
    monkeypatch.setenv("VETCORE_CONFIG_PATH", str(path))
    clear_config_cache()
    yield path
    clear_config_cache()
