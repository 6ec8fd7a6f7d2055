"""Pytest configuration and shared fixtures."""

import os

# Must be set before backoffice reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.api.deps import get_db, get_storage
from backoffice.api.main import app
from backoffice.core.security import create_access_token
from backoffice.db.base import Base
from backoffice.db.models import Role
from backoffice.db.seed import seed_all
from backoffice.db.session import enable_sqlite_foreign_keys
from backoffice.services.storage import FileStorage


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Session with the default roles, permissions and grants seeded."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    seed_all(session, with_admin=False)
    yield session
    session.close()


@pytest.fixture
def roles(db_session):
    """Seeded roles keyed by name."""
    return {role.name: role for role in db_session.query(Role).all()}


@pytest.fixture
def storage(tmp_path):
    return FileStorage(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def client(db_session, storage):
    """TestClient whose requests run on the test session and upload dir."""

    def override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build an Authorization header for an identity."""

    def _headers(identity) -> dict:
        return {"Authorization": f"Bearer {create_access_token(identity)}"}

    return _headers
