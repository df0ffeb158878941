"""Shared test fixtures for the Sedia Arcive backend test suite.

Tests run against a throwaway SQLite database in a temporary directory
unless TEST_DATABASE_URL points somewhere else. Every test starts from empty
tables. File bytes go to a per-test temporary bucket.

The app creates its tables on import, so no explicit create_all is needed here.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="arcive-tests-")

# Configure the app before any app imports.
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(_TMP_DIR, 'arcive_test.db')}",
)
os.environ["STORAGE_ROOT"] = os.path.join(_TMP_DIR, "storage")
os.environ["SESSION_SECRET_KEY"] = "test-secret-key-for-sessions"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["LOG_FORMAT"] = "text"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient

from arcive.database import Base, get_db, SessionLocal
from arcive.main import app
from arcive.core.config import settings
from arcive.core.token_factory import create_session_token
from arcive.middleware.request_context import _rate_buckets
from arcive.models import User
from arcive.services import permission_service
from arcive.services.storage_service import LocalObjectStore, get_object_store


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty every table before each test for isolation.

    Runs before the test (not after) so test failures leave data
    available for debugging.
    """
    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def store(tmp_path) -> LocalObjectStore:
    """Object store rooted in the test's temporary directory."""
    return LocalObjectStore(str(tmp_path / "bucket"), settings.session_secret_key, ttl_seconds=600)


@pytest.fixture()
def client(db, store):
    """FastAPI TestClient with the DB session and object store overridden."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_object_store] = lambda: store
    _rate_buckets.clear()  # Reset rate limiter so tests don't hit 429
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    """Factory creating a user plus permission row without going through bcrypt."""

    def _make(
        email: str,
        name: str = "",
        upload_enabled: bool = True,
        role: str = "user",
        storage_limit: int = None,
        max_file_size: int = None,
    ) -> User:
        user = User(email=email, name=name or email.split("@")[0])
        db.add(user)
        db.commit()
        db.refresh(user)

        permission = permission_service.get_or_create_permission(db, user.id)
        permission.upload_enabled = upload_enabled
        permission.role = role
        if storage_limit is not None:
            permission.storage_limit = storage_limit
        if max_file_size is not None:
            permission.max_file_size = max_file_size
        db.commit()
        return user

    return _make


@pytest.fixture()
def headers_for():
    """Bearer headers for a user id."""

    def _headers(user: User) -> dict:
        token = create_session_token(user.id, settings.session_secret_key)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def alice(make_user) -> User:
    return make_user("alice@example.com", "Alice")


@pytest.fixture()
def bob(make_user) -> User:
    return make_user("bob@example.com", "Bob")


@pytest.fixture()
def alice_headers(alice, headers_for) -> dict:
    return headers_for(alice)


@pytest.fixture()
def bob_headers(bob, headers_for) -> dict:
    return headers_for(bob)


@pytest.fixture()
def upload(client):
    """Upload helper: returns the JSON ``file`` object of a successful upload."""

    def _upload(headers: dict, name: str = "report.pdf", data: bytes = b"hello world",
                mime: str = "application/pdf", folder_id: str = None) -> dict:
        form = {"folderId": folder_id} if folder_id else {}
        resp = client.post(
            "/api/files/upload",
            files={"file": (name, data, mime)},
            data=form,
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["file"]

    return _upload
