import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import types

import pytest
from vibeqa import create_app
from vibeqa.extensions import db, limiter, media_store
from vibeqa.models import Org, Project

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 56
WEBM_BYTES = b"\x1a\x45\xdf\xa3" + b"\x00" * 60


@pytest.fixture(scope="session")
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "MAIL_SUPPRESS_SEND": True,
        "APP_BASE_URL": "http://example.test",
        "NOTIFY_ASYNC": False,
        "NOTIFY_WEBHOOK_URL": "",
        "APP_ENV": "testing",
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


@pytest.fixture(autouse=True)
def _limiter_reset(app):
    # Memory storage outlives a test; every test client shares 127.0.0.1
    with app.app_context():
        limiter.reset()
    yield


class FakeStore:
    """In-memory stand-in for MinIO; set ``fail_uploads`` to make every put fail."""

    def __init__(self):
        self.objects = {}
        self.fail_uploads = False

    def upload(self, key, data, content_type):
        if self.fail_uploads:
            raise ConnectionError("object store unreachable")
        self.objects[key] = (data, content_type)

    def url_for(self, key, ttl_seconds=0):
        return f"https://media.example.test/{key}"


@pytest.fixture(autouse=True)
def fake_store(monkeypatch):
    # Never talk to a real bucket from tests
    store = FakeStore()
    monkeypatch.setattr(media_store, "upload", store.upload)
    monkeypatch.setattr(media_store, "url_for", store.url_for)
    return store


@pytest.fixture()
def make_project(app):
    """Create an org + project; returns a plain namespace (id, org_id, api_key)."""

    def _make(domains=None, active=True, org_active=True, notify_email=None,
              feedback_limit=None, storage_limit_bytes=None, name="Checkout Widget"):
        with app.app_context():
            org = Org(
                name="Acme",
                is_active=org_active,
                notify_email=notify_email,
                feedback_limit_monthly=feedback_limit,
                storage_limit_bytes=storage_limit_bytes,
            )
            db.session.add(org)
            db.session.flush()
            project = Project(org_id=org.id, name=name, allowed_domains=list(domains or []), is_active=active)
            db.session.add(project)
            db.session.commit()
            return types.SimpleNamespace(id=project.id, org_id=org.id, api_key=project.api_key, name=name)

    return _make
