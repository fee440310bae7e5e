import os
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret")

from certportal.app import create_app, db
from certportal.backend.memory import InMemoryBackend
from certportal.backend.sqlalchemy_backend import SQLAlchemyBackend

CSRF_TOKEN = "test-csrf-token"
ADMIN_EMAIL = "root@admin.com"
ADMIN_PASSWORD = "secret123"


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "slow" in item.keywords:
            continue
        item.add_marker("smoke")


@pytest.fixture
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    application = create_app({"TESTING": True})
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def csrf_token(client):
    with client.session_transaction() as sess:
        sess["_csrf_token"] = CSRF_TOKEN
    return CSRF_TOKEN


@pytest.fixture
def admin_client(client, csrf_token):
    resp = client.post(
        "/login",
        data={
            "mode": "signup",
            "email": ADMIN_EMAIL,
            "password": ADMIN_PASSWORD,
            "csrf_token": csrf_token,
        },
    )
    assert resp.status_code == 302
    return client


@pytest.fixture
def store(app):
    """SQLAlchemy backend without a browser session, for seeding rows."""
    return SQLAlchemyBackend(db, {})


@pytest.fixture
def memory_backend():
    return InMemoryBackend()
