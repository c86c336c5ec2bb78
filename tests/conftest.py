# tests/conftest.py
import os, sys, tempfile
# put the project root first on sys.path so the top-level modules import
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# config is read at import time, so point it at a scratch directory first
_DATA_DIR = tempfile.mkdtemp(prefix="warehouse-tests-")
os.environ.setdefault("WAREHOUSE_DATA_DIR", _DATA_DIR)
os.environ.setdefault("WAREHOUSE_DATABASE_URL", "sqlite:///" + os.path.join(_DATA_DIR, "test.db"))

import pytest

from app import app as flask_app
from models import db

ADMIN = ("szymon@example.com", "admin123")
USER = ("waldek@example.com", "user123")


@pytest.fixture
def app():
    flask_app.config["TESTING"] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, email, password):
    return client.post("/api/auth/login", json={"email": email, "password": password})


@pytest.fixture
def admin_headers(client):
    token = login(client, *ADMIN).get_json()["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(client):
    token = login(client, *USER).get_json()["token"]
    return {"Authorization": f"Bearer {token}"}
