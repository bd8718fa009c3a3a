import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import issue_token
from config import Settings
from database import Store
from main import create_app

SECRET = "test-secret-that-is-long-enough-for-hs256"


@pytest.fixture
def settings():
    return Settings(database_name="foodAll_test", access_token_secret=SECRET)


@pytest.fixture
def store():
    store = Store(mongomock.MongoClient()["foodAll_test"])
    store.ensure_indexes()
    return store


@pytest.fixture
def client(store, settings):
    return TestClient(create_app(store=store, settings=settings))


@pytest.fixture
def make_user(store):
    def _make(email, role="user"):
        store.users.insert_one({"email": email, "role": role})
        return email
    return _make


@pytest.fixture
def auth_header(settings):
    def _header(email):
        return {"Authorization": f"Bearer {issue_token({'email': email}, settings)}"}
    return _header


@pytest.fixture
def admin_headers(make_user, auth_header):
    return auth_header(make_user("admin@example.com", role="admin"))
