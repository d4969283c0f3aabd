"""
Pytest configuration and fixtures.
Adds the project root to sys.path and backs the API with an in-process Mongo.
"""

import sys
from pathlib import Path

import mongomock
import pytest
from fastapi.testclient import TestClient

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from database import get_db  # noqa: E402
from main import app  # noqa: E402
from seed import seed_database  # noqa: E402


@pytest.fixture
def db():
    database = mongomock.MongoClient().get_database("joestar_test")
    seed_database(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def register(client, name="Alice", email="alice@gmail.com", password="secret123", **extra):
    resp = client.post("/api/auth/register", json={"name": name, "email": email, "password": password, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    return register(client)


@pytest.fixture
def alice_headers(alice):
    return auth_header(alice["token"])
