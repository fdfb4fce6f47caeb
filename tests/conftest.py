import os

os.environ.setdefault("JWT_SECRET", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app

PASSWORD = "str0ngpass"


@pytest.fixture
def db():
    database = mongomock.MongoClient().devhabit_test
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, username="alice", email="alice@example.com", password=PASSWORD):
    r = client.post(
        "/api/v1/users/register",
        json={"username": username, "email": email, "password": password, "fullname": username.title()},
    )
    assert r.status_code == 201, r.text
    return r.json()["userId"]


def login(client, email="alice@example.com", password=PASSWORD):
    r = client.post("/api/v1/users/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    register(client)
    return bearer(login(client))


@pytest.fixture
def other_headers(client):
    register(client, username="bob", email="bob@example.com")
    return bearer(login(client, email="bob@example.com"))
