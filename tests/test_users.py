from datetime import timedelta

import pytest
from bson import ObjectId

from auth import add_session
from conftest import PASSWORD, bearer, login, register
from security import create_access_token

UNAUTHORIZED = {"error": "Please authenticate."}


def test_register_stores_hashed_password(client, db):
    user_id = register(client)
    user = db.users.find_one({"_id": ObjectId(user_id)})
    assert user["username"] == "alice"
    assert user["fullname"] == "Alice"
    assert user["password"] != PASSWORD
    assert user["password"].startswith("$2")
    assert user["tokens"] == []


def test_register_normalizes_email(client, db):
    r = client.post(
        "/api/v1/users/register",
        json={"username": "carol", "email": " Carol@Example.com", "password": PASSWORD},
    )
    assert r.status_code == 201
    assert db.users.find_one({"email": "carol@example.com"}) is not None


def test_register_duplicate_email(client):
    register(client)
    r = client.post(
        "/api/v1/users/register",
        json={"username": "alice2", "email": "ALICE@example.com", "password": PASSWORD},
    )
    assert r.status_code == 400
    assert r.json() == {"message": "User already exists"}


def test_register_duplicate_username(client):
    register(client)
    r = client.post(
        "/api/v1/users/register",
        json={"username": "alice", "email": "other@example.com", "password": PASSWORD},
    )
    assert r.status_code == 400


def test_register_validation_errors(client):
    r = client.post(
        "/api/v1/users/register",
        json={"username": "al", "email": "nope", "password": "123"},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["message"] == "Validation failed"
    assert {e["field"] for e in body["errors"]} == {"username", "email", "password"}


def test_login_wrong_password(client):
    register(client)
    r = client.post("/api/v1/users/login", json={"email": "alice@example.com", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json() == {"message": "Invalid credentials"}


def test_login_unknown_email_same_response(client):
    r = client.post("/api/v1/users/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert r.status_code == 401
    assert r.json() == {"message": "Invalid credentials"}


def test_login_appends_one_token(client, db):
    user_id = register(client)
    first = login(client)
    second = login(client)
    assert first and second and first != second
    tokens = db.users.find_one({"_id": ObjectId(user_id)})["tokens"]
    assert tokens == [first, second]


def test_protected_route_requires_header(client):
    r = client.post("/api/v1/users/logout")
    assert r.status_code == 401
    assert r.json() == UNAUTHORIZED


def test_malformed_and_tampered_tokens(client):
    register(client)
    token = login(client)
    assert client.post("/api/v1/users/logout", headers={"Authorization": token}).status_code == 401
    r = client.post("/api/v1/users/logout", headers=bearer(token[:-2] + "xx"))
    assert r.status_code == 401
    assert r.json() == UNAUTHORIZED


def test_expired_token_rejected(client, db):
    user_id = ObjectId(register(client))
    token = create_access_token(str(user_id), expires_delta=timedelta(seconds=-10))
    add_session(db, user_id, token)
    r = client.get("/api/v1/goals", headers=bearer(token))
    assert r.status_code == 401
    assert r.json() == UNAUTHORIZED


def test_token_for_deleted_user_rejected(client):
    user_id = register(client)
    token = login(client)
    assert client.delete(f"/api/v1/users/delete/{user_id}").status_code == 200
    assert client.get("/api/v1/goals", headers=bearer(token)).status_code == 401


def test_logout_revokes_only_that_token(client):
    register(client)
    first = login(client)
    second = login(client)
    r = client.post("/api/v1/users/logout", headers=bearer(first))
    assert r.status_code == 200
    assert r.json() == {"message": "Logged out successfully"}
    assert client.get("/api/v1/goals", headers=bearer(first)).status_code == 401
    assert client.get("/api/v1/goals", headers=bearer(second)).status_code == 200


def test_logout_all_revokes_every_token(client, db):
    user_id = register(client)
    tokens = [login(client) for _ in range(3)]
    r = client.post("/api/v1/users/logoutAll", headers=bearer(tokens[0]))
    assert r.status_code == 200
    for token in tokens:
        assert client.get("/api/v1/goals", headers=bearer(token)).status_code == 401
    assert db.users.find_one({"_id": ObjectId(user_id)})["tokens"] == []

    # a fresh login works again
    assert client.get("/api/v1/goals", headers=bearer(login(client))).status_code == 200


def test_update_user(client, db):
    user_id = register(client)
    r = client.put(
        f"/api/v1/users/update/{user_id}",
        json={"fullname": "Alice Liddell", "password": "n3wpassword"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "User updated successfully"
    assert body["user"]["fullname"] == "Alice Liddell"
    assert "password" not in body["user"]
    assert "tokens" not in body["user"]

    stored = db.users.find_one({"_id": ObjectId(user_id)})
    assert stored["password"] != "n3wpassword"
    login(client, password="n3wpassword")


def test_update_user_rejects_unknown_fields(client):
    user_id = register(client)
    r = client.put(f"/api/v1/users/update/{user_id}", json={"tokens": []})
    assert r.status_code == 400


def test_update_user_bad_email(client):
    user_id = register(client)
    r = client.put(f"/api/v1/users/update/{user_id}", json={"email": "broken"})
    assert r.status_code == 400


@pytest.mark.parametrize("field", ["password", "username", "email"])
def test_update_user_null_required_field(client, db, field):
    user_id = register(client)
    before = db.users.find_one({"_id": ObjectId(user_id)})
    r = client.put(f"/api/v1/users/update/{user_id}", json={field: None})
    assert r.status_code == 400
    assert [e["field"] for e in r.json()["errors"]] == [field]
    assert db.users.find_one({"_id": ObjectId(user_id)})[field] == before[field]


def test_update_user_duplicate_username(client):
    register(client)
    bob_id = register(client, username="bob", email="bob@example.com")
    r = client.put(f"/api/v1/users/update/{bob_id}", json={"username": "alice"})
    assert r.status_code == 400


def test_update_user_duplicate_email(client):
    register(client)
    bob_id = register(client, username="bob", email="bob@example.com")
    r = client.put(f"/api/v1/users/update/{bob_id}", json={"email": "Alice@example.com"})
    assert r.status_code == 400


def test_update_missing_user(client):
    r = client.put(f"/api/v1/users/update/{ObjectId()}", json={"fullname": "X"})
    assert r.status_code == 404
    assert client.put("/api/v1/users/update/not-an-id", json={"fullname": "X"}).status_code == 404


def test_delete_missing_user(client):
    assert client.delete(f"/api/v1/users/delete/{ObjectId()}").status_code == 404
    assert client.delete("/api/v1/users/delete/not-an-id").status_code == 404


def test_delete_user_removes_goals_and_libraries(client, db, auth_headers):
    goal = client.post(
        "/api/v1/goals",
        json={"title": "Ship it", "category": "Project Development"},
        headers=auth_headers,
    ).json()
    client.post(
        f"/api/v1/libraries/{goal['id']}/resources",
        json={"type": "Article", "title": "Docs", "url": "https://example.com"},
        headers=auth_headers,
    )
    user_id = goal["user_id"]

    r = client.delete(f"/api/v1/users/delete/{user_id}")
    assert r.status_code == 200
    assert r.json() == {"message": "User deleted successfully"}
    assert db.goals.count_documents({}) == 0
    assert db.libraries.count_documents({}) == 0
