"""Tests for registration, login and sessions."""
from __future__ import annotations

import pytest


@pytest.fixture
def registered(client):
    response = client.post(
        "/api/v1/users/register",
        json={"username": "Alice", "email": "alice@mail.com", "fullName": "Alice A", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    return response.json()["data"]


def test_register_hides_password(registered, db):
    assert registered["username"] == "alice"
    assert "password" not in registered
    stored = db["user"].find_one({"username": "alice"})
    assert stored["password"] != "s3cret-pass"


def test_register_duplicate_username(client, registered):
    response = client.post(
        "/api/v1/users/register",
        json={"username": "alice", "email": "other@mail.com", "fullName": "Other", "password": "s3cret-pass"},
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Username already in use"


def test_register_validation_error_envelope(client):
    response = client.post(
        "/api/v1/users/register",
        json={"username": "bob", "email": "bob@mail.com", "fullName": "Bob", "password": "short"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert any(err["field"].endswith("password") for err in body["errors"])


def test_login_and_current_user(client, registered):
    login = client.post("/api/v1/users/login", json={"username": "alice", "password": "s3cret-pass"})
    assert login.status_code == 200
    token = login.json()["data"]["accessToken"]
    assert "accessToken" in login.headers.get("set-cookie", "")

    me = client.get("/api/v1/users/current-user", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "alice@mail.com"
    assert "sessionToken" not in me.json()["data"]


def test_login_with_wrong_password(client, registered):
    response = client.post("/api/v1/users/login", json={"email": "alice@mail.com", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_logout_ends_session(client, registered):
    token = client.post(
        "/api/v1/users/login", json={"username": "alice", "password": "s3cret-pass"}
    ).json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.post("/api/v1/users/logout", headers=headers).status_code == 200
    assert client.get("/api/v1/users/current-user", headers=headers).status_code == 401


def test_update_account(client, db, make_user):
    user, headers = make_user("carol")
    response = client.patch(
        "/api/v1/users/update-account",
        json={"fullName": "Carol C", "email": "carol.c@mail.com"},
        headers=headers,
    )
    assert response.status_code == 200
    assert db["user"].find_one({"_id": user["_id"]})["fullName"] == "Carol C"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["errors"] == []


def test_register_rejects_overlong_full_name(client, db):
    response = client.post(
        "/api/v1/users/register",
        json={"username": "carol", "email": "carol@mail.com", "fullName": "x" * 81, "password": "s3cret-pass"},
    )
    assert response.status_code == 400
    assert any(err["field"].endswith("fullName") for err in response.json()["errors"])
    assert db["user"].count_documents({}) == 0


def test_update_account_rejects_overlong_full_name(client, db, make_user):
    user, headers = make_user("dave")
    response = client.patch(
        "/api/v1/users/update-account",
        json={"fullName": "x" * 81, "email": "dave@mail.com"},
        headers=headers,
    )
    assert response.status_code == 400
    assert db["user"].find_one({"_id": user["_id"]})["fullName"] == "Dave"
