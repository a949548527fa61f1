import uuid

import pytest
from conftest import auth, register
from app.database import SessionLocal
from app.errors import ValidationError
from app.models.task import Task
from app.models.user import User, UserToken
from app.services import users
from app.utils.auth import MAX_PASSWORD_BYTES


def test_register_hides_password_and_login_succeeds(client, outbox):
    email = f"test_{uuid.uuid4().hex}@example.com"
    password = "correct_horse_battery_staple"

    r = client.post("/users", json={"name": "  Grace  ", "email": email, "password": password, "age": 36})
    assert r.status_code == 201
    body = r.json()
    assert body["token"]
    user = body["user"]
    assert user["name"] == "Grace"
    assert user["email"] == email
    assert user["age"] == 36
    assert "password" not in user
    assert "tokens" not in user
    assert {"id", "createdAt", "updatedAt"} <= set(user)

    r = client.post("/users/login", json={"email": email, "password": password})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == user["id"]
    assert "password" not in r.json()["user"]

    assert ("welcome", email, "Grace") in outbox


def test_password_is_stored_hashed(client, db):
    user, _ = register(client, password="plain-text-secret")
    stored = db.get(User, user["id"])
    assert stored.password != "plain-text-secret"
    assert stored.password.startswith("$2")


def test_duplicate_email_is_rejected_case_insensitively(client):
    register(client, email="dup@example.com")
    r = client.post("/users", json={"name": "Other", "email": "DUP@Example.com", "password": "OtherPass123!"})
    assert r.status_code == 400
    assert "exists" in r.json()["error"].lower()


def test_register_validation(client):
    cases = [
        {"email": "a@example.com", "password": "Pass1234!"},                   # no name
        {"name": " ", "email": "a@example.com", "password": "Pass1234!"},      # blank name
        {"name": "A", "email": "not_an_email", "password": "Pass1234!"},
        {"name": "A", "email": "a@example.com", "password": "short"},
        {"name": "A", "email": "a@example.com", "password": "PassWord"},
        {"name": "A", "email": "a@example.com", "password": "a" * 100},
        {"name": "A", "email": "a@example.com", "password": "Pass1234!", "age": -1},
    ]
    for payload in cases:
        r = client.post("/users", json=payload)
        assert r.status_code == 400, payload


def test_password_byte_limit(client):
    at_limit = "\u00e9" * (MAX_PASSWORD_BYTES // 2)
    register(client, email="limit@example.com", password=at_limit)

    r = client.post("/users", json={"name": "A", "email": "over@example.com", "password": at_limit + "x"})
    assert r.status_code == 400
    assert str(MAX_PASSWORD_BYTES) in r.json()["error"]


def test_login_failures_do_not_say_which_part_was_wrong(client):
    register(client, email="known@example.com", password="RightPass123")

    wrong_password = client.post("/users/login", json={"email": "known@example.com", "password": "WrongPass123"})
    unknown_email = client.post("/users/login", json={"email": "nobody@example.com", "password": "RightPass123"})
    assert wrong_password.status_code == 400
    assert unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json()


def test_login_is_case_insensitive_on_email(client):
    register(client, email="mixed@example.com", password="RightPass123")
    r = client.post("/users/login", json={"email": "Mixed@Example.com", "password": "RightPass123"})
    assert r.status_code == 200


def test_token_lifecycle(client):
    user, first = register(client, email="sessions@example.com", password="Sessions123")
    r = client.post("/users/login", json={"email": "sessions@example.com", "password": "Sessions123"})
    second = r.json()["token"]
    assert first != second

    assert client.get("/users/me", headers=auth(first)).status_code == 200
    assert client.get("/users/me", headers=auth(second)).status_code == 200

    assert client.post("/users/logout", headers=auth(first)).status_code == 200
    assert client.get("/users/me", headers=auth(first)).status_code == 401
    assert client.get("/users/me", headers=auth(second)).status_code == 200

    third = client.post("/users/login", json={"email": "sessions@example.com", "password": "Sessions123"}).json()["token"]
    assert client.post("/users/logoutAll", headers=auth(second)).status_code == 200
    assert client.get("/users/me", headers=auth(second)).status_code == 401
    assert client.get("/users/me", headers=auth(third)).status_code == 401


def test_token_query_parameter_is_accepted(client):
    user, token = register(client)
    r = client.get(f"/users/me?token={token}")
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]


def test_missing_or_invalid_token(client):
    assert client.get("/users/me").status_code == 401
    r = client.get("/users/me", headers=auth("invalid"))
    assert r.status_code == 401
    assert r.json() == {"error": "Please authenticate."}


def test_token_of_deleted_user_is_rejected(client):
    _, token = register(client)
    assert client.delete("/users/me", headers=auth(token)).status_code == 200
    assert client.get("/users/me", headers=auth(token)).status_code == 401


def test_list_users(client):
    register(client, email="one@example.com")
    _, token = register(client, email="two@example.com")
    r = client.get("/users", headers=auth(token))
    assert r.status_code == 200
    emails = {u["email"] for u in r.json()}
    assert emails == {"one@example.com", "two@example.com"}
    assert all("password" not in u for u in r.json())


def test_update_me_rejects_unknown_fields_without_changing_anything(client):
    _, token = register(client, name="Before")
    r = client.patch("/users/me", json={"name": "After", "tokens": []}, headers=auth(token))
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid update"}

    me = client.get("/users/me", headers=auth(token)).json()
    assert me["name"] == "Before"


def test_update_me_fields(client):
    _, token = register(client, name="Before", age=20)
    r = client.patch("/users/me", json={"name": " After ", "age": 21, "email": "NEW@example.com"}, headers=auth(token))
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "After"
    assert body["age"] == 21
    assert body["email"] == "new@example.com"


def test_update_me_invalid_values(client):
    _, token = register(client)
    for payload in ({"age": -5}, {"email": "nope"}, {"password": "password"}, {"name": None}):
        r = client.patch("/users/me", json=payload, headers=auth(token))
        assert r.status_code == 400, payload


def test_update_me_email_taken(client):
    register(client, email="taken@example.com")
    _, token = register(client, email="mine@example.com")
    r = client.patch("/users/me", json={"email": "taken@example.com"}, headers=auth(token))
    assert r.status_code == 400


def test_update_password_rehashes(client, db):
    user, token = register(client, email="rehash@example.com", password="OldPass123")
    r = client.patch("/users/me", json={"password": "NewPass456"}, headers=auth(token))
    assert r.status_code == 200
    assert "password" not in r.json()

    stored = db.get(User, user["id"])
    assert stored.password.startswith("$2")
    assert client.post("/users/login", json={"email": "rehash@example.com", "password": "OldPass123"}).status_code == 400
    assert client.post("/users/login", json={"email": "rehash@example.com", "password": "NewPass456"}).status_code == 200


def test_concurrent_profile_update_is_rejected(client):
    user, _ = register(client, name="Original", email="racing@example.com")

    first, second = SessionLocal(), SessionLocal()
    try:
        mine = first.get(User, user["id"])
        theirs = second.get(User, user["id"])

        users.update_user(second, theirs, {"name": "Theirs"})

        with pytest.raises(ValidationError):
            users.update_user(first, mine, {"name": "Mine"})
    finally:
        first.close()
        second.close()

    check = SessionLocal()
    try:
        assert check.get(User, user["id"]).name == "Theirs"
    finally:
        check.close()


def test_delete_me_removes_everything_and_sends_cancel_email(client, db, outbox):
    user, token = register(client, name="Leaving", email="leaving@example.com")
    client.post("/tasks", json={"title": "left behind"}, headers=auth(token))

    r = client.delete("/users/me", headers=auth(token))
    assert r.status_code == 200
    assert r.json()["email"] == "leaving@example.com"
    assert "password" not in r.json()

    assert ("cancel", "leaving@example.com", "Leaving") in outbox
    assert db.get(User, user["id"]) is None
    assert db.query(Task).filter(Task.owner_id == user["id"]).count() == 0
    assert db.query(UserToken).filter(UserToken.user_id == user["id"]).count() == 0
