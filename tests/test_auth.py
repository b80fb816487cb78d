from datetime import timedelta

import mongomock
import pytest
from flask_jwt_extended import create_access_token, decode_token

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, RecordingImageStore
from neonflora import create_app


def test_signup_creates_admin(client, db):
    response = client.post(
        "/api/admin/signup",
        json={"username": "lumen", "email": "Lumen@Example.com", "password": "pw-123"},
    )

    assert response.status_code == 201
    stored = db.admins.find_one({"email": "lumen@example.com"})
    assert stored is not None
    assert stored["password"] != "pw-123"
    assert "password" not in response.get_json()["user"]


def test_signup_rejects_duplicate_email(client):
    payload = {"username": "a", "email": "dup@example.com", "password": "pw"}
    assert client.post("/api/admin/signup", json=payload).status_code == 201

    response = client.post(
        "/api/admin/signup", json={**payload, "username": "b"}
    )
    assert response.status_code == 409
    assert response.get_json()["message"] == "Admin already exists"


def test_signup_without_username_derives_a_unique_one(client):
    first = client.post(
        "/api/admin/signup", json={"email": "glow@one.example", "password": "pw-1"}
    )
    second = client.post(
        "/api/admin/signup", json={"email": "glow@two.example", "password": "pw-2"}
    )

    first_name = first.get_json()["user"]["username"]
    second_name = second.get_json()["user"]["username"]
    assert first.status_code == second.status_code == 201
    assert first_name == "glow"
    assert second_name.startswith("glow-")

    login = client.post(
        "/api/admin/login", json={"username": second_name, "password": "pw-2"}
    )
    assert login.status_code == 200
    assert login.get_json()["user"]["email"] == "glow@two.example"


def test_signup_requires_email_and_password(client):
    response = client.post("/api/admin/signup", json={"email": "x@example.com"})
    assert response.status_code == 400


def test_login_issues_admin_token(app, client, admin_token):
    with app.app_context():
        claims = decode_token(admin_token)

    assert claims["id"] == claims["sub"]
    assert claims["role"] == "admin"
    assert claims["type"] == "admin"
    assert claims["email"] == ADMIN_EMAIL
    assert claims["username"] == "admin"
    assert claims["exp"] - claims["iat"] == int(timedelta(hours=24).total_seconds())


def test_login_by_username(client, admin_token):
    response = client.post(
        "/api/admin/login", json={"username": "admin", "password": ADMIN_PASSWORD}
    )
    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["token"]


def test_login_with_wrong_password_is_rejected(client, admin_token):
    response = client.post(
        "/api/admin/login", json={"email": ADMIN_EMAIL, "password": "nope"}
    )
    body = response.get_json()
    assert response.status_code == 401
    assert "token" not in body
    assert body["message"] == "Invalid credentials"


def test_login_with_unknown_account(client):
    response = client.post(
        "/api/admin/login", json={"email": "ghost@example.com", "password": "pw"}
    )
    assert response.status_code == 401


def test_login_requires_identifier(client):
    response = client.post("/api/admin/login", json={"password": "pw"})
    assert response.status_code == 400


def test_verify_accepts_admin_token(client, auth_headers):
    response = client.get("/api/admin/verify", headers=auth_headers)
    body = response.get_json()
    assert response.status_code == 200
    assert body["valid"] is True
    assert body["user"]["email"] == ADMIN_EMAIL
    assert body["user"]["role"] == "admin"


def test_verify_without_token(client):
    response = client.get("/api/admin/verify")
    assert response.status_code == 401
    assert response.get_json()["message"] == "No token provided"


def test_verify_with_garbage_token(client):
    response = client.get(
        "/api/admin/verify", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401
    assert "message" in response.get_json()


def test_verify_rejects_plain_user_token(app, client):
    with app.app_context():
        token = create_access_token(
            identity="shopper", additional_claims={"role": "user", "type": "user"}
        )

    response = client.get(
        "/api/admin/verify", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 403
    assert response.get_json()["message"] == "Not an admin token"


def test_verify_rejects_expired_token(app, client):
    with app.app_context():
        token = create_access_token(
            identity="someone",
            additional_claims={"role": "admin", "type": "admin"},
            expires_delta=timedelta(seconds=-10),
        )

    response = client.get(
        "/api/admin/verify", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401
    assert response.get_json()["message"] == "Token has expired"


def test_mutation_with_non_admin_token_is_forbidden(app, client):
    with app.app_context():
        token = create_access_token(identity="shopper", additional_claims={"role": "user"})

    response = client.post(
        "/api/customization-options",
        json={"productType": "neon"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403


def test_missing_signing_secret_is_fatal(monkeypatch, tmp_path):
    monkeypatch.delenv("JWT_SECRET_KEY", raising=False)

    with pytest.raises(RuntimeError):
        create_app(
            {"UPLOAD_STAGING_FOLDER": str(tmp_path)},
            db=mongomock.MongoClient()["neonflora_test"],
            image_store=RecordingImageStore(),
        )
