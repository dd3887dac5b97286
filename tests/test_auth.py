"""
Test authentication endpoints.
"""
from conftest import register_user


class TestRegistration:

    def test_register_returns_token_and_user(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "Alice@Example.com", "password": "secret123"},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["token"]
        assert data["expiresAt"]
        assert data["user"]["username"] == "alice"
        assert data["user"]["email"] == "alice@example.com"
        assert "passwordHash" not in data["user"]

    def test_duplicate_username_is_conflict(self, client):
        register_user(client, username="alice")
        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "other@example.com", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["error"] == "conflict"

    def test_duplicate_email_is_conflict(self, client):
        register_user(client, username="alice", email="alice@example.com")
        response = client.post(
            "/api/auth/register",
            json={"username": "alice2", "email": "alice@example.com", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["error"] == "conflict"

    def test_short_password_rejected(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "123"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["error"] == "validation_error"


class TestLogin:

    def test_login_with_username(self, client):
        register_user(client)
        response = client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["username"] == "alice"

    def test_login_with_email(self, client):
        register_user(client)
        response = client.post(
            "/api/auth/login",
            json={"username": "alice@example.com", "password": "secret123"},
        )
        assert response.status_code == 200

    def test_wrong_password(self, client):
        register_user(client)
        response = client.post("/api/auth/login", json={"username": "alice", "password": "wrong-pass"})
        assert response.status_code == 401
        assert response.json()["error"]["error"] == "authentication_error"


class TestCurrentUser:

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 403
        assert response.json()["error"]["error"] == "authorization_error"

    def test_get_me(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "alice"

    def test_update_me(self, client, auth_headers):
        response = client.put("/api/auth/me", json={"username": "alicia"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "alicia"
        assert response.json()["data"]["email"] == "alice@example.com"

    def test_update_me_to_taken_email(self, client, auth_headers):
        register_user(client, username="bob")
        response = client.put("/api/auth/me", json={"email": "bob@example.com"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["error"] == "conflict"


class TestPasswordChange:

    def test_change_password(self, client, auth_headers):
        response = client.put(
            "/api/auth/password",
            json={"currentPassword": "secret123", "newPassword": "newsecret"},
            headers=auth_headers,
        )
        assert response.status_code == 200

        old = client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})
        new = client.post("/api/auth/login", json={"username": "alice", "password": "newsecret"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_wrong_current_password(self, client, auth_headers):
        response = client.put(
            "/api/auth/password",
            json={"currentPassword": "nope-nope", "newPassword": "newsecret"},
            headers=auth_headers,
        )
        assert response.status_code == 401
