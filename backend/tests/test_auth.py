"""Tests for registration, login, sessions and the auth dependency."""

from arcive.core.config import settings
from arcive.core.token_factory import create_session_token, decode_session_token


class TestSessionTokens:

    def test_roundtrip(self):
        token = create_session_token("user-1", "secret")
        payload = decode_session_token(token, "secret")
        assert payload is not None
        assert payload.sub == "user-1"

    def test_wrong_secret_rejected(self):
        token = create_session_token("user-1", "secret")
        assert decode_session_token(token, "other") is None

    def test_expired_rejected(self):
        token = create_session_token("user-1", "secret", expires_hours=-1)
        assert decode_session_token(token, "secret") is None

    def test_expiry_boundary(self):
        token = create_session_token("user-1", "secret", expires_hours=1, now=1000)
        assert decode_session_token(token, "secret", now=1000 + 3600) is not None
        assert decode_session_token(token, "secret", now=1000 + 3601) is None

    def test_garbage_rejected(self):
        assert decode_session_token("not.a.token", "secret") is None
        assert decode_session_token("", "secret") is None


class TestRegisterAndLogin:

    def test_first_user_becomes_admin_with_uploads(self, client):
        resp = client.post("/api/auth/register", json={
            "email": "Admin@Example.com", "password": "password123", "name": "Admin",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["user"]["email"] == "admin@example.com"
        assert data["user"]["role"] == "admin"
        assert settings.session_cookie_name in resp.cookies

        perm = client.get("/api/permission", headers={"Authorization": f"Bearer {data['token']}"})
        assert perm.json()["uploadEnabled"] is True

    def test_second_user_is_regular_without_uploads(self, client):
        client.post("/api/auth/register", json={"email": "a@example.com", "password": "password123"})
        client.cookies.clear()
        resp = client.post("/api/auth/register", json={"email": "b@example.com", "password": "password123"})
        data = resp.json()
        assert data["user"]["role"] == "user"

        perm = client.get("/api/permission", headers={"Authorization": f"Bearer {data['token']}"})
        assert perm.json()["uploadEnabled"] is False

    def test_duplicate_email_rejected(self, client):
        client.post("/api/auth/register", json={"email": "a@example.com", "password": "password123"})
        resp = client.post("/api/auth/register", json={"email": "A@example.com", "password": "password123"})
        assert resp.status_code == 400

    def test_short_password_rejected(self, client):
        resp = client.post("/api/auth/register", json={"email": "a@example.com", "password": "short"})
        assert resp.status_code == 400
        assert resp.json()["details"]["field"] == "password"

    def test_login_sets_cookie_and_me_works(self, client):
        client.post("/api/auth/register", json={"email": "a@example.com", "password": "password123", "name": "A"})
        client.cookies.clear()

        resp = client.post("/api/auth/login", json={"email": "a@example.com", "password": "password123"})
        assert resp.status_code == 200

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["email"] == "a@example.com"

    def test_login_wrong_password(self, client):
        client.post("/api/auth/register", json={"email": "a@example.com", "password": "password123"})
        resp = client.post("/api/auth/login", json={"email": "a@example.com", "password": "wrong-password"})
        assert resp.status_code == 401

    def test_logout_clears_session(self, client):
        client.post("/api/auth/register", json={"email": "a@example.com", "password": "password123"})
        assert client.get("/api/auth/me").status_code == 200

        client.post("/api/auth/logout")
        assert client.get("/api/auth/me").status_code == 401


class TestRequireAuth:

    def test_missing_token(self, client):
        assert client.get("/api/folders").status_code == 401

    def test_invalid_token(self, client):
        resp = client.get("/api/folders", headers={"Authorization": "Bearer nonsense"})
        assert resp.status_code == 401

    def test_token_for_deleted_user(self, client):
        token = create_session_token("ghost", settings.session_secret_key)
        resp = client.get("/api/folders", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_valid_token(self, client, alice_headers):
        assert client.get("/api/folders", headers=alice_headers).status_code == 200
