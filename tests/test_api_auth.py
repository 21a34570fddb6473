"""
tests/test_api_auth.py -- Integration tests for the auth routes.

These tests exercise the full stack: FastAPI routing -> request validation ->
UserStore / PasswordHasher / TokenService -> error envelope rendering.

Coverage:
  - register: 201 happy path, hash never returned, duplicate -> 409 with no
    second record, blank username / oversize password -> 422
  - login: token round trip, identical 401 for unknown user and wrong password
  - me: 401 without a token, 403 for garbage and expired tokens
  - logout: stateless acknowledgement
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient


class TestRegister:
    def test_register_returns_public_user(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/register", json={"username": "reg-user", "password": "pw1"})
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["username"] == "reg-user"
        assert isinstance(data["id"], int)
        assert "password" not in resp.text
        assert "hashed_password" not in data

    def test_duplicate_username_is_409_and_creates_nothing(self, api_client: TestClient) -> None:
        body = {"username": "dup-user", "password": "pw1"}
        first = api_client.post("/api/v1/auth/register", json=body)
        assert first.status_code == 201

        second = api_client.post("/api/v1/auth/register", json={"username": "dup-user", "password": "other"})
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "duplicate_username"

        # The original password still works -- the second call wrote nothing
        login = api_client.post("/api/v1/auth/login", json=body)
        assert login.status_code == 200
        assert login.json()["user_id"] == first.json()["id"]

    def test_blank_username_is_422(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/register", json={"username": "   ", "password": "pw1"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_password_over_72_bytes_is_422(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/register", json={"username": "long-pw", "password": "é" * 40})
        assert resp.status_code == 422


class TestLogin:
    def test_login_token_recovers_same_identity(self, api_client: TestClient) -> None:
        reg = api_client.post("/api/v1/auth/register", json={"username": "login-user", "password": "pw1"})
        user_id = reg.json()["id"]

        resp = api_client.post("/api/v1/auth/login", json={"username": "login-user", "password": "pw1"})
        assert resp.status_code == 200, resp.text
        assert resp.headers["cache-control"] == "no-store"
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 86400

        identity = api_client.app.state.tokens.verify(data["access_token"])
        assert identity.user_id == user_id
        assert identity.username == "login-user"

    def test_unknown_user_and_wrong_password_look_the_same(self, api_client: TestClient) -> None:
        api_client.post("/api/v1/auth/register", json={"username": "known-user", "password": "pw1"})
        unknown = api_client.post("/api/v1/auth/login", json={"username": "ghost", "password": "pw1"})
        wrong = api_client.post("/api/v1/auth/login", json={"username": "known-user", "password": "nope"})
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert unknown.json()["error"]["code"] == "bad_credentials"


class TestMe:
    def test_me_returns_token_claims(self, api_client: TestClient, make_user) -> None:
        user_id, headers = make_user("me-user")
        resp = api_client.get("/api/v1/auth/me", headers=headers)
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["user_id"] == user_id
        assert data["username"] == "me-user"
        assert data["expires_at"]

    def test_me_without_token_is_401(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "missing_credential"

    def test_me_with_garbage_token_is_403(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "invalid_token"

    def test_me_with_expired_token_is_403(self, api_client: TestClient, make_user) -> None:
        user_id, _ = make_user("expired-user")
        past = datetime.now(timezone.utc) - timedelta(days=1, seconds=1)
        token = api_client.app.state.tokens.issue(user_id, "expired-user", now=past)
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "token_expired"


def test_logout_is_stateless(api_client: TestClient, make_user) -> None:
    _, headers = make_user("logout-user")
    resp = api_client.post("/api/v1/auth/logout", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Logged out."}
    # No server session: the token keeps working until it expires
    assert api_client.get("/api/v1/auth/me", headers=headers).status_code == 200
