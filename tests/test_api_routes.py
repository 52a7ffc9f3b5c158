"""
tests/test_api_routes.py -- Integration tests for the /api/v1/auth routes.

These tests exercise the full stack: FastAPI routing -> bearer dependency ->
AccountService -> CredentialStore -> response model serialization. The
ErrorKind -> HTTP status mapping only exists at this layer, so it is checked
here rather than in the service tests.

Coverage:
  - Missing bearer token: 401 TOKEN_REQUIRED with WWW-Authenticate
  - Register 201 / duplicate 409 / validation 422
  - Authenticate 200 with Cache-Control: no-store, bad credentials 401,
    disabled account 403
  - Session: validate, renew (old token rejected), logout
  - Self-service: GET/PUT /me, password change
  - Administration: 403 for non-admins, 404 for unknown targets, admin flows

Fixtures used (from conftest.py):
  - api_client: TestClient over a per-module shared-memory store. State is
    shared across the module, so every test uses its own usernames.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import bearer


def _register(client: TestClient, username: str, password: str = "pw1", **extra) -> None:
    body = {"username": username, "password": password, "first_name": username.title(), "last_name": "Tester"}
    body.update(extra)
    resp = client.post("/api/v1/auth/register", json=body)
    assert resp.status_code == 201, resp.text


def _login(client: TestClient, username: str, password: str = "pw1") -> str:
    resp = client.post("/api/v1/auth/authenticate", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def _account(client: TestClient, username: str, password: str = "pw1", **extra) -> str:
    _register(client, username, password, **extra)
    return _login(client, username, password)


class TestMissingToken:
    """Gated routes without an Authorization header must return 401 token_required."""

    def test_validate_without_header(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/validate")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"
        error = resp.json()["error"]
        assert error["code"] == "token_required"
        assert error["status"] == 2005

    def test_non_bearer_scheme(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": "Basic YWxpY2U6cHcx"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_required"

    def test_admin_route_without_header(self, api_client: TestClient) -> None:
        resp = api_client.delete("/api/v1/auth/users/anyone")
        assert resp.status_code == 401

    def test_unknown_token(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/validate", headers=bearer("DEADBEEF"))
        assert resp.status_code == 401
        assert resp.json()["error"] == {
            "code": "token_invalid",
            "message": "The token is invalid. Please authenticate again.",
            "status": 2004,
            "detail": None,
        }


class TestRegisterAndAuthenticate:
    def test_register_created(self, api_client: TestClient) -> None:
        body = {"username": "reg-ok", "password": "pw1", "first_name": "Reg", "last_name": "Ok"}
        resp = api_client.post("/api/v1/auth/register", json=body)
        assert resp.status_code == 201
        assert resp.json() == {"message": "User registered successfully"}

    def test_register_duplicate_conflict(self, api_client: TestClient) -> None:
        _register(api_client, "reg-dup")
        body = {"username": "reg-dup", "password": "other", "first_name": "X", "last_name": "Y"}
        resp = api_client.post("/api/v1/auth/register", json=body)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "user_exists"
        assert resp.json()["error"]["status"] == 4001

    def test_register_missing_field(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/register", json={"username": "reg-bad", "password": "pw1"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        assert resp.json()["error"]["status"] == 1001

    def test_register_password_too_long(self, api_client: TestClient) -> None:
        body = {"username": "reg-long", "password": "x" * 73, "first_name": "L", "last_name": "O"}
        assert api_client.post("/api/v1/auth/register", json=body).status_code == 422

    def test_password_whitespace_is_preserved(self, api_client: TestClient) -> None:
        _register(api_client, "ws-secret", password=" pw1 ")
        padded = api_client.post("/api/v1/auth/authenticate", json={"username": "ws-secret", "password": " pw1 "})
        assert padded.status_code == 200
        bare = api_client.post("/api/v1/auth/authenticate", json={"username": "ws-secret", "password": "pw1"})
        assert bare.status_code == 401

    def test_username_normalized_on_register_and_login(self, api_client: TestClient) -> None:
        _register(api_client, " ws-name ")
        _login(api_client, " ws-name ")
        _login(api_client, "ws-name")
        dup = api_client.post(
            "/api/v1/auth/register",
            json={"username": "ws-name", "password": "pw1", "first_name": "W", "last_name": "N"},
        )
        assert dup.status_code == 409

    def test_blank_username_rejected(self, api_client: TestClient) -> None:
        body = {"username": "   ", "password": "pw1", "first_name": "B", "last_name": "L"}
        resp = api_client.post("/api/v1/auth/register", json=body)
        assert resp.status_code == 422
        assert resp.json()["error"]["status"] == 1001

    def test_authenticate_returns_token_with_no_store(self, api_client: TestClient) -> None:
        _register(api_client, "auth-ok")
        resp = api_client.post("/api/v1/auth/authenticate", json={"username": "auth-ok", "password": "pw1"})
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert len(data["token"]) == 64
        assert "expires_at" in data

    def test_authenticate_bad_credentials(self, api_client: TestClient) -> None:
        _register(api_client, "auth-bad")
        wrong = api_client.post("/api/v1/auth/authenticate", json={"username": "auth-bad", "password": "nope"})
        ghost = api_client.post("/api/v1/auth/authenticate", json={"username": "auth-ghost", "password": "pw1"})
        assert wrong.status_code == ghost.status_code == 401
        assert wrong.json() == ghost.json()
        assert wrong.json()["error"]["status"] == 2001

    def test_authenticate_disabled_account(self, api_client: TestClient) -> None:
        _register(api_client, "auth-off", is_disabled=True)
        resp = api_client.post("/api/v1/auth/authenticate", json={"username": "auth-off", "password": "pw1"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "account_disabled"
        assert resp.json()["error"]["status"] == 4002


class TestSessionRoutes:
    def test_validate(self, api_client: TestClient) -> None:
        token = _account(api_client, "sess-valid")
        resp = api_client.get("/api/v1/auth/validate", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Token is valid"}

    def test_bearer_scheme_is_case_insensitive(self, api_client: TestClient) -> None:
        token = _account(api_client, "sess-case")
        resp = api_client.get("/api/v1/auth/validate", headers={"Authorization": f"bearer {token}"})
        assert resp.status_code == 200

    def test_renew_replaces_token(self, api_client: TestClient) -> None:
        token = _account(api_client, "sess-renew")
        resp = api_client.post("/api/v1/auth/renew", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        renewed = resp.json()["token"]
        assert renewed != token
        assert api_client.get("/api/v1/auth/validate", headers=bearer(token)).status_code == 401
        assert api_client.get("/api/v1/auth/validate", headers=bearer(renewed)).status_code == 200

    def test_logout_revokes(self, api_client: TestClient) -> None:
        token = _account(api_client, "sess-logout")
        resp = api_client.post("/api/v1/auth/logout", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"message": "User logged out successfully"}
        after = api_client.get("/api/v1/auth/validate", headers=bearer(token))
        assert after.status_code == 401
        assert after.json()["error"]["code"] == "token_invalid"


class TestSelfService:
    def test_get_me(self, api_client: TestClient) -> None:
        token = _account(api_client, "me-get", email="me@example.com")
        resp = api_client.get("/api/v1/auth/me", headers=bearer(token))
        assert resp.status_code == 200
        data = resp.json()
        assert data["first_name"] == "Me-Get"
        assert data["last_name"] == "Tester"
        assert data["email"] == "me@example.com"
        assert data["phone_number"] is None
        assert len(data["user_id"]) == 64

    def test_put_me_overwrites_all_fields(self, api_client: TestClient) -> None:
        token = _account(api_client, "me-put", email="old@example.com", phone_number="555")
        body = {"first_name": "New", "last_name": "Name"}
        resp = api_client.put("/api/v1/auth/me", json=body, headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"message": "User information updated successfully"}
        data = api_client.get("/api/v1/auth/me", headers=bearer(token)).json()
        assert (data["first_name"], data["last_name"], data["email"], data["phone_number"]) == (
            "New",
            "Name",
            None,
            None,
        )

    def test_change_password(self, api_client: TestClient) -> None:
        token = _account(api_client, "pw-change", password="old")
        body = {"username": "pw-change", "old_password": "old", "new_password": "new"}
        resp = api_client.post("/api/v1/auth/password", json=body, headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Password changed successfully"}
        _login(api_client, "pw-change", "new")

    def test_change_password_wrong_old(self, api_client: TestClient) -> None:
        token = _account(api_client, "pw-wrong", password="old")
        body = {"username": "pw-wrong", "old_password": "guess", "new_password": "new"}
        resp = api_client.post("/api/v1/auth/password", json=body, headers=bearer(token))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_credentials"


class TestAdministration:
    def test_non_admin_forbidden(self, api_client: TestClient) -> None:
        _register(api_client, "adm-victim")
        token = _account(api_client, "adm-plain")
        for method, path in (
            ("post", "/api/v1/auth/users/adm-victim/disable"),
            ("post", "/api/v1/auth/users/adm-victim/enable"),
            ("delete", "/api/v1/auth/users/adm-victim"),
        ):
            resp = api_client.request(method.upper(), path, headers=bearer(token))
            assert resp.status_code == 403, path
            assert resp.json()["error"]["code"] == "forbidden"
            assert resp.json()["error"]["status"] == 3000

    def test_unknown_target(self, api_client: TestClient) -> None:
        admin = _account(api_client, "adm-404", is_admin=True)
        resp = api_client.post("/api/v1/auth/users/adm-nobody/disable", headers=bearer(admin))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "user_not_found"
        assert resp.json()["error"]["status"] == 4000

    def test_disable_then_enable(self, api_client: TestClient) -> None:
        admin = _account(api_client, "adm-toggler", is_admin=True)
        user = _account(api_client, "adm-toggled")

        resp = api_client.post("/api/v1/auth/users/adm-toggled/disable", headers=bearer(admin))
        assert resp.status_code == 200
        assert resp.json() == {"message": "User disabled successfully"}
        assert api_client.get("/api/v1/auth/validate", headers=bearer(user)).status_code == 403
        denied = api_client.post("/api/v1/auth/authenticate", json={"username": "adm-toggled", "password": "pw1"})
        assert denied.status_code == 403

        resp = api_client.post("/api/v1/auth/users/adm-toggled/enable", headers=bearer(admin))
        assert resp.json() == {"message": "User enabled successfully"}
        _login(api_client, "adm-toggled")

    def test_delete_user(self, api_client: TestClient) -> None:
        admin = _account(api_client, "adm-deleter", is_admin=True)
        user = _account(api_client, "adm-deleted")
        resp = api_client.delete("/api/v1/auth/users/adm-deleted", headers=bearer(admin))
        assert resp.status_code == 200
        assert resp.json() == {"message": "User deleted successfully"}
        assert api_client.get("/api/v1/auth/me", headers=bearer(user)).status_code == 401
        again = api_client.delete("/api/v1/auth/users/adm-deleted", headers=bearer(admin))
        assert again.status_code == 404

    def test_reset_password(self, api_client: TestClient) -> None:
        admin = _account(api_client, "adm-resetter", is_admin=True)
        _register(api_client, "adm-reset", password="old")
        resp = api_client.post(
            "/api/v1/auth/users/adm-reset/password",
            json={"new_password": "fresh"},
            headers=bearer(admin),
        )
        assert resp.status_code == 200
        assert resp.json() == {"message": "Password reset successfully"}
        _login(api_client, "adm-reset", "fresh")
