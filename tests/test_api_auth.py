"""
tests/test_api_auth.py -- Integration tests for the /api/auth routes.

These tests exercise the full stack: FastAPI routing -> AuthService ->
UserStore -> envelope serialization -> exception translation.

Coverage:
  - register 201 with {success, data:{user, token}}; no password material in the body
  - register 400 on validation failure, 409 on duplicate email (any casing)
  - login 200; wrong password and unknown email give byte-identical 401s
  - register/login tokens both authenticate GET /api/auth/me
  - Cache-Control: no-store on credential responses
  - malformed bodies -> 400 envelope
  - login rate limit -> 429 envelope with Retry-After
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.limiter import limiter


class TestRegister:
    def test_register_returns_user_and_token(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={"name": "Ann", "email": "ann@x.com", "password": "secret1"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert set(body["data"]) == {"user", "token"}
        assert body["data"]["user"]["name"] == "Ann"
        assert body["data"]["user"]["email"] == "ann@x.com"
        assert "secret1" not in resp.text
        assert "password" not in resp.text
        assert "$2b$" not in resp.text
        assert resp.headers["Cache-Control"] == "no-store"

    def test_register_validation_error(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={"name": "Ann", "email": "ann@x.com", "password": "12345"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "6" in body["message"]

    def test_register_bad_email(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={"name": "Ann", "email": "ann-at-x", "password": "secret1"})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Please provide a valid email address."}

    def test_register_duplicate_email(self, client: TestClient, register) -> None:
        register("Ann", "ann@x.com")
        resp = client.post("/api/auth/register", json={"name": "Ann 2", "email": "ANN@X.COM", "password": "secret1"})
        assert resp.status_code == 409
        assert resp.json()["success"] is False

    def test_register_missing_field(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={"name": "Ann", "email": "ann@x.com"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False


class TestLogin:
    def test_register_then_login(self, client: TestClient, register) -> None:
        register_token, user = register("Ann", "ann@x.com")
        resp = client.post("/api/auth/login", json={"email": "ann@x.com", "password": "secret1"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["user"] == user
        assert resp.headers["Cache-Control"] == "no-store"

        for token in (register_token, body["data"]["token"]):
            me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
            assert me.status_code == 200
            assert me.json()["data"]["id"] == user["id"]

    def test_wrong_password_and_unknown_email_are_identical(self, client: TestClient, register) -> None:
        register("Ann", "ann@x.com")
        wrong_password = client.post("/api/auth/login", json={"email": "ann@x.com", "password": "wrong-pass"})
        unknown_email = client.post("/api/auth/login", json={"email": "nobody@x.com", "password": "secret1"})

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.content == unknown_email.content
        assert wrong_password.json() == {"success": False, "message": "Invalid credentials"}

    def test_login_email_is_case_insensitive(self, client: TestClient, register) -> None:
        register("Ann", "ann@x.com")
        resp = client.post("/api/auth/login", json={"email": "Ann@X.com", "password": "secret1"})
        assert resp.status_code == 200


class TestMe:
    def test_me_requires_token(self, client: TestClient) -> None:
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_me_returns_public_fields_only(self, client: TestClient, register) -> None:
        token, _ = register("Ann", "ann@x.com")
        data = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).json()["data"]
        assert set(data) == {"id", "name", "email", "createdAt"}


class TestRateLimit:
    def test_login_is_rate_limited(self, client: TestClient) -> None:
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                client.post("/api/auth/login", json={"email": "ann@x.com", "password": "secret1"}).status_code
                for _ in range(11)
            ]
            assert statuses[0] == 401
            assert statuses[-1] == 429
        finally:
            limiter.enabled = False
            limiter.reset()

    def test_429_body_uses_envelope(self, client: TestClient) -> None:
        limiter.reset()
        limiter.enabled = True
        try:
            for _ in range(11):
                resp = client.post("/api/auth/login", json={"email": "ann@x.com", "password": "secret1"})
            assert resp.status_code == 429
            assert resp.json()["success"] is False
            assert "Retry-After" in resp.headers
        finally:
            limiter.enabled = False
            limiter.reset()
