"""
HTTP-level tests for the JSON API and the HTML form views.

The app is built with in-memory stores so no database is needed.
"""

import logging
import re
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from database.fallback_store import FallbackStore
from database.router import StoreRouter
from database.status import StaticStoreStatus
from main import create_app


@pytest.fixture
def status() -> StaticStoreStatus:
    return StaticStoreStatus(available=True)


@pytest.fixture
def directory(status) -> StoreRouter:
    return StoreRouter(durable=FallbackStore(), fallback=FallbackStore(), status=status)


@pytest.fixture
def client(directory) -> TestClient:
    settings = Settings(jwt_secret="test-secret", bcrypt_rounds=4)
    return TestClient(create_app(settings=settings, directory=directory))


def _register(client, username="alice", email="alice@x.com", password="secret123"):
    return client.post(
        "/api/users/register",
        json={"username": username, "email": email, "password": password},
    )


def _login(client, email="alice@x.com", password="secret123"):
    return client.post("/api/users/login", json={"email": email, "password": password})


class TestAliceScenario:
    def test_register_login_me(self, client):
        resp = _register(client)
        assert resp.status_code == 201
        body = resp.json()
        assert set(body) == {"id", "username", "email"}
        assert body["email"] == "alice@x.com"

        resp = _login(client, password="wrong")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Incorrect email or password."}

        resp = _login(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["email"] == "alice@x.com"
        assert "password" not in body["user"]
        assert "password_digest" not in body["user"]

        resp = client.get("/api/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert resp.status_code == 200
        assert resp.json()["user"]["username"] == "alice"


class TestRegisterErrors:
    def test_missing_fields(self, client):
        resp = client.post("/api/users/register", json={"username": "alice"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "username, email and password required"}

    def test_duplicate_email(self, client):
        _register(client)
        resp = _register(client, username="other")
        assert resp.status_code == 400
        assert resp.json() == {"error": "email already in use"}

    @pytest.mark.parametrize(
        "kwargs",
        [{}, {"json": {"username": None, "email": None, "password": None}}, {"json": ["alice"]}],
    )
    def test_null_or_absent_body(self, client, kwargs):
        resp = client.post("/api/users/register", **kwargs)
        assert resp.status_code == 400
        assert resp.json() == {"error": "username, email and password required"}

    def test_blank_password(self, client):
        resp = _register(client, password="   ")
        assert resp.status_code == 400
        assert resp.json() == {"error": "username, email and password required"}

    def test_password_over_bcrypt_limit(self, client):
        resp = _register(client, password="x" * 80)
        assert resp.status_code == 400
        assert resp.json() == {"error": "password too long"}

    def test_form_encoded_body(self, client):
        resp = client.post(
            "/api/users/register",
            data={"username": "alice", "email": "alice@x.com", "password": "secret123"},
        )
        assert resp.status_code == 201
        assert resp.json()["email"] == "alice@x.com"


class TestLoginErrors:
    def test_payloads_are_byte_identical(self, client):
        _register(client)
        wrong_password = _login(client, password="wrong")
        unknown_email = _login(client, email="nobody@x.com")
        assert wrong_password.status_code == unknown_email.status_code == 400
        assert wrong_password.content == unknown_email.content

    @pytest.mark.parametrize(
        "kwargs",
        [{"json": {}}, {}, {"json": {"email": None, "password": "x"}}, {"json": "alice"}],
    )
    def test_missing_or_null_fields(self, client, kwargs):
        resp = client.post("/api/users/login", **kwargs)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Incorrect email or password."}


class TestLoginPage:
    def test_usage_page(self, client):
        resp = client.get("/api/users/login")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert 'action="/api/users/login"' in resp.text

    def test_form_login_renders_token_page(self, client):
        _register(client)
        resp = client.post(
            "/api/users/login",
            data={"email": "alice@x.com", "password": "secret123"},
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "alice@x.com" in resp.text

    def test_form_token_is_accepted_by_me(self, client):
        _register(client)
        page = client.post(
            "/api/users/login",
            data={"email": "alice@x.com", "password": "secret123"},
        )
        token = re.search(r'<pre class="token">([^<]+)</pre>', page.text).group(1).strip()
        resp = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "alice@x.com"

    def test_html_accept_header_with_json_body(self, client):
        _register(client)
        resp = client.post(
            "/api/users/login",
            json={"email": "alice@x.com", "password": "secret123"},
            headers={"Accept": "text/html"},
        )
        assert resp.status_code == 200
        assert "alice@x.com" in resp.text

    def test_form_login_failure_is_json_error(self, client):
        _register(client)
        resp = client.post(
            "/api/users/login",
            data={"email": "alice@x.com", "password": "nope"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Incorrect email or password."}


class TestMe:
    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Token abc"}, {"Authorization": "Bearer garbage"}],
    )
    def test_unauthorized(self, client, headers):
        resp = client.get("/api/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_deleted_user(self, client):
        user_id = _register(client).json()["id"]
        token = _login(client).json()["token"]
        client.delete(f"/api/users/{user_id}")
        resp = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "User not found"}


class TestUserCollection:
    def test_list_and_show_hide_digest(self, client):
        user_id = _register(client).json()["id"]
        listed = client.get("/api/users").json()
        assert listed == [{"id": user_id, "username": "alice", "email": "alice@x.com"}]
        shown = client.get(f"/api/users/id:{user_id}").json()
        assert shown == listed[0]

    def test_update_password_is_rehashed(self, client, directory):
        user_id = _register(client).json()["id"]
        resp = client.put(f"/api/users/{user_id}", json={"password": "changed1"})
        assert resp.status_code == 200
        assert "password" not in resp.json()
        assert _login(client, password="changed1").status_code == 200
        assert _login(client).status_code == 400

    def test_update_to_taken_email(self, client):
        _register(client)
        bob_id = _register(client, username="bob", email="bob@x.com").json()["id"]
        resp = client.put(f"/api/users/{bob_id}", json={"email": "alice@x.com"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "email already in use"}

    def test_update_with_malformed_body(self, client):
        user_id = _register(client).json()["id"]
        resp = client.put(f"/api/users/{user_id}", json={"username": 5})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid input"}

    def test_delete(self, client):
        user_id = _register(client).json()["id"]
        assert client.delete(f"/api/users/{user_id}").status_code == 204
        assert client.get(f"/api/users/{user_id}").status_code == 404
        assert client.delete(f"/api/users/{user_id}").status_code == 404


class TestDegradedMode:
    def test_fallback_then_reconnect(self, client, status):
        status.set_available(False)
        assert client.get("/healthz").json() == {"status": "ok", "store": "fallback"}
        assert _register(client).status_code == 201
        assert _login(client).status_code == 200

        status.set_available(True)
        assert client.get("/healthz").json()["store"] == "durable"
        assert client.get("/api/users").json() == []
        assert _login(client).status_code == 400


class TestWebForms:
    def test_register_redirects_to_user_page(self, client):
        resp = client.post(
            "/users/register",
            data={"username": "alice", "email": "alice@x.com", "password": "secret123"},
            follow_redirects=False,
        )
        assert resp.status_code == 303
        assert resp.headers["location"].startswith("/users/")

        page = client.get(resp.headers["location"])
        assert page.status_code == 200
        assert "alice@x.com" in page.text

    def test_register_errors(self, client):
        _register(client)
        missing = client.post("/users/register", data={"username": "x"}, follow_redirects=False)
        exists = client.post(
            "/users/register",
            data={"username": "x", "email": "alice@x.com", "password": "pw"},
            follow_redirects=False,
        )
        assert missing.headers["location"] == "/register?error=missing"
        assert exists.headers["location"] == "/register?error=exists"

    def test_login_redirects(self, client):
        user_id = _register(client).json()["id"]
        ok = client.post(
            "/users/login",
            data={"email": "alice@x.com", "password": "secret123"},
            follow_redirects=False,
        )
        bad = client.post(
            "/users/login",
            data={"email": "alice@x.com", "password": "nope"},
            follow_redirects=False,
        )
        assert ok.headers["location"] == f"/users/{user_id}"
        assert bad.headers["location"] == "/login?error=bad"

    def test_edit_and_delete(self, client):
        user_id = _register(client).json()["id"]
        resp = client.post(
            f"/users/{user_id}",
            data={"username": "alicia", "email": "", "password": ""},
            follow_redirects=False,
        )
        assert resp.status_code == 303
        assert client.get(f"/api/users/{user_id}").json()["username"] == "alicia"

        resp = client.post(f"/users/{user_id}/delete", follow_redirects=False)
        assert resp.headers["location"] == "/users"
        assert client.get(f"/users/{user_id}").status_code == 404

    def test_users_page_flags_offline_mode(self, client, status):
        status.set_available(False)
        page = client.get("/users")
        assert page.status_code == 200
        assert "Database offline" in page.text


class TestUnexpectedErrors:
    def test_store_crash_is_hidden_behind_500(self, directory, monkeypatch, caplog):
        monkeypatch.setattr(directory.durable, "list", AsyncMock(side_effect=RuntimeError("boom")))
        settings = Settings(jwt_secret="test-secret", bcrypt_rounds=4)
        client = TestClient(
            create_app(settings=settings, directory=directory),
            raise_server_exceptions=False,
        )

        with caplog.at_level(logging.ERROR, logger="api.middleware"):
            resp = client.get("/api/users")

        assert resp.status_code == 500
        assert resp.json() == {"error": "server error"}
        assert "boom" not in resp.text
        records = [r for r in caplog.records if r.name == "api.middleware"]
        assert records and records[0].levelno == logging.ERROR
        assert "Unhandled error on GET /api/users" in records[0].getMessage()
        assert records[0].exc_info is not None
