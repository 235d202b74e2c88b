"""HTTP surface: status codes, envelopes and the register -> profile walk-through."""
from datetime import timedelta

import pytest

from models import storage
from utils.security import utcnow


def _register(client, name="A", email="a@x.com", password="p1"):
    return client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": password})


def _login(client, email="a@x.com", password="p1"):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_register_login_profile_walkthrough(client):
    r = _register(client)
    assert r.status_code == 201
    created = r.get_json()["data"]
    assert created["email"] == "a@x.com"
    assert "password" not in created and "password_hash" not in created

    r = _login(client)
    assert r.status_code == 200
    body = r.get_json()
    assert body["access_token"] and body["refresh_token"]
    assert body["token_type"] == "bearer"
    assert body["data"]["id"] == created["id"]
    access = body["access_token"]

    r = client.get("/api/v1/users/me", headers=_bearer(access))
    assert r.status_code == 200
    assert r.get_json()["data"]["email"] == "a@x.com"

    r = client.put("/api/v1/users/me", headers=_bearer(access), json={"name": "B"})
    assert r.status_code == 200
    assert r.get_json()["data"]["name"] == "B"

    r = client.get("/api/v1/users/me", headers=_bearer(access))
    assert r.get_json()["data"]["name"] == "B"


class TestRegisterErrors:
    def test_duplicate_email_is_conflict(self, client):
        assert _register(client).status_code == 201
        r = _register(client, name="Other")

        assert r.status_code == 409
        body = r.get_json()
        assert body["error"] == "DUPLICATE_EMAIL"
        assert body["status"] == 409
        assert body["message"]

    def test_missing_password_is_client_error(self, client):
        r = client.post("/api/v1/auth/register", json={"name": "A", "email": "a@x.com"})

        assert r.status_code == 422
        body = r.get_json()
        assert body["error"] == "INVALID_INPUT"
        assert "password" in body["details"]

    def test_non_json_body_is_client_error(self, client):
        r = client.post("/api/v1/auth/register", data="not json", content_type="text/plain")
        assert r.status_code == 422


class TestLoginErrors:
    def test_wrong_password_matches_unknown_email(self, client):
        _register(client)
        wrong = _login(client, password="wrongpassword")
        unknown = _login(client, email="nouser@example.com", password="somepassword")

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json()
        assert wrong.get_json()["error"] == "INVALID_CREDENTIALS"

    def test_error_body_never_leaks_hash(self, client):
        _register(client)
        r = _login(client, password="wrongpassword")
        assert r.status_code == 401
        assert "$argon2" not in r.get_data(as_text=True)


class TestRefreshAndLogout:
    def test_refresh_rotates_via_body_and_header(self, client):
        _register(client)
        rt1 = _login(client).get_json()["refresh_token"]

        r = client.post("/api/v1/auth/refresh", json={"refresh_token": rt1})
        assert r.status_code == 200
        rt2 = r.get_json()["refresh_token"]
        assert "data" not in r.get_json()

        r = client.post("/api/v1/auth/refresh", headers={"X-Refresh-Token": rt2})
        assert r.status_code == 200

        r = client.post("/api/v1/auth/refresh", json={"refresh_token": rt1})
        assert r.status_code == 401
        assert r.get_json()["error"] == "INVALID_REFRESH"

    def test_refresh_without_token(self, client):
        r = client.post("/api/v1/auth/refresh", json={})
        assert r.status_code == 401
        assert r.get_json()["error"] == "INVALID_REFRESH"

    def test_logout_twice_succeeds(self, client):
        _register(client)
        rt = _login(client).get_json()["refresh_token"]

        assert client.post("/api/v1/auth/logout", json={"refresh_token": rt}).status_code == 204
        assert client.post("/api/v1/auth/logout", json={"refresh_token": rt}).status_code == 204
        assert client.post("/api/v1/auth/refresh", json={"refresh_token": rt}).status_code == 401

    def test_logout_without_session_succeeds(self, client):
        assert client.post("/api/v1/auth/logout", json={}).status_code == 204


class TestProtectedRoutes:
    def test_no_authorization_skips_store(self, client, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("store must not be touched")

        monkeypatch.setattr(storage, "get", fail)
        r = client.get("/api/v1/users/me")

        assert r.status_code == 401
        assert r.get_json()["error"] == "UNAUTHENTICATED"
        assert r.headers["WWW-Authenticate"] == "Bearer"

    def test_expired_access_token(self, client, codec):
        user_id = _register(client).get_json()["data"]["id"]
        expired = codec.issue_access(user_id, utcnow() - timedelta(hours=1))

        r = client.get("/api/v1/users/me", headers=_bearer(expired))
        assert r.status_code == 401
        assert r.get_json()["error"] == "UNAUTHENTICATED"

    def test_refresh_token_is_not_an_access_token(self, client):
        _register(client)
        rt = _login(client).get_json()["refresh_token"]
        r = client.get("/api/v1/users/me", headers=_bearer(rt))
        assert r.status_code == 401

    def test_update_without_token(self, client):
        r = client.put("/api/v1/users/me", json={"name": "This should not work"})
        assert r.status_code == 401

    @pytest.mark.parametrize("payload", [{"email": "b@x.com"}, {"name": ""}, {"password": "x"}])
    def test_update_rejects_other_fields(self, client, payload):
        _register(client)
        access = _login(client).get_json()["access_token"]

        r = client.patch("/api/v1/users/me", headers=_bearer(access), json=payload)
        assert r.status_code == 422
        assert r.get_json()["error"] == "INVALID_INPUT"


def test_unknown_route_uses_envelope(client):
    r = client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.get_json()["error"] == "NOT_FOUND"


def test_health_reports_store(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json()["store"] == "ok"


def test_auth_routes_live_under_auth_prefix(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    for name in ("register", "login", "refresh", "logout"):
        assert f"/api/v1/auth/{name}" in rules
        assert f"/api/v1/{name}" not in rules


@pytest.mark.parametrize("body", [["x"], "abc", 1, None])
@pytest.mark.parametrize(
    "path,status,error",
    [
        ("/api/v1/auth/register", 422, "INVALID_INPUT"),
        ("/api/v1/auth/login", 401, "INVALID_CREDENTIALS"),
        ("/api/v1/auth/refresh", 401, "INVALID_REFRESH"),
    ],
)
def test_non_object_json_body(client, path, status, error, body):
    r = client.post(path, json=body)
    assert r.status_code == status
    assert r.get_json()["error"] == error


@pytest.mark.parametrize("body", [["x"], "abc", 1, None])
def test_non_object_json_body_on_logout(client, body):
    assert client.post("/api/v1/auth/logout", json=body).status_code == 204
