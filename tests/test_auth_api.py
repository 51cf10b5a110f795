"""
End-to-end tests for the auth blueprint through the Flask test client.
"""
import jwt
import pytest
from sqlalchemy.exc import OperationalError

ALICE = {"email": "alice@example.com", "username": "alice", "password": "Secret123!"}


def _register(client, body=None):
    return client.post("/api/v1/auth/register", json=body or ALICE)


def _refresh(client, access_token, refresh_token):
    return client.post(
        "/api/v1/auth/refresh-token",
        json={"accessToken": access_token, "refreshToken": refresh_token},
    )


def test_register_returns_token_pair(client):
    resp = _register(client)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["accessToken"]
    assert body["refreshToken"]
    assert body["errors"] == []


def test_register_rejects_duplicate_email(client):
    _register(client)

    resp = _register(client, {**ALICE, "username": "alice2"})

    assert resp.status_code == 400
    assert resp.get_json() == {
        "success": False,
        "errors": ["Email already in use"],
        "accessToken": None,
        "refreshToken": None,
    }


def test_register_reports_password_policy(client):
    resp = _register(client, {**ALICE, "password": "secret"})

    assert resp.status_code == 400
    errors = resp.get_json()["errors"]
    assert "Passwords must have at least one digit ('0'-'9')." in errors
    assert "Passwords must have at least one uppercase ('A'-'Z')." in errors


def test_register_rejects_invalid_payload(client):
    resp = _register(client, {"email": "not-an-email"})

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert any(e.startswith("email:") for e in body["errors"])
    assert any(e.startswith("password:") for e in body["errors"])
    assert body["accessToken"] is None


def test_login(client):
    _register(client)

    resp = client.post("/api/v1/auth/login", json={"email": "Alice@Example.com", "password": "Secret123!"})

    assert resp.status_code == 200
    assert resp.get_json()["success"] is True


@pytest.mark.parametrize(
    "credentials",
    [
        {"email": "alice@example.com", "password": "wrong"},
        {"email": "bob@example.com", "password": "Secret123!"},
    ],
)
def test_login_failures_are_indistinguishable(client, credentials):
    _register(client)

    resp = client.post("/api/v1/auth/login", json=credentials)

    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["Invalid login request"]


def _fail_lookup(*args, **kwargs):
    raise OperationalError("SELECT users", {}, Exception("database is locked"))


@pytest.mark.parametrize(
    "path, body",
    [
        ("/api/v1/auth/login", {"email": "alice@example.com", "password": "Secret123!"}),
        ("/api/v1/auth/register", ALICE),
    ],
)
def test_identity_store_failure_is_a_failed_result(client, monkeypatch, path, body):
    identity = client.application.extensions["identity_store"]
    monkeypatch.setattr(identity, "find_by_email", _fail_lookup)

    resp = client.post(path, json=body)

    assert resp.status_code == 400
    assert resp.get_json() == {
        "success": False,
        "errors": ["Something went wrong"],
        "accessToken": None,
        "refreshToken": None,
    }


def test_refresh_scenario(client):
    pair_a = _register(client).get_json()

    resp = _refresh(client, pair_a["accessToken"], pair_a["refreshToken"])
    assert resp.status_code == 200
    pair_b = resp.get_json()
    assert pair_b["success"] is True
    assert pair_b["refreshToken"] != pair_a["refreshToken"]

    replay = _refresh(client, pair_a["accessToken"], pair_a["refreshToken"])
    assert replay.status_code == 400
    assert replay.get_json()["errors"] == ["Token has been used"]

    mixed = _refresh(client, pair_b["accessToken"], pair_a["refreshToken"])
    assert mixed.status_code == 400
    assert mixed.get_json()["errors"] == ["Invalid tokens"]

    resp = _refresh(client, pair_b["accessToken"], pair_b["refreshToken"])
    assert resp.status_code == 200


def test_refresh_revoked_token(client):
    app = client.application
    pair = _register(client).get_json()
    with app.app_context():
        assert app.extensions["refresh_token_store"].revoke(pair["refreshToken"]) is True

    resp = _refresh(client, pair["accessToken"], pair["refreshToken"])

    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["Token has been revoked"]


def test_refresh_requires_both_tokens(client):
    resp = client.post("/api/v1/auth/refresh-token", json={"accessToken": "x"})

    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["refreshToken: Missing data for required field."]


def test_refresh_before_access_token_expiry(make_app):
    client = make_app().test_client()
    pair = _register(client).get_json()

    resp = _refresh(client, pair["accessToken"], pair["refreshToken"])

    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["Token has not yet expired"]


def test_me_with_live_access_token(make_app):
    client = make_app().test_client()
    pair = _register(client).get_json()

    resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {pair['accessToken']}"})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["email"] == "alice@example.com"
    assert data["username"] == "alice"
    assert "password_hash" not in data


def test_me_rejects_expired_access_token(client):
    pair = _register(client).get_json()

    resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {pair['accessToken']}"})

    assert resp.status_code == 401


def test_me_requires_bearer_header(make_app):
    client = make_app().test_client()
    assert client.get("/api/v1/auth/me").status_code == 401


def test_health(make_app):
    client = make_app().test_client()

    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_me_rejects_non_numeric_expiry(make_app):
    app = make_app()
    client = app.test_client()
    _register(client)
    with app.app_context():
        user = app.extensions["identity_store"].find_by_email("alice@example.com")
        token = jwt.encode(
            {"Id": user.id, "email": user.email, "sub": user.email, "jti": "jti-1", "exp": "soon"},
            app.config["JWT_SECRET"],
            algorithm="HS256",
        )

    resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 401
