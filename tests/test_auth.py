from __future__ import annotations

from conftest import bearer, refresh_cookie, stored_user


def _set_cookie_header(resp) -> str:
    headers = [h for h in resp.headers.getlist("Set-Cookie") if h.startswith("rt=")]
    assert len(headers) == 1, resp.headers.getlist("Set-Cookie")
    return headers[0]


def test_register_returns_token_user_and_cookie(client) -> None:
    resp = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "Alice@X.com", "password": "secret1"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["message"] == "Account created"
    assert body["token"]
    assert body["user"]["username"] == "alice"
    assert body["user"]["email"] == "alice@x.com"
    assert "password" not in body["user"]
    assert "password_hash" not in body["user"]

    header = _set_cookie_header(resp)
    assert "HttpOnly" in header
    assert "Path=/" in header
    assert "Max-Age=604800" in header
    assert "SameSite=Lax" in header
    assert "Secure" not in header

    user = stored_user("alice@x.com")
    assert user.refresh_token == refresh_cookie(client)
    assert user.password_hash != "secret1"
    assert not hasattr(user, "password")


def test_register_duplicate_email_or_username(client, signup) -> None:
    signup()
    resp = client.post(
        "/api/auth/register",
        json={"username": "other", "email": "alice@x.com", "password": "secret1"},
    )
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "User already exists"

    resp = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "other@x.com", "password": "secret1"},
    )
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "CONFLICT"


def test_register_validation(client) -> None:
    resp = client.post("/api/auth/register", json={"username": "bob", "email": "nope", "password": "123"})
    assert resp.status_code == 422
    body = resp.get_json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["status"] == 422
    assert "email" in body["details"]
    assert "password" in body["details"]

    resp = client.post("/api/auth/register", data="not json", content_type="text/plain")
    assert resp.status_code == 422


def test_login_by_email_or_username(client, signup) -> None:
    signup()
    for identifier in ("alice@x.com", "ALICE@x.com", "alice"):
        resp = client.post("/api/auth/login", json={"identifier": identifier, "password": "secret1"})
        assert resp.status_code == 200, identifier
        body = resp.get_json()
        assert body["message"] == "Login successful"
        assert body["user"]["username"] == "alice"

    # Older clients send {"email", "password"}
    resp = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret1"})
    assert resp.status_code == 200


def test_login_failure_does_not_reveal_which_part_was_wrong(client, signup) -> None:
    signup()
    wrong_password = client.post("/api/auth/login", json={"identifier": "alice@x.com", "password": "nope123"})
    unknown_user = client.post("/api/auth/login", json={"identifier": "ghost@x.com", "password": "nope123"})

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.get_json() == unknown_user.get_json()
    assert wrong_password.get_json()["message"] == "Invalid credentials"


def test_login_missing_fields(client) -> None:
    resp = client.post("/api/auth/login", json={"identifier": "alice"})
    assert resp.status_code == 422
    assert "password" in resp.get_json()["details"]


def test_alice_session_lifecycle(client, signup) -> None:
    body = signup("alice", "alice@x.com", "secret1")
    token = body["token"]

    assert client.get("/api/snippets", headers=bearer(token)).status_code == 200

    original = refresh_cookie(client)
    resp = client.post("/api/auth/refresh")
    assert resp.status_code == 200
    assert resp.get_json()["token"]
    rotated = refresh_cookie(client)
    assert rotated and rotated != original

    # Replaying the stale cookie is refused and the cookie is cleared
    client.set_cookie("rt", original)
    resp = client.post("/api/auth/refresh")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Refresh token mismatch"
    assert "Max-Age=0" in _set_cookie_header(resp)

    # The legitimate holder of the rotated token is unaffected
    client.set_cookie("rt", rotated)
    assert client.post("/api/auth/refresh").status_code == 200


def test_refresh_token_is_single_use(client, signup) -> None:
    signup()
    old = refresh_cookie(client)
    assert client.post("/api/auth/refresh").status_code == 200
    client.set_cookie("rt", old)
    assert client.post("/api/auth/refresh").status_code == 401


def test_second_login_invalidates_first_session(client, signup) -> None:
    signup()
    client.post("/api/auth/login", json={"identifier": "alice", "password": "secret1"})
    first = refresh_cookie(client)
    client.post("/api/auth/login", json={"identifier": "alice", "password": "secret1"})
    second = refresh_cookie(client)
    assert first != second

    client.set_cookie("rt", first)
    assert client.post("/api/auth/refresh").status_code == 401
    client.set_cookie("rt", second)
    assert client.post("/api/auth/refresh").status_code == 200


def test_refresh_without_cookie(client) -> None:
    resp = client.post("/api/auth/refresh")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "UNAUTHENTICATED", "message": "No refresh token", "status": 401}


def test_refresh_with_invalid_cookie(app, client, signup) -> None:
    body = signup()

    client.set_cookie("rt", "garbage")
    resp = client.post("/api/auth/refresh")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid refresh token"
    assert "Max-Age=0" in _set_cookie_header(resp)

    # An access token is signed with the other secret
    client.set_cookie("rt", body["token"])
    assert client.post("/api/auth/refresh").get_json()["message"] == "Invalid refresh token"


def test_refresh_rejects_expired_token(app, client, signup) -> None:
    from datetime import datetime, timedelta, timezone

    from devdocs.utils.security import sign_refresh

    body = signup()
    with app.app_context():
        expired = sign_refresh(body["user"]["id"], now=datetime.now(timezone.utc) - timedelta(days=8))
    client.set_cookie("rt", expired)
    resp = client.post("/api/auth/refresh")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid refresh token"


def test_logout_revokes_and_is_idempotent(client, signup) -> None:
    signup()
    cookie = refresh_cookie(client)

    resp = client.post("/api/auth/logout")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}
    assert "Max-Age=0" in _set_cookie_header(resp)
    assert stored_user("alice@x.com").refresh_token is None
    assert refresh_cookie(client) is None

    # No cookie at all
    resp = client.post("/api/auth/logout")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}

    # The revoked token can no longer be refreshed
    client.set_cookie("rt", cookie)
    assert client.post("/api/auth/refresh").status_code == 401


def test_logout_with_garbage_cookie(client) -> None:
    client.set_cookie("rt", "garbage")
    resp = client.post("/api/auth/logout")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}


def test_access_token_outlives_refresh_revocation(client, signup) -> None:
    token = signup()["token"]
    client.post("/api/auth/logout")
    assert client.get("/api/snippets", headers=bearer(token)).status_code == 200

    token2 = client.post("/api/auth/login", json={"identifier": "alice", "password": "secret1"}).get_json()["token"]
    client.post("/api/auth/refresh")
    assert client.get("/api/snippets", headers=bearer(token2)).status_code == 200


def test_health_and_unknown_route(client) -> None:
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert resp.get_json()["database"] == "ok"
    assert resp.get_json()["docgen"] == "fallback"

    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "NOT_FOUND"


def test_register_rejects_at_sign_in_username(client) -> None:
    resp = client.post(
        "/api/auth/register",
        json={"username": "bob@x.com", "email": "bob@x.com", "password": "secret1"},
    )
    assert resp.status_code == 422
    assert "username" in resp.get_json()["details"]


def test_login_with_at_sign_only_matches_email(app, client, signup) -> None:
    from devdocs.models import storage
    from devdocs.models.user import User
    from devdocs.utils.security import hash_password

    signup("alice", "alice@x.com", "secret1")
    # A row written before usernames were restricted
    storage.new(User(username="alice@x.com", email="mallory@x.com", password_hash=hash_password("mallory1")))
    storage.save()
    storage.close()

    assert storage.find_user_by_login("alice@x.com").email == "alice@x.com"
    assert storage.find_user_by_login("ALICE@X.COM").email == "alice@x.com"
    storage.close()

    resp = client.post("/api/auth/login", json={"identifier": "alice@x.com", "password": "secret1"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["username"] == "alice"

    resp = client.post("/api/auth/login", json={"identifier": "alice@x.com", "password": "mallory1"})
    assert resp.status_code == 401


def test_production_cookie_is_cross_site() -> None:
    from devdocs.api import create_app
    from devdocs.models import storage
    from devdocs.utils.mailer import ConsoleMailer

    app = create_app(
        "production",
        overrides={
            "JWT_SECRET": "prod-access-secret",
            "JWT_REFRESH_SECRET": "prod-refresh-secret",
            "DATABASE_URL": "sqlite://",
        },
    )
    app.extensions["mailer"] = ConsoleMailer("noreply@devdocs.test")
    client = app.test_client()
    try:
        resp = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@x.com", "password": "secret1"},
            base_url="https://localhost",
        )
        assert resp.status_code == 201
        header = _set_cookie_header(resp)
        assert "SameSite=None" in header
        assert "Secure" in header
        assert "HttpOnly" in header

        resp = client.post("/api/auth/refresh", base_url="https://localhost")
        assert resp.status_code == 200
        header = _set_cookie_header(resp)
        assert "SameSite=None" in header
        assert "Secure" in header
    finally:
        storage.close()
