from __future__ import annotations

import pytest

from devdocs.api import create_app
from devdocs.models import storage
from devdocs.utils.mailer import ConsoleMailer
from devdocs.utils.ratelimit import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_bucket_empties_then_refills() -> None:
    clock = FakeClock()
    rl = RateLimiter(clock=clock)

    assert [rl.allow("auth:ip:a", limit=3, per_seconds=90) for _ in range(4)] == [True, True, True, False]
    # Another key has its own bucket
    assert rl.allow("auth:ip:b", limit=3, per_seconds=90)

    # One token comes back every 30 seconds
    clock.now += 29
    assert not rl.allow("auth:ip:a", limit=3, per_seconds=90)
    clock.now += 2
    assert rl.allow("auth:ip:a", limit=3, per_seconds=90)
    assert not rl.allow("auth:ip:a", limit=3, per_seconds=90)

    # Never refills past the limit
    clock.now += 10_000
    assert [rl.allow("auth:ip:a", limit=3, per_seconds=90) for _ in range(4)] == [True, True, True, False]


@pytest.fixture
def limited_client():
    app = create_app("testing", overrides={"AUTH_RATE_LIMIT": 3})
    app.extensions["mailer"] = ConsoleMailer("noreply@devdocs.test")
    yield app.test_client()
    storage.close()


def test_auth_routes_share_one_budget_per_ip(limited_client) -> None:
    client = limited_client
    resp = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "alice@x.com", "password": "secret1"},
    )
    assert resp.status_code == 201
    assert client.post("/api/auth/login", json={"identifier": "alice", "password": "wrong12"}).status_code == 401
    assert client.post("/api/auth/forgot-password", json={"email": "alice@x.com"}).status_code == 200

    for path, body in (
        ("/api/auth/login", {"identifier": "alice", "password": "secret1"}),
        ("/api/auth/reset-password/abc", {"password": "secret2"}),
    ):
        resp = client.post(path, json=body)
        assert resp.status_code == 429
        assert resp.get_json() == {
            "error": "RATE_LIMITED",
            "message": "Too many requests, please try again later",
            "status": 429,
        }

    # Another address still gets through
    resp = client.post(
        "/api/auth/login",
        json={"identifier": "alice", "password": "secret1"},
        environ_overrides={"REMOTE_ADDR": "10.0.0.2"},
    )
    assert resp.status_code == 200


def test_refresh_and_logout_are_not_limited(limited_client) -> None:
    client = limited_client
    client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "alice@x.com", "password": "secret1"},
    )
    for _ in range(5):
        assert client.post("/api/auth/refresh").status_code == 200
    assert client.post("/api/auth/logout").status_code == 200
