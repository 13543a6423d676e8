from __future__ import annotations

import pytest

from devdocs.api import create_app
from devdocs.models import storage
from devdocs.utils.mailer import ConsoleMailer


class FakeDocGenerator:
    def __init__(self, text: str = "## Summary\nDoes a thing."):
        self.text = text
        self.calls: list[tuple[str, str]] = []

    def generate(self, language: str, code: str) -> str:
        self.calls.append((language, code))
        return self.text


@pytest.fixture
def app():
    app = create_app("testing")
    app.extensions["mailer"] = ConsoleMailer("noreply@devdocs.test")
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def mailer(app) -> ConsoleMailer:
    return app.extensions["mailer"]


@pytest.fixture
def docgen(app) -> FakeDocGenerator:
    fake = FakeDocGenerator()
    app.extensions["docgen"] = fake
    return fake


@pytest.fixture
def signup(client):
    """Register a user through the API; returns the JSON body of the 201 response."""

    def _signup(username: str = "alice", email: str = "alice@x.com", password: str = "secret1") -> dict:
        resp = client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _signup


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def refresh_cookie(client) -> str | None:
    cookie = client.get_cookie("rt")
    return cookie.value if cookie is not None else None


def stored_user(email: str):
    """Fresh read of a user row; the session is closed so later requests start clean."""
    from devdocs.models.user import User

    session = storage.get_session()
    try:
        return session.query(User).filter(User.email == email).first()
    finally:
        storage.close()
