from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx

from conftest import stored_user

from devdocs.client import SessionAgent, Success
from devdocs.utils.security import sign_access


class AsyncWSGITransport(httpx.AsyncBaseTransport):
    """Runs the Flask app in-process under an AsyncClient."""

    def __init__(self, app):
        self._wsgi = httpx.WSGITransport(app=app)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        response = self._wsgi.handle_request(request)
        return httpx.Response(response.status_code, headers=response.headers, content=response.read())


def _jar_value(agent: SessionAgent, name: str) -> str | None:
    for cookie in agent._cookies:
        if cookie.name == name:
            return cookie.value
    return None


def test_agent_refreshes_through_real_cookie(app) -> None:
    async def run() -> None:
        async with SessionAgent("http://devdocs.test", transport=AsyncWSGITransport(app)) as agent:
            result = await agent.register("alice", "alice@x.com", "secret1")
            assert isinstance(result, Success)
            first_rt = _jar_value(agent, "rt")
            assert first_rt
            assert first_rt == stored_user("alice@x.com").refresh_token

            with app.app_context():
                agent._token = sign_access(
                    agent.user["id"], now=datetime.now(timezone.utc) - timedelta(hours=1)
                )

            result = await agent.get("/api/snippets")
            assert result == Success(200, {"data": []})
            assert agent.refresh_calls == 1

            rotated = _jar_value(agent, "rt")
            assert rotated and rotated != first_rt
            assert rotated == stored_user("alice@x.com").refresh_token

            assert (await agent.logout()).ok
            assert stored_user("alice@x.com").refresh_token is None

    asyncio.run(run())
