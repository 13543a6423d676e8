"""
Client session agent.

Keeps a caller signed in across access-token expiry:

- every request carries ``Authorization: Bearer <access token>`` when one is held;
- on a 401 the agent runs ONE refresh (``POST /api/auth/refresh``, cookie
  based) no matter how many requests failed at the same time. Requests that
  hit a 401 while that refresh is running wait for its outcome in a FIFO
  queue. Each failed request is then replayed exactly once with the new token;
- if the refresh fails (error status, no token, transport error, timeout) every
  waiter is rejected, all local session state is cleared and
  ``on_session_expired("expired")`` is called. The original 401 is returned.

The refresh call goes through its own ``httpx.AsyncClient`` that shares the
cookie jar but not the 401 handling, so a failing refresh can never trigger
another refresh.

State is per instance; two agents never share tokens, queues or cookies.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from http.cookiejar import CookieJar
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from devdocs.client.results import (
    ApiResult,
    Success,
    result_from_response,
    transport_failure,
)
from devdocs.client.storage import MemoryTokenStore, SessionState, TokenStore

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/api/auth"
REFRESH_PATH = f"{AUTH_PREFIX}/refresh"
DEFAULT_REFRESH_TIMEOUT = 10.0

SessionExpiredHook = Callable[[str], Union[None, Awaitable[None]]]


class RefreshFailed(Exception):
    """The refresh call did not yield a new access token."""


def _log_session_expired(reason: str) -> None:
    logger.warning("session ended (%s); sign in again", reason)


class SessionAgent:
    def __init__(
        self,
        base_url: str,
        *,
        token_store: Optional[TokenStore] = None,
        on_session_expired: Optional[SessionExpiredHook] = None,
        refresh_timeout: float = DEFAULT_REFRESH_TIMEOUT,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        refresh_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store or MemoryTokenStore()
        self.on_session_expired = on_session_expired or _log_session_expired
        self.refresh_timeout = refresh_timeout

        # One jar for both clients: the refresh cookie set at login must reach the refresh call
        self._cookies = CookieJar()
        self._http = httpx.AsyncClient(
            base_url=self.base_url, cookies=self._cookies, timeout=timeout, transport=transport
        )
        self._refresh_http = httpx.AsyncClient(
            base_url=self.base_url,
            cookies=self._cookies,
            timeout=timeout,
            transport=refresh_transport or transport,
        )

        state = self.token_store.load()
        self._token: Optional[str] = state.token
        self._user: Optional[dict] = state.user

        self._refresh_in_flight = False
        self._waiters: list[asyncio.Future] = []
        self.refresh_calls = 0

    # -- session state --------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[dict]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def _store_session(self, token: Optional[str], user: Optional[dict]) -> None:
        # Persist first: a failed save leaves the in-memory session unchanged
        self.token_store.save(SessionState(token, user))
        self._token = token
        self._user = user

    def clear_session(self) -> None:
        """Forget the access token, the user and every cookie."""
        self._token = None
        self._user = None
        self.token_store.clear()
        self._cookies.clear()

    def _accept_login(self, result: ApiResult) -> None:
        if isinstance(result, Success) and isinstance(result.data, dict) and result.data.get("token"):
            user = result.data.get("user")
            self._store_session(result.data["token"], user if isinstance(user, dict) else None)

    # -- auth endpoints (never enter the 401 refresh path) --------------------

    async def _post_plain(self, url: str, **kwargs) -> ApiResult:
        try:
            response = await self._http.post(url, **kwargs)
        except httpx.HTTPError as exc:
            return transport_failure(exc)
        return result_from_response(response)

    async def register(self, username: str, email: str, password: str) -> ApiResult:
        result = await self._post_plain(
            f"{AUTH_PREFIX}/register",
            json={"username": username, "email": email, "password": password},
        )
        self._accept_login(result)
        return result

    async def login(self, identifier: str, password: str) -> ApiResult:
        """identifier is an email address or a username."""
        result = await self._post_plain(
            f"{AUTH_PREFIX}/login",
            json={"identifier": identifier, "password": password},
        )
        self._accept_login(result)
        return result

    async def logout(self) -> ApiResult:
        """Ask the server to revoke the session, then clear local state whatever happened."""
        result = await self._post_plain(f"{AUTH_PREFIX}/logout")
        if not isinstance(result, Success):
            logger.warning("logout request failed: %s", result)
        self.clear_session()
        return Success(200, {"ok": True})

    # -- authenticated requests -----------------------------------------------

    async def _send(self, method: str, url: str, token: Optional[str], kwargs: dict) -> httpx.Response:
        options = dict(kwargs)
        headers = dict(options.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return await self._http.request(method, url, headers=headers, **options)

    async def request(self, method: str, url: str, **kwargs: Any) -> ApiResult:
        sent_with = self._token
        try:
            response = await self._send(method, url, sent_with, kwargs)
        except httpx.HTTPError as exc:
            return transport_failure(exc)

        if response.status_code != 401:
            return result_from_response(response)

        unauthorized = result_from_response(response)
        try:
            token = await self._fresh_token(sent_with)
        except RefreshFailed:
            return unauthorized

        # The replay is final: a second 401 is returned as is
        try:
            response = await self._send(method, url, token, kwargs)
        except httpx.HTTPError as exc:
            return transport_failure(exc)
        return result_from_response(response)

    async def get(self, url: str, **kwargs: Any) -> ApiResult:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> ApiResult:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> ApiResult:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> ApiResult:
        return await self.request("DELETE", url, **kwargs)

    # -- single-flight refresh ------------------------------------------------

    async def _fresh_token(self, sent_with: Optional[str]) -> str:
        if self._token and self._token != sent_with:
            # A refresh finished while this request was on the wire
            return self._token

        if self._refresh_in_flight:
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            return await waiter

        self._refresh_in_flight = True
        try:
            token = await self._refresh()
        except RefreshFailed as exc:
            self._refresh_in_flight = False
            self._settle_waiters(error=exc)
            await self._expire_session(exc)
            raise
        except BaseException as exc:
            # Cancelled or broken mid-refresh: release the waiters, keep the session
            self._refresh_in_flight = False
            logger.warning("refresh aborted: %r", exc)
            self._settle_waiters(error=RefreshFailed(f"refresh aborted: {exc!r}"))
            raise
        self._refresh_in_flight = False
        self._settle_waiters(token=token)
        return token

    def _settle_waiters(self, token: Optional[str] = None, error: Optional[BaseException] = None) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if waiter.done():
                continue
            if error is not None:
                waiter.set_exception(RefreshFailed(str(error)))
            else:
                waiter.set_result(token)

    async def _refresh(self) -> str:
        self.refresh_calls += 1
        try:
            response = await asyncio.wait_for(
                self._refresh_http.post(REFRESH_PATH), timeout=self.refresh_timeout
            )
        except asyncio.TimeoutError as exc:
            raise RefreshFailed(f"refresh timed out after {self.refresh_timeout}s") from exc
        except httpx.HTTPError as exc:
            raise RefreshFailed(f"refresh request failed: {exc}") from exc

        result = result_from_response(response)
        if not isinstance(result, Success):
            raise RefreshFailed(f"refresh rejected: {result}")
        token = result.data.get("token") if isinstance(result.data, dict) else None
        if not isinstance(token, str) or not token:
            raise RefreshFailed("no token in refresh response")

        self._store_session(token, self._user)
        return token

    async def _expire_session(self, cause: Exception) -> None:
        logger.warning("refresh failed, signing out: %s", cause)
        self.clear_session()
        outcome = self.on_session_expired("expired")
        if inspect.isawaitable(outcome):
            await outcome

    # -- lifecycle ------------------------------------------------------------

    async def aclose(self) -> None:
        await self._http.aclose()
        await self._refresh_http.aclose()

    async def __aenter__(self) -> "SessionAgent":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
