"""Auth adapter for the backend's auth (GoTrue) API.

Sign-in is the implicit OAuth flow: the user opens the authorize URL, the
identity provider redirects to the configured redirect URL, and the tokens
arrive in that URL's fragment. ``complete_oauth`` takes the redirect URL and
turns it into a session.
"""

import asyncio
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx

from gamenight.core.logging import get_logger
from gamenight.domain.entities import Identity, Session
from gamenight.infrastructure.remote.base import (
    AuthCallback,
    AuthClient,
    AuthEvent,
    AuthSubscription,
)
from gamenight.infrastructure.remote.errors import AuthError
from gamenight.infrastructure.remote.supabase.session_store import SessionStore

logger = get_logger(__name__)


class _Subscription(AuthSubscription):
    def __init__(self, listeners: list[AuthCallback], callback: AuthCallback) -> None:
        self._listeners = listeners
        self._callback = callback

    def unsubscribe(self) -> None:
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class SupabaseAuthClient(AuthClient):
    """OAuth sign-in, session refresh and sign-out against ``/auth/v1``."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        store: SessionStore | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._store = store or SessionStore(None)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"apikey": api_key},
        )
        self._listeners: list[AuthCallback] = []
        self._session: Session | None = self._store.load()

    @property
    def session(self) -> Session | None:
        return self._session

    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def on_auth_state_change(self, callback: AuthCallback) -> AuthSubscription:
        self._listeners.append(callback)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback(AuthEvent.INITIAL_SESSION, self._session)
        else:
            loop.call_soon(self._emit_initial, callback)
        return _Subscription(self._listeners, callback)

    def _emit_initial(self, callback: AuthCallback) -> None:
        # Deregistered before the loop got to it
        if callback in self._listeners:
            callback(AuthEvent.INITIAL_SESSION, self._session)

    def _emit(self, event: AuthEvent) -> None:
        logger.info("Auth state changed", auth_event=event.value)
        for callback in list(self._listeners):
            callback(event, self._session)

    def _set_session(self, session: Session | None) -> None:
        self._session = session
        if session is None:
            self._store.clear()
        else:
            self._store.save(session)

    def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        if not provider:
            raise AuthError("An OAuth provider is required")
        if not redirect_to:
            raise AuthError("A redirect URL is required")
        query = urlencode({"provider": provider, "redirect_to": redirect_to})
        return f"{self._base_url}/authorize?{query}"

    async def complete_oauth(self, callback_url: str) -> Session:
        params = _callback_params(callback_url)
        if "error" in params:
            raise AuthError(params.get("error_description") or params["error"])
        if "access_token" not in params:
            raise AuthError("Redirect URL does not carry an access token")

        user = await self._get_user(params["access_token"])
        session = Session.from_token_response(params, Identity.from_user(user))
        self._set_session(session)
        self._emit(AuthEvent.SIGNED_IN)
        return session

    async def refresh_session(self) -> Session:
        if self._session is None or not self._session.refresh_token:
            raise AuthError("No session to refresh")
        payload = await self._post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        user = payload.get("user")
        identity = Identity.from_user(user) if user else self._session.user
        self._set_session(Session.from_token_response(payload, identity))
        self._emit(AuthEvent.TOKEN_REFRESHED)
        return self._session

    async def ensure_fresh(self) -> Session | None:
        """Refresh the stored session when its access token is about to expire."""
        if self._session is not None and self._session.is_expired():
            return await self.refresh_session()
        return self._session

    def sign_out_locally(self) -> None:
        """Forget the session without contacting the auth service."""
        self._set_session(None)
        self._emit(AuthEvent.SIGNED_OUT)

    async def sign_out(self) -> None:
        session = self._session
        self.sign_out_locally()
        if session is None:
            return
        # The local session is gone either way; a failed revoke is still reported
        try:
            response = await self._client.post(
                "/logout",
                headers={"Authorization": f"Bearer {session.access_token}"},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Sign-out request failed: {e}") from e
        if response.status_code >= 400 and response.status_code != 401:
            raise AuthError(f"Sign-out failed: HTTP {response.status_code}", response.status_code)

    async def _get_user(self, access_token: str) -> dict[str, Any]:
        try:
            response = await self._client.get(
                "/user",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Could not reach auth service: {e}") from e
        if response.status_code != 200:
            raise AuthError(_error_message(response), response.status_code)
        return response.json()

    async def _post(self, path: str, params: dict[str, str], json: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(path, params=params, json=json)
        except httpx.HTTPError as e:
            raise AuthError(f"Could not reach auth service: {e}") from e
        if response.status_code != 200:
            raise AuthError(_error_message(response), response.status_code)
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


def _callback_params(callback_url: str) -> dict[str, str]:
    """Collect OAuth result parameters from a redirect URL's fragment and query."""
    parts = urlsplit(callback_url)
    params: dict[str, str] = {}
    for raw in (parts.query, parts.fragment):
        for key, values in parse_qs(raw).items():
            params[key] = values[0]
    return params


def _error_message(response: httpx.Response) -> str:
    error_msg = f"HTTP {response.status_code}"
    try:
        data = response.json()
        if isinstance(data, dict):
            error_msg = data.get("error_description") or data.get("msg") or data.get("error") or error_msg
    except ValueError:
        pass
    return error_msg
