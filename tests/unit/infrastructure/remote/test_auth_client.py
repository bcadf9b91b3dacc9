"""Unit tests for the OAuth auth adapter."""

import asyncio
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from gamenight.domain.entities import Identity, Session
from gamenight.infrastructure.remote import AuthError, AuthEvent
from gamenight.infrastructure.remote.supabase import SessionStore, SupabaseAuthClient

BASE_URL = "https://abc.supabase.co/auth/v1"

USER = {
    "id": "user-1",
    "email": "ada@example.com",
    "identities": [{"provider": "discord", "identity_data": {"full_name": "Ada"}}],
}

CALLBACK = (
    "http://localhost:5173/#access_token=access-1&refresh_token=refresh-1"
    "&expires_in=3600&token_type=bearer"
)


class AuthServer:
    """MockTransport handler standing in for the auth service."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.logout_status = 204

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/user"):
            if request.headers["Authorization"] != "Bearer access-1":
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=USER)
        if request.url.path.endswith("/token"):
            return httpx.Response(
                200,
                json={"access_token": "access-2", "refresh_token": "refresh-2", "expires_in": 3600, "user": USER},
            )
        if request.url.path.endswith("/logout"):
            return httpx.Response(self.logout_status)
        return httpx.Response(404)


def auth_client(server: AuthServer, store: SessionStore | None = None) -> SupabaseAuthClient:
    return SupabaseAuthClient(
        BASE_URL,
        "anon-key",
        store=store,
        transport=httpx.MockTransport(server),
    )


def stored_session(expires_in: timedelta) -> Session:
    return Session(
        access_token="old",
        refresh_token="refresh-1",
        expires_at=datetime.now(timezone.utc) + expires_in,
        user=Identity(id="user-1", full_name="Ada", provider="discord"),
    )


class TestOAuthFlow:
    """Tests for the redirect-based sign-in."""

    def test_authorize_url(self) -> None:
        client = auth_client(AuthServer())

        url = client.sign_in_with_oauth("discord", redirect_to="http://localhost:5173/")

        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == f"{BASE_URL}/authorize"
        assert parse_qs(parts.query) == {
            "provider": ["discord"],
            "redirect_to": ["http://localhost:5173/"],
        }

    def test_authorize_requires_provider(self) -> None:
        with pytest.raises(AuthError):
            auth_client(AuthServer()).sign_in_with_oauth("", redirect_to="http://x/")

    @pytest.mark.asyncio
    async def test_complete_oauth_adopts_session(self, tmp_path) -> None:
        store = SessionStore(tmp_path / "session.json")
        client = auth_client(AuthServer(), store)
        events = []
        client.on_auth_state_change(lambda event, session: events.append((event, session)))
        await asyncio.sleep(0)

        session = await client.complete_oauth(CALLBACK)

        assert session.access_token == "access-1"
        assert session.user == Identity.from_user(USER)
        assert client.access_token() == "access-1"
        assert [event for event, _ in events] == [AuthEvent.INITIAL_SESSION, AuthEvent.SIGNED_IN]
        assert store.load().access_token == "access-1"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_provider_error_in_redirect(self) -> None:
        client = auth_client(AuthServer())

        with pytest.raises(AuthError, match="denied"):
            await client.complete_oauth(
                "http://localhost:5173/?error=access_denied&error_description=User+denied"
            )
        assert client.session is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rejected_token(self) -> None:
        client = auth_client(AuthServer())

        with pytest.raises(AuthError, match="invalid JWT") as exc_info:
            await client.complete_oauth("http://localhost:5173/#access_token=forged")
        assert exc_info.value.status_code == 401
        await client.aclose()


class TestSessionLifecycle:
    """Tests for restore, refresh and sign-out."""

    @pytest.mark.asyncio
    async def test_restores_and_refreshes_expired_session(self, tmp_path) -> None:
        store = SessionStore(tmp_path / "session.json")
        store.save(stored_session(timedelta(seconds=5)))
        server = AuthServer()
        client = auth_client(server, store)
        assert client.session.access_token == "old"

        session = await client.ensure_fresh()

        assert session.access_token == "access-2"
        token_request = server.requests[-1]
        assert token_request.url.params["grant_type"] == "refresh_token"
        assert store.load().refresh_token == "refresh-2"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_fresh_session_is_not_refreshed(self, tmp_path) -> None:
        store = SessionStore(tmp_path / "session.json")
        store.save(stored_session(timedelta(hours=1)))
        server = AuthServer()
        client = auth_client(server, store)

        session = await client.ensure_fresh()

        assert session.access_token == "old"
        assert server.requests == []
        await client.aclose()

    @pytest.mark.asyncio
    async def test_sign_out_clears_session(self, tmp_path) -> None:
        store = SessionStore(tmp_path / "session.json")
        store.save(stored_session(timedelta(hours=1)))
        server = AuthServer()
        client = auth_client(server, store)
        events = []
        client.on_auth_state_change(lambda event, session: events.append((event, session)))
        await asyncio.sleep(0)

        await client.sign_out()

        assert client.session is None
        assert not (tmp_path / "session.json").exists()
        assert events[-1] == (AuthEvent.SIGNED_OUT, None)
        assert server.requests[-1].headers["Authorization"] == "Bearer old"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_failed_revoke_still_signs_out_locally(self, tmp_path) -> None:
        store = SessionStore(tmp_path / "session.json")
        store.save(stored_session(timedelta(hours=1)))
        server = AuthServer()
        server.logout_status = 500
        client = auth_client(server, store)

        with pytest.raises(AuthError):
            await client.sign_out()
        assert client.session is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unsubscribed_listener_gets_nothing(self) -> None:
        client = auth_client(AuthServer())
        events = []
        subscription = client.on_auth_state_change(lambda event, session: events.append(event))
        subscription.unsubscribe()
        await asyncio.sleep(0)

        assert events == []
        await client.aclose()
