"""Unit tests for the REST query adapter."""

import json

import httpx
import pytest

from gamenight.core.filters import Filter
from gamenight.infrastructure.remote import RemoteDataError
from gamenight.infrastructure.remote.supabase import SupabaseRestClient

BASE_URL = "https://abc.supabase.co/rest/v1"


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def client_for(handler, token: str | None = "user-token") -> SupabaseRestClient:
    return SupabaseRestClient(
        BASE_URL,
        "anon-key",
        token_provider=lambda: token,
        transport=httpx.MockTransport(handler),
    )


class TestReads:
    """Tests for select."""

    @pytest.mark.asyncio
    async def test_select_with_projection_and_filters(self) -> None:
        recorder = Recorder(httpx.Response(200, json=[{"id": 1}]))
        client = client_for(recorder)

        rows = await client.select("votes", columns="*,players(name)", filters=(Filter.eq("event_id", 2),))

        assert rows == [{"id": 1}]
        request = recorder.last
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/votes"
        assert request.url.params["select"] == "*,players(name)"
        assert request.url.params["event_id"] == "eq.2"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer user-token"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_signed_out_uses_anon_key_as_bearer(self) -> None:
        recorder = Recorder(httpx.Response(200, json=[]))
        client = client_for(recorder, token=None)

        await client.select("players", filters=(Filter.eq("id", "u"),), limit=1)

        assert recorder.last.headers["Authorization"] == "Bearer anon-key"
        assert recorder.last.url.params["limit"] == "1"
        await client.aclose()


class TestWrites:
    """Tests for insert, update, upsert and delete."""

    @pytest.mark.asyncio
    async def test_insert_returns_representation(self) -> None:
        recorder = Recorder(httpx.Response(201, json=[{"id": 7, "event_id": 2}]))
        client = client_for(recorder)

        rows = await client.insert("rsvps", {"event_id": 2, "player_id": "u"})

        assert rows == [{"id": 7, "event_id": 2}]
        assert recorder.last.method == "POST"
        assert recorder.last.headers["Prefer"] == "return=representation"
        assert json.loads(recorder.last.content) == {"event_id": 2, "player_id": "u"}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_upsert_merges_on_conflict(self) -> None:
        recorder = Recorder(httpx.Response(201, json=[{"id": 1}]))
        client = client_for(recorder)

        await client.upsert(
            "player_activity_metadata",
            {"player_id": "u", "activity_id": 10, "is_favorite": True},
            on_conflict="player_id,activity_id",
        )

        assert recorder.last.url.params["on_conflict"] == "player_id,activity_id"
        assert "resolution=merge-duplicates" in recorder.last.headers["Prefer"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_delete_with_empty_response(self) -> None:
        recorder = Recorder(httpx.Response(204))
        client = client_for(recorder)

        rows = await client.delete("votes", (Filter.eq("id", 7),))

        assert rows == []
        assert recorder.last.method == "DELETE"
        assert recorder.last.url.params["id"] == "eq.7"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unfiltered_update_and_delete_refused(self) -> None:
        recorder = Recorder(httpx.Response(200, json=[]))
        client = client_for(recorder)

        with pytest.raises(ValueError):
            await client.update("players", {"name": "x"}, ())
        with pytest.raises(ValueError):
            await client.delete("votes", ())
        assert recorder.requests == []
        await client.aclose()


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_error_body_is_mapped(self) -> None:
        recorder = Recorder(
            httpx.Response(
                409,
                json={"code": "23505", "message": "duplicate key", "details": "Key exists", "hint": None},
            )
        )
        client = client_for(recorder)

        with pytest.raises(RemoteDataError) as exc_info:
            await client.insert("votes", {"event_id": 2})

        error = exc_info.value
        assert error.code == "23505"
        assert error.status_code == 409
        assert error.kind == "conflict"
        assert error.details == "Key exists"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        recorder = Recorder(httpx.Response(502, text="Bad Gateway"))
        client = client_for(recorder)

        with pytest.raises(RemoteDataError) as exc_info:
            await client.select("events")

        assert exc_info.value.message == "Bad Gateway"
        assert exc_info.value.kind == "server"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = client_for(handler)

        with pytest.raises(RemoteDataError, match="Network error"):
            await client.select("events")
        await client.aclose()
