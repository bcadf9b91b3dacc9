"""Query and write adapter for the backend's REST (PostgREST) API."""

from typing import Any, Callable, Mapping, Sequence

import httpx

from gamenight.core.filters import Filter
from gamenight.core.logging import get_logger
from gamenight.infrastructure.remote.base import Row
from gamenight.infrastructure.remote.errors import RemoteDataError

logger = get_logger(__name__)

TokenProvider = Callable[[], str | None]


class SupabaseRestClient:
    """Thin async wrapper over ``/rest/v1``.

    Every request carries the anon key as ``apikey`` and the session's
    access token (or the anon key when signed out) as the bearer token, so
    row-level security sees the signed-in user.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        token_provider: TokenProvider | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {token or self._api_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]],
        json: Any = None,
        prefer: str | None = None,
    ) -> list[Row]:
        try:
            response = await self._client.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as e:
            logger.error("Request to backend failed", method=method, table=table, error=str(e))
            raise RemoteDataError(f"Network error: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {"message": response.text or f"HTTP {response.status_code}"}
            if not isinstance(body, dict):
                body = {"message": str(body)}
            error = RemoteDataError.from_body(body, status_code=response.status_code)
            logger.warning(
                "Backend rejected request",
                method=method,
                table=table,
                status_code=response.status_code,
                code=error.code,
                error=error.message,
            )
            raise error

        if not response.content:
            return []
        data = response.json()
        if isinstance(data, list):
            return data
        return [data]

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        limit: int | None = None,
    ) -> list[Row]:
        params = [("select", columns)] + [f.to_param() for f in filters]
        if limit is not None:
            params.append(("limit", str(limit)))
        return await self._request("GET", table, params)

    async def insert(self, table: str, values: Mapping[str, Any]) -> list[Row]:
        return await self._request(
            "POST", table, [], json=dict(values), prefer="return=representation"
        )

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        filters: Sequence[Filter],
    ) -> list[Row]:
        if not filters:
            raise ValueError("update requires at least one filter")
        return await self._request(
            "PATCH",
            table,
            [f.to_param() for f in filters],
            json=dict(values),
            prefer="return=representation",
        )

    async def upsert(
        self,
        table: str,
        values: Mapping[str, Any],
        on_conflict: str,
    ) -> list[Row]:
        return await self._request(
            "POST",
            table,
            [("on_conflict", on_conflict)],
            json=dict(values),
            prefer="resolution=merge-duplicates,return=representation",
        )

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        return await self._request(
            "DELETE",
            table,
            [f.to_param() for f in filters],
            prefer="return=representation",
        )

    async def aclose(self) -> None:
        await self._client.aclose()
