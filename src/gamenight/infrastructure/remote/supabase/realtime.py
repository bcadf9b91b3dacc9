"""Change-event subscriptions over the backend's realtime socket.

The socket speaks the Phoenix channel protocol: JSON frames with ``topic``,
``event``, ``payload`` and ``ref``. Each subscription is one channel joined
with a ``postgres_changes`` config for a single table and optional filter.
There is no reconnection: when the socket drops, open channels go quiet.
"""

import asyncio
import itertools
import json
from typing import Any, Callable

import websockets

from gamenight.core.logging import get_logger
from gamenight.infrastructure.remote.base import (
    ChangeCallback,
    ChangeEvent,
    ChangeType,
    Channel,
)
from gamenight.infrastructure.remote.errors import SubscriptionError

logger = get_logger(__name__)

PHOENIX_TOPIC = "phoenix"
PROTOCOL_VERSION = "1.0.0"


def encode_message(topic: str, event: str, payload: dict[str, Any], ref: str | None) -> str:
    return json.dumps({"topic": topic, "event": event, "payload": payload, "ref": ref})


def join_payload(table: str, filter: str | None, access_token: str | None) -> dict[str, Any]:
    """``phx_join`` payload subscribing to every change on ``table``."""
    binding: dict[str, Any] = {"event": "*", "schema": "public", "table": table}
    if filter:
        binding["filter"] = filter
    payload: dict[str, Any] = {
        "config": {
            "broadcast": {"ack": False, "self": False},
            "presence": {"key": ""},
            "postgres_changes": [binding],
            "private": False,
        },
    }
    if access_token:
        payload["access_token"] = access_token
    return payload


def decode_change(data: dict[str, Any]) -> ChangeEvent:
    """Build a ChangeEvent from the ``data`` of a ``postgres_changes`` frame."""
    return ChangeEvent(
        type=ChangeType(data.get("type") or data.get("eventType")),
        table=data.get("table", ""),
        new=data.get("record") or {},
        old=data.get("old_record") or {},
    )


class RealtimeChannel(Channel):
    """One joined channel."""

    def __init__(self, client: "RealtimeClient", topic: str, callback: ChangeCallback) -> None:
        self._client = client
        self._topic = topic
        self.callback = callback
        self.joined = False

    @property
    def topic(self) -> str:
        return self._topic

    async def unsubscribe(self) -> None:
        await self._client.leave(self)


class RealtimeClient:
    """Multiplexes channels over a single websocket connection."""

    def __init__(
        self,
        url: str,
        api_key: str,
        token_provider: Callable[[], str | None] | None = None,
        heartbeat_interval: float = 25.0,
        join_timeout: float = 10.0,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._token_provider = token_provider
        self._heartbeat_interval = heartbeat_interval
        self._join_timeout = join_timeout
        self._connect = connect
        self._ws: Any = None
        self._refs = itertools.count(1)
        self._topics = itertools.count(1)
        self._pending: dict[str, asyncio.Future] = {}
        self._channels: dict[str, RealtimeChannel] = {}
        self._tasks: list[asyncio.Task] = []
        self._connect_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    @property
    def channels(self) -> list[RealtimeChannel]:
        return list(self._channels.values())

    def _next_ref(self) -> str:
        return str(next(self._refs))

    async def connect(self) -> None:
        async with self._connect_lock:
            if self._ws is not None:
                return
            url = f"{self._url}?apikey={self._api_key}&vsn={PROTOCOL_VERSION}"
            try:
                self._ws = await self._connect(url)
            except (OSError, websockets.WebSocketException) as e:
                raise SubscriptionError(f"Could not open realtime socket: {e}") from e
            logger.info("Realtime socket connected", url=self._url)
            self._tasks = [
                asyncio.create_task(self._read_loop()),
                asyncio.create_task(self._heartbeat_loop()),
            ]

    async def _send(self, topic: str, event: str, payload: dict[str, Any], ref: str | None) -> None:
        if self._ws is None:
            raise SubscriptionError("Realtime socket is not connected")
        await self._ws.send(encode_message(topic, event, payload, ref))

    async def _call(self, topic: str, event: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a frame and wait for its ``phx_reply``."""
        ref = self._next_ref()
        future = asyncio.get_running_loop().create_future()
        self._pending[ref] = future
        try:
            await self._send(topic, event, payload, ref)
            return await asyncio.wait_for(future, timeout=self._join_timeout)
        except asyncio.TimeoutError as e:
            raise SubscriptionError(f"Timed out waiting for reply to {event} on {topic}") from e
        except websockets.WebSocketException as e:
            raise SubscriptionError(f"Realtime socket failed during {event} on {topic}: {e}") from e
        finally:
            self._pending.pop(ref, None)

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        filter: str | None = None,
    ) -> Channel:
        await self.connect()
        topic = f"realtime:{table}:{filter or '*'}:{next(self._topics)}"
        channel = RealtimeChannel(self, topic, callback)
        self._channels[topic] = channel
        token = self._token_provider() if self._token_provider else None

        try:
            reply = await self._call(topic, "phx_join", join_payload(table, filter, token))
        except SubscriptionError:
            self._channels.pop(topic, None)
            raise
        if reply.get("status") != "ok":
            self._channels.pop(topic, None)
            reason = (reply.get("response") or {}).get("reason", "join refused")
            raise SubscriptionError(f"Subscription to {table} refused: {reason}")

        channel.joined = True
        logger.debug("Subscribed to table", table=table, filter=filter, topic=topic)
        return channel

    async def leave(self, channel: RealtimeChannel) -> None:
        if self._channels.pop(channel.topic, None) is None:
            return
        channel.joined = False
        if self._ws is None:
            return
        try:
            await self._send(channel.topic, "phx_leave", {}, self._next_ref())
        except websockets.WebSocketException as e:
            logger.debug("Leave frame not delivered", topic=channel.topic, error=str(e))
            return
        logger.debug("Unsubscribed from channel", topic=channel.topic)

    async def set_auth(self, access_token: str | None) -> None:
        """Push a new access token to every joined channel."""
        if self._ws is None or not access_token:
            return
        for channel in list(self._channels.values()):
            await self._send(
                channel.topic, "access_token", {"access_token": access_token}, self._next_ref()
            )

    def _dispatch(self, message: dict[str, Any]) -> None:
        topic = message.get("topic")
        event = message.get("event")
        payload = message.get("payload") or {}
        ref = message.get("ref")

        if event == "phx_reply":
            future = self._pending.get(ref)
            if future is not None and not future.done():
                future.set_result(payload)
            return

        channel = self._channels.get(topic)
        if channel is None:
            return

        if event == "postgres_changes":
            try:
                change = decode_change(payload.get("data") or {})
            except ValueError:
                logger.warning("Dropping unrecognised change frame", topic=topic)
                return
            try:
                channel.callback(change)
            except Exception:
                logger.exception("Change callback failed", topic=topic, change_type=change.type.value)
        elif event in ("phx_error", "phx_close"):
            logger.warning("Channel closed by server", topic=topic, reason=event)
            channel.joined = False
            self._channels.pop(topic, None)
        elif event == "system":
            logger.debug("Realtime system message", topic=topic, payload=payload)

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    message = json.loads(raw)
                except ValueError:
                    logger.warning("Dropping malformed realtime frame")
                    continue
                self._dispatch(message)
        except websockets.ConnectionClosed as e:
            logger.warning("Realtime socket closed", error=str(e))
        finally:
            self._ws = None
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(SubscriptionError("Realtime socket closed"))
            for channel in self._channels.values():
                channel.joined = False

    async def _heartbeat_loop(self) -> None:
        while self._ws is not None:
            await asyncio.sleep(self._heartbeat_interval)
            if self._ws is None:
                break
            try:
                await self._send(PHOENIX_TOPIC, "heartbeat", {}, self._next_ref())
            except (SubscriptionError, websockets.WebSocketException) as e:
                logger.warning("Realtime heartbeat failed", error=str(e))
                break

    async def aclose(self) -> None:
        ws = self._ws
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        self._ws = None
        if ws is not None:
            await ws.close()
        self._channels.clear()
