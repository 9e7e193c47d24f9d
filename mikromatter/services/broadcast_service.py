"""Real-time fan-out of new posts to connected WebSocket viewers.

Delivery is best-effort and at-most-once: events go to every connection that is
open at send time, with no acknowledgement and no replay on reconnect. Sockets
that fail a send, or do not take it within the send timeout, are dropped.
Publishing never waits on the sockets themselves.

With ``BROADCAST_BACKEND=redis`` events are published to a Redis channel and each
worker process relays what it receives to its own connections, so viewers
attached to any worker see posts created on any other. A lost subscription is
re-established with exponential backoff.
"""
import asyncio
import json
import logging
from typing import Any

import redis.asyncio as aioredis
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError
from starlette.websockets import WebSocketState

from mikromatter.core.config import settings

logger = logging.getLogger(__name__)

MAX_RETRY_SECONDS = 30.0


class BroadcastHub:
    """Connections held by this process."""

    def __init__(self, send_timeout: float = settings.BROADCAST_SEND_TIMEOUT_SECONDS) -> None:
        self.send_timeout = send_timeout
        self._connections: set[WebSocket] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        logger.debug("WebSocket connected (%d open)", len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        logger.debug("WebSocket disconnected (%d open)", len(self._connections))

    async def send_text(self, message: str) -> int:
        """Send to every open connection concurrently. Returns how many sends succeeded."""
        targets = []
        for websocket in list(self._connections):
            if websocket.client_state != WebSocketState.CONNECTED:
                self.disconnect(websocket)
                continue
            targets.append(websocket)
        results = await asyncio.gather(*(self._send(websocket, message) for websocket in targets))
        return sum(results)

    async def _send(self, websocket: WebSocket, message: str) -> bool:
        try:
            await asyncio.wait_for(websocket.send_text(message), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("Dropping WebSocket that did not accept a send within %.1fs", self.send_timeout)
        except Exception as e:
            logger.warning("Dropping WebSocket after failed send: %s", e)
        self.disconnect(websocket)
        return False

    async def broadcast(self, event: dict[str, Any]) -> int:
        return await self.send_text(encode_event(event))


def encode_event(event: dict[str, Any]) -> str:
    return json.dumps(jsonable_encoder(event))


class RedisRelay:
    """Publishes events to a Redis channel and relays the channel to a local hub."""

    def __init__(
        self,
        hub: BroadcastHub,
        url: str,
        channel: str,
        client: aioredis.Redis | None = None,
        retry_delay: float = settings.BROADCAST_RETRY_SECONDS,
    ) -> None:
        self.hub = hub
        self.url = url
        self.channel = channel
        self.retry_delay = retry_delay
        self._redis = client
        self._pubsub = None
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._redis is None:
            self._redis = aioredis.from_url(self.url, decode_responses=True)
        await self._subscribe()
        self._task = asyncio.create_task(self._listen(), name="broadcast-relay")
        self._task.add_done_callback(_log_task_failure)
        logger.info("Broadcast relay subscribed to %s", self.channel)

    async def _subscribe(self) -> None:
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self.channel)

    async def _close_pubsub(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.aclose()
        except RedisError as e:
            logger.debug("Closing broadcast subscription failed: %s", e)

    async def _listen(self) -> None:
        delay = self.retry_delay
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                    logger.info("Broadcast relay resubscribed to %s", self.channel)
                async for message in self._pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    delay = self.retry_delay
                    await self.hub.send_text(message["data"])
                logger.warning("Broadcast subscription ended, resubscribing in %.1fs", delay)
            except RedisError as e:
                logger.warning("Broadcast subscription lost, resubscribing in %.1fs: %s", delay, e)
            await self._close_pubsub()
            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_RETRY_SECONDS)

    async def publish(self, message: str) -> None:
        await self._redis.publish(self.channel, message)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub:
            try:
                await self._pubsub.unsubscribe(self.channel)
            except RedisError as e:
                logger.warning("Broadcast unsubscribe failed: %s", e)
        await self._close_pubsub()
        if self._redis:
            try:
                await self._redis.aclose()
            except RedisError as e:
                logger.warning("Closing Redis connection failed: %s", e)
            self._redis = None


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Broadcast task %s failed", task.get_name(), exc_info=exc)


class Broadcaster:
    """Entry point used by the API: publish an event to every viewer."""

    def __init__(self, hub: BroadcastHub, backend: str = "memory") -> None:
        self.hub = hub
        self.backend = backend
        self._relay: RedisRelay | None = None
        self._pending: set[asyncio.Task] = set()

    async def start(self) -> None:
        if self.backend == "redis":
            self._relay = RedisRelay(self.hub, settings.REDIS_URL, settings.BROADCAST_CHANNEL)
            await self._relay.start()

    async def stop(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._relay:
            await self._relay.stop()
            self._relay = None

    async def publish(self, event: dict[str, Any]) -> None:
        """Hand the event off for delivery. Returns without waiting on any socket."""
        message = encode_event(event)
        if self._relay:
            try:
                await self._relay.publish(message)
            except RedisError as e:
                logger.warning("Broadcast publish failed, event dropped: %s", e)
            return
        task = asyncio.create_task(self.hub.send_text(message), name="broadcast-send")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(_log_task_failure)


hub = BroadcastHub()
broadcaster = Broadcaster(hub, backend=settings.BROADCAST_BACKEND)


def get_broadcaster() -> Broadcaster:
    return broadcaster
