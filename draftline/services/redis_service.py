"""Redis pub/sub used to fan document and version events out across workers.

When several Uvicorn workers serve the API, a restore handled by one worker
must reach editors connected to the others. Every worker subscribes to the
same channels and re-delivers what it receives to its local WebSocket
connections. Without Redis the service stays disconnected and broadcasts
remain local to the worker.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as aioredis
from redis.asyncio.client import PubSub

from ..config import settings

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict], Awaitable[None]]


class RedisService:
    """Async Redis client wrapper with channel handlers and a listener task."""

    def __init__(self) -> None:
        """Initialize the Redis service (not connected yet)."""
        self._redis: Optional[aioredis.Redis] = None
        self._pubsub: Optional[PubSub] = None
        self._listener_task: Optional[asyncio.Task] = None
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._running = False

    async def connect(self) -> None:
        """Open the connection pool and verify it with a PING."""
        self._redis = aioredis.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            socket_timeout=settings.redis_socket_timeout,
            retry_on_timeout=settings.redis_retry_on_timeout,
            decode_responses=True,
        )
        try:
            await self._redis.ping()
        except Exception:
            await self._redis.aclose()
            self._redis = None
            raise
        logger.info("Redis connected successfully")

    async def disconnect(self) -> None:
        """Stop the listener and close the connection."""
        self._running = False
        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None
        if self._pubsub:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        logger.info("Redis disconnected")

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client instance."""
        if self._redis is None:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self._redis

    @property
    def is_connected(self) -> bool:
        """Check if Redis is connected."""
        return self._redis is not None

    async def subscribe(self, channel: str, handler: MessageHandler) -> None:
        """
        Register ``handler`` for messages published on ``channel``.

        Args:
            channel: The channel name to subscribe to
            handler: Async function called with the decoded message
        """
        if channel not in self._handlers:
            self._handlers[channel] = []
            if self._pubsub:
                await self._pubsub.subscribe(channel)
        self._handlers[channel].append(handler)
        logger.debug(f"Subscribed to channel: {channel}")

    async def publish(self, channel: str, message: dict) -> int:
        """
        Publish a JSON message to a channel.

        Returns:
            Number of subscribers that received the message
        """
        return await self.client.publish(channel, json.dumps(message))

    async def start_listening(self) -> None:
        """Start the pub/sub listener background task."""
        if self._running and self._listener_task is not None:
            logger.debug("Pub/sub listener already running")
            return

        self._pubsub = self.client.pubsub()
        self._running = True
        for channel in self._handlers:
            await self._pubsub.subscribe(channel)

        self._listener_task = asyncio.create_task(self._listen_loop())
        logger.info("Redis pub/sub listener started")

    async def _listen_loop(self) -> None:
        """Receive pub/sub messages and dispatch them to channel handlers."""
        while self._running and self._pubsub is not None:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if not message or message["type"] != "message":
                    continue
                channel = message["channel"]
                data = json.loads(message["data"])
                for handler in self._handlers.get(channel, []):
                    try:
                        await handler(data)
                    except Exception as e:
                        logger.error(f"Handler error on {channel}: {e}")
            except asyncio.CancelledError:
                break
            except Exception as e:
                if not self._running:
                    break
                logger.error(f"Pub/sub listener error: {e}")
                await asyncio.sleep(1)

    async def health_check(self) -> dict[str, Any]:
        """Report connection status."""
        if not self.is_connected:
            return {"status": "disconnected"}
        try:
            await self.client.ping()
            return {"status": "healthy", "channels": sorted(self._handlers)}
        except Exception as e:
            return {"status": "error", "error": str(e)}


# Global singleton instance
redis_service = RedisService()
