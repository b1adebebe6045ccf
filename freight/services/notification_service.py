from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from freight.config import settings
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError
from contextlib import suppress
from typing import Any, Dict, Optional, Set
import redis.asyncio as redis
import asyncio
import json
import logging

logger = logging.getLogger(__name__)

# Errors after which the relay drops its subscription and starts over
RELAY_CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, ConnectionError)

# Room names
def bidding_room(session_id) -> str:
    return f"bidding-{session_id}"

def user_room(user_id) -> str:
    return f"user-{user_id}"

def load_room(load_id) -> str:
    return f"load-{load_id}"

class ConnectionManager:
    """Process-local WebSocket rooms"""

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket):
        await websocket.accept()

    def join(self, websocket: WebSocket, room_id: str):
        self.rooms.setdefault(room_id, set()).add(websocket)

    def leave(self, websocket: WebSocket, room_id: str):
        members = self.rooms.get(room_id)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room_id]

    def disconnect(self, websocket: WebSocket):
        for room_id in list(self.rooms):
            self.leave(websocket, room_id)

    def room_size(self, room_id: str) -> int:
        return len(self.rooms.get(room_id, ()))

    async def broadcast_to_room(self, room_id: str, message: dict):
        for connection in list(self.rooms.get(room_id, ())):
            try:
                await connection.send_json(message)
            except Exception:
                logger.warning("Dropping unreachable socket from room %s", room_id, exc_info=True)
                self.leave(connection, room_id)

class NotificationService:
    """
    Best-effort event emitter.

    With a Redis client, events are published to the notification channel and
    every process relays them to its own rooms; without one they go straight
    to the local ConnectionManager. Callers emit only after their commit, and
    a failed emit is logged, never raised.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        redis_client: Optional[redis.Redis] = None,
        channel: str = settings.NOTIFICATION_CHANNEL,
        retry_delay: float = settings.NOTIFICATION_RETRY_SECONDS
    ):
        self.manager = manager
        self.redis = redis_client
        self.channel = channel
        self.retry_delay = retry_delay

    async def emit(self, room_id: str, event: str, data: Any = None):
        message = {"event": event, "data": jsonable_encoder(data)}
        try:
            if self.redis is not None:
                await self.redis.publish(
                    self.channel,
                    json.dumps({"room": room_id, "message": message})
                )
            else:
                await self.manager.broadcast_to_room(room_id, message)
        except Exception:
            logger.warning("Failed to emit %s to %s", event, room_id, exc_info=True)

    async def _relay_message(self, raw: dict):
        if raw.get("type") != "message":
            return
        try:
            payload = json.loads(raw["data"])
            room_id, message = payload["room"], payload["message"]
        except (TypeError, ValueError, KeyError):
            logger.warning("Ignoring malformed notification: %r", raw.get("data"))
            return
        await self.manager.broadcast_to_room(room_id, message)

    async def relay_redis_events(self):
        """
        Fan events published by any process out to this process's rooms.
        A dropped Redis connection is logged and the channel is resubscribed
        with exponential backoff.
        """
        if self.redis is None:
            return

        delay = self.retry_delay
        while True:
            pubsub = self.redis.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                logger.info("Relaying notifications from %s", self.channel)
                delay = self.retry_delay
                async for raw in pubsub.listen():
                    await self._relay_message(raw)
                return
            except RELAY_CONNECTION_ERRORS:
                logger.warning(
                    "Notification relay lost Redis, resubscribing in %.1fs", delay, exc_info=True
                )
            finally:
                # The connection may already be gone
                with suppress(*RELAY_CONNECTION_ERRORS):
                    await pubsub.unsubscribe(self.channel)
                await pubsub.aclose()

            await asyncio.sleep(delay)
            delay = min(delay * 2, settings.NOTIFICATION_RETRY_MAX_SECONDS)
